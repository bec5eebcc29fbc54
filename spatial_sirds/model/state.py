"""Compartment state and vicinity records.

A ``CompartmentState`` is the snapshot a cell holds and publishes to its
neighbours.  A ``Vicinity`` weighs how strongly one neighbour's infected
population reaches the cell.  Both are immutable: cells replace their state
wholesale on every re-evaluation, and vicinities are fixed at topology
construction.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from spatial_sirds.model.errors import InvalidPopulation, MalformedConfig

_SUM_TOLERANCE = 1e-6


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        msg = f"missing required field {key!r}"
        raise MalformedConfig(msg) from None
    except TypeError:
        msg = f"expected a mapping, got {type(data).__name__}"
        raise MalformedConfig(msg) from None


def read_float(data: Mapping[str, Any], key: str) -> float:
    """Read ``data[key]`` as a finite float.

    Raises:
        MalformedConfig: If the key is absent or the value is not numeric.
    """
    value = _require(data, key)
    if isinstance(value, bool):
        msg = f"field {key!r} must be numeric, got a boolean"
        raise MalformedConfig(msg)
    try:
        result = float(value)
    except (TypeError, ValueError):
        msg = f"field {key!r} must be numeric, got {value!r}"
        raise MalformedConfig(msg) from None
    if not math.isfinite(result):
        msg = f"field {key!r} must be finite, got {value!r}"
        raise MalformedConfig(msg)
    return result


def read_int(data: Mapping[str, Any], key: str) -> int:
    """Read ``data[key]`` as an integer (integral floats are accepted)."""
    value = read_float(data, key)
    if not value.is_integer():
        msg = f"field {key!r} must be an integer, got {data[key]!r}"
        raise MalformedConfig(msg)
    return int(value)


def _check_fraction(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        msg = f"{name} must be within [0, 1], got {value}"
        raise MalformedConfig(msg)


@dataclass(frozen=True)
class CompartmentState:
    """Population fractions of one cell at one simulated instant.

    Attributes:
        population: Individuals represented by the cell.  Fixed for the
            cell's lifetime.
        susceptible: Fraction not yet infected (or whose immunity waned).
        infected: Fraction currently infectious.
        recovered: Fraction currently immune.
        deceased: Fraction dead.  Always 0.0 in the SIR models.
    """

    population: int
    susceptible: float
    infected: float
    recovered: float
    deceased: float = 0.0

    @property
    def total(self) -> float:
        """Sum of every compartment (1.0 for a valid state)."""
        return self.susceptible + self.infected + self.recovered + self.deceased

    def validate(self) -> None:
        """Check the population and compartment invariants.

        Raises:
            InvalidPopulation: If ``population`` is not a positive integer.
            MalformedConfig: If a fraction is outside [0, 1] or the
                fractions do not add up to 1.
        """
        if isinstance(self.population, bool) or not isinstance(self.population, int):
            msg = f"population must be an integer, got {self.population!r}"
            raise InvalidPopulation(msg)
        if self.population <= 0:
            msg = f"population must be positive, got {self.population}"
            raise InvalidPopulation(msg)
        for name in ("susceptible", "infected", "recovered", "deceased"):
            _check_fraction(name, getattr(self, name))
        if abs(self.total - 1.0) > _SUM_TOLERANCE:
            msg = f"compartments must sum to 1, got {self.total}"
            raise MalformedConfig(msg)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        *,
        with_deceased: bool = False,
    ) -> CompartmentState:
        """Build a validated state from a configuration mapping.

        Args:
            data: Mapping with ``population``, ``susceptible``,
                ``infected`` and ``recovered`` keys.
            with_deceased: Also require a ``deceased`` key.  When False,
                ``deceased`` is read only if present.

        Raises:
            MalformedConfig: On a missing or non-numeric field.
            InvalidPopulation: If the population is zero or negative.
        """
        if with_deceased or (isinstance(data, Mapping) and "deceased" in data):
            deceased = read_float(data, "deceased")
        else:
            deceased = 0.0
        state = cls(
            population=read_int(data, "population"),
            susceptible=read_float(data, "susceptible"),
            infected=read_float(data, "infected"),
            recovered=read_float(data, "recovered"),
            deceased=deceased,
        )
        state.validate()
        return state

    def to_dict(self, *, with_deceased: bool = True) -> dict[str, float | int]:
        """Return the state as a plain mapping using the config field names."""
        data: dict[str, float | int] = {
            "population": self.population,
            "susceptible": self.susceptible,
            "infected": self.infected,
            "recovered": self.recovered,
        }
        if with_deceased:
            data["deceased"] = self.deceased
        return data


@dataclass(frozen=True)
class Vicinity:
    """Influence weight from a neighbour toward a cell.

    Two independent attenuations multiply together so that movement and
    structural proximity can be tuned separately.

    Attributes:
        mobility: Share of the neighbour's infectious pressure that arrives
            through movement.
        connectivity: Structural proximity factor.
    """

    mobility: float = 1.0
    connectivity: float = 1.0

    def validate(self) -> None:
        """Raise ``MalformedConfig`` if either factor is negative."""
        for name in ("mobility", "connectivity"):
            if getattr(self, name) < 0.0:
                msg = f"{name} must be non-negative, got {getattr(self, name)}"
                raise MalformedConfig(msg)

    def influence(self, neighbor: CompartmentState) -> float:
        """Infected individuals of ``neighbor`` that reach the cell."""
        return neighbor.infected * neighbor.population * self.mobility * self.connectivity

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Vicinity:
        """Build a validated vicinity from ``mobility`` / ``connectivity``."""
        vicinity = cls(
            mobility=read_float(data, "mobility"),
            connectivity=read_float(data, "connectivity"),
        )
        vicinity.validate()
        return vicinity

    def to_dict(self) -> dict[str, float]:
        """Return the weights as a plain mapping using the config field names."""
        return {"mobility": self.mobility, "connectivity": self.connectivity}
