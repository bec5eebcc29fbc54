"""Cell configuration and the epidemiological model variants.

A ``Model`` names the set of transition stages a cell runs and the rate
fields its configuration must provide.  The four built-in variants share
one transition function and differ only in their stage set:

- ``sir``: infection + recovery with built-in default rates.
- ``sir_config``: same stages, rates required in the configuration.
- ``sird``: adds deaths drawn from the infected pool.
- ``sirds``: adds waning immunity (recovered -> susceptible).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Flag, auto
from typing import Any

from spatial_sirds.model.errors import MalformedConfig
from spatial_sirds.model.state import read_float

logger = logging.getLogger(__name__)

RATE_FIELDS = ("virulence", "recovery", "immunity", "fatality")


class Stage(Flag):
    """Transition stages that a model may enable independently."""

    INFECTION = auto()
    RECOVERY = auto()
    DECEASE = auto()
    WANING = auto()


@dataclass(frozen=True)
class Model:
    """An epidemiological variant.

    Attributes:
        name: Registry key, also used in scenario files.
        stages: Enabled transition stages.
        required: Rate fields a cell configuration must define.
        defaults: Fallback values for rate fields absent from the
            configuration.
    """

    name: str
    stages: Stage
    required: tuple[str, ...] = ()
    defaults: Mapping[str, float] = field(default_factory=dict, hash=False)

    @property
    def has_deceased(self) -> bool:
        """Whether states of this model carry a ``deceased`` compartment."""
        return Stage.DECEASE in self.stages

    def enables(self, stage: Stage) -> bool:
        return stage in self.stages


SIR = Model(
    name="sir",
    stages=Stage.INFECTION | Stage.RECOVERY,
    defaults={"virulence": 0.6, "recovery": 0.4},
)
SIR_CONFIG = Model(
    name="sir_config",
    stages=Stage.INFECTION | Stage.RECOVERY,
    required=("virulence", "recovery"),
)
SIRD = Model(
    name="sird",
    stages=Stage.INFECTION | Stage.RECOVERY | Stage.DECEASE,
    required=("virulence", "recovery", "fatality"),
)
SIRDS = Model(
    name="sirds",
    stages=Stage.INFECTION | Stage.RECOVERY | Stage.DECEASE | Stage.WANING,
    required=("virulence", "recovery", "immunity", "fatality"),
)

MODELS: dict[str, Model] = {m.name: m for m in (SIR, SIR_CONFIG, SIRD, SIRDS)}


def get_model(name: str) -> Model:
    """Look up a model variant by name.

    Raises:
        MalformedConfig: If no variant has that name.
    """
    try:
        return MODELS[name]
    except (KeyError, TypeError):
        msg = f"unknown model {name!r}; expected one of {sorted(MODELS)}"
        raise MalformedConfig(msg) from None


@dataclass(frozen=True)
class CellConfig:
    """Per-cell transition rates, constant for the cell's lifetime.

    Rates of stages the model does not enable are left at 0.0 and ignored.

    Attributes:
        virulence: Infections caused per unit of incoming infected pressure.
        recovery: Fraction of infected that recover each tick.
        immunity: Fraction of recovered that keep their immunity each tick.
        fatality: Fraction of infected that die each tick.
    """

    virulence: float = 0.0
    recovery: float = 0.0
    immunity: float = 0.0
    fatality: float = 0.0

    def validate(self) -> None:
        """Check that rates are probabilities and deaths + recoveries fit.

        Raises:
            MalformedConfig: If a rate is outside [0, 1], or if
                ``recovery + fatality`` exceeds 1 (more individuals would
                leave the infected pool than it holds).
        """
        for name in RATE_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                msg = f"{name} must be within [0, 1], got {value}"
                raise MalformedConfig(msg)
        if self.recovery + self.fatality > 1.0:
            msg = (
                f"recovery + fatality must not exceed 1, got "
                f"{self.recovery} + {self.fatality}"
            )
            raise MalformedConfig(msg)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any] | None,
        model: Model = SIRDS,
    ) -> CellConfig:
        """Read the rate fields ``model`` needs from a configuration mapping.

        Fields the model requires must be present.  Other known fields fall
        back to the model defaults, then to 0.0; unknown keys are ignored.

        Raises:
            MalformedConfig: On a missing, non-numeric or out-of-range rate.
        """
        data = {} if data is None else data
        if not isinstance(data, Mapping):
            msg = f"cell config must be a mapping, got {type(data).__name__}"
            raise MalformedConfig(msg)
        values: dict[str, float] = {}
        for name in RATE_FIELDS:
            if name in model.required or name in data:
                values[name] = read_float(data, name)
            else:
                values[name] = float(model.defaults.get(name, 0.0))
        extra = set(data) - set(RATE_FIELDS)
        if extra:
            logger.debug("Ignoring unknown cell config fields: %s", sorted(extra))
        config = cls(**values)
        config.validate()
        return config

    def to_dict(self, model: Model | None = None) -> dict[str, float]:
        """Return the rates, restricted to ``model.required`` when given."""
        names = RATE_FIELDS if model is None or not model.required else model.required
        return {name: getattr(self, name) for name in names}
