"""Transition function — how one cell's compartments evolve per tick.

Every model variant runs the same four-stage computation, with stages the
variant does not enable contributing nothing:

1. New infections from the neighbours' published infected populations,
   weighted by vicinity, scaled by virulence, normalised by the cell's own
   population and capped at the current susceptible fraction.
2. New recoveries: ``infected * recovery``.
3. New deceases: ``infected * fatality``.
4. Waning immunity: ``recovered * (1 - immunity)`` return to susceptible.

Compartments are rounded to two decimals after combination and
``susceptible`` is derived as the residual, so the fractions always add up
to one.

The function reads the cell through a ``CellContext`` and never mutates
it.  Neighbour snapshots are whatever the neighbours last published and may
lag their current state.
"""

from __future__ import annotations

import math
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from spatial_sirds.model.config import SIRDS, CellConfig, Model, Stage
from spatial_sirds.model.state import CompartmentState, Vicinity

__all__ = [
    "CellContext",
    "NeighborView",
    "Stage",
    "TransitionFunction",
    "next_state",
    "round2",
]

DEFAULT_OUTPUT_DELAY = 1


def round2(value: float) -> float:
    """Round to two decimals, halves away from zero."""
    return math.copysign(math.floor(abs(value) * 100.0 + 0.5), value) / 100.0


class CellContext(Protocol):
    """Read-only view of a cell handed to the transition function."""

    @property
    def current_state(self) -> CompartmentState: ...

    def neighbors(self) -> Iterable[Hashable]: ...

    def neighbor_snapshot(
        self,
        neighbor_id: Hashable,
    ) -> tuple[CompartmentState, Vicinity]: ...


@dataclass(frozen=True)
class NeighborView:
    """A ``CellContext`` built from a state and a neighbour mapping.

    Attributes:
        current_state: The cell's own committed state.
        snapshots: Neighbour id -> (last published state, vicinity toward
            that neighbour).  Iteration order is the summation order.
    """

    current_state: CompartmentState
    snapshots: Mapping[Hashable, tuple[CompartmentState, Vicinity]] = field(
        default_factory=dict,
    )

    def neighbors(self) -> Iterable[Hashable]:
        return self.snapshots.keys()

    def neighbor_snapshot(
        self,
        neighbor_id: Hashable,
    ) -> tuple[CompartmentState, Vicinity]:
        return self.snapshots[neighbor_id]


@dataclass(frozen=True)
class TransitionFunction:
    """Per-cell transition logic for one model variant.

    Attributes:
        model: Variant whose stages are applied.
        config: The cell's transition rates.
        delay: Ticks a new state waits before neighbours can see it.
    """

    model: Model = SIRDS
    config: CellConfig = field(default_factory=CellConfig)
    delay: int = DEFAULT_OUTPUT_DELAY

    def new_infections(self, ctx: CellContext) -> float:
        """Fraction of the cell newly infected this tick."""
        if not self.model.enables(Stage.INFECTION):
            return 0.0
        state = ctx.current_state
        pressure = 0.0
        for neighbor_id in ctx.neighbors():
            neighbor, vicinity = ctx.neighbor_snapshot(neighbor_id)
            pressure += vicinity.influence(neighbor)
        infections = state.susceptible * self.config.virulence * pressure / state.population
        return min(state.susceptible, infections)

    def new_recoveries(self, state: CompartmentState) -> float:
        if not self.model.enables(Stage.RECOVERY):
            return 0.0
        return state.infected * self.config.recovery

    def new_deceases(self, state: CompartmentState) -> float:
        if not self.model.enables(Stage.DECEASE):
            return 0.0
        return state.infected * self.config.fatality

    def new_susceptibles(self, state: CompartmentState) -> float:
        """Recovered individuals whose immunity wanes this tick."""
        if not self.model.enables(Stage.WANING):
            return 0.0
        return state.recovered * (1.0 - self.config.immunity)

    def local_computation(self, ctx: CellContext) -> CompartmentState:
        """Return the state the cell should move to.

        Recoveries and deceases are both taken from the same infected pool
        without a joint cap; ``CellConfig.validate`` rejects rates whose sum
        exceeds one.

        Each compartment rounds independently, so several can round up in
        the same tick.  Recovered and infected are capped at the share left
        by the compartments assembled before them, and the residual
        susceptible fraction is floored at zero.
        """
        state = ctx.current_state
        new_i = self.new_infections(ctx)
        new_r = self.new_recoveries(state)
        new_d = self.new_deceases(state)
        new_s = self.new_susceptibles(state)

        deceased = min(1.0, round2(state.deceased + new_d))
        recovered = min(1.0 - deceased, round2(state.recovered + new_r - new_s))
        infected = max(
            0.0,
            min(
                1.0 - recovered - deceased,
                round2(state.infected + new_i - new_r - new_d),
            ),
        )
        return CompartmentState(
            population=state.population,
            susceptible=max(0.0, 1.0 - infected - recovered - deceased),
            infected=infected,
            recovered=recovered,
            deceased=deceased,
        )

    def output_delay(self, state: CompartmentState) -> int:
        """Ticks before ``state`` is published to the neighbours.

        Constant here; ``state`` is part of the signature so that delays may
        depend on the published state.
        """
        return self.delay


def next_state(
    state: CompartmentState,
    config: CellConfig,
    neighbors: Mapping[Hashable, tuple[CompartmentState, Vicinity]],
    model: Model = SIRDS,
) -> CompartmentState:
    """Compute a cell's next state without building a context by hand."""
    transition = TransitionFunction(model=model, config=config)
    return transition.local_computation(NeighborView(state, neighbors))
