"""SimulationEngine — a minimal Cell-DEVS style scheduler.

Cells see each other only through published snapshots.  One step does the
following in order:

1. Pop every publication due at the next event time and commit it as the
   publishing cell's state.
2. Record the committed states in the history.
3. Re-evaluate every cell with a publishing cell in its neighbourhood.
4. For each cell whose computed state differs from what it last scheduled,
   schedule a publication after the cell's output delay.

Evaluation reads only published snapshots, so the order in which cells are
evaluated within a step does not affect the result.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from spatial_sirds.cells.transition import NeighborView, TransitionFunction
from spatial_sirds.model.state import CompartmentState, Vicinity
from spatial_sirds.simulation.config import ScenarioConfig
from spatial_sirds.world.grid import CellId, Grid

logger = logging.getLogger(__name__)

COMPARTMENTS = ("susceptible", "infected", "recovered", "deceased")


@dataclass
class Cell:
    """Engine-side record of one grid cell.

    Attributes:
        cell_id: Grid position.
        state: Committed (and published) state.
        transition: The cell's transition function.
        neighbors: Cells whose published state this cell reads.
        vicinities: Weight toward each neighbour, keyed by neighbour id.
        scheduled: Latest state handed to the scheduler, if any is pending.
    """

    cell_id: CellId
    state: CompartmentState
    transition: TransitionFunction
    neighbors: list[CellId] = field(default_factory=list)
    vicinities: dict[CellId, Vicinity] = field(default_factory=dict)
    scheduled: CompartmentState | None = None


@dataclass
class SimulationEngine:
    """Drives every cell of a scenario through simulated time.

    Attributes:
        config: Scenario the engine was built from.
        grid: Cell topology.
        cells: Cell records keyed by id, in row-major order.
        time: Simulated time of the last processed step.
        history: ``(time, {cell_id: state})`` after each step, starting
            with the initial states at time 0.
    """

    config: ScenarioConfig
    grid: Grid = field(init=False)
    cells: dict[CellId, Cell] = field(init=False, default_factory=dict)
    time: int = 0
    history: list[tuple[int, dict[CellId, CompartmentState]]] = field(
        init=False,
        default_factory=list,
    )
    _queue: list[tuple[int, int, CellId, CompartmentState]] = field(
        init=False,
        default_factory=list,
        repr=False,
    )
    _listeners: dict[CellId, list[CellId]] = field(
        init=False,
        default_factory=dict,
        repr=False,
    )
    _seq: itertools.count = field(init=False, default_factory=itertools.count, repr=False)

    def __post_init__(self) -> None:
        """Build cells from the scenario and evaluate them at time 0."""
        self.grid = self.config.build_grid()
        model = self.config.model_variant
        specs = self.config.resolve_cells(self.grid)
        for cell_id, spec in specs.items():
            neighborhood = self.grid.neighborhood_of(cell_id)
            neighbors = list(neighborhood)
            self.cells[cell_id] = Cell(
                cell_id=cell_id,
                state=spec.state,
                transition=TransitionFunction(
                    model=model,
                    config=spec.config,
                    delay=self.config.delay,
                ),
                neighbors=neighbors,
                vicinities={
                    n: spec.vicinity_for(offset) for n, offset in neighborhood.items()
                },
            )
            self._listeners.setdefault(cell_id, [])
            for neighbor_id in neighbors:
                self._listeners.setdefault(neighbor_id, []).append(cell_id)

        logger.info(
            "Built %dx%d grid (%d cells, %s, wrapped=%s) with model %s",
            self.grid.rows,
            self.grid.cols,
            len(self.grid),
            self.grid.neighborhood,
            self.grid.wrapped,
            model.name,
        )
        self.history.append((self.time, self.snapshot()))
        self._evaluate(self.cells)

    @property
    def next_time(self) -> int | None:
        """Time of the next pending publication, or None when idle."""
        return self._queue[0][0] if self._queue else None

    def view(self, cell_id: CellId) -> NeighborView:
        """Return what ``cell_id`` sees: its state and its neighbours' snapshots."""
        cell = self.cells[cell_id]
        return NeighborView(
            current_state=cell.state,
            snapshots={
                n: (self.cells[n].state, cell.vicinities[n]) for n in cell.neighbors
            },
        )

    def snapshot(self) -> dict[CellId, CompartmentState]:
        return {cell_id: cell.state for cell_id, cell in self.cells.items()}

    def step(self) -> bool:
        """Process every publication due at the next event time.

        Returns:
            False if nothing was pending, True otherwise.
        """
        if not self._queue:
            return False

        self.time = self._queue[0][0]
        published: list[CellId] = []
        while self._queue and self._queue[0][0] == self.time:
            _, _, cell_id, state = heapq.heappop(self._queue)
            cell = self.cells[cell_id]
            cell.state = state
            if cell.scheduled is state:
                cell.scheduled = None
            published.append(cell_id)
        self.history.append((self.time, self.snapshot()))

        affected = {n for cell_id in published for n in self._listeners[cell_id]}
        changed = self._evaluate(affected)
        logger.debug(
            "t=%d: %d published, %d evaluated, %d scheduled",
            self.time,
            len(published),
            len(affected),
            changed,
        )
        return True

    def run(self, until: int | None = None) -> None:
        """Step until no publication is pending at or before ``until``.

        Args:
            until: Last simulated time to process.  Defaults to the
                scenario's ``ticks``.
        """
        until = self.config.ticks if until is None else until
        while self._queue and self._queue[0][0] <= until:
            self.step()
        logger.info("Stopped at t=%d with %d pending", self.time, len(self._queue))

    def totals(self) -> NDArray[np.float64]:
        """Population-weighted grid-wide fractions for each history entry.

        Returns:
            Array of shape ``(len(history), 4)``; columns follow
            ``COMPARTMENTS``.
        """
        ids = list(self.cells)
        populations = np.array(
            [self.cells[i].state.population for i in ids],
            dtype=np.float64,
        )
        result = np.zeros((len(self.history), len(COMPARTMENTS)), dtype=np.float64)
        for row, (_, states) in enumerate(self.history):
            fractions = np.array(
                [[getattr(states[i], c) for c in COMPARTMENTS] for i in ids],
                dtype=np.float64,
            )
            result[row] = populations @ fractions / populations.sum()
        return result

    def times(self) -> NDArray[np.int64]:
        return np.array([t for t, _ in self.history], dtype=np.int64)

    def _evaluate(self, cell_ids: Iterable[CellId]) -> int:
        """Run the transition function of each cell and schedule changes."""
        scheduled = 0
        for cell_id in sorted(cell_ids):
            cell = self.cells[cell_id]
            new_state = cell.transition.local_computation(self.view(cell_id))
            latest = cell.scheduled if cell.scheduled is not None else cell.state
            if new_state == latest:
                continue
            cell.scheduled = new_state
            publish_at = self.time + cell.transition.output_delay(new_state)
            heapq.heappush(
                self._queue,
                (publish_at, next(self._seq), cell_id, new_state),
            )
            scheduled += 1
        return scheduled
