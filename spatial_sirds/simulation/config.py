"""Config — load scenario parameters from YAML (or JSON) files.

A scenario describes the grid, the model variant, a default cell block and
per-cell overrides.  A cell block's ``vicinity`` weighs every neighbour;
its ``neighbors`` mapping overrides that weight per ``"d_row,d_col"``
offset, so the cell itself (``"0,0"``) or the diagonals can be weighed
differently.  Cell blocks are merged field by field over the
default and validated into typed records before any simulation starts, so
a bad value aborts setup rather than surfacing mid-run.

Example::

    shape: [10, 10]
    model: sirds
    neighborhood: moore
    default:
      state: {population: 100, susceptible: 1.0, infected: 0.0, recovered: 0.0}
      config: {virulence: 0.6, recovery: 0.4, immunity: 0.6, fatality: 0.03}
      vicinity: {mobility: 1.0, connectivity: 1.0}
      neighbors:
        "0,0": {mobility: 2.0}
        "-1,-1": {connectivity: 0.5}
    cells:
      "5,5":
        state: {susceptible: 0.7, infected: 0.3}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from spatial_sirds.model.config import CellConfig, Model, get_model
from spatial_sirds.model.errors import ConfigError, MalformedConfig
from spatial_sirds.model.state import CompartmentState, Vicinity
from spatial_sirds.world.grid import CellId, Grid, Offset, cell_id_from_str

logger = logging.getLogger(__name__)

_BLOCK_KEYS = ("state", "config", "vicinity", "neighbors")


def _default_cell_block() -> dict[str, dict[str, Any]]:
    return {
        "state": {
            "population": 100,
            "susceptible": 1.0,
            "infected": 0.0,
            "recovered": 0.0,
            "deceased": 0.0,
        },
        "config": {
            "virulence": 0.6,
            "recovery": 0.4,
            "immunity": 0.6,
            "fatality": 0.03,
        },
        "vicinity": {"mobility": 1.0, "connectivity": 1.0},
        "neighbors": {},
    }


def merge_blocks(
    base: Mapping[str, Any],
    override: Mapping[str, Any] | None,
) -> dict[str, dict[str, Any]]:
    """Merge a cell block over ``base`` one field at a time.

    ``neighbors`` entries are merged per offset, then field by field.
    """
    if override is not None and not isinstance(override, Mapping):
        msg = f"cell block must be a mapping, got {type(override).__name__}"
        raise MalformedConfig(msg)
    override = override or {}
    merged: dict[str, dict[str, Any]] = {}
    for key in _BLOCK_KEYS:
        part = override.get(key) or {}
        if not isinstance(part, Mapping):
            msg = f"{key!r} must be a mapping, got {type(part).__name__}"
            raise MalformedConfig(msg)
        base_part = base.get(key) or {}
        if key == "neighbors":
            neighbors = {str(k): dict(v) for k, v in base_part.items()}
            for offset, weights in part.items():
                if not isinstance(weights, Mapping):
                    msg = (
                        f"neighbor {offset!r} must be a mapping, "
                        f"got {type(weights).__name__}"
                    )
                    raise MalformedConfig(msg)
                neighbors[str(offset)] = {**neighbors.get(str(offset), {}), **weights}
            merged[key] = neighbors
        else:
            merged[key] = {**base_part, **part}
    return merged


def resolve_vicinities(
    base: Mapping[str, Any],
    neighbors: Mapping[str, Mapping[str, Any]],
    offsets: tuple[Offset, ...],
) -> dict[Offset, Vicinity]:
    """Build the vicinity toward each neighbourhood offset.

    Raises:
        MalformedConfig: If an override names an offset outside the
            neighbourhood, or a merged vicinity is malformed.
    """
    overrides: dict[Offset, Mapping[str, Any]] = {}
    for key, weights in neighbors.items():
        offset = cell_id_from_str(key)
        if offset not in offsets:
            msg = f"offset {key!r} is not part of the neighborhood"
            raise MalformedConfig(msg)
        if not isinstance(weights, Mapping):
            msg = f"neighbor {key!r} must be a mapping, got {type(weights).__name__}"
            raise MalformedConfig(msg)
        overrides[offset] = weights
    return {
        offset: Vicinity.from_dict({**base, **overrides.get(offset, {})})
        for offset in offsets
    }


@dataclass(frozen=True)
class CellSpec:
    """Validated setup data for one cell.

    Attributes:
        state: Initial compartment state.
        config: Transition rates.
        vicinities: Weight toward the neighbour at each grid offset.
    """

    state: CompartmentState
    config: CellConfig
    vicinities: dict[Offset, Vicinity] = field(hash=False)

    def vicinity_for(self, offset: Offset) -> Vicinity:
        return self.vicinities[offset]


@dataclass
class ScenarioConfig:
    """Top-level scenario configuration.

    Attributes:
        rows: Grid rows.
        cols: Grid columns.
        model: Model variant name (``sir``, ``sir_config``, ``sird``,
            ``sirds``).
        neighborhood: ``moore`` or ``von_neumann``.
        wrapped: Whether grid edges wrap around.
        include_self: Whether a cell counts itself as a neighbour.
        ticks: Default simulated time to run for.
        delay: Output delay, in ticks, of every cell.
        default: Cell block applied to every cell.
        cells: ``"row,col"`` -> partial cell block overriding ``default``.
    """

    rows: int = 10
    cols: int = 10
    model: str = "sirds"
    neighborhood: str = "moore"
    wrapped: bool = False
    include_self: bool = True
    ticks: int = 50
    delay: int = 1
    default: dict[str, dict[str, Any]] = field(default_factory=_default_cell_block)
    cells: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ScenarioConfig:
        """Load a scenario from a YAML or JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            MalformedConfig: If the document is not a mapping or a field
                has the wrong type.
        """
        path = Path(path)
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded scenario from %s", path)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScenarioConfig:
        """Build a scenario from an already-parsed mapping."""
        if not isinstance(data, Mapping):
            msg = f"scenario must be a mapping, got {type(data).__name__}"
            raise MalformedConfig(msg)

        shape = data.get("shape", (cls.rows, cls.cols))
        if (
            not isinstance(shape, (list, tuple))
            or len(shape) != 2
            or not all(isinstance(n, int) and not isinstance(n, bool) for n in shape)
        ):
            msg = f"shape must be two integers, got {shape!r}"
            raise MalformedConfig(msg)

        cells = data.get("cells") or {}
        if not isinstance(cells, Mapping):
            msg = f"cells must be a mapping, got {type(cells).__name__}"
            raise MalformedConfig(msg)

        config = cls(
            rows=shape[0],
            cols=shape[1],
            model=data.get("model", cls.model),
            neighborhood=data.get("neighborhood", cls.neighborhood),
            wrapped=bool(data.get("wrapped", cls.wrapped)),
            include_self=bool(data.get("include_self", cls.include_self)),
            ticks=data.get("ticks", cls.ticks),
            delay=data.get("delay", cls.delay),
            default=merge_blocks(_default_cell_block(), data.get("default")),
            cells={str(k): v for k, v in cells.items()},
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check scalar fields and the model name.

        Raises:
            MalformedConfig: On a bad value.
        """
        get_model(self.model)
        for name, minimum in (("ticks", 0), ("delay", 1)):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                msg = f"{name} must be an integer >= {minimum}, got {value!r}"
                raise MalformedConfig(msg)

    @property
    def model_variant(self) -> Model:
        return get_model(self.model)

    def build_grid(self) -> Grid:
        return Grid(
            rows=self.rows,
            cols=self.cols,
            neighborhood=self.neighborhood,
            wrapped=self.wrapped,
            include_self=self.include_self,
        )

    def resolve_cells(self, grid: Grid) -> dict[CellId, CellSpec]:
        """Validate and return the setup data of every cell on ``grid``.

        Raises:
            MalformedConfig: If an override names a cell off the grid, or a
                cell block is malformed.
            InvalidPopulation: If a cell population is not positive.
        """
        model = self.model_variant
        overrides: dict[CellId, Mapping[str, Any]] = {}
        for key, block in self.cells.items():
            cell_id = cell_id_from_str(key)
            if cell_id not in grid:
                msg = f"cell {key!r} is outside the {grid.rows}x{grid.cols} grid"
                raise MalformedConfig(msg)
            overrides[cell_id] = block

        specs: dict[CellId, CellSpec] = {}
        for cell_id in grid.cell_ids():
            block = merge_blocks(self.default, overrides.get(cell_id))
            try:
                specs[cell_id] = CellSpec(
                    state=CompartmentState.from_dict(
                        block["state"],
                        with_deceased=model.has_deceased,
                    ),
                    config=CellConfig.from_dict(block["config"], model),
                    vicinities=resolve_vicinities(
                        block["vicinity"],
                        block["neighbors"],
                        grid.offsets,
                    ),
                )
            except ConfigError as exc:
                msg = f"cell {cell_id}: {exc}"
                raise type(exc)(msg) from exc
        logger.info(
            "Resolved %d cells (%d overridden) for model %s",
            len(specs),
            len(overrides),
            model.name,
        )
        return specs
