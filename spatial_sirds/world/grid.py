"""Grid — cell identities and neighbourhoods on a 2D lattice.

Cells are addressed by ``(row, col)`` tuples and neighbours by their
``(d_row, d_col)`` offset from the cell.  The grid only answers topology
questions; vicinity weights are attached to offsets by the scenario.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from spatial_sirds.model.errors import MalformedConfig

CellId = tuple[int, int]
Offset = tuple[int, int]

_VON_NEUMANN = ((-1, 0), (1, 0), (0, -1), (0, 1))
_MOORE = _VON_NEUMANN + ((-1, -1), (-1, 1), (1, -1), (1, 1))

NEIGHBORHOODS: dict[str, tuple[tuple[int, int], ...]] = {
    "von_neumann": _VON_NEUMANN,
    "moore": _MOORE,
}


def cell_id_from_str(text: str) -> CellId:
    """Parse ``"r,c"`` (brackets and spaces allowed) into a cell id.

    Raises:
        MalformedConfig: If the text is not two comma-separated integers.
    """
    parts = str(text).strip().strip("[]()").split(",")
    try:
        row, col = (int(p) for p in parts)
    except ValueError:
        msg = f"cell id must look like 'row,col', got {text!r}"
        raise MalformedConfig(msg) from None
    return row, col


@dataclass
class Grid:
    """A rectangular lattice of cells.

    Attributes:
        rows: Number of rows.
        cols: Number of columns.
        neighborhood: ``"moore"`` (8 neighbours) or ``"von_neumann"`` (4).
        wrapped: Whether edges wrap around (torus).
        include_self: Whether each cell is part of its own neighbourhood.
    """

    rows: int
    cols: int
    neighborhood: str = "moore"
    wrapped: bool = False
    include_self: bool = True
    _offsets: tuple[Offset, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate dimensions and resolve the neighbourhood offsets."""
        if self.rows <= 0 or self.cols <= 0:
            msg = f"grid shape must be positive, got {self.rows}x{self.cols}"
            raise MalformedConfig(msg)
        try:
            offsets = NEIGHBORHOODS[self.neighborhood]
        except KeyError:
            msg = (
                f"unknown neighborhood {self.neighborhood!r}; "
                f"expected one of {sorted(NEIGHBORHOODS)}"
            )
            raise MalformedConfig(msg) from None
        if self.include_self:
            offsets = ((0, 0), *offsets)
        self._offsets = offsets

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    def __len__(self) -> int:
        return self.rows * self.cols

    def __contains__(self, cell_id: object) -> bool:
        if not isinstance(cell_id, tuple) or len(cell_id) != 2:
            return False
        row, col = cell_id
        return 0 <= row < self.rows and 0 <= col < self.cols

    def cell_ids(self) -> Iterator[CellId]:
        """Yield every cell id in row-major order."""
        for row in range(self.rows):
            for col in range(self.cols):
                yield row, col

    @property
    def offsets(self) -> tuple[Offset, ...]:
        """Relative positions making up every cell's neighbourhood."""
        return self._offsets

    def neighborhood_of(self, cell_id: CellId) -> dict[CellId, Offset]:
        """Map each neighbour of ``cell_id`` to the offset that reaches it.

        Out-of-bounds neighbours are dropped on an unwrapped grid.  On a
        wrapped grid, small dimensions can map two offsets to the same
        cell; the first offset in neighbourhood order wins.

        Raises:
            IndexError: If ``cell_id`` is not on the grid.
        """
        if cell_id not in self:
            msg = f"{cell_id} out of bounds for {self.rows}x{self.cols}"
            raise IndexError(msg)
        row, col = cell_id
        result: dict[CellId, Offset] = {}
        for dr, dc in self._offsets:
            nr, nc = row + dr, col + dc
            if self.wrapped:
                nr, nc = nr % self.rows, nc % self.cols
            elif not (0 <= nr < self.rows and 0 <= nc < self.cols):
                continue
            result.setdefault((nr, nc), (dr, dc))
        return result

    def neighbors_of(self, cell_id: CellId) -> list[CellId]:
        """Return the neighbour ids of ``cell_id`` in neighbourhood order."""
        return list(self.neighborhood_of(cell_id))
