"""Tests for spatial_sirds.world.grid."""

import pytest

from spatial_sirds.model.errors import MalformedConfig
from spatial_sirds.world.grid import Grid, cell_id_from_str


class TestCellIds:
    """Tests for parsing cell ids from scenario keys."""

    @pytest.mark.parametrize("text", ["2,3", "2, 3", "[2,3]", "(2, 3)"])
    def test_parse(self, text: str) -> None:
        assert cell_id_from_str(text) == (2, 3)

    @pytest.mark.parametrize("text", ["2", "a,b", "1,2,3", ""])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(MalformedConfig):
            cell_id_from_str(text)


class TestGrid:
    """Tests for grid topology."""

    def test_dimensions(self) -> None:
        grid = Grid(rows=3, cols=4)
        assert grid.shape == (3, 4)
        assert len(grid) == 12
        assert list(grid.cell_ids())[:5] == [(0, 0), (0, 1), (0, 2), (0, 3), (1, 0)]

    def test_contains(self) -> None:
        grid = Grid(rows=3, cols=3)
        assert (2, 2) in grid
        assert (3, 0) not in grid
        assert "0,0" not in grid

    def test_moore_centre_includes_self(self) -> None:
        grid = Grid(rows=5, cols=5)
        neighbors = grid.neighbors_of((2, 2))
        assert len(neighbors) == 9
        assert neighbors[0] == (2, 2)

    def test_moore_corner(self) -> None:
        grid = Grid(rows=5, cols=5, include_self=False)
        assert sorted(grid.neighbors_of((0, 0))) == [(0, 1), (1, 0), (1, 1)]

    def test_von_neumann(self) -> None:
        grid = Grid(rows=5, cols=5, neighborhood="von_neumann", include_self=False)
        assert sorted(grid.neighbors_of((2, 2))) == [(1, 2), (2, 1), (2, 3), (3, 2)]

    def test_wrapped_corner(self) -> None:
        grid = Grid(rows=5, cols=5, wrapped=True, include_self=False)
        neighbors = grid.neighbors_of((0, 0))
        assert len(neighbors) == 8
        assert (4, 4) in neighbors

    def test_wrapped_small_grid_has_no_duplicates(self) -> None:
        grid = Grid(rows=2, cols=2, wrapped=True)
        neighbors = grid.neighbors_of((0, 0))
        assert len(neighbors) == len(set(neighbors)) == 4

    def test_out_of_bounds(self) -> None:
        with pytest.raises(IndexError):
            Grid(rows=2, cols=2).neighbors_of((2, 0))

    def test_unknown_neighborhood(self) -> None:
        with pytest.raises(MalformedConfig, match="neighborhood"):
            Grid(rows=2, cols=2, neighborhood="hex")

    def test_non_positive_shape(self) -> None:
        with pytest.raises(MalformedConfig):
            Grid(rows=0, cols=3)

    def test_offsets_include_self_first(self) -> None:
        grid = Grid(rows=3, cols=3, neighborhood="von_neumann")
        assert grid.offsets == ((0, 0), (-1, 0), (1, 0), (0, -1), (0, 1))

    def test_neighborhood_maps_ids_to_offsets(self) -> None:
        grid = Grid(rows=5, cols=5)
        neighborhood = grid.neighborhood_of((0, 0))
        assert neighborhood == {
            (0, 0): (0, 0),
            (1, 0): (1, 0),
            (0, 1): (0, 1),
            (1, 1): (1, 1),
        }

    def test_wrapped_neighborhood_keeps_first_offset(self) -> None:
        grid = Grid(rows=2, cols=2, wrapped=True, include_self=False)
        neighborhood = grid.neighborhood_of((0, 0))
        # (-1, 0) and (1, 0) both land on row 1
        assert neighborhood[(1, 0)] == (-1, 0)
