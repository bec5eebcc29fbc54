"""Tests for spatial_sirds.model.state — states, vicinities, parsing."""

import pytest

from spatial_sirds.model.errors import ConfigError, InvalidPopulation, MalformedConfig
from spatial_sirds.model.state import CompartmentState, Vicinity


class TestCompartmentState:
    """Tests for CompartmentState parsing and validation."""

    def test_from_dict(self) -> None:
        state = CompartmentState.from_dict(
            {"population": 1000, "susceptible": 0.99, "infected": 0.01, "recovered": 0},
        )
        assert state.population == 1000
        assert state.susceptible == 0.99
        assert state.infected == 0.01
        assert state.recovered == 0.0
        assert state.deceased == 0.0

    def test_numeric_strings_are_coerced(self) -> None:
        state = CompartmentState.from_dict(
            {"population": "50", "susceptible": "0.5", "infected": "0.5", "recovered": 0},
        )
        assert state.population == 50
        assert state.infected == 0.5

    def test_deceased_required_when_asked(self) -> None:
        data = {"population": 10, "susceptible": 1, "infected": 0, "recovered": 0}
        with pytest.raises(MalformedConfig, match="deceased"):
            CompartmentState.from_dict(data, with_deceased=True)

    def test_deceased_read_when_present(self) -> None:
        state = CompartmentState.from_dict(
            {
                "population": 10,
                "susceptible": 0.5,
                "infected": 0.2,
                "recovered": 0.2,
                "deceased": 0.1,
            },
        )
        assert state.deceased == 0.1

    def test_missing_field(self) -> None:
        with pytest.raises(MalformedConfig, match="infected"):
            CompartmentState.from_dict(
                {"population": 10, "susceptible": 1.0, "recovered": 0.0},
            )

    def test_untypeable_field(self) -> None:
        with pytest.raises(MalformedConfig):
            CompartmentState.from_dict(
                {"population": 10, "susceptible": "lots", "infected": 0, "recovered": 0},
            )

    def test_fractional_population_is_malformed(self) -> None:
        with pytest.raises(MalformedConfig):
            CompartmentState.from_dict(
                {"population": 10.5, "susceptible": 1, "infected": 0, "recovered": 0},
            )

    @pytest.mark.parametrize("population", [0, -5])
    def test_non_positive_population(self, population: int) -> None:
        with pytest.raises(InvalidPopulation):
            CompartmentState.from_dict(
                {
                    "population": population,
                    "susceptible": 1,
                    "infected": 0,
                    "recovered": 0,
                },
            )

    def test_fractions_must_sum_to_one(self) -> None:
        with pytest.raises(MalformedConfig, match="sum"):
            CompartmentState.from_dict(
                {"population": 10, "susceptible": 0.5, "infected": 0.1, "recovered": 0},
            )

    def test_fraction_out_of_range(self) -> None:
        with pytest.raises(MalformedConfig):
            CompartmentState.from_dict(
                {"population": 10, "susceptible": 1.5, "infected": -0.5, "recovered": 0},
            )

    def test_errors_share_a_base(self) -> None:
        assert issubclass(MalformedConfig, ConfigError)
        assert issubclass(InvalidPopulation, ConfigError)
        assert issubclass(ConfigError, ValueError)

    def test_to_dict_uses_config_names(self) -> None:
        state = CompartmentState(
            population=10,
            susceptible=0.7,
            infected=0.2,
            recovered=0.1,
        )
        assert state.to_dict() == {
            "population": 10,
            "susceptible": 0.7,
            "infected": 0.2,
            "recovered": 0.1,
            "deceased": 0.0,
        }
        assert "deceased" not in state.to_dict(with_deceased=False)

    def test_state_is_immutable(self, healthy_state: CompartmentState) -> None:
        from dataclasses import FrozenInstanceError

        with pytest.raises(FrozenInstanceError):
            healthy_state.infected = 0.5  # type: ignore[misc]


class TestVicinity:
    """Tests for the Vicinity influence weight."""

    def test_from_dict(self) -> None:
        vicinity = Vicinity.from_dict({"mobility": 0.5, "connectivity": 2})
        assert vicinity.mobility == 0.5
        assert vicinity.connectivity == 2.0

    def test_missing_connectivity(self) -> None:
        with pytest.raises(MalformedConfig, match="connectivity"):
            Vicinity.from_dict({"mobility": 0.5})

    def test_negative_mobility(self) -> None:
        with pytest.raises(MalformedConfig):
            Vicinity.from_dict({"mobility": -1, "connectivity": 1})

    def test_not_a_mapping(self) -> None:
        with pytest.raises(MalformedConfig):
            Vicinity.from_dict([1, 2])  # type: ignore[arg-type]

    def test_influence(self) -> None:
        neighbor = CompartmentState(
            population=500,
            susceptible=0.98,
            infected=0.02,
            recovered=0.0,
        )
        vicinity = Vicinity(mobility=0.5, connectivity=0.5)
        assert vicinity.influence(neighbor) == pytest.approx(2.5)
