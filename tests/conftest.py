"""Shared fixtures for the spatial_sirds test suite."""

from __future__ import annotations

import pytest

from spatial_sirds.model.config import SIRDS, CellConfig
from spatial_sirds.model.state import CompartmentState, Vicinity
from spatial_sirds.simulation.config import ScenarioConfig


@pytest.fixture
def healthy_state() -> CompartmentState:
    """A fully susceptible cell of 1000 individuals."""
    return CompartmentState(
        population=1000,
        susceptible=1.0,
        infected=0.0,
        recovered=0.0,
    )


@pytest.fixture
def unit_vicinity() -> Vicinity:
    return Vicinity(mobility=1.0, connectivity=1.0)


@pytest.fixture
def sirds_config() -> CellConfig:
    """Rates used by the default SIRDS scenario."""
    return CellConfig.from_dict(
        {"virulence": 0.6, "recovery": 0.4, "immunity": 0.6, "fatality": 0.03},
        SIRDS,
    )


@pytest.fixture
def small_scenario() -> ScenarioConfig:
    """A 5x5 SIRDS scenario with one infected cell in the centre."""
    return ScenarioConfig.from_dict(
        {
            "shape": [5, 5],
            "model": "sirds",
            "ticks": 20,
            "cells": {
                "2,2": {
                    "state": {"susceptible": 0.7, "infected": 0.3},
                },
            },
        },
    )
