"""Shared fixtures.

- Fixed NumPy seed
- Standard 50x50 initial mass fields
"""

from __future__ import annotations

import numpy as np
import pytest

from massflow import GRID_HEIGHT, GRID_WIDTH, MassFlowSimulation


@pytest.fixture(scope="session", autouse=True)
def np_seed() -> None:
    np.random.seed(12345)


@pytest.fixture()
def empty_field() -> np.ndarray:
    return np.zeros((GRID_HEIGHT, GRID_WIDTH), dtype=np.uint8)


@pytest.fixture()
def spike_field(empty_field: np.ndarray) -> np.ndarray:
    empty_field[25, 25] = 255
    return empty_field


@pytest.fixture()
def random_field() -> np.ndarray:
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(GRID_HEIGHT, GRID_WIDTH), dtype=np.uint8)


@pytest.fixture()
def spike_sim(spike_field: np.ndarray) -> MassFlowSimulation:
    return MassFlowSimulation(seed=spike_field)
