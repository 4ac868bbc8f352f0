"""Shared fixtures for cadenza tests."""

import pytest

from cadenza.config import GateConfig
from cadenza.scheduler import ManualScheduler


@pytest.fixture
def clock():
    return ManualScheduler()


@pytest.fixture
def debounce_config():
    return GateConfig.debounce(100)


@pytest.fixture
def throttle_config():
    return GateConfig.throttle(100)


@pytest.fixture
def emitted():
    return []
