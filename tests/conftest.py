"""Test fixtures for sonosync tests."""

import os
from unittest.mock import MagicMock

import pytest
from fakes import FakeDevice, FakeProvider, FakeScheduler

from sonosync.models.group import Group

# Headless test environments have no display for the default xcb platform.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture
def groups() -> list[Group]:
    """Return two sample groups."""
    return [
        Group(id="RINCON_A:1", name="Kitchen", member_names=["Kitchen"], host="192.168.1.10"),
        Group(
            id="RINCON_B:7",
            name="Living Room",
            member_names=["Living Room", "Office"],
            host="192.168.1.11",
        ),
    ]


@pytest.fixture
def device(groups: list[Group]) -> FakeDevice:
    """Return a fake device over the sample groups."""
    return FakeDevice(groups)


@pytest.fixture
def provider(device: FakeDevice) -> FakeProvider:
    """Return a fake provider discovering the fake device."""
    return FakeProvider(device)


@pytest.fixture
def scheduler() -> FakeScheduler:
    """Return a recording scheduler."""
    return FakeScheduler()


@pytest.fixture
def mock_sink() -> MagicMock:
    """Return a mock update sink."""
    return MagicMock()
