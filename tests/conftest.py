"""Fixtures for Charge Optimizer tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import datetime
from unittest.mock import patch

import pytest
from homeassistant import loader
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.charge_optimizer.charger import ChargerError, ChargerState
from custom_components.charge_optimizer.const import (
    CONF_ACCESS_TOKEN,
    CONF_COST_SOURCE,
    CONF_ENABLE_ENTITY,
    CONF_STATE_ENTITY,
    COST_SOURCE_NONE,
    COST_SOURCE_TIBBER,
    DOMAIN,
)
from custom_components.charge_optimizer.cost_source import CostSourceError


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(hass: HomeAssistant) -> None:
    """Enable custom integrations in all tests."""
    hass.data.pop(loader.DATA_CUSTOM_COMPONENTS)


FAKE_TOKEN = "test-token-123"  # noqa: S105
STATE_ENTITY = "sensor.wallbox_state"
ENABLE_ENTITY = "switch.wallbox_enabled"


class FakeCharger:
    """In-memory charger that records every enable command."""

    def __init__(self, state: ChargerState = ChargerState.NOT_CONNECTED) -> None:
        self.state = state
        self.enabled = False
        self.set_calls: list[bool] = []
        self.fail_get_state = False
        self.fail_set_enabled = False

    async def async_get_state(self) -> ChargerState:
        if self.fail_get_state:
            msg = "Charger unreachable"
            raise ChargerError(msg)
        return self.state

    async def async_get_enabled(self) -> bool:
        return self.enabled

    async def async_set_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        self.set_calls.append(enabled)
        if self.fail_set_enabled:
            msg = "Charger unreachable"
            raise ChargerError(msg)
        self.enabled = enabled


class FakeCostSource:
    """Cost source backed by a plain function of time."""

    def __init__(self, func: Callable[[datetime], float | None]) -> None:
        self.func = func
        self.update_calls = 0
        self.fail_update = False
        self.currency: str | None = None

    async def async_update(self) -> None:
        self.update_calls += 1
        if self.fail_update:
            msg = "Price service down"
            raise CostSourceError(msg)

    def cost_at(self, time: datetime) -> float | None:
        return self.func(time)


class FakeStatistics:
    """Statistics sink that keeps records in memory."""

    def __init__(self) -> None:
        self.records: list[tuple[datetime, ChargerState, bool, float | None]] = []
        self.saved = 0

    def record(
        self,
        time: datetime,
        state: ChargerState,
        charging_allowed: bool,  # noqa: FBT001
        cost: float | None,
    ) -> None:
        self.records.append((time, state, charging_allowed, cost))

    async def async_save(self) -> None:
        self.saved += 1


@pytest.fixture
def charger() -> FakeCharger:
    """Return a fake charger without a car."""
    return FakeCharger()


@pytest.fixture
def mock_config_entry(hass: HomeAssistant) -> MockConfigEntry:
    """Create a mock config entry without a cost source."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Charge Optimizer (wallbox_state)",
        data={
            CONF_STATE_ENTITY: STATE_ENTITY,
            CONF_ENABLE_ENTITY: ENABLE_ENTITY,
            CONF_COST_SOURCE: COST_SOURCE_NONE,
        },
        unique_id=STATE_ENTITY,
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
def mock_tibber_config_entry(hass: HomeAssistant) -> MockConfigEntry:
    """Create a mock config entry using Tibber prices."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Charge Optimizer (wallbox_state)",
        data={
            CONF_STATE_ENTITY: STATE_ENTITY,
            CONF_ENABLE_ENTITY: ENABLE_ENTITY,
            CONF_COST_SOURCE: COST_SOURCE_TIBBER,
            CONF_ACCESS_TOKEN: FAKE_TOKEN,
        },
        unique_id=STATE_ENTITY,
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
def mock_setup_entry() -> Generator[None]:
    """Override async_setup_entry."""
    with patch(
        "custom_components.charge_optimizer.async_setup_entry",
        return_value=True,
    ):
        yield
