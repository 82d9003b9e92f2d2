"""Charger capability and an adapter backed by Home Assistant entities."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol

from homeassistant.const import STATE_OFF, STATE_ON, STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError

_LOGGER = logging.getLogger(__name__)


class ChargerState(StrEnum):
    """State of the charger and its connection to the car."""

    NOT_CONNECTED = "not_connected"
    CONNECTED = "connected"
    CHARGING = "charging"
    ERROR = "error"

    @property
    def is_connected(self) -> bool:
        """Return whether a car is plugged in."""
        return self in (ChargerState.CONNECTED, ChargerState.CHARGING)


class ChargerError(Exception):
    """Raised when the charger cannot be reached or gives an invalid answer."""


class Charger(Protocol):
    """The charging device, for example a wallbox."""

    async def async_get_state(self) -> ChargerState:
        """Return the charger state."""
        ...

    async def async_get_enabled(self) -> bool:
        """Return the enabled bit, which controls whether charging is allowed."""
        ...

    async def async_set_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        """Set the enabled bit."""
        ...


# IEC 61851 control pilot states (A-F) plus the words wallbox integrations use
_STATE_MAP: dict[str, ChargerState] = {
    "a": ChargerState.NOT_CONNECTED,
    "not_connected": ChargerState.NOT_CONNECTED,
    "disconnected": ChargerState.NOT_CONNECTED,
    "no_car": ChargerState.NOT_CONNECTED,
    "b": ChargerState.CONNECTED,
    "connected": ChargerState.CONNECTED,
    "car_connected": ChargerState.CONNECTED,
    "ready": ChargerState.CONNECTED,
    "c": ChargerState.CHARGING,
    "d": ChargerState.CHARGING,
    "charging": ChargerState.CHARGING,
    "e": ChargerState.ERROR,
    "f": ChargerState.ERROR,
    "error": ChargerState.ERROR,
    "fault": ChargerState.ERROR,
}


def parse_charger_state(value: str) -> ChargerState | None:
    """Map an entity state string to a charger state, or None if unknown."""
    return _STATE_MAP.get(value.strip().lower().replace(" ", "_"))


class EntityCharger:
    """
    Charger controlled through two Home Assistant entities.

    The connection state is read from ``state_entity`` and the enabled bit is
    the state of the switch ``enable_entity``, which is turned on and off via
    the switch services.
    """

    def __init__(
        self, hass: HomeAssistant, state_entity: str, enable_entity: str
    ) -> None:
        """Initialize the entity charger."""
        self._hass = hass
        self.state_entity = state_entity
        self.enable_entity = enable_entity

    def _get_entity_state(self, entity_id: str) -> str:
        """Return the raw state of an entity that is available."""
        state = self._hass.states.get(entity_id)
        if state is None or state.state in (STATE_UNAVAILABLE, STATE_UNKNOWN):
            msg = f"Entity {entity_id} is not available"
            raise ChargerError(msg)
        return state.state

    async def async_get_state(self) -> ChargerState:
        """Return the charger state read from the state entity."""
        raw = self._get_entity_state(self.state_entity)
        charger_state = parse_charger_state(raw)
        if charger_state is None:
            msg = f"Unrecognised charger state '{raw}' on {self.state_entity}"
            raise ChargerError(msg)
        return charger_state

    async def async_get_enabled(self) -> bool:
        """Return whether the enable switch is on."""
        raw = self._get_entity_state(self.enable_entity)
        if raw not in (STATE_ON, STATE_OFF):
            msg = f"Unexpected switch state '{raw}' on {self.enable_entity}"
            raise ChargerError(msg)
        return raw == STATE_ON

    async def async_set_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        """Turn the enable switch on or off."""
        service = "turn_on" if enabled else "turn_off"
        try:
            await self._hass.services.async_call(
                "switch",
                service,
                {"entity_id": self.enable_entity},
                blocking=True,
            )
        except HomeAssistantError as err:
            msg = f"Could not call switch.{service} for {self.enable_entity}: {err}"
            raise ChargerError(msg) from err
        _LOGGER.debug("Called switch.%s for %s", service, self.enable_entity)
