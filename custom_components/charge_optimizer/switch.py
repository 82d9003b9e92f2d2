"""Switch platform for Charge Optimizer manual control."""

from __future__ import annotations

from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import ChargeCoordinator
from .entity import device_info


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Charge Optimizer switch entities."""
    coordinator: ChargeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        [
            OverrideSwitch(coordinator, entry),
            ChargingAllowedSwitch(coordinator, entry),
        ]
    )


class OverrideSwitch(CoordinatorEntity[ChargeCoordinator], SwitchEntity):
    """Switch that hands charging control to the user instead of the schedule."""

    _attr_has_entity_name = True
    _attr_translation_key = "override"

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the override switch."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_override"
        self._attr_device_info = device_info(entry)

    @property
    def is_on(self) -> bool:
        """Return whether the override is active."""
        return self.coordinator.data.override

    @property
    def icon(self) -> str:
        """Return the icon."""
        return "mdi:hand-back-right" if self.is_on else "mdi:calendar-clock"

    async def async_turn_on(self, **_kwargs: Any) -> None:
        """Take manual control."""
        await self.coordinator.async_set_override(True)

    async def async_turn_off(self, **_kwargs: Any) -> None:
        """Return control to the schedule."""
        await self.coordinator.async_set_override(False)


class ChargingAllowedSwitch(CoordinatorEntity[ChargeCoordinator], SwitchEntity):
    """
    Switch showing whether charging is allowed.

    Turning it on or off forces that state and activates the override.
    """

    _attr_has_entity_name = True
    _attr_translation_key = "charging_allowed"

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the charging allowed switch."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_charging_allowed"
        self._attr_device_info = device_info(entry)

    @property
    def is_on(self) -> bool:
        """Return whether charging is allowed."""
        return self.coordinator.data.charging_allowed

    @property
    def icon(self) -> str:
        """Return the icon."""
        return "mdi:ev-station" if self.is_on else "mdi:power-plug-off"

    async def async_turn_on(self, **_kwargs: Any) -> None:
        """Allow charging."""
        await self.coordinator.async_set_charging_allowed(True)

    async def async_turn_off(self, **_kwargs: Any) -> None:
        """Block charging."""
        await self.coordinator.async_set_charging_allowed(False)
