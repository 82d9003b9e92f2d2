"""Sensor platform for Charge Optimizer."""

from __future__ import annotations

from datetime import datetime

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .charger import ChargerState
from .const import DOMAIN
from .coordinator import ChargeCoordinator
from .entity import device_info


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Charge Optimizer sensor entities."""
    coordinator: ChargeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        [
            ChargerStateSensor(coordinator, entry),
            LastStateChangeSensor(coordinator, entry),
            CurrentCostSensor(coordinator, entry),
            ChargingAllowedSinceOrWhenSensor(coordinator, entry),
        ]
    )


class ChargerStateSensor(CoordinatorEntity[ChargeCoordinator], SensorEntity):
    """Sensor showing the last polled charger state."""

    _attr_has_entity_name = True
    _attr_translation_key = "charger_state"
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [state.value for state in ChargerState]

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the charger state sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_charger_state"
        self._attr_device_info = device_info(entry)

    @property
    def native_value(self) -> str:
        """Return the charger state."""
        return self.coordinator.data.charger_state.value


class LastStateChangeSensor(CoordinatorEntity[ChargeCoordinator], SensorEntity):
    """Sensor showing when the charger state last changed."""

    _attr_has_entity_name = True
    _attr_translation_key = "last_state_change"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the last state change sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_last_state_change"
        self._attr_device_info = device_info(entry)

    @property
    def native_value(self) -> datetime:
        """Return the time of the last state change."""
        return self.coordinator.data.last_state_change


class CurrentCostSensor(CoordinatorEntity[ChargeCoordinator], SensorEntity):
    """
    Sensor showing the energy cost right now.

    While a charging plan is active this is the cost the plan was based on.
    """

    _attr_has_entity_name = True
    _attr_translation_key = "current_cost"
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_suggested_display_precision = 4

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the current cost sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_current_cost"
        self._attr_device_info = device_info(entry)

    @property
    def native_unit_of_measurement(self) -> str | None:
        """Return the cost per kWh in the currency of the cost source."""
        cost_source = self.coordinator.cost_source
        if cost_source is None or cost_source.currency is None:
            return None
        return f"{cost_source.currency}/kWh"

    @property
    def native_value(self) -> float | None:
        """Return the current cost, or None if it is unknown."""
        return self.coordinator.data.cost


class ChargingAllowedSinceOrWhenSensor(
    CoordinatorEntity[ChargeCoordinator], SensorEntity
):
    """
    Sensor with the time charging was last allowed or will be allowed next.

    While charging is allowed this is the time of the last change. Otherwise
    it is the next planned change, or unknown if nothing is planned.
    """

    _attr_has_entity_name = True
    _attr_translation_key = "charging_allowed_since_or_when"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_charging_allowed_since_or_when"
        self._attr_device_info = device_info(entry)

    @property
    def native_value(self) -> datetime | None:
        """Return the time."""
        return self.coordinator.data.charging_allowed_since_or_when

    @property
    def extra_state_attributes(self) -> dict[str, bool]:
        """Return whether a charging plan is active."""
        return {"schedule_active": self.coordinator.data.schedule_active}
