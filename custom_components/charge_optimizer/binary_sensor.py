"""Binary sensor platform for Charge Optimizer."""

from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
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
    """Set up Charge Optimizer binary sensor entities."""
    coordinator: ChargeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        [
            CarConnectedSensor(coordinator, entry),
            CarChargingSensor(coordinator, entry),
        ]
    )


class CarConnectedSensor(CoordinatorEntity[ChargeCoordinator], BinarySensorEntity):
    """Binary sensor that is on while a car is plugged in."""

    _attr_has_entity_name = True
    _attr_translation_key = "car_connected"
    _attr_device_class = BinarySensorDeviceClass.PLUG

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the car connected sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_car_connected"
        self._attr_device_info = device_info(entry)

    @property
    def is_on(self) -> bool:
        """Return whether a car is connected."""
        return self.coordinator.data.car_connected


class CarChargingSensor(CoordinatorEntity[ChargeCoordinator], BinarySensorEntity):
    """Binary sensor that is on while the car draws power."""

    _attr_has_entity_name = True
    _attr_translation_key = "charging"
    _attr_device_class = BinarySensorDeviceClass.BATTERY_CHARGING

    def __init__(self, coordinator: ChargeCoordinator, entry: ConfigEntry) -> None:
        """Initialize the charging sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_charging"
        self._attr_device_info = device_info(entry)

    @property
    def is_on(self) -> bool:
        """Return whether the car is charging."""
        return self.coordinator.data.charging
