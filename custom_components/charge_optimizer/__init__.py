"""The Charge Optimizer integration."""

from __future__ import annotations

import logging
from datetime import timedelta

import voluptuous as vol
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EVENT_HOMEASSISTANT_STOP, Platform
from homeassistant.core import Event, HomeAssistant, ServiceCall, callback
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .charger import EntityCharger
from .const import (
    CONF_ACCESS_TOKEN,
    CONF_CHECK_INTERVAL,
    CONF_COST_SOURCE,
    CONF_ENABLE_ENTITY,
    CONF_GRANULARITY,
    CONF_LOG_INTERVAL,
    CONF_MINIMUM_CHARGING_TIME,
    CONF_OPTIMIZATION_TIME,
    CONF_STATE_ENTITY,
    COST_SOURCE_TIBBER,
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_GRANULARITY,
    DEFAULT_LOG_INTERVAL,
    DEFAULT_MINIMUM_CHARGING_TIME,
    DEFAULT_OPTIMIZATION_TIME,
    DOMAIN,
)
from .coordinator import ChargeCoordinator
from .cost_source import CostSource, TibberCostSource
from .optimizer import CheapestTimesOptimizer
from .statistics import StatisticsLog
from .tibber_api import TibberApiClient

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BINARY_SENSOR, Platform.SWITCH]

SERVICE_SET_OVERRIDE = "set_override"
SERVICE_SET_CHARGING_ALLOWED = "set_charging_allowed"

ATTR_OVERRIDE = "override"
ATTR_CHARGING_ALLOWED = "charging_allowed"

SERVICE_SET_OVERRIDE_SCHEMA = vol.Schema({vol.Required(ATTR_OVERRIDE): cv.boolean})
SERVICE_SET_CHARGING_ALLOWED_SCHEMA = vol.Schema(
    {vol.Required(ATTR_CHARGING_ALLOWED): cv.boolean}
)


def _build_cost_source(hass: HomeAssistant, entry: ConfigEntry) -> CostSource | None:
    """Create the configured cost source, or None to run without one."""
    if entry.data.get(CONF_COST_SOURCE) == COST_SOURCE_TIBBER:
        client = TibberApiClient(
            async_get_clientsession(hass), entry.data[CONF_ACCESS_TOKEN]
        )
        return TibberCostSource(client)
    return None


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Charge Optimizer from a config entry."""
    hass.data.setdefault(DOMAIN, {})
    options = entry.options

    charger = EntityCharger(
        hass, entry.data[CONF_STATE_ENTITY], entry.data[CONF_ENABLE_ENTITY]
    )
    statistics = StatisticsLog(hass, entry.entry_id)
    await statistics.async_load()

    coordinator = ChargeCoordinator(
        hass,
        entry,
        charger,
        cost_source=_build_cost_source(hass, entry),
        optimizer=CheapestTimesOptimizer(
            timedelta(
                minutes=options.get(
                    CONF_MINIMUM_CHARGING_TIME, DEFAULT_MINIMUM_CHARGING_TIME
                )
            )
        ),
        statistics=statistics,
        check_interval=timedelta(
            seconds=options.get(CONF_CHECK_INTERVAL, DEFAULT_CHECK_INTERVAL)
        ),
        log_interval=timedelta(
            seconds=options.get(CONF_LOG_INTERVAL, DEFAULT_LOG_INTERVAL)
        ),
        optimization_time=timedelta(
            minutes=options.get(CONF_OPTIMIZATION_TIME, DEFAULT_OPTIMIZATION_TIME)
        ),
        granularity=timedelta(
            minutes=options.get(CONF_GRANULARITY, DEFAULT_GRANULARITY)
        ),
    )
    await coordinator.async_config_entry_first_refresh()

    # Keep polling even when no entity is subscribed to the coordinator
    entry.async_on_unload(coordinator.async_add_listener(lambda: None))
    coordinator.async_start()

    async def _async_on_stop(_event: Event) -> None:
        """Leave the charger enabled when Home Assistant stops."""
        await coordinator.async_shutdown()

    entry.async_on_unload(
        hass.bus.async_listen_once(EVENT_HOMEASSISTANT_STOP, _async_on_stop)
    )

    hass.data[DOMAIN][entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _async_register_services(hass)

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when its options change."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry and leave the charger enabled."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        coordinator: ChargeCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.async_shutdown()

    if not hass.data[DOMAIN]:
        hass.services.async_remove(DOMAIN, SERVICE_SET_OVERRIDE)
        hass.services.async_remove(DOMAIN, SERVICE_SET_CHARGING_ALLOWED)

    return unload_ok


@callback
def _async_register_services(hass: HomeAssistant) -> None:
    """Register Charge Optimizer services (idempotent)."""
    if hass.services.has_service(DOMAIN, SERVICE_SET_OVERRIDE):
        return

    def _get_coordinators() -> list[ChargeCoordinator]:
        """Get all active coordinators."""
        return list(hass.data.get(DOMAIN, {}).values())

    async def async_handle_set_override(call: ServiceCall) -> None:
        """Handle the set_override service call."""
        for coordinator in _get_coordinators():
            await coordinator.async_set_override(call.data[ATTR_OVERRIDE])

    async def async_handle_set_charging_allowed(call: ServiceCall) -> None:
        """Handle the set_charging_allowed service call."""
        for coordinator in _get_coordinators():
            await coordinator.async_set_charging_allowed(
                call.data[ATTR_CHARGING_ALLOWED]
            )

    hass.services.async_register(
        DOMAIN,
        SERVICE_SET_OVERRIDE,
        async_handle_set_override,
        schema=SERVICE_SET_OVERRIDE_SCHEMA,
    )

    hass.services.async_register(
        DOMAIN,
        SERVICE_SET_CHARGING_ALLOWED,
        async_handle_set_charging_allowed,
        schema=SERVICE_SET_CHARGING_ALLOWED_SCHEMA,
    )
