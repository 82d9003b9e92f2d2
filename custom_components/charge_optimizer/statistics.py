"""Charging statistics persisted in Home Assistant storage."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.storage import Store

from .charger import ChargerState
from .const import (
    STATISTICS_MAX_RECORDS,
    STATISTICS_SAVE_DELAY,
    STATISTICS_STORAGE_KEY,
    STATISTICS_STORAGE_VERSION,
)

_LOGGER = logging.getLogger(__name__)


class StatisticsSink(Protocol):
    """Receives a snapshot of the charging state at regular intervals."""

    def record(
        self,
        time: datetime,
        state: ChargerState,
        charging_allowed: bool,  # noqa: FBT001
        cost: float | None,
    ) -> None:
        """Record one snapshot without blocking the caller."""
        ...

    async def async_save(self) -> None:
        """Write pending snapshots."""
        ...


class StatisticsLog:
    """
    Rolling log of charger state, charging permission and cost.

    Records are written with a delayed save so frequent logging does not
    hit the disk every minute. Only the newest ``max_records`` are kept.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        max_records: int = STATISTICS_MAX_RECORDS,
    ) -> None:
        """Initialize the statistics log."""
        self._store: Store[dict[str, Any]] = Store(
            hass,
            STATISTICS_STORAGE_VERSION,
            f"{STATISTICS_STORAGE_KEY}.{entry_id}",
        )
        self._max_records = max_records
        self._records: list[dict[str, Any]] = []

    @property
    def records(self) -> list[dict[str, Any]]:
        """Return a copy of the stored records, oldest first."""
        return list(self._records)

    async def async_load(self) -> None:
        """Restore records from storage."""
        stored = await self._store.async_load()
        if stored:
            self._records = list(stored.get("records", []))[-self._max_records :]
            _LOGGER.debug("Restored %d statistics records", len(self._records))

    async def async_save(self) -> None:
        """Write all pending records to storage now."""
        await self._store.async_save(self._data_to_save())

    @callback
    def record(
        self,
        time: datetime,
        state: ChargerState,
        charging_allowed: bool,  # noqa: FBT001
        cost: float | None,
    ) -> None:
        """Append a snapshot and schedule a save."""
        _LOGGER.debug(
            "Logging at %s, state=%s, charging_allowed=%s, cost=%s",
            time.isoformat(),
            state,
            charging_allowed,
            cost,
        )
        self._records.append(
            {
                "time": time.isoformat(),
                "car_connected": state.is_connected,
                "charging": state == ChargerState.CHARGING,
                "charging_allowed": charging_allowed,
                "cost": cost,
            }
        )
        if len(self._records) > self._max_records:
            del self._records[: len(self._records) - self._max_records]
        self._store.async_delay_save(self._data_to_save, STATISTICS_SAVE_DELAY)

    @callback
    def _data_to_save(self) -> dict[str, Any]:
        """Return the data written to storage."""
        return {"records": self._records}
