"""Cost source capability and the Tibber-backed implementation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Protocol

from homeassistant.util import dt as dt_util

from .const import TIBBER_SLOT_DURATION
from .tibber_api import TibberApiClient, TibberApiError
from .timeseries import round_time_to

_LOGGER = logging.getLogger(__name__)

PRICE_UPDATE_INTERVAL = timedelta(hours=1)
PRICE_RETENTION = timedelta(days=1)


class CostSourceError(Exception):
    """Raised when the cost forecast cannot be updated."""


class CostSource(Protocol):
    """Provides the (forecast) cost of energy at a given time."""

    async def async_update(self) -> None:
        """Refresh the cached forecast if it is due."""
        ...

    def cost_at(self, time: datetime) -> float | None:
        """Return the cost at ``time``, or None if it is unknown."""
        ...

    @property
    def currency(self) -> str | None:
        """Return the currency of the costs, or None if it is unknown."""
        ...


class TibberCostSource:
    """
    Consumption prices from the Tibber API.

    Prices are cached per quarter-hour slot. A slot that is already cached is
    never overwritten, and the API is queried at most once per
    ``PRICE_UPDATE_INTERVAL``.
    """

    def __init__(self, client: TibberApiClient) -> None:
        """Initialize the cost source."""
        self._client = client
        self._prices: dict[datetime, float] = {}
        self._currency: str | None = None
        self._last_update: datetime | None = None

    @property
    def currency(self) -> str | None:
        """Return the currency of the last fetched prices."""
        return self._currency

    async def async_update(self) -> None:
        """Fetch new prices if the cache is older than the update interval."""
        now = dt_util.utcnow()
        if (
            self._last_update is not None
            and now - self._last_update < PRICE_UPDATE_INTERVAL
        ):
            return

        try:
            homes = await self._client.async_get_prices()
        except TibberApiError as err:
            msg = f"Failed to fetch Tibber prices: {err}"
            raise CostSourceError(msg) from err

        if not homes:
            msg = "No homes returned from Tibber API"
            raise CostSourceError(msg)

        # the first home of the account is used
        home_name, prices = next(iter(homes.items()))
        added = 0
        for price in prices:
            self._currency = price.currency
            start = dt_util.as_utc(price.start_time)
            if start not in self._prices:
                self._prices[start] = price.total
                added += 1

        cutoff = now - PRICE_RETENTION
        for start in [s for s in self._prices if s < cutoff]:
            del self._prices[start]

        self._last_update = now
        _LOGGER.debug(
            "Updated Tibber prices for %s: %d new, %d cached",
            home_name,
            added,
            len(self._prices),
        )

    def cost_at(self, time: datetime) -> float | None:
        """Return the cached price of the slot containing ``time``."""
        slot_start = round_time_to(dt_util.as_utc(time), TIBBER_SLOT_DURATION)
        return self._prices.get(slot_start)
