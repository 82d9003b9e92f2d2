"""
Tibber GraphQL API client.

Fetches the quarter-hourly consumption price (energy + tax) for the homes
of a Tibber account. Prices for the next day are usually published around
13:00 CET, so a fetch returns between roughly 11 and 35 hours of forecast.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import aiohttp
from homeassistant.util import dt as dt_util

from .const import TIBBER_API_ENDPOINT

_LOGGER = logging.getLogger(__name__)

_HTTP_OK = 200
_HTTP_UNAUTHORIZED = 401

QUERY_VIEWER_NAME = """{
  viewer {
    name
  }
}"""

QUERY_PRICES = """{
  viewer {
    homes {
      id
      appNickname
      currentSubscription {
        priceInfo(resolution: QUARTER_HOURLY) {
          today {
            total
            startsAt
            currency
          }
          tomorrow {
            total
            startsAt
            currency
          }
        }
      }
    }
  }
}"""


@dataclass(frozen=True)
class TibberPrice:
    """Consumption price for one slot."""

    start_time: datetime
    total: float
    currency: str


class TibberApiError(Exception):
    """Base exception for Tibber API errors."""


class TibberAuthError(TibberApiError):
    """Authentication failed."""


class TibberApiClient:
    """
    Lightweight Tibber GraphQL API client.

    Uses a personal access token for authentication. Tokens can be created
    in the Tibber developer portal.
    """

    def __init__(self, session: aiohttp.ClientSession, access_token: str) -> None:
        """Initialize the Tibber API client."""
        self._session = session
        self._access_token = access_token

    async def _execute(self, query: str) -> dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` member."""
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "User-Agent": "Charge-Optimizer-HA-Integration/0.1",
        }
        payload = {"query": query, "variables": {}}

        try:
            async with self._session.post(
                TIBBER_API_ENDPOINT,
                headers=headers,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=15),
            ) as resp:
                if resp.status == _HTTP_UNAUTHORIZED:
                    msg = "Invalid Tibber access token"
                    raise TibberAuthError(msg)

                if resp.content_type != "application/json":
                    msg = f"Unexpected content type: {resp.content_type}"
                    raise TibberApiError(msg)

                data = await resp.json()

        except (aiohttp.ClientError, TimeoutError) as err:
            msg = f"Connection error to Tibber API: {err}"
            raise TibberApiError(msg) from err

        errors = data.get("errors") or []
        if any(e.get("extensions", {}).get("code") == "UNAUTHENTICATED" for e in errors):
            raise TibberAuthError(errors[0].get("message", "Auth error"))
        if errors or resp.status != _HTTP_OK:
            messages = [e.get("message", "Unknown") for e in errors] or [
                str(resp.status)
            ]
            msg = f"Tibber API error: {', '.join(messages)}"
            raise TibberApiError(msg)

        return data.get("data") or {}

    async def async_validate_token(self) -> str:
        """Validate the access token and return the account holder's name."""
        data = await self._execute(QUERY_VIEWER_NAME)
        viewer = data.get("viewer")
        if not viewer:
            msg = "No viewer data returned from Tibber API"
            raise TibberApiError(msg)
        return viewer.get("name") or "Tibber User"

    async def async_get_prices(self) -> dict[str, list[TibberPrice]]:
        """Fetch today's and tomorrow's prices, keyed by home name."""
        data = await self._execute(QUERY_PRICES)
        homes = (data.get("viewer") or {}).get("homes") or []

        result: dict[str, list[TibberPrice]] = {}
        for home in homes:
            home_name = home.get("appNickname") or home.get("id", "Unknown")
            price_info = (home.get("currentSubscription") or {}).get("priceInfo")
            if not price_info:
                _LOGGER.debug("No price info for home %s", home_name)
                continue

            prices = [
                price
                for day in ("today", "tomorrow")
                for raw in price_info.get(day) or []
                if (price := _parse_price(raw)) is not None
            ]
            prices.sort(key=lambda p: p.start_time)
            result[home_name] = prices

            _LOGGER.debug("Fetched %d price slots for home %s", len(prices), home_name)

        return result


def _parse_price(data: dict[str, Any]) -> TibberPrice | None:
    """Parse a single price entry, returning None for malformed entries."""
    starts_at = data.get("startsAt")
    if not starts_at:
        return None

    start_time = dt_util.parse_datetime(starts_at)
    if start_time is None:
        return None

    try:
        total = float(data["total"])
    except (KeyError, ValueError, TypeError):
        _LOGGER.debug("Could not parse price entry: %s", data)
        return None

    return TibberPrice(
        start_time=start_time,
        total=total,
        currency=data.get("currency") or "EUR",
    )
