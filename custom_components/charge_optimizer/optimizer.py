"""Turn a cost forecast into a charging schedule."""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Protocol

from .timeseries import TimeSeries

_LOGGER = logging.getLogger(__name__)

# Replaces unknown costs so those slots are only used as a last resort
UNKNOWN_COST = math.inf


class Optimizer(Protocol):
    """Something that decides when charging is allowed."""

    def optimize(self, costs: TimeSeries[float | None]) -> TimeSeries[bool]:
        """Return a schedule for the interval covered by ``costs``."""
        ...


def slots_needed(minimum_duration: timedelta, granularity: timedelta) -> int:
    """Return the number of slots required to cover ``minimum_duration``."""
    return math.ceil(minimum_duration / granularity)


def optimize(
    costs: TimeSeries[float | None], minimum_duration: timedelta
) -> TimeSeries[bool]:
    """
    Compute a charging schedule that guarantees a minimum charging time.

    The minimum charging time is distributed over the cheapest slots of the
    forecast. Slots with a cost no higher than the most expensive of those
    are enabled in chronological order, and once enough slots have been
    enabled every later slot is enabled as well: charging stays allowed for
    the rest of the horizon instead of being optimized any further.

    Slots with an unknown cost are never preferred over slots with a known
    cost. A minimum that needs more slots than the forecast contains enables
    every slot.

    Returns:
        A schedule with the start and granularity of ``costs`` that is
        ``False`` before the forecast and ``True`` after it.

    """
    known = costs.replace_unknown(UNKNOWN_COST)
    entries = known.entries()

    needed = slots_needed(minimum_duration, costs.granularity)
    if needed > len(entries):
        _LOGGER.debug(
            "Minimum charging time %s exceeds horizon of %d slots; enabling all",
            minimum_duration,
            len(entries),
        )
        needed = len(entries)

    enabled: list[bool] = []
    if needed > 0:
        # sorted() is stable, so equal costs keep chronological order
        by_cost = sorted(entries, key=lambda e: e.value)
        threshold = by_cost[needed - 1].value
    else:
        threshold = -math.inf

    count = 0
    for entry in entries:
        if entry.value <= threshold or count >= needed:
            count += 1
            enabled.append(True)
        else:
            enabled.append(False)

    return TimeSeries(costs.start, costs.granularity, enabled, before=False, after=True)


class CheapestTimesOptimizer:
    """Optimizer that charges in the cheapest slots for a minimum duration."""

    def __init__(self, minimum_charging_time: timedelta) -> None:
        """Initialize the optimizer."""
        self.minimum_charging_time = minimum_charging_time

    def optimize(self, costs: TimeSeries[float | None]) -> TimeSeries[bool]:
        """Return a schedule for the interval covered by ``costs``."""
        return optimize(costs, self.minimum_charging_time)
