"""Evenly spaced time series used for cost forecasts and charging schedules."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Entry(Generic[T]):
    """A single value of a time series together with its start time."""

    time: datetime
    value: T


class TimeSeries(Generic[T]):
    """
    Immutable time series with a fixed granularity.

    Each item is valid for ``granularity`` starting at ``start + i * granularity``.
    Lookups before ``start`` return ``before`` and lookups at or after ``end``
    return ``after``, so ``value_at`` is defined for every point in time.
    """

    __slots__ = ("_after", "_before", "_granularity", "_items", "_start")

    def __init__(
        self,
        start: datetime,
        granularity: timedelta,
        items: Iterable[T],
        before: T | None = None,
        after: T | None = None,
    ) -> None:
        """Initialize the time series."""
        if granularity <= timedelta(0):
            msg = f"Granularity must be positive, got {granularity}"
            raise ValueError(msg)
        self._start = start
        self._granularity = granularity
        self._items: tuple[T, ...] = tuple(items)
        self._before = before
        self._after = after

    @classmethod
    def from_function(  # noqa: PLR0913
        cls,
        start: datetime,
        granularity: timedelta,
        end: datetime,
        func: Callable[[datetime], T],
        before: T | None = None,
        after: T | None = None,
    ) -> TimeSeries[T]:
        """Build a time series by sampling ``func`` on ``[start, end)``."""
        if granularity <= timedelta(0):
            msg = f"Granularity must be positive, got {granularity}"
            raise ValueError(msg)
        items: list[T] = []
        time = start
        while time < end:
            items.append(func(time))
            time += granularity
        return cls(start, granularity, items, before, after)

    def replace_unknown(self, value: T) -> TimeSeries[T]:
        """Return a copy in which every ``None`` item is replaced by ``value``."""
        return TimeSeries(
            self._start,
            self._granularity,
            (value if item is None else item for item in self._items),
            self._before,
            self._after,
        )

    def value_at(self, time: datetime) -> T | None:
        """Return the value that is valid at ``time``."""
        index = (time - self._start) // self._granularity
        if index < 0:
            return self._before
        if index >= len(self._items):
            return self._after
        return self._items[index]

    @property
    def start(self) -> datetime:
        """Return the start of the first slot."""
        return self._start

    @property
    def end(self) -> datetime:
        """Return the end of the last slot (exclusive)."""
        return self._start + self._granularity * len(self._items)

    @property
    def granularity(self) -> timedelta:
        """Return the duration of each slot."""
        return self._granularity

    @property
    def before(self) -> T | None:
        """Return the value used before ``start``."""
        return self._before

    @property
    def after(self) -> T | None:
        """Return the value used at and after ``end``."""
        return self._after

    def times(self) -> list[datetime]:
        """Return the start time of every slot."""
        return [self._start + self._granularity * i for i in range(len(self._items))]

    def items(self) -> list[T]:
        """Return all slot values in chronological order."""
        return list(self._items)

    def entries(self) -> list[Entry[T]]:
        """Return ``(time, value)`` entries in chronological order."""
        return [
            Entry(self._start + self._granularity * i, item)
            for i, item in enumerate(self._items)
        ]

    def __iter__(self) -> Iterator[Entry[T]]:
        """Iterate over the entries in chronological order."""
        return iter(self.entries())

    def __len__(self) -> int:
        """Return the number of slots."""
        return len(self._items)

    def __repr__(self) -> str:
        """Return a compact representation for log output."""
        return (
            f"TimeSeries(start={self._start.isoformat()}, "
            f"granularity={self._granularity}, items={list(self._items)})"
        )


def round_time_to(time: datetime, granularity: timedelta) -> datetime:
    """
    Round ``time`` down to a multiple of ``granularity``.

    Multiples are counted from the start of the day of ``time``, so rounding
    to 15 minutes gives :00, :15, :30 and :45 regardless of the epoch.
    """
    start_of_day = time.replace(hour=0, minute=0, second=0, microsecond=0)
    return start_of_day + granularity * ((time - start_of_day) // granularity)
