"""Tests for the time series."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from custom_components.charge_optimizer.timeseries import (
    Entry,
    TimeSeries,
    round_time_to,
)

START = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
HOUR = timedelta(hours=1)


def test_value_at_inside_range() -> None:
    """Test lookups inside the series return the slot containing the time."""
    series = TimeSeries(START, HOUR, [1, 2, 3], before=0, after=9)

    assert series.value_at(START) == 1
    assert series.value_at(START + timedelta(minutes=59)) == 1
    assert series.value_at(START + HOUR) == 2
    assert series.value_at(START + timedelta(hours=2, minutes=30)) == 3


def test_value_at_boundaries() -> None:
    """Test lookups outside the series return the before and after values."""
    series = TimeSeries(START, HOUR, [1, 2, 3], before=0, after=9)

    assert series.value_at(START - timedelta(seconds=1)) == 0
    assert series.value_at(START - timedelta(days=3)) == 0
    assert series.value_at(START + 3 * HOUR) == 9
    assert series.value_at(START + timedelta(days=3)) == 9


def test_empty_series_uses_sentinels() -> None:
    """Test an empty series has no slots and answers with the sentinels."""
    series: TimeSeries[bool] = TimeSeries(START, HOUR, [], before=False, after=True)

    assert len(series) == 0
    assert series.end == START
    assert series.value_at(START - HOUR) is False
    assert series.value_at(START) is True


def test_invalid_granularity() -> None:
    """Test a non-positive granularity is rejected."""
    with pytest.raises(ValueError, match="Granularity"):
        TimeSeries(START, timedelta(0), [1])
    with pytest.raises(ValueError, match="Granularity"):
        TimeSeries.from_function(START, -HOUR, START + HOUR, lambda _t: 1)


def test_from_function_samples_half_open_interval() -> None:
    """Test from_function samples every slot start before the end."""
    series = TimeSeries.from_function(
        START, HOUR, START + timedelta(hours=2, minutes=30), lambda t: t.hour
    )

    assert series.items() == [12, 13, 14]
    assert series.times() == [START, START + HOUR, START + 2 * HOUR]
    assert series.end == START + 3 * HOUR


def test_from_function_end_not_after_start() -> None:
    """Test from_function yields an empty series when end is not after start."""
    series = TimeSeries.from_function(START, HOUR, START, lambda _t: 1)

    assert len(series) == 0


def test_replace_unknown() -> None:
    """Test unknown values are replaced and the rest is kept."""
    series = TimeSeries(START, HOUR, [1.0, None, 3.0], before=None, after=None)

    replaced = series.replace_unknown(99.0)

    assert replaced.items() == [1.0, 99.0, 3.0]
    assert replaced.start == START
    assert replaced.granularity == HOUR
    # the original series is unchanged
    assert series.items() == [1.0, None, 3.0]


def test_entries_and_iteration() -> None:
    """Test entries are returned in chronological order."""
    series = TimeSeries(START, HOUR, ["a", "b"])

    assert series.entries() == [Entry(START, "a"), Entry(START + HOUR, "b")]
    assert list(series) == series.entries()


def test_round_time_to() -> None:
    """Test rounding down to multiples counted from the start of the day."""
    time = datetime(2026, 3, 1, 10, 52, 31, 123, tzinfo=UTC)

    assert round_time_to(time, timedelta(minutes=15)) == datetime(
        2026, 3, 1, 10, 45, tzinfo=UTC
    )
    assert round_time_to(time, timedelta(minutes=5)) == datetime(
        2026, 3, 1, 10, 50, tzinfo=UTC
    )
    assert round_time_to(time, timedelta(seconds=60)) == datetime(
        2026, 3, 1, 10, 52, tzinfo=UTC
    )
    # 7 minutes do not divide an hour, multiples start at midnight
    assert round_time_to(time, timedelta(minutes=7)) == datetime(
        2026, 3, 1, 10, 51, tzinfo=UTC
    )
