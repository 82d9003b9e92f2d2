"""Control loop that enables and disables the charger according to a schedule."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_point_in_utc_time
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .charger import Charger, ChargerError, ChargerState
from .const import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_GRANULARITY,
    DEFAULT_LOG_INTERVAL,
    DEFAULT_OPTIMIZATION_TIME,
    DOMAIN,
    SHUTDOWN_GRACE_PERIOD,
)
from .cost_source import CostSource, CostSourceError
from .optimizer import Optimizer
from .statistics import StatisticsSink
from .timeseries import TimeSeries, round_time_to

_LOGGER = logging.getLogger(__name__)


@dataclass
class ControlState:
    """Mutable state of the control loop, only touched while holding the lock."""

    observed_state: ChargerState
    charging_allowed: bool
    override: bool
    last_state_change: datetime
    last_enabled_change: datetime
    schedule: TimeSeries[bool] | None = None
    schedule_costs: TimeSeries[float | None] | None = None


@dataclass(frozen=True)
class ChargeStatus:
    """Snapshot of the control state handed to entities."""

    charger_state: ChargerState
    last_state_change: datetime
    charging_allowed: bool
    last_enabled_change: datetime
    override: bool
    cost: float | None
    schedule_active: bool
    charging_allowed_since_or_when: datetime | None

    @property
    def car_connected(self) -> bool:
        """Return whether a car is plugged in."""
        return self.charger_state.is_connected

    @property
    def charging(self) -> bool:
        """Return whether the car is drawing power."""
        return self.charger_state == ChargerState.CHARGING


class ChargeCoordinator(DataUpdateCoordinator[ChargeStatus]):
    """
    Poll the charger and reconcile its enabled bit with the charging plan.

    Every refresh is one tick: the charger state is polled, a new schedule is
    computed when a car gets connected, and the charger is enabled or
    disabled if it differs from the desired state. A second, fixed-rate timer
    writes statistics. Both, as well as every query and command from
    entities and services, run under one lock so the control state is never
    seen half-updated.
    """

    def __init__(  # noqa: PLR0913
        self,
        hass: HomeAssistant,
        entry: ConfigEntry | None,
        charger: Charger,
        *,
        cost_source: CostSource | None = None,
        optimizer: Optimizer | None = None,
        statistics: StatisticsSink | None = None,
        check_interval: timedelta = timedelta(seconds=DEFAULT_CHECK_INTERVAL),
        log_interval: timedelta = timedelta(seconds=DEFAULT_LOG_INTERVAL),
        optimization_time: timedelta = timedelta(minutes=DEFAULT_OPTIMIZATION_TIME),
        granularity: timedelta = timedelta(minutes=DEFAULT_GRANULARITY),
    ) -> None:
        """Initialize the charge coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            name=f"{DOMAIN}_coordinator",
            update_interval=check_interval,
            config_entry=entry,
        )
        self.charger = charger
        self.cost_source = cost_source
        self.optimizer = optimizer
        self.statistics = statistics
        self.log_interval = log_interval
        self.optimization_time = optimization_time
        self.granularity = granularity

        now = dt_util.utcnow()
        self._state = ControlState(
            observed_state=ChargerState.NOT_CONNECTED,
            charging_allowed=False,
            override=False,
            last_state_change=now,
            last_enabled_change=now,
        )
        self._lock = asyncio.Lock()
        self._tick_task: asyncio.Task[ChargeStatus] | None = None
        self._log_unsub: CALLBACK_TYPE | None = None
        self._shut_down = False

    @property
    def state(self) -> ControlState:
        """Return the control state (read-only use)."""
        return self._state

    # ------------------------------------------------------------------
    # Control tick
    # ------------------------------------------------------------------

    async def _async_update_data(self) -> ChargeStatus:
        """Run one control tick and return the resulting status."""
        task = self.hass.async_create_task(
            self._async_check_state(), f"{DOMAIN} check state"
        )
        self._tick_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            _LOGGER.warning("Charger check was cancelled")
            return self._build_status(dt_util.utcnow())
        finally:
            self._tick_task = None

    async def _async_check_state(self) -> ChargeStatus:
        """Poll the charger and act on connection changes and schedule."""
        async with self._lock:
            now = dt_util.utcnow()
            await self._async_tick(now)
            return self._build_status(now)

    async def _async_tick(self, now: datetime) -> None:
        """Perform one tick; every charger failure ends the tick early."""
        state = self._state

        try:
            new_state = await self.charger.async_get_state()
        except ChargerError:
            _LOGGER.exception("Connection problem with charger")
            return

        previous_state = state.observed_state
        state.observed_state = new_state
        if new_state != previous_state:
            state.last_state_change = now

        if new_state == ChargerState.ERROR:
            _LOGGER.error("Charger in state ERROR")
            return

        if not previous_state.is_connected and new_state.is_connected:
            _LOGGER.info("Car connected")
            await self._async_optimize(now)
        elif previous_state.is_connected and not new_state.is_connected:
            _LOGGER.info("Car disconnected")
            state.schedule = None
            state.schedule_costs = None
            state.charging_allowed = False
            state.override = False

        if new_state.is_connected and not state.override and state.schedule is not None:
            state.charging_allowed = bool(state.schedule.value_at(now))

        try:
            if await self.charger.async_get_enabled() != state.charging_allowed:
                _LOGGER.info(
                    "Setting charger to %s",
                    "enabled" if state.charging_allowed else "disabled",
                )
                await self.charger.async_set_enabled(state.charging_allowed)
                state.last_enabled_change = now
        except ChargerError:
            _LOGGER.exception("Could not update charger enabled state")

    async def _async_optimize(self, now: datetime) -> None:
        """Compute a new schedule starting at the current slot."""
        if self.optimizer is None or self.cost_source is None:
            return

        try:
            await self.cost_source.async_update()
        except CostSourceError as err:
            _LOGGER.warning("Could not update cost forecast: %s", err)

        start = round_time_to(now, self.granularity)
        costs: TimeSeries[float | None] = TimeSeries.from_function(
            start,
            self.granularity,
            now + self.optimization_time,
            self.cost_source.cost_at,
        )
        self._state.schedule_costs = costs
        self._state.schedule = self.optimizer.optimize(costs)
        _LOGGER.info("Optimization result: %s", self._state.schedule)

    # ------------------------------------------------------------------
    # Queries (call while holding the lock)
    # ------------------------------------------------------------------

    def cost_at(self, time: datetime) -> float | None:
        """
        Return the cost at ``time``.

        While a schedule is active the cost used to compute it is returned,
        so the reported cost matches the plan. Otherwise, or when the plan has
        no cost for ``time``, the cost source is asked.
        """
        cost = None
        if self._state.schedule is not None and self._state.schedule_costs is not None:
            cost = self._state.schedule_costs.value_at(time)
        if cost is None and self.cost_source is not None:
            cost = self.cost_source.cost_at(time)
        return cost

    def next_enabled_change(self, after: datetime) -> datetime | None:
        """
        Return the time of the next planned change of the enabled state.

        When the stored slots contain no change, the end of the schedule is
        returned if charging permission flips there to the value that holds
        after the schedule.
        """
        schedule = self._state.schedule
        if schedule is None:
            return None

        enabled = schedule.value_at(after)
        for entry in schedule.entries():
            if entry.time > after and entry.value != enabled:
                return entry.time

        if schedule.end > after and schedule.after != enabled:
            return schedule.end
        return None

    def _build_status(self, now: datetime) -> ChargeStatus:
        """Build an immutable status snapshot."""
        state = self._state
        return ChargeStatus(
            charger_state=state.observed_state,
            last_state_change=state.last_state_change,
            charging_allowed=state.charging_allowed,
            last_enabled_change=state.last_enabled_change,
            override=state.override,
            cost=self.cost_at(now),
            schedule_active=state.schedule is not None,
            charging_allowed_since_or_when=(
                state.last_enabled_change
                if state.charging_allowed
                else self.next_enabled_change(now)
            ),
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def async_set_override(self, override: bool) -> None:  # noqa: FBT001
        """Switch manual control on or off."""
        async with self._lock:
            self._state.override = override
            _LOGGER.info("Override %s", "enabled" if override else "disabled")
            status = self._build_status(dt_util.utcnow())
        self.async_set_updated_data(status)

    async def async_set_charging_allowed(self, allowed: bool) -> None:  # noqa: FBT001
        """
        Force charging on or off.

        This also enables the override, so the schedule does not take over
        again until the override is cleared or the car is disconnected. The
        charger itself is updated on the next tick.
        """
        async with self._lock:
            self._state.override = True
            self._state.charging_allowed = allowed
            _LOGGER.info("Charging %s manually", "allowed" if allowed else "blocked")
            status = self._build_status(dt_util.utcnow())
        self.async_set_updated_data(status)

    # ------------------------------------------------------------------
    # Statistics timer
    # ------------------------------------------------------------------

    @callback
    def async_start(self) -> None:
        """Start the statistics timer."""
        if self.statistics is not None and self._log_unsub is None:
            self._async_schedule_log(dt_util.utcnow())

    @callback
    def _async_schedule_log(self, now: datetime) -> None:
        """Schedule the next log at the next multiple of the log interval."""
        next_log = round_time_to(now, self.log_interval) + self.log_interval
        self._log_unsub = async_track_point_in_utc_time(
            self.hass, self._async_log_state, next_log
        )

    async def _async_log_state(self, now: datetime) -> None:
        """Record the current state and schedule the next log."""
        if self._shut_down or self.statistics is None:
            return
        self._async_schedule_log(now)

        async with self._lock:
            if self.cost_source is not None:
                try:
                    await self.cost_source.async_update()
                except CostSourceError as err:
                    _LOGGER.warning("Could not update cost forecast: %s", err)

            # shutdown may have flushed the log while this one waited
            if self._shut_down:
                return

            time = now.replace(microsecond=0)
            # the charger state may be up to one check interval old
            self.statistics.record(
                time,
                self._state.observed_state,
                self._state.charging_allowed,
                self.cost_at(time),
            )

    @callback
    def _async_stop_log_timer(self) -> None:
        """Cancel the statistics timer."""
        if self._log_unsub is not None:
            self._log_unsub()
            self._log_unsub = None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def _async_wait_for_tick(self) -> bool:
        """Wait for the running tick; return False if it did not finish in time."""
        task = self._tick_task
        if task is None or task.done():
            return True
        done, _ = await asyncio.wait(
            {task}, timeout=SHUTDOWN_GRACE_PERIOD.total_seconds()
        )
        return bool(done)

    async def async_shutdown(self) -> None:
        """
        Stop the control loop and leave the charger enabled.

        The running tick gets a grace period to finish and is cancelled
        afterwards. Whatever happens, the charger is enabled at the end so it
        does not stay blocked while nothing is controlling it.
        """
        if self._shut_down:
            return
        self._shut_down = True

        _LOGGER.info("Shutting down")
        self._async_stop_log_timer()
        await super().async_shutdown()

        if not await self._async_wait_for_tick():
            _LOGGER.info("Charger check still running; cancelling it")
            if self._tick_task is not None:
                self._tick_task.cancel()
            if not await self._async_wait_for_tick():
                _LOGGER.error("Could not stop the charger check")

        if self.statistics is not None:
            await self.statistics.async_save()

        try:
            await self.charger.async_set_enabled(True)
        except ChargerError:
            _LOGGER.exception("Could not enable charger on shutdown")
        else:
            _LOGGER.info("Finished; charger left enabled")
