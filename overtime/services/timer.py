import logging
import time
from typing import Callable

from overtime.schemas import TimerStateRecord
from overtime.config import TARGET_MINUTES
from overtime.services.calculations import (
    MS_PER_MINUTE,
    WorkBalanceResult,
    calculate_live_work_balance,
)
from overtime.services.timecodec import timestamp_for_time_today

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


class TimerStateMachine:
    """
    Stopwatch lifecycle of one shift: Stopped -> Running <-> Paused -> Stopped.

    Pause time is only folded into total_paused_ms on resume and stop, so
    sampling the live balance any number of times never double-counts a
    pause. After stop the start timestamp and pause total stay available
    until reset(), so the caller can turn them into an entry.
    """

    def __init__(self, clock: Clock = system_clock):
        self._clock = clock
        self.is_running = False
        self.is_paused = False
        self.start_timestamp: int | None = None
        self.pause_start_timestamp: int | None = None
        self.total_paused_ms = 0
        self.stopped_at: int | None = None

    @property
    def status(self) -> str:
        if not self.is_running:
            return "idle"
        return "paused" if self.is_paused else "running"

    @property
    def has_pending_entry(self) -> bool:
        """Stopped with a retained start, waiting to be committed or reset"""
        return not self.is_running and self.start_timestamp is not None

    def now(self) -> int:
        return self._clock()

    def start(self, manual_start_time: str | None = None) -> bool:
        """
        Start a new shift. A manual HH:MM start is placed on today's date so a
        shift can be started retroactively.
        """
        if self.is_running:
            return False

        now = self._clock()
        if manual_start_time:
            self.start_timestamp = timestamp_for_time_today(manual_start_time, now)
        else:
            self.start_timestamp = now

        self.is_running = True
        self.is_paused = False
        self.pause_start_timestamp = None
        self.total_paused_ms = 0
        self.stopped_at = None
        logger.info("Timer started at %s", self.start_timestamp)
        return True

    def pause(self) -> bool:
        if not self.is_running or self.is_paused:
            return False
        self.pause_start_timestamp = self._clock()
        self.is_paused = True
        logger.info("Timer paused")
        return True

    def resume(self) -> bool:
        if not self.is_paused:
            return False
        self._fold_open_pause(self._clock())
        self.is_paused = False
        logger.info("Timer resumed, %d ms paused in total", self.total_paused_ms)
        return True

    def toggle_pause(self) -> bool:
        if self.is_paused:
            return self.resume()
        return self.pause()

    def stop(self) -> int | None:
        """Stop the shift and return the stop timestamp, None when not running"""
        if not self.is_running:
            return None

        now = self._clock()
        if self.is_paused:
            self._fold_open_pause(now)

        self.is_running = False
        self.is_paused = False
        self.pause_start_timestamp = None
        self.stopped_at = now
        logger.info("Timer stopped, %d ms paused in total", self.total_paused_ms)
        return now

    def reset(self) -> None:
        self.is_running = False
        self.is_paused = False
        self.start_timestamp = None
        self.pause_start_timestamp = None
        self.total_paused_ms = 0
        self.stopped_at = None

    def get_total_pause_ms(self, include_ongoing: bool = True, now: int | None = None) -> int:
        """Accumulated pause time, optionally including the pause in progress"""
        total = self.total_paused_ms
        if include_ongoing and self.is_paused and self.pause_start_timestamp:
            if now is None:
                now = self._clock()
            total += max(0, now - self.pause_start_timestamp)
        return total

    def live_balance(
        self, daily_target_minutes=TARGET_MINUTES, now: int | None = None
    ) -> WorkBalanceResult | None:
        """Snapshot of the running shift; pure with respect to timer state"""
        if self.start_timestamp is None:
            return None
        if now is None:
            now = self._clock()
        manual_break_minutes = self.get_total_pause_ms(True, now) // MS_PER_MINUTE
        return calculate_live_work_balance(
            work_start=self.start_timestamp,
            now=now,
            daily_target_minutes=daily_target_minutes,
            manual_break_minutes=manual_break_minutes,
        )

    def _fold_open_pause(self, now: int) -> None:
        if self.pause_start_timestamp:
            self.total_paused_ms += max(0, now - self.pause_start_timestamp)
        self.pause_start_timestamp = None

    def to_record(self) -> TimerStateRecord:
        return TimerStateRecord(
            is_running=self.is_running,
            is_paused=self.is_paused,
            start_timestamp=self.start_timestamp,
            pause_start_timestamp=self.pause_start_timestamp,
            total_paused_ms=self.total_paused_ms,
        )

    @classmethod
    def from_record(cls, record: TimerStateRecord, clock: Clock = system_clock) -> "TimerStateMachine":
        """Rebuild a timer from persisted state, repairing broken invariants"""
        timer = cls(clock)
        timer.is_running = record.is_running
        timer.is_paused = record.is_paused
        timer.start_timestamp = record.start_timestamp
        timer.pause_start_timestamp = record.pause_start_timestamp
        timer.total_paused_ms = record.total_paused_ms

        if timer.is_running and timer.start_timestamp is None:
            logger.warning("Restored running timer without start timestamp, stopping it")
            timer.reset()
        if timer.is_paused and not timer.is_running:
            logger.warning("Restored paused timer that was not running, clearing pause")
            timer.is_paused = False
        if timer.is_paused and timer.pause_start_timestamp is None:
            timer.pause_start_timestamp = clock()
        if not timer.is_paused:
            timer.pause_start_timestamp = None
        return timer
