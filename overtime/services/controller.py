import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError

from overtime.config import (
    BREAK_MINUTES,
    ENTRIES_KEY,
    LOCALE,
    SETTINGS_KEY,
    STORAGE_KEYS,
    TARGET_MINUTES,
    TIMER_STATE_KEY,
)
from overtime.schemas import (
    ActionResponse,
    Entry,
    EntryActionResponse,
    EntryDraft,
    EntryListResponse,
    EntryPreview,
    Settings,
    StatusResponse,
    TimerStateRecord,
)
from overtime.services.calculations import (
    MS_PER_MINUTE,
    calculate_break_minutes,
    calculate_difference,
    calculate_gross_minutes,
    calculate_progress_percent,
    calculate_worked_minutes,
    is_overnight_shift,
)
from overtime.services.ledger import EntryLedger
from overtime.services.sampler import SamplingLoop
from overtime.services.storage import Confirmer, StaticConfirmer, Storage
from overtime.services.timecodec import (
    add_days_to_date_key,
    coerce_number,
    format_balance,
    format_date_for_display,
    format_minutes_hhmm,
    format_pause_duration,
    parse_date_key,
    timestamp_to_date_key,
    timestamp_to_time_of_day,
)
from overtime.services.timer import Clock, TimerStateMachine, system_clock

logger = logging.getLogger(__name__)

CLEAR_MESSAGE = "Really delete all entries?"
CLEAR_TITLE = "Delete all entries"


@dataclass
class AppState:
    settings: Settings = field(default_factory=Settings)
    ledger: EntryLedger = field(default_factory=EntryLedger)
    timer: TimerStateMachine = field(default_factory=TimerStateMachine)


def settings_from_storage(raw: Any) -> Settings:
    """Tolerant settings load: a falsy target or missing break falls back to defaults"""
    if not isinstance(raw, dict):
        return Settings()
    target = math.floor(coerce_number(raw.get("targetMinutes")))
    if target <= 0:
        target = TARGET_MINUTES
    break_minutes = raw.get("breakMinutes")
    if break_minutes is None:
        break_minutes = BREAK_MINUTES
    return Settings(
        target_minutes=target,
        break_minutes=max(0, math.floor(coerce_number(break_minutes))),
    )


def entries_from_storage(raw: Any) -> list[Entry]:
    if not isinstance(raw, list):
        return []
    entries = []
    for item in raw:
        try:
            entries.append(Entry.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed stored entry %r: %s", item, exc)
    return entries


def timer_record_from_storage(raw: Any) -> TimerStateRecord:
    if not isinstance(raw, dict):
        return TimerStateRecord()
    try:
        return TimerStateRecord.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed stored timer state: %s", exc)
        return TimerStateRecord()


class TrackerController:
    """
    Owns the application state and is its only writer.

    Every mutation is followed by a full-snapshot save, so a failed or
    overlapping save is repaired by the next one.
    """

    def __init__(
        self,
        storage: Storage,
        confirmer: Confirmer | None = None,
        clock: Clock = system_clock,
        locale: str = LOCALE,
    ):
        self.storage = storage
        self.confirmer = confirmer or StaticConfirmer(False)
        self.clock = clock
        self.locale = locale
        self.state = AppState(timer=TimerStateMachine(clock))
        self.sampler: SamplingLoop | None = None

    @property
    def settings(self) -> Settings:
        return self.state.settings

    @property
    def ledger(self) -> EntryLedger:
        return self.state.ledger

    @property
    def timer(self) -> TimerStateMachine:
        return self.state.timer

    def attach_sampler(
        self, interval_seconds: float, sink: Callable[[StatusResponse], None] | None = None
    ) -> SamplingLoop:
        self.sampler = SamplingLoop(interval_seconds, self.snapshot, sink)
        return self.sampler

    def load(self) -> None:
        raw = self.storage.get(STORAGE_KEYS)
        self.state = AppState(
            settings=settings_from_storage(raw.get(SETTINGS_KEY)),
            ledger=EntryLedger(entries_from_storage(raw.get(ENTRIES_KEY))),
            timer=TimerStateMachine.from_record(
                timer_record_from_storage(raw.get(TIMER_STATE_KEY)), self.clock
            ),
        )
        logger.info(
            "Loaded %d entries, timer %s", len(self.ledger), self.timer.status
        )
        if self.timer.is_running:
            self._start_sampling()

    def save(self) -> None:
        self.storage.set(
            {
                SETTINGS_KEY: self.settings.to_storage(),
                ENTRIES_KEY: [entry.to_storage() for entry in self.ledger.entries],
                TIMER_STATE_KEY: self.timer.to_record().to_storage(),
            }
        )

    def start_timer(self, manual_start_time: str | None = None) -> ActionResponse:
        """Start a new work session"""
        if self.timer.is_running:
            return ActionResponse(
                success=False, message="Timer already running", status=self.timer.status
            )

        self.timer.start(manual_start_time)
        self.save()
        self._start_sampling()
        return ActionResponse(success=True, message="Timer started", status="running")

    def pause_timer(self) -> ActionResponse:
        """Pause the current session"""
        if not self.timer.is_running:
            return ActionResponse(success=False, message="No active session", status="idle")
        if not self.timer.pause():
            return ActionResponse(
                success=False, message="Timer already paused", status="paused"
            )

        self.save()
        return ActionResponse(success=True, message="Timer paused", status="paused")

    def resume_timer(self) -> ActionResponse:
        """Resume from pause"""
        if not self.timer.is_running:
            return ActionResponse(success=False, message="No active session", status="idle")
        if not self.timer.resume():
            return ActionResponse(
                success=False, message="Timer not paused", status="running"
            )

        self.save()
        return ActionResponse(success=True, message="Timer resumed", status="running")

    def toggle_pause(self) -> ActionResponse:
        if self.timer.is_paused:
            return self.resume_timer()
        return self.pause_timer()

    def stop_timer(self) -> ActionResponse:
        """Stop the current session and keep it pending as an entry draft"""
        if self.timer.stop() is None:
            return ActionResponse(success=False, message="No active session", status="idle")

        self._stop_sampling()
        self.save()
        return ActionResponse(success=True, message="Timer stopped", status="idle")

    def reset_timer(self) -> ActionResponse:
        """Stop without saving (discard session)"""
        if not self.timer.is_running and not self.timer.has_pending_entry:
            return ActionResponse(success=False, message="No active session", status="idle")

        self.timer.reset()
        self._stop_sampling()
        self.save()
        return ActionResponse(
            success=True, message="Timer reset (session discarded)", status="idle"
        )

    def draft(self) -> EntryDraft | None:
        """Entry suggested by a stopped timer, None while running or idle"""
        if not self.timer.has_pending_entry or self.timer.stopped_at is None:
            return None
        start_time = timestamp_to_time_of_day(self.timer.start_timestamp)
        end_time = timestamp_to_time_of_day(self.timer.stopped_at)
        return EntryDraft(
            date=timestamp_to_date_key(self.timer.start_timestamp),
            start_time=start_time,
            end_time=end_time,
            overnight=is_overnight_shift(start_time, end_time),
        )

    def preview_entry(self, date: str, start_time: str, end_time: str) -> EntryPreview:
        """
        Compute an entry without committing it. Pauses recorded by the timer
        are added to the mandatory break.
        """
        extra_pause_minutes = self.timer.total_paused_ms // MS_PER_MINUTE
        gross = calculate_gross_minutes(start_time, end_time)
        break_minutes = calculate_break_minutes(gross, extra_pause_minutes)
        worked = calculate_worked_minutes(start_time, end_time, break_minutes)
        diff = calculate_difference(worked, self.settings.target_minutes)

        return EntryPreview(
            date=date,
            date_formatted=format_date_for_display(date, self.locale),
            start_time=start_time,
            end_time=end_time,
            overnight=is_overnight_shift(start_time, end_time),
            gross_minutes=gross,
            break_minutes=break_minutes,
            worked_minutes=worked,
            worked_formatted=format_minutes_hhmm(worked),
            diff_minutes=diff,
            diff_formatted=format_balance(diff),
        )

    def commit_entry(
        self,
        date: str,
        start_time: str,
        end_time: str,
        confirmer: Confirmer | None = None,
    ) -> EntryActionResponse:
        """Store the day's entry, replacing an existing one only after confirmation"""
        status = self.timer.status
        if not date or not start_time or not end_time:
            return EntryActionResponse(
                success=False, message="Date, start and end time are required", status=status
            )
        if parse_date_key(date) is None:
            return EntryActionResponse(
                success=False, message="Invalid date (expected YYYY-MM-DD)", status=status
            )

        preview = self.preview_entry(date, start_time, end_time)
        entry = Entry(
            id=self._new_entry_id(),
            date=date,
            start_time=start_time,
            end_time=end_time,
            break_minutes=preview.break_minutes,
            worked_minutes=preview.worked_minutes,
            diff_minutes=preview.diff_minutes,
        )

        if not self.ledger.add_or_replace(entry, confirmer or self.confirmer):
            return EntryActionResponse(
                success=False,
                message="An entry for this date already exists",
                status=status,
            )

        self.timer.reset()
        self._stop_sampling()
        self.save()
        return EntryActionResponse(
            success=True,
            message="Entry saved",
            status="idle",
            entry=entry,
            next_date=add_days_to_date_key(date, 1),
        )

    def delete_entry(self, entry_id: int) -> ActionResponse:
        if not self.ledger.delete(entry_id):
            return ActionResponse(
                success=False, message="Entry not found", status=self.timer.status
            )
        self.save()
        return ActionResponse(success=True, message="Entry deleted", status=self.timer.status)

    def clear_entries(self, confirmer: Confirmer | None = None) -> ActionResponse:
        confirmer = confirmer or self.confirmer
        if not confirmer.confirm(CLEAR_MESSAGE, CLEAR_TITLE):
            return ActionResponse(
                success=False, message="Clearing entries cancelled", status=self.timer.status
            )
        self.ledger.clear()
        self.save()
        logger.info("All entries deleted")
        return ActionResponse(
            success=True, message="All entries deleted", status=self.timer.status
        )

    def list_entries(self) -> EntryListResponse:
        total = self.ledger.total_balance()
        return EntryListResponse(
            entries=self.ledger.entries,
            total_balance_minutes=total,
            total_balance_formatted=format_balance(total),
        )

    def update_settings(self, target_minutes, break_minutes) -> ActionResponse:
        self.state.settings = Settings(
            target_minutes=max(0, math.floor(coerce_number(target_minutes))),
            break_minutes=max(0, math.floor(coerce_number(break_minutes))),
        )
        self.save()
        return ActionResponse(success=True, message="Settings saved", status=self.timer.status)

    def snapshot(self, now: int | None = None) -> StatusResponse:
        """Live status of the timer; computing it never changes any state"""
        if now is None:
            now = self.clock()
        if self.timer.has_pending_entry and self.timer.stopped_at is not None:
            now = self.timer.stopped_at

        target = self.settings.target_minutes
        balance = None
        # a shift stopped before a restart has no stop time to freeze at
        if self.timer.is_running or self.timer.stopped_at is not None:
            balance = self.timer.live_balance(target, now)
        pause_ms = self.timer.get_total_pause_ms(True, now)
        total = self.ledger.total_balance()

        if balance is None:
            worked = 0
            remaining = target
            overtime = 0
            expected_end = now + target * MS_PER_MINUTE
            mandatory_break_applies = False
        else:
            worked = balance.effective_worked_minutes
            remaining = max(0, -balance.balance_minutes)
            overtime = max(0, balance.balance_minutes)
            expected_end = balance.expected_end_timestamp
            mandatory_break_applies = balance.mandatory_break_minutes > 0

        return StatusResponse(
            status=self.timer.status,
            timer=self.timer.to_record(),
            balance=balance,
            worked_formatted=format_minutes_hhmm(worked),
            remaining_formatted=format_minutes_hhmm(remaining),
            overtime_formatted=format_minutes_hhmm(overtime),
            progress_percent=calculate_progress_percent(worked, target) if balance else 0.0,
            pause_ms=pause_ms,
            pause_formatted=format_pause_duration(pause_ms),
            expected_end=timestamp_to_time_of_day(expected_end),
            mandatory_break_applies=mandatory_break_applies,
            total_balance_minutes=total,
            total_balance_formatted=format_balance(total),
            draft=self.draft(),
        )

    def _new_entry_id(self) -> int:
        entry_id = self.clock()
        taken = {entry.id for entry in self.ledger.entries}
        while entry_id in taken:
            entry_id += 1
        return entry_id

    def _start_sampling(self) -> None:
        if self.sampler is None:
            return
        try:
            self.sampler.start()
        except RuntimeError:
            logger.debug("No running event loop, live sampling disabled")

    def _stop_sampling(self) -> None:
        if self.sampler is not None:
            self.sampler.stop()
