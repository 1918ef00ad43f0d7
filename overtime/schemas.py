import math

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from overtime.config import TARGET_MINUTES, BREAK_MINUTES
from overtime.services.calculations import WorkBalanceResult
from overtime.services.timecodec import coerce_number

# 3000-01-01T00:00:00Z, far enough out for any shift and safe for datetime
MAX_TIMESTAMP_MS = 32503680000000


class StoredRecord(BaseModel):
    """Base for records persisted under camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True)


class Settings(StoredRecord):
    target_minutes: int = Field(default=TARGET_MINUTES, ge=0)
    break_minutes: int = Field(default=BREAK_MINUTES, ge=0)


class Entry(StoredRecord):
    id: int
    date: str
    start_time: str
    end_time: str
    break_minutes: int = 0
    worked_minutes: int = 0
    diff_minutes: int = 0

    @field_validator("break_minutes", "worked_minutes", "diff_minutes", mode="before")
    @classmethod
    def _lenient_minutes(cls, value):
        return math.floor(coerce_number(value))


class TimerStateRecord(StoredRecord):
    is_running: bool = False
    is_paused: bool = False
    start_timestamp: int | None = None
    pause_start_timestamp: int | None = None
    total_paused_ms: int = 0

    @field_validator("is_running", "is_paused", mode="before")
    @classmethod
    def _truthy(cls, value):
        return bool(value)

    @field_validator("start_timestamp", "pause_start_timestamp", mode="before")
    @classmethod
    def _optional_timestamp(cls, value):
        number = math.floor(coerce_number(value))
        if number <= 0 or number > MAX_TIMESTAMP_MS:
            return None
        return number

    @field_validator("total_paused_ms", mode="before")
    @classmethod
    def _non_negative_ms(cls, value):
        return max(0, math.floor(coerce_number(value)))


class ActionResponse(BaseModel):
    success: bool
    message: str
    status: str


class StartRequest(BaseModel):
    start_time: str | None = None  # HH:MM format, defaults to now


class EntryRequest(BaseModel):
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM format
    end_time: str  # HH:MM format
    confirm: bool = False  # overwrite an existing entry for the same date


class SettingsRequest(BaseModel):
    target_minutes: int = Field(ge=0)
    break_minutes: int = Field(ge=0)


class EntryDraft(BaseModel):
    date: str
    start_time: str
    end_time: str
    overnight: bool


class EntryPreview(BaseModel):
    date: str
    date_formatted: str
    start_time: str
    end_time: str
    overnight: bool
    gross_minutes: int
    break_minutes: int
    worked_minutes: int
    worked_formatted: str
    diff_minutes: int
    diff_formatted: str


class EntryActionResponse(ActionResponse):
    entry: Entry | None = None
    next_date: str | None = None


class EntryListResponse(BaseModel):
    entries: list[Entry]
    total_balance_minutes: int
    total_balance_formatted: str


class StatusResponse(BaseModel):
    status: str  # "idle", "running", "paused"
    timer: TimerStateRecord
    balance: WorkBalanceResult | None
    worked_formatted: str
    remaining_formatted: str
    overtime_formatted: str
    progress_percent: float
    pause_ms: int
    pause_formatted: str
    expected_end: str  # HH:MM format
    mandatory_break_applies: bool
    total_balance_minutes: int
    total_balance_formatted: str
    draft: EntryDraft | None = None
