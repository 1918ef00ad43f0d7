import logging
import math

from overtime.schemas import Entry
from overtime.services.storage import Confirmer
from overtime.services.timecodec import coerce_number

logger = logging.getLogger(__name__)

OVERWRITE_MESSAGE = "An entry for this date already exists. Overwrite it?"
OVERWRITE_TITLE = "Overwrite entry"


class EntryLedger:
    """Completed shifts, at most one per date, most recent first"""

    def __init__(self, entries: list[Entry] | None = None):
        self._entries: list[Entry] = list(entries or [])
        self._sort()

    @property
    def entries(self) -> list[Entry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def find_by_date(self, date: str) -> Entry | None:
        for entry in self._entries:
            if entry.date == date:
                return entry
        return None

    def add_or_replace(self, entry: Entry, confirmer: Confirmer) -> bool:
        """
        Insert an entry, replacing the one for the same date only after the
        confirmer agrees. Returns False when the overwrite was declined.
        """
        for index, existing in enumerate(self._entries):
            if existing.date != entry.date:
                continue
            if not confirmer.confirm(OVERWRITE_MESSAGE, OVERWRITE_TITLE):
                logger.info("Overwrite of entry for %s declined", entry.date)
                return False
            self._entries[index] = entry
            logger.info("Replaced entry for %s", entry.date)
            break
        else:
            self._entries.insert(0, entry)
            logger.info("Added entry for %s", entry.date)

        self._sort()
        return True

    def delete(self, entry_id: int) -> bool:
        remaining = [e for e in self._entries if e.id != entry_id]
        deleted = len(remaining) != len(self._entries)
        self._entries = remaining
        return deleted

    def clear(self) -> None:
        self._entries = []

    def total_balance(self) -> int:
        """Sum of all daily differences; anything non-numeric counts as zero"""
        return sum(math.floor(coerce_number(e.diff_minutes)) for e in self._entries)

    def _sort(self) -> None:
        self._entries.sort(key=lambda e: str(e.date), reverse=True)
