"""
Capabilities the tracker core needs from its host: key-value persistence and
yes/no confirmation.

Storage backends never raise to the caller. Failures are logged and the
in-memory state of the controller stays authoritative.
"""
import copy
import json
import logging
from typing import Any, Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from overtime.database import SessionLocal
from overtime.models import StoredValue

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        ...

    def set(self, data: dict[str, Any]) -> None:
        ...


class Confirmer(Protocol):
    def confirm(self, message: str, title: str = "Confirm") -> bool:
        ...


class StaticConfirmer:
    """Answers every confirmation with a fixed value"""

    def __init__(self, answer: bool):
        self.answer = answer

    def confirm(self, message: str, title: str = "Confirm") -> bool:
        logger.debug("Confirmation %r (%s) answered with %s", title, message, self.answer)
        return self.answer


class MemoryStorage:
    """Process-local storage, used in tests and when no database is available"""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {key: copy.deepcopy(self._data.get(key)) for key in keys}

    def set(self, data: dict[str, Any]) -> None:
        for key, value in data.items():
            self._data[key] = copy.deepcopy(value)


class SqlStorage:
    """
    Key-value storage in the kv_store table, one JSON document per key.

    Every written value is mirrored in memory so a failing database degrades
    to in-memory storage instead of losing the latest snapshot. Reads prefer
    the mirror over database rows for keys this instance has written.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory
        self._mirror: dict[str, Any] = {}

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        keys = list(keys)
        result: dict[str, Any] = {key: copy.deepcopy(self._mirror.get(key)) for key in keys}

        db = self._session_factory()
        try:
            rows = db.query(StoredValue).filter(StoredValue.key.in_(keys)).all()
        except SQLAlchemyError:
            logger.exception("Error loading %s from database", ", ".join(keys))
            return result
        finally:
            db.close()

        for row in rows:
            if row.key in self._mirror:
                # written by this process, possibly after the row went stale
                continue
            try:
                result[row.key] = json.loads(row.value)
            except json.JSONDecodeError:
                logger.error("Stored value for %r is not valid JSON, ignoring it", row.key)
                result[row.key] = None
        return result

    def set(self, data: dict[str, Any]) -> None:
        encoded = {}
        for key, value in data.items():
            try:
                encoded[key] = json.dumps(value)
            except (TypeError, ValueError):
                logger.error("Value for %r is not JSON serializable, not saving it", key)
                continue
            self._mirror[key] = copy.deepcopy(value)

        db = self._session_factory()
        try:
            for key, value in encoded.items():
                db.merge(StoredValue(key=key, value=value))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error saving %s to database", ", ".join(encoded))
        finally:
            db.close()
