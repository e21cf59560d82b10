"""Base record manager and shared helpers."""

from abc import ABC, abstractmethod
from typing import Any, Generic, Protocol, TypeVar

import structlog

logger = structlog.get_logger(__name__)


class Record(Protocol):
    """A dated measurement that can round-trip through the snapshot."""

    date: str

    def to_dict(self) -> dict[str, Any]: ...


R = TypeVar("R", bound=Record)


def in_range(records: list[Any], index: int) -> bool:
    """Positional addressing never wraps around: negative indices are rejected."""
    return 0 <= index < len(records)


class RecordManager(ABC, Generic[R]):
    """Ordered per-user record sequences addressed by position.

    Insertion order is the addressing order. Deleting an entry shifts every
    later entry down by one, so callers must re-read indices after a delete.
    The manager does not check that the user exists; that is the caller's job.
    """

    #: Snapshot section name, also used as the metrics ``domain`` label.
    section: str = ""

    def __init__(self) -> None:
        self._records: dict[str, list[R]] = {}

    @abstractmethod
    def _record_from_dict(self, data: dict[str, Any]) -> R:
        """Build a record from its snapshot form."""

    def _append(self, user_name: str, record: R) -> bool:
        self._records.setdefault(user_name, []).append(record)
        return True

    def _replace(self, user_name: str, index: int, record: R) -> bool:
        records = self._records.get(user_name, [])
        if not in_range(records, index):
            return False
        records[index] = record
        return True

    def delete_record(self, user_name: str, index: int) -> bool:
        """Remove the entry at ``index``.

        Returns:
            False if the index is out of range for this user.
        """
        records = self._records.get(user_name, [])
        if not in_range(records, index):
            return False
        del records[index]
        return True

    def get_all(self, user_name: str) -> list[R]:
        """Return a copy of the user's records; unknown users get an empty list."""
        return list(self._records.get(user_name, []))

    def purge_user(self, user_name: str) -> bool:
        """Drop every record of a user. Returns True if anything was removed."""
        return self._records.pop(user_name, None) is not None

    def users(self) -> list[str]:
        return list(self._records)

    def count(self) -> int:
        """Total number of records across all users."""
        return sum(len(records) for records in self._records.values())

    def to_json(self) -> dict[str, list[dict[str, Any]]]:
        return {
            user_name: [record.to_dict() for record in records]
            for user_name, records in self._records.items()
        }

    def from_json(self, data: Any) -> None:
        """Replace all records with the snapshot section.

        Raises:
            ValueError: If the section does not map user names to lists of objects.
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"{self.section} section must be an object, got {type(data).__name__}"
            )

        loaded: dict[str, list[R]] = {}
        for user_name, entries in data.items():
            if not isinstance(entries, list):
                raise ValueError(f"{self.section} records for {user_name!r} must be a list")
            records: list[R] = []
            for entry in entries:
                if not isinstance(entry, dict):
                    raise ValueError(f"{self.section} record must be an object")
                records.append(self._record_from_dict(entry))
            loaded[user_name] = records

        self._records = loaded
        logger.debug("records_loaded", section=self.section, users=len(loaded))
