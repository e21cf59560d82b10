"""Records for user-defined categories (steps, blood pressure, mood, ...)."""

from dataclasses import dataclass
from typing import Any

import structlog

from ..types import OtherPayload
from .base import in_range

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OtherRecord:
    date: str
    value: float
    note: str = ""

    def to_dict(self) -> OtherPayload:
        return {"date": self.date, "value": self.value, "note": self.note}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OtherRecord":
        return cls(
            date=str(data.get("date", "")),
            value=float(data.get("value", 0.0)),
            note=str(data.get("note", "")),
        )


class OtherCategoryManager:
    """Two-level store: user -> category -> ordered records.

    A category comes into existence with its first record; there is no way to
    create an empty one. Deleting the last record keeps the (now empty)
    category listed.
    """

    section = "other"

    def __init__(self) -> None:
        self._categories: dict[str, dict[str, list[OtherRecord]]] = {}

    def add_record(
        self,
        user_name: str,
        category: str,
        date: str,
        value: float,
        note: str = "",
    ) -> bool:
        by_category = self._categories.setdefault(user_name, {})
        by_category.setdefault(category, []).append(OtherRecord(date, float(value), note))
        return True

    def _lookup(self, user_name: str, category: str) -> list[OtherRecord] | None:
        return self._categories.get(user_name, {}).get(category)

    def update_record(
        self,
        user_name: str,
        category: str,
        index: int,
        new_date: str,
        new_value: float,
        new_note: str = "",
    ) -> bool:
        """Returns False if the category is unknown or the index is out of range."""
        records = self._lookup(user_name, category)
        if records is None or not in_range(records, index):
            return False
        records[index] = OtherRecord(new_date, float(new_value), new_note)
        return True

    def delete_record(self, user_name: str, category: str, index: int) -> bool:
        records = self._lookup(user_name, category)
        if records is None or not in_range(records, index):
            return False
        del records[index]
        return True

    def get_categories(self, user_name: str) -> list[str]:
        """Category names in order of first appearance."""
        return list(self._categories.get(user_name, {}))

    def get_records(self, user_name: str, category: str) -> list[OtherRecord]:
        return list(self._lookup(user_name, category) or [])

    def purge_user(self, user_name: str) -> bool:
        return self._categories.pop(user_name, None) is not None

    def users(self) -> list[str]:
        return list(self._categories)

    def count(self) -> int:
        return sum(
            len(records)
            for by_category in self._categories.values()
            for records in by_category.values()
        )

    def to_json(self) -> dict[str, dict[str, list[OtherPayload]]]:
        return {
            user_name: {
                category: [record.to_dict() for record in records]
                for category, records in by_category.items()
            }
            for user_name, by_category in self._categories.items()
        }

    def from_json(self, data: Any) -> None:
        """Replace every category with the snapshot section.

        Raises:
            ValueError: If the section is not shaped user -> category -> list.
        """
        if not isinstance(data, dict):
            raise ValueError(f"other section must be an object, got {type(data).__name__}")

        loaded: dict[str, dict[str, list[OtherRecord]]] = {}
        for user_name, by_category in data.items():
            if not isinstance(by_category, dict):
                raise ValueError(f"other categories for {user_name!r} must be an object")
            categories: dict[str, list[OtherRecord]] = {}
            for category, entries in by_category.items():
                if not isinstance(entries, list):
                    raise ValueError(f"other records for {category!r} must be a list")
                records = []
                for entry in entries:
                    if not isinstance(entry, dict):
                        raise ValueError("other record must be an object")
                    records.append(OtherRecord.from_dict(entry))
                categories[category] = records
            loaded[user_name] = categories

        self._categories = loaded
        logger.debug("records_loaded", section=self.section, users=len(loaded))
