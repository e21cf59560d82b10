"""Physical activity records."""

from dataclasses import dataclass
from typing import Any

from ..types import ActivityPayload
from .base import RecordManager


@dataclass(frozen=True)
class ActivityRecord:
    """A workout: duration in whole minutes plus a free-form intensity label."""

    date: str
    minutes: int
    intensity: str

    def to_dict(self) -> ActivityPayload:
        return {"date": self.date, "minutes": self.minutes, "intensity": self.intensity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityRecord":
        return cls(
            date=str(data.get("date", "")),
            minutes=int(data.get("minutes", 0)),
            intensity=str(data.get("intensity", "")),
        )


class ActivityManager(RecordManager[ActivityRecord]):
    section = "activity"

    def _record_from_dict(self, data: dict[str, Any]) -> ActivityRecord:
        return ActivityRecord.from_dict(data)

    def add_record(self, user_name: str, date: str, minutes: int, intensity: str) -> bool:
        return self._append(user_name, ActivityRecord(date, int(minutes), intensity))

    def update_record(
        self,
        user_name: str,
        index: int,
        new_date: str,
        new_minutes: int,
        new_intensity: str,
    ) -> bool:
        return self._replace(
            user_name, index, ActivityRecord(new_date, int(new_minutes), new_intensity)
        )

    def sort_by_duration(self, user_name: str) -> bool:
        """Reorder the user's records by minutes, shortest first.

        The sort is stable and rewrites the stored order, so later index-based
        calls address the sorted sequence. Unknown users are a no-op.
        """
        records = self._records.get(user_name)
        if records:
            records.sort(key=lambda record: record.minutes)
        return True
