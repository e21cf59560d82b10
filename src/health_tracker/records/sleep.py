"""Sleep duration records."""

from dataclasses import dataclass
from typing import Any

from ..types import SleepPayload
from .base import RecordManager


@dataclass(frozen=True)
class SleepRecord:
    date: str
    hours: float

    def to_dict(self) -> SleepPayload:
        return {"date": self.date, "hours": self.hours}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SleepRecord":
        return cls(date=str(data.get("date", "")), hours=float(data.get("hours", 0.0)))


class SleepManager(RecordManager[SleepRecord]):
    section = "sleep"

    def _record_from_dict(self, data: dict[str, Any]) -> SleepRecord:
        return SleepRecord.from_dict(data)

    def add_record(self, user_name: str, date: str, hours: float) -> bool:
        return self._append(user_name, SleepRecord(date, float(hours)))

    def update_record(self, user_name: str, index: int, new_date: str, new_hours: float) -> bool:
        return self._replace(user_name, index, SleepRecord(new_date, float(new_hours)))

    def get_last_sleep_hours(self, user_name: str) -> float:
        """Hours of the most recently stored entry, 0.0 if there is none."""
        records = self._records.get(user_name)
        if not records:
            return 0.0
        return records[-1].hours

    def is_sleep_enough(self, user_name: str, min_hours: float) -> bool:
        return self.get_last_sleep_hours(user_name) >= min_hours
