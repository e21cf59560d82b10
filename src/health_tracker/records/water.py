"""Water intake records."""

from dataclasses import dataclass
from typing import Any

from ..types import WaterPayload
from .base import RecordManager

WEEK_LENGTH = 7


@dataclass(frozen=True)
class WaterRecord:
    """Water drunk on a day, in millilitres."""

    date: str
    amount_ml: float

    def to_dict(self) -> WaterPayload:
        return {"date": self.date, "amountMl": self.amount_ml}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WaterRecord":
        return cls(
            date=str(data.get("date", "")),
            amount_ml=float(data.get("amountMl", 0.0)),
        )


class WaterManager(RecordManager[WaterRecord]):
    """Water records per user, with a rolling weekly average."""

    section = "water"

    def _record_from_dict(self, data: dict[str, Any]) -> WaterRecord:
        return WaterRecord.from_dict(data)

    def add_record(self, user_name: str, date: str, amount_ml: float) -> bool:
        return self._append(user_name, WaterRecord(date, float(amount_ml)))

    def update_record(
        self, user_name: str, index: int, new_date: str, new_amount_ml: float
    ) -> bool:
        return self._replace(user_name, index, WaterRecord(new_date, float(new_amount_ml)))

    def get_weekly_average(self, user_name: str) -> float:
        """Mean of the last seven entries in stored order (not sorted by date).

        Fewer than seven entries are averaged as they are; no entries gives 0.0.
        """
        week = self._records.get(user_name, [])[-WEEK_LENGTH:]
        if not week:
            return 0.0
        return sum(record.amount_ml for record in week) / len(week)

    def is_enough_for_week(self, user_name: str, daily_goal_ml: float) -> bool:
        return self.get_weekly_average(user_name) >= daily_goal_ml
