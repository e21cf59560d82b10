"""Per-metric record managers."""

from .activity import ActivityManager, ActivityRecord
from .base import RecordManager
from .other import OtherCategoryManager, OtherRecord
from .sleep import SleepManager, SleepRecord
from .water import WaterManager, WaterRecord

__all__ = [
    "ActivityManager",
    "ActivityRecord",
    "OtherCategoryManager",
    "OtherRecord",
    "RecordManager",
    "SleepManager",
    "SleepRecord",
    "WaterManager",
    "WaterRecord",
]
