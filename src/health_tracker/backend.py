"""Request orchestrator: the single entry point into the domain store."""

import threading
from pathlib import Path

import structlog

from . import validation
from .metrics import ACTIVE_SESSIONS, LOGINS, STORE_MUTATIONS
from .records import (
    ActivityManager,
    ActivityRecord,
    OtherCategoryManager,
    OtherRecord,
    SleepManager,
    SleepRecord,
    WaterManager,
    WaterRecord,
)
from .storage import SnapshotStore
from .users import DEFAULT_TOKEN_LENGTH, UserStore

logger = structlog.get_logger(__name__)


class HealthBackend:
    """Resolves tokens, validates input, delegates to the stores and persists.

    Every mutating call follows the same path: resolve the token (fail closed),
    validate each field (fail closed on the first violation), apply the change
    and rewrite the snapshot if the change succeeded. Reads resolve the token
    and fall back to empty/zero results instead of failing.

    All public methods run under one re-entrant lock, so a mutation and its
    snapshot rewrite are never interleaved with another request.
    """

    def __init__(
        self,
        snapshot_path: Path | str,
        token_length: int = DEFAULT_TOKEN_LENGTH,
        load: bool = True,
    ) -> None:
        """Initialize the backend.

        Args:
            snapshot_path: JSON snapshot file.
            token_length: Length of minted session tokens.
            load: Read the snapshot right away (the normal startup path).
        """
        self._lock = threading.RLock()
        self._users = UserStore(token_length=token_length)
        self._water = WaterManager()
        self._sleep = SleepManager()
        self._activity = ActivityManager()
        self._other = OtherCategoryManager()
        self._snapshot = SnapshotStore(
            snapshot_path,
            users=self._users,
            water=self._water,
            sleep=self._sleep,
            activity=self._activity,
            other=self._other,
        )
        if load:
            self.load_all()

    @property
    def snapshot(self) -> SnapshotStore:
        return self._snapshot

    # -- persistence ---------------------------------------------------------

    def load_all(self) -> bool:
        with self._lock:
            loaded = self._snapshot.load_all()
            ACTIVE_SESSIONS.set(self._users.active_sessions)
            return loaded

    def save_all(self) -> bool:
        with self._lock:
            return self._snapshot.save_all()

    def _commit(self, domain: str, operation: str) -> None:
        STORE_MUTATIONS.labels(domain=domain, operation=operation).inc()
        self._snapshot.save_all()

    def _resolve(self, token: str) -> str | None:
        return self._users.get_user_name_by_token(token)

    @staticmethod
    def _reject(operation: str, field: str) -> bool:
        logger.debug("validation_failed", operation=operation, field=field)
        return False

    def resolve_token(self, token: str) -> str | None:
        """Return the user name bound to ``token``, or None."""
        with self._lock:
            return self._resolve(token)

    # -- users -----------------------------------------------------------------

    def register_user(
        self,
        name: str,
        age: int,
        weight_kg: float,
        height_m: float,
        password: str,
    ) -> bool:
        with self._lock:
            if not validation.is_valid_name(name):
                return self._reject("register_user", "name")
            if not validation.is_valid_age(age):
                return self._reject("register_user", "age")
            if not validation.is_valid_weight(weight_kg):
                return self._reject("register_user", "weight_kg")
            if not validation.is_valid_height(height_m):
                return self._reject("register_user", "height_m")
            if not validation.is_valid_password(password):
                return self._reject("register_user", "password")

            ok = self._users.register_user(name, age, weight_kg, height_m, password)
            if not ok:
                logger.info("user_already_exists", user=name)
                return False
            logger.info("user_registered", user=name)
            self._commit("users", "register")
            return True

    def login(self, name: str, password: str) -> str | None:
        """Mint a new session token; the previous one stops resolving.

        Returns:
            The token, or None for bad credentials.
        """
        with self._lock:
            token = self._users.login(name, password)
            if token is None:
                LOGINS.labels(status="invalid").inc()
                logger.info("login_failed", user=name)
                return None
            LOGINS.labels(status="ok").inc()
            ACTIVE_SESSIONS.set(self._users.active_sessions)
            logger.info("login_succeeded", user=name)
            return token

    def update_user(
        self,
        token: str,
        new_age: int,
        new_weight_kg: float,
        new_height_m: float,
        new_password: str,
    ) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_age(new_age):
                return self._reject("update_user", "age")
            if not validation.is_valid_weight(new_weight_kg):
                return self._reject("update_user", "weight_kg")
            if not validation.is_valid_height(new_height_m):
                return self._reject("update_user", "height_m")
            if not validation.is_valid_password(new_password):
                return self._reject("update_user", "password")

            ok = self._users.update_user(
                user_name, new_age, new_weight_kg, new_height_m, new_password
            )
            if ok:
                logger.info("user_updated", user=user_name)
                self._commit("users", "update")
            return ok

    def delete_user(self, token: str) -> bool:
        """Delete the token's owner, its session and every record it owns."""
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False

            ok = self._users.delete_user(user_name)
            if ok:
                self._water.purge_user(user_name)
                self._sleep.purge_user(user_name)
                self._activity.purge_user(user_name)
                self._other.purge_user(user_name)
                ACTIVE_SESSIONS.set(self._users.active_sessions)
                logger.info("user_deleted", user=user_name)
                self._commit("users", "delete")
            return ok

    def get_bmi(self, token: str) -> float:
        with self._lock:
            return self._users.get_user_bmi(token)

    # -- water -------------------------------------------------------------------

    def add_water(self, token: str, date: str, amount_ml: float) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_date(date):
                return self._reject("add_water", "date")
            if not validation.is_non_negative(amount_ml):
                return self._reject("add_water", "amount_ml")

            ok = self._water.add_record(user_name, date, amount_ml)
            if ok:
                self._commit("water", "add")
            return ok

    def update_water(self, token: str, index: int, new_date: str, new_amount_ml: float) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_date(new_date):
                return self._reject("update_water", "date")
            if not validation.is_non_negative(new_amount_ml):
                return self._reject("update_water", "amount_ml")

            ok = self._water.update_record(user_name, index, new_date, new_amount_ml)
            if ok:
                self._commit("water", "update")
            return ok

    def delete_water(self, token: str, index: int) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            ok = self._water.delete_record(user_name, index)
            if ok:
                self._commit("water", "delete")
            return ok

    def get_all_water(self, token: str) -> list[WaterRecord]:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return []
            return self._water.get_all(user_name)

    def get_weekly_average_water(self, token: str) -> float:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return 0.0
            return self._water.get_weekly_average(user_name)

    def is_water_enough(self, token: str, daily_goal_ml: float) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            return self._water.is_enough_for_week(user_name, daily_goal_ml)

    # -- sleep -------------------------------------------------------------------

    def add_sleep(self, token: str, date: str, hours: float) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_date(date):
                return self._reject("add_sleep", "date")
            if not validation.is_non_negative(hours):
                return self._reject("add_sleep", "hours")

            ok = self._sleep.add_record(user_name, date, hours)
            if ok:
                self._commit("sleep", "add")
            return ok

    def update_sleep(self, token: str, index: int, new_date: str, new_hours: float) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_date(new_date):
                return self._reject("update_sleep", "date")
            if not validation.is_non_negative(new_hours):
                return self._reject("update_sleep", "hours")

            ok = self._sleep.update_record(user_name, index, new_date, new_hours)
            if ok:
                self._commit("sleep", "update")
            return ok

    def delete_sleep(self, token: str, index: int) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            ok = self._sleep.delete_record(user_name, index)
            if ok:
                self._commit("sleep", "delete")
            return ok

    def get_all_sleep(self, token: str) -> list[SleepRecord]:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return []
            return self._sleep.get_all(user_name)

    def get_last_sleep_hours(self, token: str) -> float:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return 0.0
            return self._sleep.get_last_sleep_hours(user_name)

    def is_sleep_enough(self, token: str, min_hours: float) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            return self._sleep.is_sleep_enough(user_name, min_hours)

    # -- activity ----------------------------------------------------------------

    def add_activity(self, token: str, date: str, minutes: int, intensity: str) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_date(date):
                return self._reject("add_activity", "date")
            if not validation.is_valid_minutes(minutes):
                return self._reject("add_activity", "minutes")

            ok = self._activity.add_record(user_name, date, minutes, intensity)
            if ok:
                self._commit("activity", "add")
            return ok

    def update_activity(
        self,
        token: str,
        index: int,
        new_date: str,
        new_minutes: int,
        new_intensity: str,
    ) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_date(new_date):
                return self._reject("update_activity", "date")
            if not validation.is_valid_minutes(new_minutes):
                return self._reject("update_activity", "minutes")

            ok = self._activity.update_record(
                user_name, index, new_date, new_minutes, new_intensity
            )
            if ok:
                self._commit("activity", "update")
            return ok

    def delete_activity(self, token: str, index: int) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            ok = self._activity.delete_record(user_name, index)
            if ok:
                self._commit("activity", "delete")
            return ok

    def get_all_activity(self, token: str) -> list[ActivityRecord]:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return []
            return self._activity.get_all(user_name)

    def sort_activity_by_duration(self, token: str) -> bool:
        """Permanently reorder the caller's activities by duration."""
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            ok = self._activity.sort_by_duration(user_name)
            if ok:
                self._commit("activity", "sort")
            return ok

    # -- other categories --------------------------------------------------------

    def add_other_record(
        self,
        token: str,
        category: str,
        date: str,
        value: float,
        note: str = "",
    ) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_name(category):
                return self._reject("add_other_record", "category")
            if not validation.is_valid_date(date):
                return self._reject("add_other_record", "date")
            if not validation.is_non_negative(value):
                return self._reject("add_other_record", "value")

            ok = self._other.add_record(user_name, category, date, value, note)
            if ok:
                self._commit("other", "add")
            return ok

    def update_other_record(
        self,
        token: str,
        category: str,
        index: int,
        new_date: str,
        new_value: float,
        new_note: str = "",
    ) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            if not validation.is_valid_name(category):
                return self._reject("update_other_record", "category")
            if not validation.is_valid_date(new_date):
                return self._reject("update_other_record", "date")
            if not validation.is_non_negative(new_value):
                return self._reject("update_other_record", "value")

            ok = self._other.update_record(
                user_name, category, index, new_date, new_value, new_note
            )
            if ok:
                self._commit("other", "update")
            return ok

    def delete_other_record(self, token: str, category: str, index: int) -> bool:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return False
            ok = self._other.delete_record(user_name, category, index)
            if ok:
                self._commit("other", "delete")
            return ok

    def get_other_categories(self, token: str) -> list[str]:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return []
            return self._other.get_categories(user_name)

    def get_other_records(self, token: str, category: str) -> list[OtherRecord]:
        with self._lock:
            user_name = self._resolve(token)
            if user_name is None:
                return []
            return self._other.get_records(user_name, category)
