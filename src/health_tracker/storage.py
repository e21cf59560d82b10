"""Whole-state JSON snapshot of the domain store."""

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any

import structlog

from .metrics import SNAPSHOT_LOADS, SNAPSHOT_SAVE_DURATION, SNAPSHOT_SAVES
from .records import ActivityManager, OtherCategoryManager, SleepManager, WaterManager
from .types import SnapshotDocument
from .users import UserStore

logger = structlog.get_logger(__name__)


class SnapshotStore:
    """Loads and rewrites the single snapshot file backing the domain store.

    The store does not own any data. It borrows the user store and the four
    record managers, reads the file into them once at startup and rewrites the
    whole file after every successful mutation. Failures on either side are
    logged and absorbed so the in-memory state stays authoritative.
    """

    def __init__(
        self,
        path: Path | str,
        users: UserStore,
        water: WaterManager,
        sleep: SleepManager,
        activity: ActivityManager,
        other: OtherCategoryManager,
    ) -> None:
        """Initialize the snapshot store.

        Args:
            path: Snapshot file location; its directory is created on first save.
            users: Registered users (persisted without tokens).
            water: Water records.
            sleep: Sleep records.
            activity: Activity records.
            other: User-defined category records.
        """
        self._path = Path(path)
        self._users = users
        self._sections: dict[str, Any] = {
            "water": water,
            "sleep": sleep,
            "activity": activity,
            "other": other,
        }

    @property
    def path(self) -> Path:
        return self._path

    def encode(self) -> SnapshotDocument:
        """Build the snapshot document from the current in-memory state."""
        return {
            "users": self._users.to_json(),
            "water": self._sections["water"].to_json(),
            "sleep": self._sections["sleep"].to_json(),
            "activity": self._sections["activity"].to_json(),
            "other": self._sections["other"].to_json(),
        }

    def _clear(self) -> None:
        self._users.from_json([])
        for manager in self._sections.values():
            manager.from_json({})

    def load_all(self) -> bool:
        """Read the snapshot into the stores.

        A missing file is a fresh install. A malformed file leaves every store
        empty rather than half-loaded.

        Returns:
            True if a snapshot was loaded.
        """
        if not self._path.exists():
            logger.info("snapshot_missing", path=str(self._path))
            SNAPSHOT_LOADS.labels(status="missing").inc()
            return False

        try:
            with open(self._path, encoding="utf-8") as f:
                document = json.load(f)
            if not isinstance(document, dict):
                raise ValueError("snapshot root must be an object")

            if "users" in document:
                self._users.from_json(document["users"])
            for section, manager in self._sections.items():
                if section in document:
                    manager.from_json(document[section])
        except (OSError, UnicodeDecodeError, ValueError, TypeError, RecursionError) as e:
            # json.JSONDecodeError is a ValueError; pathological nesting is a RecursionError
            logger.error("snapshot_load_failed", path=str(self._path), error=str(e))
            SNAPSHOT_LOADS.labels(status="error").inc()
            self._clear()
            return False

        logger.info(
            "snapshot_loaded",
            path=str(self._path),
            users=len(self._users),
            water=self._sections["water"].count(),
            sleep=self._sections["sleep"].count(),
            activity=self._sections["activity"].count(),
            other=self._sections["other"].count(),
        )
        SNAPSHOT_LOADS.labels(status="ok").inc()
        return True

    def save_all(self) -> bool:
        """Rewrite the snapshot file from the current state.

        The document is written to a temporary sibling and moved into place,
        so readers never see a partially written file.

        Returns:
            True on success; False if the write failed (already logged).
        """
        start = time.perf_counter()
        tmp_name: str | None = None
        try:
            payload = json.dumps(self.encode(), indent=2, ensure_ascii=False, allow_nan=False)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logger.error("snapshot_save_failed", path=str(self._path), error=str(e))
            SNAPSHOT_SAVES.labels(status="error").inc()
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

        SNAPSHOT_SAVE_DURATION.observe(time.perf_counter() - start)
        SNAPSHOT_SAVES.labels(status="ok").inc()
        logger.debug("snapshot_saved", path=str(self._path), size=len(payload))
        return True
