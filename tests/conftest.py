"""Pytest configuration and fixtures."""

from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from health_tracker.backend import HealthBackend  # noqa: E402


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    """Snapshot location inside a not-yet-existing data directory."""
    return tmp_path / "data" / "storage.json"


@pytest.fixture
def backend(snapshot_path: Path) -> HealthBackend:
    return HealthBackend(snapshot_path)


@pytest.fixture
def sample_user() -> dict:
    """Registration fields for a valid user."""
    return {
        "name": "alice",
        "age": 30,
        "weight_kg": 70.0,
        "height_m": 1.75,
        "password": "secret",
    }


@pytest.fixture
def token(backend: HealthBackend, sample_user: dict) -> str:
    """A live session token for the sample user."""
    assert backend.register_user(**sample_user)
    issued = backend.login(sample_user["name"], sample_user["password"])
    assert issued is not None
    return issued


@pytest.fixture
def sample_snapshot() -> dict:
    """A snapshot document with every section populated."""
    return {
        "users": [
            {
                "name": "alice",
                "age": 30,
                "weightKg": 70.0,
                "heightM": 1.75,
                "password": "secret",
            },
            {
                "name": "bob",
                "age": 41,
                "weightKg": 82.5,
                "heightM": 1.8,
                "password": "hunter2",
            },
        ],
        "water": {
            "alice": [
                {"date": "2024-01-01", "amountMl": 1500.0},
                {"date": "2024-01-02", "amountMl": 1800.0},
            ]
        },
        "sleep": {"alice": [{"date": "2024-01-01", "hours": 7.5}]},
        "activity": {
            "bob": [
                {"date": "2024-01-01", "minutes": 45, "intensity": "high"},
                {"date": "2024-01-02", "minutes": 20, "intensity": "low"},
            ]
        },
        "other": {
            "alice": {
                "steps": [{"date": "2024-01-01", "value": 8000.0, "note": "walk"}],
                "mood": [],
            }
        },
    }
