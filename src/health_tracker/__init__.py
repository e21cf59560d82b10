"""Personal health tracking service.

A single-process service where users register, log in and record daily
water intake, sleep, physical activity and their own custom metrics. The
whole store lives in memory and is mirrored to one JSON snapshot file after
every change.

Modules:
    config: Configuration management using pydantic-settings
    users: Registered users and session tokens
    records: Per-metric record managers
    storage: JSON snapshot persistence
    backend: Request orchestrator (token resolution, validation, persistence)
    http_handler: REST API

Example:
    Run the service::

        $ uv run health-tracker

    Summarize a snapshot file::

        $ uv run health-tracker-snapshot --path data/storage.json
"""

__version__ = "0.1.0"

from .config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
