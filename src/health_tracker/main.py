"""Main entry point for the health tracker service."""

import asyncio
import platform
import signal

import structlog

from . import __version__
from .backend import HealthBackend
from .config import Settings, get_settings
from .http_handler import HTTPHandler
from .logging import setup_logging
from .metrics import SERVICE_INFO
from .tracing import setup_tracing

logger = structlog.get_logger(__name__)


class HealthTrackerService:
    """Owns the backend and the HTTP server for the lifetime of the process."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._backend: HealthBackend | None = None
        self._http_handler: HTTPHandler | None = None
        self._shutdown_event = asyncio.Event()

    @property
    def backend(self) -> HealthBackend | None:
        return self._backend

    async def start(self) -> None:
        """Load the snapshot and start serving."""
        setup_tracing(self._settings.tracing)
        logger.info("service_starting", version=__version__)
        SERVICE_INFO.info({"version": __version__, "python": platform.python_version()})

        self._backend = HealthBackend(
            snapshot_path=self._settings.storage.snapshot_path,
            token_length=self._settings.auth.token_length,
        )

        self._http_handler = HTTPHandler(
            settings=self._settings.http,
            backend=self._backend,
            goals=self._settings.goals,
        )
        await self._http_handler.start()
        logger.info("service_started")

    async def stop(self) -> None:
        """Stop serving. State is already on disk after every mutation."""
        logger.info("service_stopping")
        if self._http_handler:
            await self._http_handler.stop()
            self._http_handler = None
        logger.info("service_stopped")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def run_until_shutdown(self) -> None:
        await self._shutdown_event.wait()


async def main() -> None:
    """Main entry point."""
    settings = get_settings()
    setup_logging(settings.app)

    service = HealthTrackerService(settings)

    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logger.info("shutdown_signal_received")
        service.request_shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await service.start()
        await service.run_until_shutdown()
    except Exception as e:
        logger.exception("service_error", error=str(e))
        raise
    finally:
        await service.stop()


def run() -> None:
    """Entry point for the CLI."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
