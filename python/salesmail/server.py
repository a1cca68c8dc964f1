"""Process entry point: configure, build the app and serve it with uvicorn.

Run with:
    salesmail-api

Shutdown:
- SIGTERM / SIGINT stop the listener from accepting new connections
- In-flight requests get SHUTDOWN_GRACE_S seconds to finish, after which
  remaining connections are closed
- The app lifespan then disposes the database engine and the process exits 0
"""

import signal
import sys
from types import FrameType

import uvicorn
from fastapi import FastAPI

from salesmail.app import create_app
from salesmail.config import Settings, get_settings
from salesmail.logging import configure_logging, get_logger

logger = get_logger(__name__)

STARTUP_FAILURE_EXIT_CODE = 3


class Server(uvicorn.Server):
    """uvicorn server that logs which signal started the shutdown."""

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if not self.should_exit:
            logger.info("shutdown_signal_received", signal=signal.Signals(sig).name)
        super().handle_exit(sig, frame)


def build_server_config(app: FastAPI, settings: Settings) -> uvicorn.Config:
    """Translate settings into a uvicorn config for the given app."""
    return uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_s,
        server_header=False,
        log_config=None,
        lifespan="on",
    )


def main() -> None:
    """Start serving until a termination signal arrives."""
    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)

    app = create_app(settings)
    server = Server(build_server_config(app, settings))
    server.run()

    if not server.started:
        # Lifespan startup failed, e.g. the database never became reachable
        logger.error("startup_failed")
        sys.exit(STARTUP_FAILURE_EXIT_CODE)


if __name__ == "__main__":
    main()
