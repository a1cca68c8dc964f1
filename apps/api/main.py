"""Thin API launcher.

This is the uvicorn entrypoint. All application logic lives in the salesmail package.
Run with: uvicorn main:app --reload

Settings are read and logging configured here, once, so that importing
salesmail.app (as the tests do) has no environment side effects.
"""

from salesmail.app import create_app
from salesmail.config import get_settings
from salesmail.logging import configure_logging

settings = get_settings()
configure_logging(json_format=settings.log_json, level=settings.log_level)

# Create the application instance
app = create_app(settings)

__all__ = ["app"]
