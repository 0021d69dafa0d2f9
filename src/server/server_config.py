"""Configuration for the edutree server."""

from __future__ import annotations

import os

DEFAULT_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_PORT = 8000

HOST = os.getenv("HOST", DEFAULT_HOST)
PORT = int(os.getenv("PORT", str(DEFAULT_PORT)))
RELOAD = os.getenv("RELOAD", "false").lower() == "true"

APP_TITLE = "edutree"
APP_DESCRIPTION = "Question-bank and previous-papers hierarchies for educational content."
