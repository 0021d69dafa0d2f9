"""Local configuration for edutree."""

from __future__ import annotations

import os
from pathlib import Path


DEFAULT_STORE = "memory"
DEFAULT_DATA_DIR = ".edutree_data"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_API_URL = "http://127.0.0.1:8000"
DEFAULT_HTTP_TIMEOUT_S = 10.0
DEFAULT_HTTP_MAX_RETRIES = 2
DEFAULT_HTTP_BACKOFF_S = 0.5

# Backing store for the server: "memory" or "json".
EDUTREE_STORE = os.getenv("EDUTREE_STORE", DEFAULT_STORE).lower()
# One JSON document per tree instance lives under this directory.
EDUTREE_DATA_PATH = Path(os.getenv("EDUTREE_DATA_PATH", DEFAULT_DATA_DIR)).expanduser().resolve()
EDUTREE_SEED_ON_STARTUP = os.getenv("EDUTREE_SEED_ON_STARTUP", "false").lower() == "true"
EDUTREE_LOG_LEVEL = os.getenv("EDUTREE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
EDUTREE_API_URL = os.getenv("EDUTREE_API_URL", DEFAULT_API_URL)
EDUTREE_HTTP_TIMEOUT_S = float(os.getenv("EDUTREE_HTTP_TIMEOUT_S", str(DEFAULT_HTTP_TIMEOUT_S)))
EDUTREE_HTTP_MAX_RETRIES = int(os.getenv("EDUTREE_HTTP_MAX_RETRIES", str(DEFAULT_HTTP_MAX_RETRIES)))
EDUTREE_HTTP_BACKOFF_S = float(os.getenv("EDUTREE_HTTP_BACKOFF_S", str(DEFAULT_HTTP_BACKOFF_S)))
