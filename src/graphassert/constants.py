from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILE = Path(".graphassert.yaml")

ENV_CONFIG_PATH = "GRAPHASSERT_CONFIG"
ENV_STRICT_ORDERING = "GRAPHASSERT_STRICT_ORDERING"
ENV_TRACING = "GRAPHASSERT_TRACING"
ENV_MAX_FORMAT_LENGTH = "GRAPHASSERT_MAX_FORMAT_LENGTH"

DEFAULT_ROOT_NAME = "subject"
DEFAULT_MAX_FORMAT_LENGTH = 300
DEFAULT_MAX_FORMAT_DEPTH = 5

EXIT_SUCCESS = 0
EXIT_NOT_EQUIVALENT = 1
EXIT_INTERNAL_ERROR = 2
