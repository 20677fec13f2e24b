"""Connection settings for the ``iot-ingest`` command-line client.

Command-line options win over ``API_BASE_URL`` / ``CLI_TIMEOUT``, which win
over the defaults for a service started locally with uvicorn.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def _timeout_from_env() -> float:
    raw = (os.getenv("CLI_TIMEOUT") or "").strip()
    try:
        seconds = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT
    return seconds if seconds > 0 else DEFAULT_TIMEOUT


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv("API_BASE_URL") or DEFAULT_BASE_URL
    return CLIConfig(
        base_url=url.rstrip("/"),
        timeout=timeout if timeout is not None else _timeout_from_env(),
    )
