from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Environment variable names
ENV_BASE_URL = "KHAATA_BASE_URL"
ENV_HOME = "KHAATA_HOME"
ENV_FERNET_KEY = "KHAATA_FERNET_KEY"
ENV_TIMEOUT = "KHAATA_TIMEOUT"
ENV_LOG_LEVEL = "KHAATA_LOG_LEVEL"

DEFAULT_BASE_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 15.0
DEFAULT_LOG_LEVEL = "WARNING"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved from the environment.

    Attributes
    - base_url: Khaata REST API root, e.g. "https://khaata.example.com/api"
    - home: directory holding the encrypted secure store and its key
    - fernet_key: explicit store key; when None a key file under `home` is used
    - timeout: per-request timeout in seconds
    - log_level: standard logging level name
    """

    base_url: str
    home: Path
    fernet_key: Optional[str]
    timeout: float
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        base_url = _require(_getenv(ENV_BASE_URL, DEFAULT_BASE_URL), ENV_BASE_URL)
        home = Path(_getenv(ENV_HOME) or Path.home() / ".khaata").expanduser()
        raw_timeout = _getenv(ENV_TIMEOUT)
        try:
            timeout = float(raw_timeout) if raw_timeout is not None else DEFAULT_TIMEOUT
        except ValueError as ex:
            raise RuntimeError(f"Invalid {ENV_TIMEOUT}: {raw_timeout!r}") from ex
        if timeout <= 0:
            raise RuntimeError(f"Invalid {ENV_TIMEOUT}: must be > 0")
        return cls(
            base_url=base_url.rstrip("/"),
            home=home,
            fernet_key=_getenv(ENV_FERNET_KEY),
            timeout=timeout,
            log_level=(_getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
        )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["Settings", "configure_logging", "DEFAULT_BASE_URL"]
