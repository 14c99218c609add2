"""Runtime settings — read from the environment and an optional .env file.

All settings use the SKILLBRIDGE_ prefix:

    SKILLBRIDGE_BACKEND           memory | postgrest        (default: memory)
    SKILLBRIDGE_DATA_DIR          state.json / events.jsonl (default: ./data)
    SKILLBRIDGE_API_URL           PostgREST base URL
    SKILLBRIDGE_API_KEY           PostgREST API key
    SKILLBRIDGE_HTTP_TIMEOUT      seconds                   (default: 10)
    SKILLBRIDGE_MATCH_WORKERS     matcher thread pool size  (default: 8)
    SKILLBRIDGE_STRICT_CAPACITY   reject over-allocation    (default: false)
    SKILLBRIDGE_LOG_LEVEL         logging level name        (default: INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


BACKENDS = ("memory", "postgrest")
ENV_PREFIX = "SKILLBRIDGE_"
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    backend: str = "memory"
    data_dir: Path = Path("data")
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    http_timeout: float = 10.0
    match_workers: int = 8
    strict_capacity: bool = False
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got '{self.backend}'")
        if self.http_timeout <= 0:
            raise ValueError(f"http_timeout must be positive, got {self.http_timeout}")
        if self.match_workers < 1:
            raise ValueError(f"match_workers must be >= 1, got {self.match_workers}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: '{self.log_level}'")
        if self.backend == "postgrest" and not (self.api_url and self.api_key):
            raise ValueError(
                "postgrest backend requires SKILLBRIDGE_API_URL and SKILLBRIDGE_API_KEY"
            )

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def events_path(self) -> Path:
        return self.data_dir / "events.jsonl"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> Settings:
        """Build settings from the process environment.

        A .env file (dotenv_path, or one found from the working directory)
        is loaded first; variables already set in the environment win.
        When environ is given, it is used as-is and no .env is read.
        """
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ

        def get(name: str, default: str = "") -> str:
            return environ.get(ENV_PREFIX + name, default).strip()

        return cls(
            backend=get("BACKEND", "memory").lower(),
            data_dir=Path(get("DATA_DIR", "data")),
            api_url=get("API_URL") or None,
            api_key=get("API_KEY") or None,
            http_timeout=_parse_float("HTTP_TIMEOUT", get("HTTP_TIMEOUT", "10")),
            match_workers=_parse_int("MATCH_WORKERS", get("MATCH_WORKERS", "8")),
            strict_capacity=_parse_bool("STRICT_CAPACITY", get("STRICT_CAPACITY", "false")),
            log_level=get("LOG_LEVEL", "INFO").upper(),
        )


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got '{raw}'") from None


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got '{raw}'")
