"""
Runtime configuration, read from KEYSPLIT_* environment variables.

A .env file in the working directory (or the one passed as dotenv_path) is
loaded first; variables already set in the environment win.

    KEYSPLIT_LOG_LEVEL   logging level name (default WARNING)
    KEYSPLIT_HOST        HTTP API bind address (default 127.0.0.1)
    KEYSPLIT_PORT        HTTP API port (default 8787)
    KEYSPLIT_MAX_BODY    largest accepted request body in bytes (default 1 MB)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Config:
    log_level: str = "WARNING"
    host: str = "127.0.0.1"
    port: int = 8787
    max_body: int = 1024 * 1024

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 dotenv_path: Optional[str] = None) -> "Config":
        """
        Build a Config from `environ`, or from os.environ plus .env when
        `environ` is None.
        """
        if environ is None:
            path = dotenv_path or find_dotenv(usecwd=True)
            if path:
                load_dotenv(path)
            env = os.environ
        else:
            env = environ
        return cls(
            log_level=env.get("KEYSPLIT_LOG_LEVEL", cls.log_level).upper(),
            host=env.get("KEYSPLIT_HOST", cls.host),
            port=_int(env, "KEYSPLIT_PORT", cls.port),
            max_body=_int(env, "KEYSPLIT_MAX_BODY", cls.max_body),
        )


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def configure_logging(level="WARNING") -> None:
    """Route keysplit logs to stderr at the given level (name or number)."""
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name!r}")
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("keysplit").setLevel(level)
