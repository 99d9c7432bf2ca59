"""
Configuration - settings from the environment, XDG directories and logging.

Environment:
    OREILLY_USER_ID               account identifier (email)
    OREILLY_PASSWORD              account secret
    ORM_MCP_HISTORY_MAX_ENTRIES   research history capacity (default 1000)
    ORM_MCP_LOGIN_TIMEOUT         interactive login timeout in seconds (default 60)
    ORM_MCP_DEBUG                 verbose logging, keep the browser open
    ORM_MCP_LOG_LEVEL             log level (default INFO, DEBUG in debug mode)
    ORM_MCP_CACHE_DIR             cookie cache directory
    ORM_MCP_STATE_DIR             history and log directory

Directories default to ``$XDG_CACHE_HOME/orm-mcp`` and ``$XDG_STATE_HOME/orm-mcp``
(``~/.cache`` and ``~/.local/state`` when the XDG variables are unset).
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

from orm_discovery.application.history import DEFAULT_MAX_ENTRIES, HISTORY_FILENAME
from orm_discovery.infrastructure.auth import COOKIE_CACHE_FILENAME
from orm_discovery.shared.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

APP_NAME = "orm-mcp"
LOG_FILENAME = "orm-mcp.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3
DEFAULT_LOGIN_TIMEOUT = 60.0

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _xdg_dir(environ: Mapping[str, str], variable: str, fallback: str) -> Path:
    base = environ.get(variable, "").strip()
    root = Path(base) if base else Path.home() / fallback
    return root / APP_NAME


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", setting=name) from e
    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {value}", setting=name)
    return value


def _positive_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", setting=name) from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}", setting=name)
    return value


def _log_level(value: str, setting: str) -> str:
    level = value.strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(
            f"{setting} must be one of {', '.join(_LOG_LEVELS)}, got {value!r}",
            setting=setting,
        )
    return level


@dataclass
class Settings:
    """Runtime settings for the client and MCP server."""

    user_id: str | None = None
    password: str | None = field(default=None, repr=False)
    cache_dir: Path = field(default_factory=lambda: Path.home() / ".cache" / APP_NAME)
    state_dir: Path = field(default_factory=lambda: Path.home() / ".local" / "state" / APP_NAME)
    history_max_entries: int = DEFAULT_MAX_ENTRIES
    login_timeout: float = DEFAULT_LOGIN_TIMEOUT
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a numeric or log level value is invalid.
        """
        env = os.environ if environ is None else environ
        debug = env.get("ORM_MCP_DEBUG", "").strip().lower() in _TRUE_VALUES

        raw_level = env.get("ORM_MCP_LOG_LEVEL", "")
        log_level = _log_level(raw_level, "ORM_MCP_LOG_LEVEL") if raw_level.strip() else ("DEBUG" if debug else "INFO")

        cache_dir = env.get("ORM_MCP_CACHE_DIR", "").strip()
        state_dir = env.get("ORM_MCP_STATE_DIR", "").strip()

        return cls(
            user_id=env.get("OREILLY_USER_ID", "").strip() or None,
            password=env.get("OREILLY_PASSWORD") or None,
            cache_dir=Path(cache_dir).expanduser() if cache_dir else _xdg_dir(env, "XDG_CACHE_HOME", ".cache"),
            state_dir=Path(state_dir).expanduser() if state_dir else _xdg_dir(env, "XDG_STATE_HOME", ".local/state"),
            history_max_entries=_positive_int(env, "ORM_MCP_HISTORY_MAX_ENTRIES", DEFAULT_MAX_ENTRIES),
            login_timeout=_positive_float(env, "ORM_MCP_LOGIN_TIMEOUT", DEFAULT_LOGIN_TIMEOUT),
            debug=debug,
            log_level=log_level,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.user_id and self.password)

    @property
    def cookie_path(self) -> Path:
        return self.cache_dir / COOKIE_CACHE_FILENAME

    @property
    def history_path(self) -> Path:
        return self.state_dir / HISTORY_FILENAME

    @property
    def log_path(self) -> Path:
        return self.state_dir / LOG_FILENAME

    def with_overrides(self, *, debug: bool | None = None, log_level: str | None = None) -> Settings:
        """Apply command-line overrides on top of the environment."""
        updated = Settings(**vars(self))
        if debug:
            updated.debug = True
            if log_level is None:
                updated.log_level = "DEBUG"
        if log_level:
            updated.log_level = _log_level(log_level, "--log-level")
        return updated

    def ensure_directories(self) -> None:
        """
        Create the cache and state directories with owner-only permissions.

        Raises:
            ConfigurationError: If a directory cannot be created.
        """
        for directory in (self.cache_dir, self.state_dir):
            try:
                directory.mkdir(mode=0o700, parents=True, exist_ok=True)
                os.chmod(directory, 0o700)
            except OSError as e:
                raise ConfigurationError(f"Cannot create directory {directory}: {e}", setting=str(directory)) from e

    def as_container_config(self) -> dict[str, Any]:
        """Flat mapping for ``ApplicationContainer.config.from_dict``."""
        return {
            "user_id": self.user_id,
            "password": self.password,
            "cache_dir": str(self.cache_dir),
            "history_path": str(self.history_path),
            "history_max_entries": self.history_max_entries,
            "login_timeout": self.login_timeout,
            "debug": self.debug,
        }


def configure_logging(settings: Settings) -> None:
    """
    Log to stderr and, when the state directory exists, to a rotating file.

    stdout is reserved for the MCP stdio transport.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.state_dir.is_dir():
        handlers.append(
            RotatingFileHandler(
                settings.log_path,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    if not settings.debug:
        # Request lines from httpx would otherwise flood INFO.
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug(f"Logging configured at {settings.log_level} (file: {len(handlers) > 1})")


__all__ = ["Settings", "configure_logging"]
