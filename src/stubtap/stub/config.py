"""
StubTap Configuration

Server configuration dataclass with environment-variable loading.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv


logger = logging.getLogger("stubtap.config")

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}

LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')

_LOG_LEVEL_ALIASES = {'warn': 'warning', 'fatal': 'critical'}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass
class StubConfig:
    """Configuration for stub server behavior."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "info"

    # Fixture lookup
    lookup_field: str = "id"
    response_dir: str = "./responses"
    default_response: str = "default.json"

    # Hot reload
    watch_enabled: bool = True

    # Delay overrides must fall inside [1, max_delay_ms)
    max_delay_ms: int = 5000

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = ".env",
        environ: Optional[Dict[str, str]] = None
    ) -> 'StubConfig':
        """
        Build configuration from environment variables.

        A ``.env`` file is loaded first when it exists; variables already set
        in the real environment take precedence over it.

        Args:
            env_file: Path to a dotenv file (None to skip)
            environ: Mapping to read instead of ``os.environ``

        Returns:
            StubConfig populated from the environment
        """
        if env_file and environ is None and Path(env_file).exists():
            load_dotenv(env_file, override=False)

        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            host=env.get('HOST', defaults.host),
            port=_int_from_env(env, 'PORT', defaults.port),
            log_level=normalize_log_level(env.get('LOG_LEVEL', defaults.log_level)),
            lookup_field=env.get('LOOKUP_FIELD', defaults.lookup_field),
            response_dir=env.get('RESPONSE_DIR', defaults.response_dir),
            default_response=env.get('DEFAULT_RESPONSE', defaults.default_response),
            watch_enabled=_bool_from_env(env, 'WATCH_ENABLED', defaults.watch_enabled),
            admin_enabled=_bool_from_env(env, 'ADMIN_ENABLED', defaults.admin_enabled),
        )

    def to_dict(self) -> Dict[str, object]:
        """Public view of the configuration used by the health endpoint."""
        return {
            'responseDir': self.response_dir,
            'lookupField': self.lookup_field,
            'defaultResponse': self.default_response,
        }


def normalize_log_level(level: Optional[str], default: str = "info") -> str:
    """
    Map a log level name onto one understood by both logging and uvicorn.

    ``warn`` becomes ``warning``; unknown names fall back to ``default``.
    """
    if not level:
        return default
    name = level.strip().lower()
    name = _LOG_LEVEL_ALIASES.get(name, name)
    if name not in LOG_LEVELS:
        logger.warning(f"Unknown log level {level!r}, using {default}")
        return default
    return name


def _int_from_env(env, name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


def _bool_from_env(env, name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in _TRUE_VALUES


def configure_logging(level: str = "info") -> logging.Logger:
    """
    Configure the ``stubtap`` logger hierarchy.

    Installs a single stream handler; calling it again only updates the
    level.

    Args:
        level: Log level name (debug, info, warning, error)

    Returns:
        The root ``stubtap`` logger
    """
    root = logging.getLogger("stubtap")
    root.setLevel(normalize_log_level(level).upper())

    if not any(getattr(h, '_stubtap_handler', False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._stubtap_handler = True
        root.addHandler(handler)

    return root
