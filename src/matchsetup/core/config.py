"""Runtime settings for the setup orchestrator.

Settings come from environment variables so the web service and the CLI can
be configured the same way, and tests can scope changes with
:func:`override`::

    from matchsetup.core import config

    settings = config.load_settings()
    with config.override(session_ttl=0):
        ...

``MATCHSETUP_SESSION_TTL``
    Seconds a live setup may run before the reaper expires it.  ``0``
    disables deadlines.
``MATCHSETUP_REAPER_INTERVAL``
    Seconds between reaper sweeps.
``MATCHSETUP_STORE_DIR``
    Directory for JSON session snapshots.  Unset keeps snapshots in memory.
``MATCHSETUP_MAP_POOL``
    Path to a JSON map catalog.  Unset uses the bundled active-duty pool.
``MATCHSETUP_LOG_LEVEL``
    Logging level name.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Final

__all__ = ["SetupSettings", "configure_logging", "load_settings", "override"]

logger = logging.getLogger(__name__)

_PREFIX: Final = "MATCHSETUP_"

_DEFAULT_TTL: Final = 1800.0
_DEFAULT_REAPER_INTERVAL: Final = 30.0


@dataclass(frozen=True)
class SetupSettings:
    session_ttl: float = _DEFAULT_TTL
    reaper_interval: float = _DEFAULT_REAPER_INTERVAL
    store_dir: Path | None = None
    map_pool: Path | None = None
    log_level: str = "INFO"

    @property
    def deadlines_enabled(self) -> bool:
        return self.session_ttl > 0


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s%s=%r", _PREFIX, name, raw)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s%s=%r", _PREFIX, name, raw)
        return default
    return value


def _env_path(environ: Mapping[str, str], name: str) -> Path | None:
    raw = environ.get(_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


_OVERRIDE_STACK: list[dict[str, Any]] = []


def load_settings(environ: Mapping[str, str] | None = None) -> SetupSettings:
    """Build settings from ``environ`` (defaults to ``os.environ``) plus overrides."""

    env = os.environ if environ is None else environ
    settings = SetupSettings(
        session_ttl=_env_float(env, "SESSION_TTL", _DEFAULT_TTL),
        reaper_interval=_env_float(env, "REAPER_INTERVAL", _DEFAULT_REAPER_INTERVAL),
        store_dir=_env_path(env, "STORE_DIR"),
        map_pool=_env_path(env, "MAP_POOL"),
        log_level=(env.get(_PREFIX + "LOG_LEVEL") or "INFO").strip().upper(),
    )
    for overrides in _OVERRIDE_STACK:
        settings = replace(settings, **overrides)
    return settings


@contextmanager
def override(**values: Any):
    """Temporarily override settings fields within the context.

    Overrides stack, so nested contexts behave predictably.
    """

    known = {f.name for f in fields(SetupSettings)}
    unknown = set(values) - known
    if unknown:
        raise TypeError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    _OVERRIDE_STACK.append(dict(values))
    try:
        yield
    finally:
        _OVERRIDE_STACK.pop()


def configure_logging(settings: SetupSettings) -> None:
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
