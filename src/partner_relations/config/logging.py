"""Logging setup shared by the CLI and other entry points."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import ConfigurationError

LOG_LEVEL_ENV_VAR = "PARTNER_RELATIONS_LOG_LEVEL"


def get_log_level(default: int = logging.INFO) -> int:
    """Resolve the log level from ``PARTNER_RELATIONS_LOG_LEVEL``.

    Accepts level names (``debug``, ``WARNING``) or numeric values.
    """

    raw = optional_env_var(LOG_LEVEL_ENV_VAR)
    if raw is None:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelNamesMapping().get(raw.upper())
    if level is None:
        raise ConfigurationError(LOG_LEVEL_ENV_VAR, raw)
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with a terse format suitable for CLI output.

    ``level`` defaults to :func:`get_log_level`. Pass ``force=True`` to
    reconfigure during tests or specialised entry points.
    """

    logging.basicConfig(
        level=get_log_level() if level is None else level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
