"""Loguru helpers for CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_SINK_IDS: dict[str, int] = {}


def configure_stderr(verbose: bool = False) -> None:
    """Replace loguru's default sink with one at the requested verbosity."""
    if "stderr" in _SINK_IDS:
        logger.remove(_SINK_IDS.pop("stderr"))
    else:
        logger.remove()
    _SINK_IDS["stderr"] = logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        backtrace=False,
        diagnose=False,
    )


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Ensure a rotating log sink for the given command name."""
    log_dir = Path.home() / ".portalbus" / "logs"
    log_path = log_dir / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    log_dir.mkdir(parents=True, exist_ok=True)
    _SINK_IDS[name] = logger.add(
        str(log_path),
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    return log_path
