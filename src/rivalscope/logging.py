"""Logging utilities."""

from __future__ import annotations

import contextlib
import contextvars
import logging
from typing import Any

from rich.logging import RichHandler


_run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("rivalscope_run_id", default="-")
_stage_var: contextvars.ContextVar[str] = contextvars.ContextVar("rivalscope_stage", default="-")


class _ContextFilter(logging.Filter):
    """Inject pipeline run context into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.run_id = _run_id_var.get()  # type: ignore[attr-defined]
        record.stage = _stage_var.get()  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def run_context(*, run_id: str, stage: str | None = None) -> Any:
    """Temporarily bind run context for structured logging.

    Args:
        run_id: Run identifier (usually the project id plus a short suffix).
        stage: Optional pipeline stage (harvest, fetch, triage, ...).
    """

    token_run = _run_id_var.set(run_id)
    token_stage = _stage_var.set(stage or _stage_var.get())
    try:
        yield
    finally:
        _run_id_var.reset(token_run)
        _stage_var.reset(token_stage)


def set_stage(stage: str) -> None:
    """Update current pipeline stage in context."""

    _stage_var.set(stage)


def configure_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Logging level name.
    """

    handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
    handler.addFilter(_ContextFilter())

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s run=%(run_id)s stage=%(stage)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    # configure_logging may run once per CLI command and once per API app
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(handler)
    else:
        for h in root.handlers:
            if isinstance(h, RichHandler):
                h.addFilter(_ContextFilter())
                h.setFormatter(formatter)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""

    return logging.getLogger(name)

