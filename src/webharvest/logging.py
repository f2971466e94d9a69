"""Logging for webharvest.

Every tool call runs inside :func:`request_context`, so records emitted anywhere below it (the
orchestrator, the backends, the render pool, the extractor) carry the call's ``request_id`` and
tool name. Modules log structured fields through ``extra={...}``: ``provider`` for a search
engine, ``url``/``host`` for a fetched page, ``browser`` for a pool entry and ``latency_ms`` for
timings.

The CLI and the API call :func:`configure_logging` once at start-up; library use leaves the
root logger alone.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from collections.abc import Iterator

from rich.logging import RichHandler

# Third-party loggers that emit one INFO record per HTTP request.
_CHATTY_LOGGERS = ("httpx", "httpcore", "hpack")

_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "webharvest_request_id", default="-"
)
_tool_var: contextvars.ContextVar[str] = contextvars.ContextVar("webharvest_tool", default="-")


class _ContextFilter(logging.Filter):
    """Stamp ``request_id`` and ``tool`` of the current tool call onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = _request_id_var.get()  # type: ignore[attr-defined]
        record.tool = _tool_var.get()  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def request_context(*, request_id: str, tool: str | None = None) -> Iterator[None]:
    """Bind one tool call's identity for the records logged inside the block.

    The binding lives in context variables, so concurrent calls on the same event loop keep
    their own ids, and tasks spawned inside the block (batch extraction) inherit them.

    Args:
        request_id: Correlation id; the registry generates one when the caller gives none.
        tool: Name of the tool being executed; keeps the outer value when omitted.
    """

    token_request = _request_id_var.set(request_id)
    token_tool = _tool_var.set(tool or _tool_var.get())
    try:
        yield
    finally:
        _request_id_var.reset(token_request)
        _tool_var.reset(token_tool)


def configure_logging(level: str = "INFO") -> None:
    """Install the rich console handler on the root logger.

    Safe to call more than once (the CLI and the API factory both call it). HTTP client
    loggers are held at WARNING unless ``level`` is DEBUG.

    Args:
        level: Logging level name, normally ``Settings.log_level``.
    """

    handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
    handler.addFilter(_ContextFilter())

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s req=%(request_id)s tool=%(tool)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(handler)
    else:
        for h in root.handlers:
            if isinstance(h, RichHandler):
                if not any(isinstance(f, _ContextFilter) for f in h.filters):
                    h.addFilter(_ContextFilter())
                h.setFormatter(formatter)

    chatty_level = logging.DEBUG if root.level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__`` so records are namespaced under ``webharvest``."""

    return logging.getLogger(name)
