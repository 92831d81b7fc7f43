"""
proxyvm.logging
---------------

Structured logging with:
- JSON or concise colored text formats
- Context-local fields via `contextvars` (trace_id, component, proxy, ...)
- Safe JSON serialization (bytes → 0x-hex, dataclasses → dicts)
- Helpers to bind/unbind context fields and open trace scopes

Usage
-----
    from proxyvm import logging as plog

    plog.configure(level="INFO")        # once at process start (reads proxyvm.config)
    log = plog.get_logger(__name__)

    with plog.trace_scope():
        plog.bind(component="host")
        log.info("proxy deployed", extra={"proxy": addr_hex})

Runtime modules only call `get_logger`; nothing is emitted unless the embedding
application configures handlers (stdlib default behaviour).
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Optional

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_PROXYVM_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = (
    "trace_id",
    "component",
    "sender",
    "target",
    "depth",
)

# LogRecord attributes that are never treated as structured extras.
_RECORD_ATTRS = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "taskName", "message",
    )
)


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def trace_scope(trace_id: Optional[str] = None, **fields: Any) -> Iterator[str]:
    """
    Ensure a trace_id (plus any extra fields) is bound for the duration of the scope.
    Restores the prior context on exit.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or prev.get("trace_id") or short_uuid()
    try:
        bind(trace_id=tid, **fields)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if isinstance(v, _dt.datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=_dt.timezone.utc)
        return v.isoformat()
    if is_dataclass(v) and not isinstance(v, type):
        return {k: _coerce_value(x) for k, x in asdict(v).items()}
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in record.__dict__.items():
        if k.startswith("_") or k in _RECORD_ATTRS:
            continue
        out[k] = _coerce_value(v)
    return out


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, default=str, separators=(",", ":"))


_LEVEL_COLOR = {
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1m\x1b[35m",
}
_RESET = "\x1b[0m"


def _supports_color(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    return bool(isatty()) and os.environ.get("NO_COLOR") is None


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2026-01-05T12:34:56.789+00:00 | INFO  | proxyvm.runtime.upgrade | trace_id=ab12 | implementation upgraded proxy=0x..
    """

    def __init__(self, stream: Any = None):
        super().__init__()
        self._color = _supports_color(stream)

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        lvl = f"{record.levelname:<5}"
        if self._color:
            lvl = f"{_LEVEL_COLOR.get(record.levelno, '')}{lvl}{_RESET}"

        line = f"{_utcnow_iso()} | {lvl} | {record.name}"
        if ctx_str:
            line += f" | {ctx_str}"
        line += f" | {record.getMessage()}"
        if extras:
            line += f" {extras}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: Optional[str | int] = None,
    stream: io.TextIOBase = sys.stderr,  # type: ignore[assignment]
) -> None:
    """
    Configure the `proxyvm` logger tree.

    `json` and `level` default to PROXYVM_LOG_JSON / PROXYVM_LOG_LEVEL via
    `proxyvm.config`. Handlers installed by an earlier call are replaced.
    """
    from .config import get_config

    cfg = get_config()
    chosen_json = cfg.log_json if json is None else json
    chosen_level = _coerce_level(cfg.log_level if level is None else level)

    root = logging.getLogger("proxyvm")
    root.setLevel(chosen_level)
    for h in list(root.handlers):
        if getattr(h, "_proxyvm_handler", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(chosen_level)
    handler.setFormatter(JSONFormatter() if chosen_json else TextFormatter(stream))
    handler._proxyvm_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "proxyvm")


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


__all__ = [
    "bind",
    "unbind",
    "clear_context",
    "context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "get_logger",
]
