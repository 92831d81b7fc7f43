"""
proxyvm.types.status — logical outcome of a call.

  - SUCCESS : the call committed
  - REVERT  : a guard, authority or business check rejected the call
  - ERROR   : structural failure (bad target, unknown method, depth, calldata)

Every non-success outcome committed nothing.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CallStatus(str, Enum):
    SUCCESS = "success"
    REVERT = "revert"
    ERROR = "error"

    @property
    def code(self) -> str:
        return self.value.upper()

    @property
    def is_success(self) -> bool:
        return self is CallStatus.SUCCESS

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value

    @classmethod
    def from_str(cls, s: str, *, default: Optional["CallStatus"] = None) -> "CallStatus":
        """Lenient parse: accepts 'ok'/'success', 'revert'/'failed', 'error'/'err'."""
        norm = (s or "").strip().lower()
        if norm in {"success", "ok"}:
            return cls.SUCCESS
        if norm in {"revert", "reverted", "failed", "fail"}:
            return cls.REVERT
        if norm in {"error", "err"}:
            return cls.ERROR
        if default is not None:
            return default
        raise ValueError(f"unknown CallStatus: {s!r}")


__all__ = ["CallStatus"]
