"""
proxyvm.errors — typed failures for the proxy runtime model.

Every failure inside a call surfaces as a `ProxyError` subclass. The host catches it at
the call boundary, reverts the journal checkpoint opened for that call and re-raises
(or, via `Host.try_call`, converts it into a `CallResult`). Nothing is swallowed.

Hierarchy
---------
ProxyError (base)
 ├─ Unauthorized                  : caller failed an admin/owner check
 ├─ InvalidImplementation         : target address carries no executable code
 ├─ AlreadyInitialized            : initializer invoked on an initialized instance
 ├─ InitializerDisabled           : initializer invoked on a locked instance
 ├─ InvalidReinitializationEpoch  : reinitializer called with an epoch other than n+1
 ├─ Revert                        : business logic rejected the call
 ├─ UnknownMethod                 : selector not exposed by the target code
 ├─ CallDepthExceeded             : nested frames went past the configured depth
 ├─ BadCalldata                   : calldata could not be decoded
 ├─ StorageCollision              : design-time layout violation (static checks only)
 ├─ LayoutError                   : malformed or gap-incompatible layout declaration
 └─ StateConflict                 : instance address already in use

`StorageCollision` and `LayoutError` are raised by `proxyvm.layout` checks, never by
the runtime: a collision is invisible while executing, which is exactly the problem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class ProxyError(Exception):
    """
    Base error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable reason tag (e.g. 'UNAUTHORIZED', 'INITIALIZER_DISABLED').
        data:    Optional structured details (JSON-friendly).
    """
    message: str = "proxy error"
    code: str = "PROXY_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _details(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


class Unauthorized(ProxyError):
    """Caller is not the recorded admin/owner for a privileged operation."""

    def __init__(
        self,
        message: str = "unauthorized",
        *,
        caller: Optional[str] = None,
        expected: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            data=_details(data, caller=caller, expected=expected),
        )


class InvalidImplementation(ProxyError):
    """The resolved or proposed implementation address has no code."""

    def __init__(
        self,
        message: str = "invalid implementation",
        *,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_IMPLEMENTATION",
            data=_details(data, address=address),
        )


class AlreadyInitialized(ProxyError):
    def __init__(
        self,
        message: str = "already initialized",
        *,
        epoch: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="ALREADY_INITIALIZED",
            data=_details(data, epoch=epoch),
        )


class InitializerDisabled(ProxyError):
    def __init__(
        self,
        message: str = "initializer disabled",
        *,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INITIALIZER_DISABLED",
            data=_details(data, address=address),
        )


class InvalidReinitializationEpoch(ProxyError):
    def __init__(
        self,
        message: str = "invalid reinitialization epoch",
        *,
        current: Optional[int] = None,
        supplied: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_REINITIALIZATION_EPOCH",
            data=_details(data, current=current, supplied=supplied),
        )


class Revert(ProxyError):
    """
    Business-logic failure raised by implementation code.

    Usage:
        raise Revert("value too large", reason="MAX_VALUE")
    """

    def __init__(
        self,
        message: str = "reverted",
        *,
        reason: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="REVERT", data=_details(data, reason=reason))


class UnknownMethod(ProxyError):
    def __init__(
        self,
        message: str = "unknown method",
        *,
        method: Optional[str] = None,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="UNKNOWN_METHOD",
            data=_details(data, method=method, address=address),
        )


class CallDepthExceeded(ProxyError):
    def __init__(
        self,
        message: str = "call depth exceeded",
        *,
        limit: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="CALL_DEPTH", data=_details(data, limit=limit))


class BadCalldata(ProxyError):
    def __init__(self, message: str = "malformed calldata", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="BAD_CALLDATA", data=data)


class StorageCollision(ProxyError):
    """
    Two logically distinct fields map to the same physical slot.

    Design-time only: raised by the static layout checks, listed here so test suites
    and tooling share one taxonomy with the runtime.
    """

    def __init__(
        self,
        message: str = "storage collision",
        *,
        slot: Optional[int] = None,
        kind: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="STORAGE_COLLISION",
            data=_details(data, slot=(hex(slot) if slot is not None else None), kind=kind),
        )


class StateConflict(ProxyError):
    """Journal-level conflict, e.g. creating an instance at an address already in use."""

    def __init__(
        self,
        message: str = "state conflict",
        *,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="STATE_CONFLICT", data=_details(data, address=address))


class LayoutError(ProxyError):
    def __init__(
        self,
        message: str = "invalid storage layout",
        *,
        layout: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="LAYOUT_ERROR", data=_details(data, layout=layout))


# -------- helper utilities ---------------------------------------------------


def error_to_result_fields(err: ProxyError) -> Dict[str, Any]:
    """
    Map a ProxyError to canonical result fields:

        {"status": "REVERT" | "ERROR", "error": {code, message, data?}}

    Business reverts and guard/authority rejections are semantic failures of the call
    (`REVERT`); everything else is reported as `ERROR`.
    """
    semantic = (
        Revert,
        Unauthorized,
        AlreadyInitialized,
        InitializerDisabled,
        InvalidReinitializationEpoch,
    )
    status = "REVERT" if isinstance(err, semantic) else "ERROR"
    return {"status": status, "error": err.to_dict()}


__all__ = [
    "ProxyError",
    "Unauthorized",
    "InvalidImplementation",
    "AlreadyInitialized",
    "InitializerDisabled",
    "InvalidReinitializationEpoch",
    "Revert",
    "UnknownMethod",
    "CallDepthExceeded",
    "BadCalldata",
    "StorageCollision",
    "LayoutError",
    "StateConflict",
    "error_to_result_fields",
]
