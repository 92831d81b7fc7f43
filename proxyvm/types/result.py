"""
proxyvm.types.result — CallResult returned by `Host.try_call`.

Fields
------
* status        : CallStatus
* return_value  : whatever the executed method returned (None on failure)
* error         : {code, message, data?} for failures, else None
* events        : committed events, in emission order (empty on failure)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .events import LogEvent
from .status import CallStatus


@dataclass(frozen=True)
class CallResult:
    status: CallStatus
    return_value: Any = None
    error: Optional[Dict[str, Any]] = None
    events: Tuple[LogEvent, ...] = field(default_factory=tuple)

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    @property
    def reason(self) -> Optional[str]:
        """Reason tag of the failure (the error code), if any."""
        return None if self.error is None else self.error.get("code")

    def to_dict(self) -> Dict[str, Any]:
        rv = self.return_value
        if isinstance(rv, (bytes, bytearray)):
            rv = "0x" + bytes(rv).hex()
        out: Dict[str, Any] = {
            "status": self.status.code,
            "returnValue": rv,
            "events": [e.to_dict() for e in self.events],
        }
        if self.error is not None:
            out["error"] = self.error
        return out


__all__ = ["CallResult"]
