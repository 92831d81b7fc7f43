"""
proxyvm.types.events — event records emitted by executing frames.

`LogEvent` is a small frozen record: the emitting address (the storage context the
frame ran in, i.e. the proxy for delegated code), an event name and a mapping of
JSON-friendly fields. Events of a frame that reverts are discarded with its writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


def _plain(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    return v


@dataclass(frozen=True)
class LogEvent:
    address: bytes
    name: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.address, (bytes, bytearray)) or len(self.address) == 0:
            raise ValueError("event address must be non-empty bytes")
        if not self.name:
            raise ValueError("event name must not be empty")
        object.__setattr__(self, "address", bytes(self.address))
        object.__setattr__(self, "data", dict(self.data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": "0x" + self.address.hex(),
            "name": self.name,
            "data": {k: _plain(v) for k, v in self.data.items()},
        }


__all__ = ["LogEvent"]
