"""
proxyvm.runtime.context — per-frame execution context.

A `CallContext` is what executing code sees:

* ``store``         the PersistentStore handle every read/write goes to
* ``address``       owner of that store (the proxy, for delegated frames)
* ``code``          the Logic image running
* ``code_address``  the instance the code was taken from
* ``caller``        the sender as seen by the code (preserved across delegation)
* ``scheme``        control-slot scheme of the store owner

``ctx.state`` interprets the store through the running code's declared layout, so the
same slot reads back as whatever type *this* code believes lives there.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List

from ..errors import Revert
from ..layout.fields import StorageLayout
from ..state.slots import SlotScheme
from ..state.storage import PersistentStore
from ..types.events import LogEvent

if TYPE_CHECKING:
    from .host import Host
    from .logic import Logic


class FieldView:
    """Typed access to a store through a layout: ``view.value``, ``view["owner"] = a``."""

    __slots__ = ("_layout", "_store")

    def __init__(self, layout: StorageLayout, store: PersistentStore) -> None:
        object.__setattr__(self, "_layout", layout)
        object.__setattr__(self, "_store", store)

    def __getitem__(self, name: str) -> Any:
        e = self._layout.entry(name)
        return e.field.type.decode(self._store.read(self._layout.slot_of(name)))

    def __setitem__(self, name: str, value: Any) -> None:
        e = self._layout.entry(name)
        try:
            word = e.field.type.encode(value)
        except (TypeError, ValueError) as exc:
            raise Revert(f"bad value for {name!r}: {exc}", reason="BAD_VALUE") from exc
        self._store.write(self._layout.slot_of(name), word)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value


class CallContext:
    def __init__(
        self,
        host: "Host",
        *,
        store: PersistentStore,
        caller: bytes,
        code: "Logic",
        code_address: bytes,
        scheme: SlotScheme,
        depth: int,
    ) -> None:
        self.host = host
        self.store = store
        self.caller = caller
        self.code = code
        self.code_address = code_address
        self.scheme = scheme
        self.depth = depth
        self.events: List[LogEvent] = []
        self.state = FieldView(code.LAYOUT, store)

    @property
    def address(self) -> bytes:
        return self.store.owner

    @property
    def is_delegated(self) -> bool:
        """True when the running code is not the store owner's own code."""
        return self.code_address != self.store.owner

    def emit(self, name: str, **data: Any) -> None:
        self.events.append(LogEvent(self.address, name, data))

    # ------------------------------------------------------------------ frames

    def delegate(self, implementation: bytes, method: str, *args: Any) -> Any:
        """Run `implementation`'s code against this frame's store."""
        return self.host._delegate(self, implementation, method, args)

    def delegate_raw(self, implementation: bytes, calldata: bytes) -> Any:
        from .abi import decode_call

        method, args = decode_call(calldata)
        return self.delegate(implementation, method, *args)

    def call(self, address: bytes, method: str, *args: Any) -> Any:
        """Ordinary call to another instance, with this instance as caller."""
        return self.host._nested_call(self, address, method, args)

    def self_destruct(self) -> None:
        """Tear down the store owner (the proxy, when delegated)."""
        self.host._destroy(self, self.address)

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return (
            f"CallContext(address=0x{self.address.hex()}, code=0x{self.code_address.hex()}, "
            f"caller=0x{self.caller.hex()}, depth={self.depth})"
        )


__all__ = ["CallContext", "FieldView"]
