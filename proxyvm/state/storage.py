"""
proxyvm.state.storage — per-instance persistent storage.

`StorageView` is the committed base: a mapping ``{address: {slot: word}}`` where
addresses are 20-byte `bytes`, slots and words are 256-bit ints. A zero word is the
canonical "absent" value, so writing 0 deletes the entry and reading an unwritten slot
yields 0.

`PersistentStore` is the *handle* code executes against: it binds one owning address
to a slot backend (normally the host's `Journal`) and exposes ``read(slot)`` /
``write(slot, value)``. Delegated execution passes the proxy's handle to the
implementation's code; the handle is never copied, so whose storage is touched is
decided by which handle the dispatcher hands over, not by whose code runs.

The store attaches no type to a slot and performs no collision detection. Two logical
fields mapped to one slot silently alias.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (Dict, Iterator, Mapping, MutableMapping, Optional,
                    Protocol, Tuple, runtime_checkable)

from .slots import check_word

# ------------------------------- helpers -------------------------------------


def _as_address(x: bytes | bytearray | memoryview) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError("address must be bytes-like")
    return bytes(x)


# ------------------------------- StorageView ---------------------------------


@dataclass
class StorageView:
    """
    Committed storage for every instance.

    Parameters
    ----------
    backend :
        Optional external mapping ``{address: {slot: word}}``; an internal dict is
        used when omitted.
    """

    backend: Optional[MutableMapping[bytes, Dict[int, int]]] = None
    _store: MutableMapping[bytes, Dict[int, int]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._store = self.backend if self.backend is not None else {}

    # ------------------------------ core ops --------------------------------

    def get(self, address: bytes, slot: int) -> int:
        return self._store.get(_as_address(address), {}).get(check_word(slot, what="slot"), 0)

    def set(self, address: bytes, slot: int, value: int) -> None:
        """Set a word; writing 0 deletes the entry (canonical form)."""
        addr = _as_address(address)
        slot = check_word(slot, what="slot")
        value = check_word(value, what="storage word")
        if value == 0:
            self.delete(addr, slot)
            return
        acc = self._store.get(addr)
        if acc is None:
            acc = {}
            self._store[addr] = acc
        acc[slot] = value

    def delete(self, address: bytes, slot: int) -> bool:
        addr = _as_address(address)
        acc = self._store.get(addr)
        if acc is None:
            return False
        removed = acc.pop(check_word(slot, what="slot"), None) is not None
        if not acc:
            self._store.pop(addr, None)
        return removed

    # ------------------------------ account ops -----------------------------

    def items(self, address: bytes) -> Iterator[Tuple[int, int]]:
        """(slot, word) pairs for an address in ascending slot order."""
        acc = self._store.get(_as_address(address), {})
        for k in sorted(acc):
            yield k, acc[k]

    def clear_account(self, address: bytes) -> int:
        acc = self._store.pop(_as_address(address), None)
        return 0 if acc is None else len(acc)

    def account_len(self, address: bytes) -> int:
        return len(self._store.get(_as_address(address), {}))

    def export_account_hex(self, address: bytes) -> Dict[str, str]:
        """{slot_hex: word_hex} for an address, sorted by slot."""
        return {hex(k): hex(v) for k, v in self.items(address)}

    def import_account_hex(self, address: bytes, data: Mapping[str, str]) -> None:
        addr = _as_address(address)
        self._store.pop(addr, None)
        for k_hex, v_hex in data.items():
            self.set(addr, int(k_hex, 16), int(v_hex, 16))

    def total_keys(self) -> int:
        return sum(len(acc) for acc in self._store.values())


# ------------------------------- PersistentStore -----------------------------


@runtime_checkable
class SlotBackend(Protocol):
    """What a PersistentStore needs from the layer that actually holds words."""

    def storage_get(self, address: bytes, slot: int) -> int: ...
    def storage_set(self, address: bytes, slot: int, value: int) -> None: ...


class PersistentStore:
    """Slot→word view of one instance's storage."""

    __slots__ = ("_backend", "_owner")

    def __init__(self, backend: SlotBackend, owner: bytes) -> None:
        if not isinstance(backend, SlotBackend):
            raise TypeError("backend must provide storage_get/storage_set")
        self._backend = backend
        self._owner = _as_address(owner)

    @property
    def owner(self) -> bytes:
        """Address of the instance that owns this storage."""
        return self._owner

    def read(self, slot: int) -> int:
        return self._backend.storage_get(self._owner, check_word(slot, what="slot"))

    def write(self, slot: int, value: int) -> None:
        self._backend.storage_set(
            self._owner, check_word(slot, what="slot"), check_word(value, what="storage word")
        )

    def __repr__(self) -> str:  # pragma: no cover - human-only
        return f"PersistentStore(owner=0x{self._owner.hex()})"


__all__ = ["StorageView", "SlotBackend", "PersistentStore"]
