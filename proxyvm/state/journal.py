"""
proxyvm.state.journal — journaled writes with nested checkpoints.

Deterministic, in-memory write journal layered over the committed account map and
`StorageView`. Each checkpoint is an overlay; writes go to the top overlay and reads
consult overlays top → base. `commit()` merges the top overlay into its parent (or the
base when it is the last one), `revert()` discards it.

The host opens one checkpoint per external call and one per nested frame, so every call
either commits all of its writes or none of them.

    j = Journal(accounts, storage)
    mark = j.checkpoint()
    j.storage_set(addr, 0, 42)
    j.revert_to(mark - 1)       # slot 0 reads 0 again

The journal doubles as the `SlotBackend` behind every `PersistentStore` handle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, MutableMapping, Optional, Set, Tuple

from ..errors import StateConflict
from .accounts import EMPTY_CODE_HASH, Account
from .storage import StorageView


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


# Marker for "not staged in this layer"; a staged 0 is a deletion.
_ABSENT = object()


# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `accounts`: copies of Account objects modified/created in this layer.
    - `destroyed`: addresses torn down in this layer.
    - `storage`: staged slot writes; a staged 0 clears the slot.
    - `reset`: addresses whose lower-layer storage is hidden (torn down or created here).
    """

    accounts: Dict[bytes, Account] = field(default_factory=dict)
    destroyed: Set[bytes] = field(default_factory=set)
    storage: Dict[bytes, Dict[int, int]] = field(default_factory=dict)
    reset: Set[bytes] = field(default_factory=set)

    def get_account_local(self, addr: bytes) -> Optional[Account]:
        if addr in self.destroyed:
            return None
        return self.accounts.get(addr)

    def put_account_copy(self, addr: bytes, acc: Account) -> Account:
        acc_copy = acc.copy()
        self.accounts[addr] = acc_copy
        self.destroyed.discard(addr)
        return acc_copy

    def create_account_fresh(self, addr: bytes, code_hash: bytes) -> Account:
        self.destroyed.discard(addr)
        self.reset.add(addr)
        self.storage.pop(addr, None)
        acc = Account(nonce=0, code_hash=code_hash)
        self.accounts[addr] = acc
        return acc

    def destroy_account_here(self, addr: bytes) -> None:
        self.accounts.pop(addr, None)
        self.destroyed.add(addr)
        self.reset.add(addr)
        self.storage.pop(addr, None)

    def storage_get_local(self, addr: bytes, slot: int) -> object:
        m = self.storage.get(addr)
        if m is None:
            return _ABSENT
        return m.get(slot, _ABSENT)

    def storage_set_local(self, addr: bytes, slot: int, value: int) -> None:
        if addr in self.destroyed:
            return
        m = self.storage.get(addr)
        if m is None:
            m = {}
            self.storage[addr] = m
        m[slot] = value


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    accounts : MutableMapping[bytes, Account]
        The committed account mapping.
    storage : StorageView
        The committed storage.
    """

    def __init__(self, accounts: MutableMapping[bytes, Account], storage: StorageView) -> None:
        self._base_accounts = accounts
        self._base_storage = storage
        self._layers: List[_Overlay] = [_Overlay()]

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into the base if it is the root."""
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
        else:
            self._apply_to_base(top)
            self._layers.append(_Overlay())

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it's the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def checkpoint(self) -> int:
        """Open a checkpoint; returns the new depth as marker."""
        return self.begin()

    def commit_to(self, marker: int) -> None:
        """Commit until the depth equals `marker`. Committing to depth 1 leaves changes in the root layer."""
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) > marker:
            self.revert()

    def flush(self) -> None:
        """Apply everything staged to the base state."""
        while len(self._layers) > 1:
            self.commit()
        self.commit()

    # --------------------------------------------------------------------- #
    # Accounts
    # --------------------------------------------------------------------- #

    def _lookup_account_any(self, addr: bytes) -> Optional[Account]:
        for layer in reversed(self._layers):
            if addr in layer.destroyed:
                return None
            local = layer.get_account_local(addr)
            if local is not None:
                return local
        return self._base_accounts.get(addr)

    def get_account(self, address: bytes | bytearray | memoryview) -> Optional[Account]:
        """Read-only lookup. Do not mutate the returned object."""
        return self._lookup_account_any(_b(address, name="address"))

    def exists(self, address: bytes) -> bool:
        return self.get_account(address) is not None

    def get_account_for_write(self, address: bytes | bytearray | memoryview) -> Optional[Account]:
        """Account promoted into the top layer for mutation, or None if absent."""
        addr = _b(address, name="address")
        top = self._layers[-1]
        if addr in top.destroyed:
            return None
        if addr in top.accounts:
            return top.accounts[addr]
        acc = self._lookup_account_any(addr)
        if acc is None:
            return None
        return top.put_account_copy(addr, acc)

    def create_account(
        self,
        address: bytes | bytearray | memoryview,
        *,
        code_hash: Optional[bytes] = None,
    ) -> Account:
        """Create an instance in the top overlay. Raises StateConflict if it exists."""
        addr = _b(address, name="address")
        if self._lookup_account_any(addr) is not None:
            raise StateConflict("account already exists", address="0x" + addr.hex())
        return self._layers[-1].create_account_fresh(
            addr, EMPTY_CODE_HASH if code_hash is None else bytes(code_hash)
        )

    def destroy_account(self, address: bytes | bytearray | memoryview) -> bool:
        """Tear down an instance and its store. Returns False if nothing was visible."""
        addr = _b(address, name="address")
        visible = self._lookup_account_any(addr) is not None
        self._layers[-1].destroy_account_here(addr)
        return visible

    # --------------------------------------------------------------------- #
    # Storage (SlotBackend)
    # --------------------------------------------------------------------- #

    def storage_get(self, address: bytes | bytearray | memoryview, slot: int) -> int:
        addr = _b(address, name="address")
        for layer in reversed(self._layers):
            local = layer.storage_get_local(addr, slot)
            if local is not _ABSENT:
                return local  # type: ignore[return-value]
            if addr in layer.reset:
                return 0
        return self._base_storage.get(addr, slot)

    def storage_set(self, address: bytes | bytearray | memoryview, slot: int, value: int) -> None:
        addr = _b(address, name="address")
        self._layers[-1].storage_set_local(addr, slot, value)

    def storage_items(self, address: bytes | bytearray | memoryview) -> Iterator[Tuple[int, int]]:
        """Visible non-zero (slot, word) pairs for an address, by ascending slot."""
        addr = _b(address, name="address")
        visible: Dict[int, int] = {}
        start = 0
        for i in range(len(self._layers) - 1, -1, -1):
            if addr in self._layers[i].reset:
                start = i
                break
        else:
            visible = dict(self._base_storage.items(addr))
        for layer in self._layers[start:]:
            for k, v in layer.storage.get(addr, {}).items():
                visible[k] = v
        for k in sorted(visible):
            if visible[k]:
                yield k, visible[k]

    # --------------------------------------------------------------------- #
    # Internal merge/apply
    # --------------------------------------------------------------------- #

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for addr in src.reset:
            dst.reset.add(addr)
            dst.storage.pop(addr, None)
        for addr in src.destroyed:
            dst.destroyed.add(addr)
            dst.accounts.pop(addr, None)

        for addr, acc in src.accounts.items():
            dst.accounts[addr] = acc.copy()
            dst.destroyed.discard(addr)

        for addr, writes in src.storage.items():
            dst.storage.setdefault(addr, {}).update(writes)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for addr in layer.reset:
            self._base_storage.clear_account(addr)
        for addr in layer.destroyed:
            self._base_accounts.pop(addr, None)

        for addr, acc in layer.accounts.items():
            self._base_accounts[addr] = acc.copy()

        for addr, writes in layer.storage.items():
            for slot, value in writes.items():
                self._base_storage.set(addr, slot, value)


__all__ = ["Journal"]
