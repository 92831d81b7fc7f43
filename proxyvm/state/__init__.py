"""
proxyvm.state — slot allocation, per-instance storage, accounts and the write journal.
"""

from .accounts import (EMPTY_CODE_HASH, Account, CodeRegistry,
                       compute_code_hash, derive_address)
from .journal import Journal
from .slots import (ADMIN_SLOT, ERC1967_SCHEME, IMPLEMENTATION_SLOT,
                    INITIALIZED_SLOT, SEQUENTIAL_SCHEME, SlotScheme,
                    get_scheme, reserved_slot, sequential_slot)
from .storage import PersistentStore, StorageView

__all__ = [
    "Account",
    "EMPTY_CODE_HASH",
    "CodeRegistry",
    "compute_code_hash",
    "derive_address",
    "Journal",
    "PersistentStore",
    "StorageView",
    "SlotScheme",
    "ERC1967_SCHEME",
    "SEQUENTIAL_SCHEME",
    "IMPLEMENTATION_SLOT",
    "ADMIN_SLOT",
    "INITIALIZED_SLOT",
    "reserved_slot",
    "sequential_slot",
    "get_scheme",
]
