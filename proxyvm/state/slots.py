"""
proxyvm.state.slots — storage slot allocation.

Two families of slots share one 256-bit key space per instance:

* sequential slots: ordinary fields, numbered 0, 1, 2, ... in declaration order
  (see `proxyvm.layout`);
* reserved slots: proxy control data at ``keccak256(namespace) - 1``.

Sequential allocation never gets anywhere near 2**64 in practice, while a hash-derived
slot lands below 2**64 with probability ~2**-192; the "- 1" removes the known preimage
so the slot cannot be produced by mapping/array slot derivations either. This is the
EIP-1967 construction, and the canonical namespaces reproduce its published values.

A `SlotScheme` bundles the three control slots a proxy uses. `ERC1967_SCHEME` is the
safe default; `SEQUENTIAL_SCHEME` puts control data at slots 0/1/2, i.e. exactly where
the first implementation fields live, and exists to reproduce the collision defect.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional, Tuple

from ..hashing import keccak256_int

WORD_BITS = 256
WORD_MOD = 1 << WORD_BITS
WORD_MAX = WORD_MOD - 1

IMPLEMENTATION_NAMESPACE = "eip1967.proxy.implementation"
ADMIN_NAMESPACE = "eip1967.proxy.admin"
INITIALIZABLE_NAMESPACE = "proxyvm.proxy.initializable"


def check_word(value: int, *, what: str = "value") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be int (got {type(value).__name__})")
    if value < 0 or value > WORD_MAX:
        raise ValueError(f"{what} out of 256-bit range")
    return value


@lru_cache(maxsize=None)
def reserved_slot(namespace: str) -> int:
    """Deterministic control slot for `namespace`: ``keccak256(utf8(namespace)) - 1``."""
    if not isinstance(namespace, str) or not namespace:
        raise ValueError("namespace must be a non-empty string")
    return (keccak256_int(namespace.encode("utf-8")) - 1) % WORD_MOD


def sequential_slot(index: int) -> int:
    """Slot of the `index`-th declared slot-sized field (identity, bounds-checked)."""
    return check_word(index, what="sequential index")


def in_sequential_region(slot: int, limit: Optional[int] = None) -> bool:
    """True if `slot` is reachable by sequential allocation (below `limit`)."""
    if limit is None:
        from ..config import get_config

        limit = get_config().sequential_region_limit
    return 0 <= slot < limit


# Computed once at import; call sites never re-hash.
IMPLEMENTATION_SLOT: int = reserved_slot(IMPLEMENTATION_NAMESPACE)
ADMIN_SLOT: int = reserved_slot(ADMIN_NAMESPACE)
INITIALIZED_SLOT: int = reserved_slot(INITIALIZABLE_NAMESPACE)


@dataclass(frozen=True)
class SlotScheme:
    """Where an instance keeps its control data."""

    name: str
    implementation: int
    admin: int
    initialized: int

    def __post_init__(self) -> None:
        for what in ("implementation", "admin", "initialized"):
            check_word(getattr(self, what), what=f"{what} slot")
        if len({self.implementation, self.admin, self.initialized}) != 3:
            raise ValueError(f"scheme {self.name!r}: control slots must be distinct")

    def control_slots(self) -> Dict[str, int]:
        return {
            "implementation": self.implementation,
            "admin": self.admin,
            "initialized": self.initialized,
        }

    def items(self) -> Tuple[Tuple[str, int], ...]:
        return tuple(self.control_slots().items())

    def is_control_slot(self, slot: int) -> bool:
        return slot in (self.implementation, self.admin, self.initialized)


ERC1967_SCHEME = SlotScheme(
    name="erc1967",
    implementation=IMPLEMENTATION_SLOT,
    admin=ADMIN_SLOT,
    initialized=INITIALIZED_SLOT,
)

SEQUENTIAL_SCHEME = SlotScheme(name="sequential", implementation=0, admin=1, initialized=2)

SCHEMES: Dict[str, SlotScheme] = {s.name: s for s in (ERC1967_SCHEME, SEQUENTIAL_SCHEME)}


def get_scheme(name: str) -> SlotScheme:
    try:
        return SCHEMES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown slot scheme {name!r} (known: {sorted(SCHEMES)})") from None


__all__ = [
    "WORD_BITS",
    "WORD_MAX",
    "IMPLEMENTATION_NAMESPACE",
    "ADMIN_NAMESPACE",
    "INITIALIZABLE_NAMESPACE",
    "IMPLEMENTATION_SLOT",
    "ADMIN_SLOT",
    "INITIALIZED_SLOT",
    "check_word",
    "reserved_slot",
    "sequential_slot",
    "in_sequential_region",
    "SlotScheme",
    "ERC1967_SCHEME",
    "SEQUENTIAL_SCHEME",
    "SCHEMES",
    "get_scheme",
]
