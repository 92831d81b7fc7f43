"""
proxyvm.state.accounts — instance records and the code registry.

An `Account` holds:

- nonce:      deployment counter used to derive addresses of instances it creates
- code_hash:  32-byte identity of the instance's executable code (all-zero = no code)

Code itself is not stored in the account: a `CodeRegistry` maps code hashes to
`Logic` objects (the executable images). An address "has executable code" iff it has
an account whose code hash resolves in the registry.

Instance addresses are derived like contract-creation addresses:
``keccak256(cbor([deployer, nonce]))[-20:]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, Optional

import cbor2

from ..hashing import keccak256, sha3_256

if TYPE_CHECKING:
    from ..runtime.logic import Logic

EMPTY_CODE_HASH: bytes = b"\x00" * 32


def compute_code_hash(code: "Logic") -> bytes:
    """
    Identity of a Logic image: SHA3-256 over its code id and its declared storage
    layout, so two builds of the same class with different layouts differ.
    """
    layout = getattr(code, "LAYOUT", None)
    desc = f"{code.code_id()}|{layout.fingerprint() if layout is not None else ''}"
    return sha3_256(desc.encode("utf-8"))


def derive_address(deployer: bytes, nonce: int) -> bytes:
    payload = cbor2.dumps([bytes(deployer), int(nonce)], canonical=True)
    return keccak256(payload)[-20:]


# --------------------------------------------------------------------------- #
# Account
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class Account:
    nonce: int = 0
    code_hash: bytes = EMPTY_CODE_HASH

    def __post_init__(self) -> None:
        if self.nonce < 0:
            raise ValueError("nonce must be non-negative")
        ch = bytes(self.code_hash)
        if len(ch) != 32:
            raise ValueError("code_hash must be 32 bytes")
        self.code_hash = ch

    @property
    def has_code(self) -> bool:
        return self.code_hash != EMPTY_CODE_HASH

    def increment_nonce(self) -> int:
        self.nonce += 1
        return self.nonce

    def copy(self) -> "Account":
        return Account(nonce=self.nonce, code_hash=self.code_hash)

    def to_dict(self) -> dict:
        return {"nonce": self.nonce, "code_hash": self.code_hash.hex()}


# --------------------------------------------------------------------------- #
# Code registry
# --------------------------------------------------------------------------- #


class CodeRegistry:
    """code_hash → Logic image. Images are stateless and shared by every instance."""

    def __init__(self) -> None:
        self._images: Dict[bytes, "Logic"] = {}

    def register(self, code: "Logic") -> bytes:
        h = compute_code_hash(code)
        existing = self._images.get(h)
        if existing is None:
            self._images[h] = code
        return h

    def resolve(self, code_hash: bytes) -> Optional["Logic"]:
        if code_hash == EMPTY_CODE_HASH:
            return None
        return self._images.get(bytes(code_hash))

    def __contains__(self, code_hash: object) -> bool:
        return code_hash in self._images

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._images)

    def __len__(self) -> int:
        return len(self._images)


__all__ = [
    "Account",
    "EMPTY_CODE_HASH",
    "CodeRegistry",
    "compute_code_hash",
    "derive_address",
]
