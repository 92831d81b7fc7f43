"""
proxyvm.hashing — Keccak-256 / SHA3-256 wrappers used by the slot allocator and the
address/code-hash derivations.

Bytes in, bytes out. Keccak-256 here is the pre-standard Keccak used by Ethereum
(EIP-1967 slot values are defined over it), provided by PyCryptodome. SHA3-256 comes
from hashlib.
"""

from __future__ import annotations

import hashlib
from Crypto.Hash import keccak as _keccak


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise TypeError(f"{name} must be bytes-like (got {type(buf).__name__})")


def keccak256(data: bytes | bytearray | memoryview) -> bytes:
    h = _keccak.new(digest_bits=256)
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def keccak256_int(data: bytes | bytearray | memoryview) -> int:
    """Keccak-256 digest read as a big-endian unsigned 256-bit integer."""
    return int.from_bytes(keccak256(data), "big")


def sha3_256(data: bytes | bytearray | memoryview) -> bytes:
    return hashlib.sha3_256(_ensure_bytes(data, "data")).digest()


__all__ = [
    "keccak256",
    "keccak256_int",
    "sha3_256",
]
