"""
proxyvm.types.address — 20-byte addresses and their 256-bit word form.

Addresses are raw `bytes` of length 20 throughout the runtime. When stored in a slot
they occupy the low 160 bits of the word; decoding a word back into an address keeps
only those low 160 bits, exactly as a storage read of an address-typed field would.
That truncation is what lets an unrelated integer written into a colliding slot be
read back as an implementation pointer.
"""

from __future__ import annotations

from typing import Union

ADDRESS_LEN = 20
ZERO_ADDRESS = b"\x00" * ADDRESS_LEN
_ADDR_MASK = (1 << (8 * ADDRESS_LEN)) - 1

AddressLike = Union[bytes, bytearray, memoryview, str, int]


def to_address(value: AddressLike) -> bytes:
    """
    Coerce `value` to a canonical 20-byte address.

    Accepts raw bytes (exactly 20), 0x-hex strings (40 hex digits) or non-negative ints
    below 2**160.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not an address")
    if isinstance(value, (bytes, bytearray, memoryview)):
        b = bytes(value)
        if len(b) != ADDRESS_LEN:
            raise ValueError(f"address must be {ADDRESS_LEN} bytes (got {len(b)})")
        return b
    if isinstance(value, str):
        s = value.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        if len(s) != 2 * ADDRESS_LEN:
            raise ValueError(f"hex address must have {2 * ADDRESS_LEN} digits: {value!r}")
        try:
            return bytes.fromhex(s)
        except ValueError as e:
            raise ValueError(f"invalid hex address: {value!r}") from e
    if isinstance(value, int):
        if value < 0 or value > _ADDR_MASK:
            raise ValueError("integer address out of range")
        return value.to_bytes(ADDRESS_LEN, "big")
    raise TypeError(f"cannot convert {type(value).__name__} to address")


def address_to_word(addr: AddressLike) -> int:
    return int.from_bytes(to_address(addr), "big")


def word_to_address(word: int) -> bytes:
    """Decode the low 160 bits of a storage word as an address."""
    return (int(word) & _ADDR_MASK).to_bytes(ADDRESS_LEN, "big")


def to_hex(addr: bytes) -> str:
    return "0x" + bytes(addr).hex()


def is_zero(addr: bytes) -> bool:
    return not any(addr)


__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "AddressLike",
    "to_address",
    "address_to_word",
    "word_to_address",
    "to_hex",
    "is_zero",
]
