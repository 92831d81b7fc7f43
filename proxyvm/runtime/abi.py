"""
proxyvm.runtime.abi — calldata codec.

Calldata is the canonical CBOR encoding of ``[method, [args...]]``. Method selectors
are the snake_case method names; arguments are CBOR-native values (ints of any size,
bytes for addresses, text, bools, None). Canonical encoding keeps equal calls
byte-identical, which matters for anything that hashes or compares calldata.
"""

from __future__ import annotations

from typing import Any, Tuple

import cbor2

from ..errors import BadCalldata

_ALLOWED = (int, bytes, str, bool, type(None))


def _check_arg(value: Any) -> Any:
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, (list, tuple)):
        return [_check_arg(v) for v in value]
    if not isinstance(value, _ALLOWED):
        raise BadCalldata(f"unsupported argument type {type(value).__name__}")
    return value


def encode_call(method: str, *args: Any) -> bytes:
    if not isinstance(method, str) or not method:
        raise BadCalldata("method must be a non-empty string")
    return cbor2.dumps([method, [_check_arg(a) for a in args]], canonical=True)


def decode_call(data: bytes) -> Tuple[str, Tuple[Any, ...]]:
    """Inverse of `encode_call`. Raises BadCalldata on anything else."""
    if not isinstance(data, (bytes, bytearray, memoryview)) or len(data) == 0:
        raise BadCalldata("empty calldata")
    try:
        obj = cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise BadCalldata(f"undecodable calldata: {e}") from e
    if (
        not isinstance(obj, list)
        or len(obj) != 2
        or not isinstance(obj[0], str)
        or not obj[0]
        or not isinstance(obj[1], list)
    ):
        raise BadCalldata("calldata must be [method, [args...]]")
    return obj[0], tuple(obj[1])


__all__ = ["encode_call", "decode_call"]
