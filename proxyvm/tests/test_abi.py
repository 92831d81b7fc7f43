from __future__ import annotations

import cbor2
import pytest

from proxyvm.errors import BadCalldata
from proxyvm.runtime.abi import decode_call, encode_call


def test_encode_decode_call():
    owner = b"\x0a" * 20
    data = encode_call("initialize", owner, 2**255 + 1, True, "memo", None)
    method, args = decode_call(data)
    assert method == "initialize"
    assert args == (owner, 2**255 + 1, True, "memo", None)


def test_encoding_is_canonical():
    assert encode_call("set_value", 42) == encode_call("set_value", 42)
    assert encode_call("set_value", bytearray(b"\x01")) == encode_call("set_value", b"\x01")
    assert encode_call("get_value") == cbor2.dumps(["get_value", []], canonical=True)


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"\xff\xff",
        cbor2.dumps({"method": "x"}),
        cbor2.dumps(["x"]),
        cbor2.dumps([1, []]),
        cbor2.dumps(["", []]),
        cbor2.dumps(["x", "not-a-list"]),
    ],
)
def test_decode_rejects_malformed(raw):
    with pytest.raises(BadCalldata):
        decode_call(raw)


def test_encode_rejects_unsupported_arguments():
    with pytest.raises(BadCalldata):
        encode_call("set_value", 1.5)
    with pytest.raises(BadCalldata):
        encode_call("")
