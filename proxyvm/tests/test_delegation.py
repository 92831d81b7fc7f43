"""
Delegated execution: implementation code, proxy storage.
"""
from __future__ import annotations

import threading

import pytest

from proxyvm.config import load_config
from proxyvm.contracts.counter import CounterV1
from proxyvm.errors import (BadCalldata, CallDepthExceeded,
                            InvalidImplementation, Revert, UnknownMethod)
from proxyvm.runtime.abi import encode_call
from proxyvm.runtime.host import Host
from proxyvm.runtime.logic import Logic, external
from proxyvm.state.accounts import derive_address
from proxyvm.state.slots import IMPLEMENTATION_SLOT, INITIALIZED_SLOT
from proxyvm.types.address import address_to_word
from proxyvm.types.events import LogEvent
from proxyvm.types.status import CallStatus

from .conftest import ALICE, DEPLOYER, OWNER


class FaultyCounter(CounterV1):
    @external
    def set_then_fail(self, ctx, value):
        ctx.state.value = value
        ctx.emit("ValueChanged", value=value)
        raise Revert("rejected", reason="NOPE")


class Relay(Logic):
    @external
    def poke(self, ctx, target, value):
        return ctx.call(target, "set_value", value)

    @external
    def whoami(self, ctx, target):
        return ctx.call(target, "sender_of")


class Echo(Logic):
    @external
    def sender_of(self, ctx):
        return ctx.caller


class Recursive(Logic):
    @external
    def recurse(self, ctx, n):
        return ctx.call(ctx.address, "recurse", n + 1)


# -----------------------------------------------------------------------------
# storage identity
# -----------------------------------------------------------------------------


def test_writes_land_in_proxy_store_not_implementation(host, proxy, impl_v1):
    impl_before = host.storage_dump(impl_v1)
    host.call(proxy, "set_value", 42, sender=ALICE)
    assert host.call(proxy, "get_value", sender=ALICE) == 42
    assert host.storage_at(proxy, 0) == 42
    assert host.storage_at(impl_v1, 0) == 0
    assert host.storage_dump(impl_v1) == impl_before
    assert host.call(impl_v1, "get_value", sender=ALICE) == 0


def test_proxy_store_holds_control_data_in_reserved_slots(host, proxy, impl_v1):
    dump = host.storage_dump(proxy)
    assert dump[IMPLEMENTATION_SLOT] == address_to_word(impl_v1)
    assert dump[INITIALIZED_SLOT] == 1
    assert host.call(proxy, "implementation", sender=ALICE) == impl_v1


def test_events_carry_proxy_address(host, proxy):
    host.call(proxy, "set_value", 42, sender=ALICE)
    assert host.last_events == (LogEvent(proxy, "ValueChanged", {"value": 42}),)


def test_call_raw_decodes_calldata(host, proxy):
    host.call_raw(proxy, encode_call("set_value", 7), sender=ALICE)
    assert host.call(proxy, "get_value", sender=ALICE) == 7
    with pytest.raises(BadCalldata):
        host.call_raw(proxy, b"\x00\x01", sender=ALICE)


# -----------------------------------------------------------------------------
# failures
# -----------------------------------------------------------------------------


def test_unknown_method_is_reported(host, proxy, impl_v1):
    with pytest.raises(UnknownMethod) as ei:
        host.call(proxy, "get_total", sender=ALICE)
    assert ei.value.data["method"] == "get_total"
    assert ei.value.data["address"] == "0x" + impl_v1.hex()


def test_revert_in_implementation_reverts_whole_call(host):
    impl = host.deploy(FaultyCounter(), sender=DEPLOYER)
    proxy = host.deploy_proxy(impl, encode_call("initialize", OWNER, 3), sender=DEPLOYER)
    with pytest.raises(Revert) as ei:
        host.call(proxy, "set_then_fail", 99, sender=ALICE)
    assert ei.value.data == {"reason": "NOPE"}
    assert host.call(proxy, "get_value", sender=ALICE) == 3
    assert host.last_events == ()


def test_try_call_reports_status_and_reason(host, proxy):
    ok = host.try_call(proxy, "increment", sender=ALICE)
    assert ok.status is CallStatus.SUCCESS and ok.return_value == 1
    assert [e.name for e in ok.events] == ["ValueChanged"]

    bad = host.try_call(proxy, "initialize", ALICE, 0, sender=ALICE)
    assert bad.status is CallStatus.REVERT
    assert bad.reason == "ALREADY_INITIALIZED"
    assert bad.events == ()

    err = host.try_call(proxy, "no_such_method", sender=ALICE)
    assert err.status is CallStatus.ERROR
    assert err.to_dict()["error"]["code"] == "UNKNOWN_METHOD"


def test_deploy_proxy_to_codeless_address_is_rejected(host):
    nonce = host.nonce(DEPLOYER)
    with pytest.raises(InvalidImplementation):
        host.deploy_proxy(ALICE, sender=DEPLOYER)
    assert not host.exists(derive_address(DEPLOYER, nonce))


def test_call_to_codeless_address_is_rejected(host):
    with pytest.raises(InvalidImplementation):
        host.call(ALICE, "get_value", sender=DEPLOYER)


def test_call_depth_is_bounded():
    host = Host(load_config(env={"PROXYVM_MAX_CALL_DEPTH": "8"}))
    rec = host.deploy(Recursive(), sender=DEPLOYER)
    before = host.storage_dump(rec)
    with pytest.raises(CallDepthExceeded) as ei:
        host.call(rec, "recurse", 0, sender=ALICE)
    assert ei.value.data == {"limit": 8}
    assert host.storage_dump(rec) == before


# -----------------------------------------------------------------------------
# nested calls
# -----------------------------------------------------------------------------


def test_nested_call_uses_target_store_and_caller(host, proxy):
    relay = host.deploy(Relay(), sender=DEPLOYER)
    echo = host.deploy(Echo(), sender=DEPLOYER)
    host.call(relay, "poke", proxy, 5, sender=ALICE)
    assert host.call(proxy, "get_value", sender=ALICE) == 5
    assert host.storage_at(relay, 0) == 0
    assert host.call(relay, "whoami", echo, sender=ALICE) == relay


def test_host_serializes_concurrent_callers(host, proxy):
    def worker():
        for _ in range(25):
            host.call(proxy, "increment", sender=ALICE)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert host.call(proxy, "get_value", sender=ALICE) == 200


@pytest.mark.parametrize("value", [2**256, -1, "ten"])
def test_out_of_range_field_value_reverts_cleanly(host, proxy, value):
    host.call(proxy, "set_value", 5, sender=ALICE)
    res = host.try_call(proxy, "set_value", value, sender=ALICE)
    assert res.status is CallStatus.REVERT
    assert res.reason == "REVERT"
    assert res.error["data"]["reason"] == "BAD_VALUE"
    assert host.call(proxy, "get_value", sender=ALICE) == 5


def test_wrong_arguments_are_bad_calldata(host, proxy, caplog):
    caplog.set_level("WARNING", logger="proxyvm.runtime.host")
    res = host.try_call(proxy, "set_value", sender=ALICE)
    assert res.status is CallStatus.ERROR
    assert res.reason == "BAD_CALLDATA"
    assert res.error["data"]["method"] == "set_value"
    with pytest.raises(BadCalldata):
        host.call(proxy, "transfer_ownership", "not-an-address", sender=OWNER)
    assert any(r.getMessage() == "call reverted" for r in caplog.records)
