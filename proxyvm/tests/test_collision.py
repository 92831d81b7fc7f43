"""
Storage collision: a proxy that keeps its control data in sequential slots 0/1/2
shares them with the implementation's first fields.
"""
from __future__ import annotations

import pytest

from proxyvm.contracts.counter import V1_LAYOUT, V2_LAYOUT
from proxyvm.errors import InvalidImplementation, StorageCollision
from proxyvm.layout.check import check_disjoint
from proxyvm.runtime.abi import encode_call
from proxyvm.state.slots import ERC1967_SCHEME, SEQUENTIAL_SCHEME
from proxyvm.types.address import ZERO_ADDRESS, address_to_word, word_to_address

from .conftest import ALICE, DEPLOYER, OWNER


def test_business_write_overwrites_implementation_pointer(host, impl_v1, impl_v2):
    proxy = host.deploy_proxy(impl_v1, sender=DEPLOYER, scheme=SEQUENTIAL_SCHEME)
    assert host.introspect(proxy).implementation == impl_v1
    # the first field already reads the pointer
    assert host.call(proxy, "get_value", sender=ALICE) == address_to_word(impl_v1)

    host.upgrade(proxy, impl_v2, sender=DEPLOYER)
    host.call(proxy, "set_value", 9999, sender=ALICE)

    rec = host.introspect(proxy)
    assert rec.implementation == word_to_address(9999)
    assert rec.implementation == (9999).to_bytes(20, "big")
    with pytest.raises(InvalidImplementation):
        host.call(proxy, "get_value", sender=ALICE)


def test_same_sequence_is_harmless_with_reserved_slots(host, impl_v1, impl_v2):
    proxy = host.deploy_proxy(impl_v1, sender=DEPLOYER)
    host.upgrade(proxy, impl_v2, sender=DEPLOYER)
    host.call(proxy, "set_value", 9999, sender=ALICE)
    assert host.introspect(proxy).implementation == impl_v2
    assert host.call(proxy, "get_value", sender=ALICE) == 9999


def test_initializing_through_sequential_proxy_clobbers_control_data(host, impl_v1):
    proxy = host.deploy_proxy(
        impl_v1, encode_call("initialize", OWNER, 0), sender=DEPLOYER, scheme=SEQUENTIAL_SCHEME
    )
    rec = host.introspect(proxy)
    # value=0 landed on the pointer, owner landed on the admin slot
    assert rec.implementation == ZERO_ADDRESS
    assert rec.admin == OWNER
    with pytest.raises(InvalidImplementation):
        host.call(proxy, "get_value", sender=ALICE)
    # the owner now passes the admin check
    host.upgrade(proxy, impl_v1, sender=OWNER)
    assert host.introspect(proxy).implementation == impl_v1


def test_static_check_flags_the_sequential_layout():
    for layout in (V1_LAYOUT, V2_LAYOUT):
        check_disjoint(layout, ERC1967_SCHEME)
        with pytest.raises(StorageCollision) as ei:
            check_disjoint(layout, SEQUENTIAL_SCHEME)
        assert ei.value.data["field"] == "value"
        assert ei.value.data["role"] == "implementation"
