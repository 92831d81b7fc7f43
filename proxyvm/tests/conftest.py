from __future__ import annotations

import pytest

from proxyvm.config import load_config
from proxyvm.contracts.counter import CounterV1, CounterV2, UnprotectedCounterV1
from proxyvm.runtime.abi import encode_call
from proxyvm.runtime.host import Host

DEPLOYER = bytes.fromhex("d0" * 20)
OWNER = bytes.fromhex("0a" * 20)
ALICE = bytes.fromhex("a1" * 20)
MALLORY = bytes.fromhex("66" * 20)


@pytest.fixture
def host() -> Host:
    # Environment-independent defaults.
    return Host(load_config(env={}))


@pytest.fixture
def impl_v1(host: Host) -> bytes:
    return host.deploy(CounterV1(), sender=DEPLOYER)


@pytest.fixture
def impl_v2(host: Host) -> bytes:
    return host.deploy(CounterV2(), sender=DEPLOYER)


@pytest.fixture
def unprotected_impl(host: Host) -> bytes:
    return host.deploy(UnprotectedCounterV1(), sender=DEPLOYER)


@pytest.fixture
def proxy(host: Host, impl_v1: bytes) -> bytes:
    """Transparent ERC-1967 proxy in front of CounterV1, initialized with owner=OWNER."""
    return host.deploy_proxy(
        impl_v1, encode_call("initialize", OWNER, 0), sender=DEPLOYER
    )
