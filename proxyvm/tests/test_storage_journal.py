"""
Persistent store and write journal.

- unwritten slots read as 0, writing 0 clears the entry
- a PersistentStore handle always addresses its owner's storage
- checkpoint → writes → revert restores the baseline; commit applies last-wins
- teardown hides the store and is undone by a revert
"""
from __future__ import annotations

from typing import Dict

import pytest
from hypothesis import given, settings, strategies as st

from proxyvm.errors import StateConflict
from proxyvm.state.accounts import Account, CodeRegistry, derive_address
from proxyvm.state.journal import Journal
from proxyvm.state.slots import WORD_MAX
from proxyvm.state.storage import PersistentStore, StorageView

A = b"\x01" * 20
B = b"\x02" * 20

SLOT = st.integers(min_value=0, max_value=WORD_MAX)
WORD = st.one_of(st.just(0), st.integers(min_value=0, max_value=WORD_MAX))
WRITES = st.dictionaries(keys=SLOT, values=WORD, max_size=16)


def _journal() -> Journal:
    return Journal({}, StorageView())


def _visible(j: Journal, addr: bytes) -> Dict[int, int]:
    return dict(j.storage_items(addr))


# -----------------------------------------------------------------------------
# StorageView
# -----------------------------------------------------------------------------


def test_storage_view_zero_default_and_zero_deletes():
    sv = StorageView()
    assert sv.get(A, 5) == 0
    sv.set(A, 5, 9)
    assert sv.get(A, 5) == 9 and sv.account_len(A) == 1
    sv.set(A, 5, 0)
    assert sv.account_len(A) == 0
    assert sv.total_keys() == 0


def test_storage_view_rejects_out_of_range_words():
    sv = StorageView()
    with pytest.raises(ValueError):
        sv.set(A, 0, WORD_MAX + 1)
    with pytest.raises(ValueError):
        sv.set(A, -1, 1)


def test_storage_view_hex_export_import():
    sv = StorageView()
    sv.set(A, 2, 0xFF)
    sv.set(A, 1, 7)
    exported = sv.export_account_hex(A)
    assert list(exported) == ["0x1", "0x2"]
    other = StorageView()
    other.import_account_hex(B, exported)
    assert list(other.items(B)) == [(1, 7), (2, 0xFF)]


def test_persistent_store_is_bound_to_its_owner():
    j = _journal()
    sa, sb = PersistentStore(j, A), PersistentStore(j, B)
    sa.write(0, 42)
    assert sa.read(0) == 42
    assert sb.read(0) == 0
    assert sa.owner == A


# -----------------------------------------------------------------------------
# Journal laws
# -----------------------------------------------------------------------------


def test_revert_restores_previous_value():
    j = _journal()
    j.storage_set(A, 1, 5)
    j.flush()
    mark = j.checkpoint()
    j.storage_set(A, 1, 9)
    j.storage_set(A, 2, 3)
    j.revert_to(mark - 1)
    assert j.storage_get(A, 1) == 5
    assert j.storage_get(A, 2) == 0


def test_staged_zero_hides_committed_value():
    j = _journal()
    j.storage_set(A, 1, 5)
    j.flush()
    j.checkpoint()
    j.storage_set(A, 1, 0)
    assert j.storage_get(A, 1) == 0
    assert _visible(j, A) == {}
    j.flush()
    assert j.storage_get(A, 1) == 0


def test_inner_revert_keeps_outer_writes():
    j = _journal()
    outer = j.checkpoint()
    j.storage_set(A, 1, 1)
    inner = j.checkpoint()
    j.storage_set(A, 1, 2)
    j.storage_set(A, 3, 3)
    j.revert_to(inner - 1)
    assert j.storage_get(A, 1) == 1
    assert j.storage_get(A, 3) == 0
    j.commit_to(outer - 1)
    j.flush()
    assert _visible(j, A) == {1: 1}


@settings(max_examples=60, deadline=None)
@given(base=WRITES, writes=WRITES)
def test_checkpoint_revert_is_identity(base, writes):
    j = _journal()
    for k, v in base.items():
        j.storage_set(A, k, v)
    j.flush()
    before = _visible(j, A)
    mark = j.checkpoint()
    for k, v in writes.items():
        j.storage_set(A, k, v)
    j.revert_to(mark - 1)
    assert _visible(j, A) == before


@settings(max_examples=60, deadline=None)
@given(base=WRITES, writes=WRITES)
def test_checkpoint_commit_is_last_wins(base, writes):
    j = _journal()
    for k, v in base.items():
        j.storage_set(A, k, v)
    j.flush()
    j.checkpoint()
    for k, v in writes.items():
        j.storage_set(A, k, v)
    j.flush()
    expected = {**base, **writes}
    assert _visible(j, A) == {k: v for k, v in expected.items() if v}


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


def test_create_account_conflict():
    j = _journal()
    j.create_account(A)
    with pytest.raises(StateConflict):
        j.create_account(A)


def test_destroy_hides_storage_until_reverted():
    j = _journal()
    j.create_account(A)
    j.storage_set(A, 4, 44)
    j.flush()
    mark = j.checkpoint()
    assert j.destroy_account(A) is True
    assert j.get_account(A) is None
    assert j.storage_get(A, 4) == 0
    j.storage_set(A, 4, 99)  # ignored after teardown
    assert j.storage_get(A, 4) == 0
    j.revert_to(mark - 1)
    assert j.storage_get(A, 4) == 44
    assert j.get_account(A) is not None


def test_destroy_then_flush_clears_base():
    accounts: Dict[bytes, Account] = {}
    sv = StorageView()
    j = Journal(accounts, sv)
    j.create_account(A)
    j.storage_set(A, 1, 1)
    j.flush()
    j.destroy_account(A)
    j.flush()
    assert A not in accounts
    assert sv.account_len(A) == 0


def test_account_nonce_and_address_derivation():
    acc = Account()
    assert acc.increment_nonce() == 1
    with pytest.raises(ValueError):
        Account(nonce=-1)
    assert derive_address(A, 0) != derive_address(A, 1)
    assert derive_address(A, 0) == derive_address(A, 0)
    assert len(derive_address(A, 0)) == 20


def test_code_registry_resolves_registered_images():
    from proxyvm.contracts.counter import CounterV1, CounterV2

    reg = CodeRegistry()
    h1 = reg.register(CounterV1())
    h2 = reg.register(CounterV2())
    assert h1 != h2
    assert reg.register(CounterV1()) == h1
    assert isinstance(reg.resolve(h1), CounterV1)
    assert reg.resolve(b"\x00" * 32) is None
    assert len(reg) == 2
