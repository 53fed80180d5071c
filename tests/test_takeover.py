from __future__ import annotations

import pytest

from streamer_accounts.domain.account import AccountKind
from streamer_accounts.domain.errors import ErrorKind
from streamer_accounts.domain.takeover import TakeoverAction, TakeoverResolver

from .support import EPOCH, make_account


@pytest.fixture
def resolver(store, clock) -> TakeoverResolver:
    return TakeoverResolver(store, clock=clock)


def test_absent_username_is_created(resolver):
    draft = make_account("fresh")
    result = resolver.resolve_takeover("fresh", draft)
    assert result.ok
    assert result.value.action is TakeoverAction.create
    assert result.value.existing is None


def test_stale_temporary_account_is_reclaimable_without_proof(store, clock, resolver):
    original = make_account("guest42", AccountKind.temporary, created_at=EPOCH)
    store.put(original)
    clock.advance(hours=24, seconds=1)

    result = resolver.resolve_takeover("guest42", make_account("guest42"))
    assert result.ok
    assert result.value.action is TakeoverAction.overwrite
    assert result.value.existing == original


def test_recent_temporary_account_is_not_reclaimable_without_proof(store, clock, resolver):
    store.put(make_account("guest42", AccountKind.temporary, created_at=EPOCH))
    clock.advance(hours=23, minutes=59, seconds=59)

    result = resolver.resolve_takeover("guest42", make_account("guest42"))
    assert not result.ok
    assert result.error.kind is ErrorKind.duplicate


def test_control_proof_reclaims_recent_temporary_account(store, resolver):
    original = make_account("guest42", AccountKind.temporary, secret="old-control")
    store.put(original)

    result = resolver.resolve_takeover("guest42", make_account("guest42"), control_proof="old-control")
    assert result.value.action is TakeoverAction.overwrite


def test_wrong_control_proof_does_not_reclaim(store, resolver):
    store.put(make_account("guest42", AccountKind.temporary, secret="old-control"))

    result = resolver.resolve_takeover("guest42", make_account("guest42"), control_proof="guess")
    assert result.error.kind is ErrorKind.duplicate


@pytest.mark.parametrize("kind", [AccountKind.permanent, AccountKind.anonymous])
def test_non_temporary_accounts_are_never_overwritten(store, clock, resolver, kind):
    store.put(make_account("owned", kind, secret="known"))
    clock.advance(days=30)

    result = resolver.resolve_takeover("owned", make_account("owned"), control_proof="known")
    assert result.error.kind is ErrorKind.duplicate
    assert store.writes == 1


def test_store_fault_surfaces_as_database_error(store, resolver):
    store.fail("get", "anyone")
    result = resolver.resolve_takeover("anyone", make_account("anyone"))
    assert result.error.kind is ErrorKind.database
