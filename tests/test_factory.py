from __future__ import annotations

from datetime import timedelta

import pytest

from streamer_accounts.domain.account import AccountKind
from streamer_accounts.domain.errors import ErrorKind
from streamer_accounts.domain.factory import AccountFactory
from streamer_accounts.domain.linkage import LinkageResolver
from streamer_accounts.domain.takeover import TakeoverResolver

from .support import make_account


def _factory(store, clock, names=None, attempts=3) -> AccountFactory:
    kwargs = {}
    if names is not None:
        kwargs["username_factory"] = iter(names).__next__
    return AccountFactory(
        store,
        TakeoverResolver(store, clock=clock),
        LinkageResolver(store),
        clock=clock,
        anonymous_attempts=attempts,
        **kwargs,
    )


def test_anonymous_account_gets_generated_identity(store, clock):
    factory = _factory(store, clock)
    result = factory.create_anonymous("Guest")

    account = result.value
    assert account.kind is AccountKind.anonymous
    assert account.display_name == "Guest"
    assert account.username and account.secret
    assert account.username != account.secret
    assert account.created_at == clock.now
    assert factory.exists(account.username).value is True


def test_existence_check_is_idempotent(store, clock):
    factory = _factory(store, clock)
    store.put(make_account("present"))

    assert factory.exists("present").value == factory.exists("present").value is True
    assert factory.exists("absent").value == factory.exists("absent").value is False


def test_generated_username_collision_is_regenerated(store, clock):
    store.put(make_account("taken"))
    factory = _factory(store, clock, names=["taken", "free"])

    result = factory.create_anonymous("Guest")
    assert result.value.username == "free"
    assert store.get("taken").kind is AccountKind.permanent


def test_exhausted_username_generation_is_a_duplicate(store, clock):
    store.put(make_account("taken"))
    factory = _factory(store, clock, names=["taken", "taken"], attempts=2)
    writes_before = store.writes

    result = factory.create_anonymous("Guest")
    assert result.error.kind is ErrorKind.duplicate
    assert store.writes == writes_before


def test_every_account_gets_a_fresh_secret(store, clock):
    factory = _factory(store, clock)
    first = factory.create_permanent("one", "One").value
    second = factory.create_temporary("two", "Two").value
    assert first.secret != second.secret
    assert second.kind is AccountKind.temporary


def test_named_creation_rejects_existing_permanent_account(store, clock):
    factory = _factory(store, clock)
    store.put(make_account("alice"))
    writes_before = store.writes

    result = factory.create_permanent("alice", "Impostor")
    assert result.error.kind is ErrorKind.duplicate
    assert store.writes == writes_before
    assert store.get("alice").display_name == "Someone"


def test_named_creation_overwrites_reclaimable_temporary_account(store, clock):
    factory = _factory(store, clock)
    original = make_account("guest", AccountKind.temporary, created_at=clock.now - timedelta(days=2))
    store.put(original)

    result = factory.create_permanent("guest", "Promoted")
    assert result.ok
    stored = store.get("guest")
    assert stored.kind is AccountKind.permanent
    assert stored.secret != original.secret
    assert stored.created_at == clock.now


@pytest.mark.parametrize("failing", ["get", "put"])
def test_store_faults_become_database_errors(store, clock, failing):
    store.fail(failing)
    result = _factory(store, clock).create_anonymous("Guest")
    assert result.error.kind is ErrorKind.database
