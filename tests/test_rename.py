from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from streamer_accounts.domain.account import AccountKind
from streamer_accounts.domain.contracts import AccountChanges
from streamer_accounts.domain.errors import ErrorKind
from streamer_accounts.domain.rename import RenameOrchestrator
from streamer_accounts.domain.takeover import TakeoverResolver

from .support import make_account


@pytest.fixture
def renamer(store, clock) -> RenameOrchestrator:
    return RenameOrchestrator(store, TakeoverResolver(store, clock=clock))


@pytest.fixture
def original(store):
    account = make_account("old-name", display_name="Before", linked="someone")
    store.put(account)
    return account


def test_rename_moves_record_to_new_key(store, renamer, original):
    result = renamer.rename("old-name", "new-name", AccountChanges())

    assert result.ok
    assert store.get("new-name") == replace(original, username="new-name")
    assert store.get("old-name") is None


def test_rename_applies_other_changes_to_new_record(store, renamer, original):
    changes = AccountChanges(display_name="After", new_username="new-name", secret="rotated")
    result = renamer.rename("old-name", "new-name", changes)

    moved = store.get("new-name")
    assert result.value == moved
    assert moved.display_name == "After"
    assert moved.secret == "rotated"
    assert moved.created_at == original.created_at


def test_rename_onto_existing_account_is_a_duplicate(store, renamer, original):
    store.put(make_account("new-name"))
    writes_before = store.writes

    result = renamer.rename("old-name", "new-name", AccountChanges())
    assert result.error.kind is ErrorKind.duplicate
    assert store.writes == writes_before
    assert store.get("old-name") == original


def test_rename_reclaims_stale_temporary_target(store, clock, renamer, original):
    store.put(make_account("new-name", AccountKind.temporary, created_at=clock.now - timedelta(days=3)))

    result = renamer.rename("old-name", "new-name", AccountChanges())
    assert result.ok
    assert store.get("new-name").kind is AccountKind.permanent


def test_failed_create_step_leaves_original_untouched(store, renamer, original):
    store.fail("put", "new-name")

    result = renamer.rename("old-name", "new-name", AccountChanges(display_name="After"))
    assert result.error.kind is ErrorKind.database
    assert store.get("old-name") == original
    assert store.get("new-name") is None


def test_failed_delete_step_leaves_both_copies(store, renamer, original, caplog):
    store.fail("delete", "old-name")

    result = renamer.rename("old-name", "new-name", AccountChanges())
    assert result.error.kind is ErrorKind.database
    assert store.get("old-name") == original
    assert store.get("new-name") == replace(original, username="new-name")
    assert "reconciliation required" in caplog.text


def test_unreadable_source_is_a_database_error(store, renamer):
    result = renamer.rename("missing", "new-name", AccountChanges())
    assert result.error.kind is ErrorKind.database
    assert store.get("new-name") is None


@pytest.mark.parametrize("new_username", [None, "old-name"])
def test_without_rename_fields_are_updated_in_place(store, renamer, original, new_username):
    result = renamer.rename("old-name", new_username, AccountChanges(display_name="After"))

    assert result.value == replace(original, display_name="After")
    assert store.get("old-name").created_at == original.created_at


def test_in_place_update_of_vanished_account_is_a_database_error(renamer):
    result = renamer.update_in_place("missing", AccountChanges(display_name="After"))
    assert result.error.kind is ErrorKind.database
