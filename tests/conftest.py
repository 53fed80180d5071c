from __future__ import annotations

import pytest

from streamer_accounts.domain.service import AccountService

from .support import FakeClock, FlakyStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def service(store: FlakyStore, clock: FakeClock) -> AccountService:
    return AccountService(store, clock=clock)
