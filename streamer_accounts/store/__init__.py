"""Single-key account store adapters."""

from .base import AccountStore, ConsistencyMode, StoreConfig, StoreUnavailableError
from .memory import InMemoryAccountStore

__all__ = [
    "AccountStore",
    "ConsistencyMode",
    "InMemoryAccountStore",
    "StoreConfig",
    "StoreUnavailableError",
]
