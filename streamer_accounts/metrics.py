"""Prometheus instruments for account operations."""

from __future__ import annotations

from prometheus_client import Counter

from .domain.errors import Result

ACCOUNT_OPERATIONS = Counter(
    "streamer_account_operations",
    "Account operations handled, by outcome.",
    ["operation", "outcome"],
)


def record_outcome(operation: str, result: Result) -> None:
    outcome = "ok" if result.ok else result.error.kind.value
    ACCOUNT_OPERATIONS.labels(operation=operation, outcome=outcome).inc()
