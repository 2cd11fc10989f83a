"""Service layer exports."""

from .credential_session import CredentialSession
from .document_locator import DocumentLocator
from .grouping import partition_by_network, resolve_groups
from .reconciliation import ReconciliationOrchestrator, RetryPolicy
from .sync_runner import SchedulingPolicy, SyncRunner

__all__ = [
    "CredentialSession",
    "DocumentLocator",
    "ReconciliationOrchestrator",
    "RetryPolicy",
    "SchedulingPolicy",
    "SyncRunner",
    "partition_by_network",
    "resolve_groups",
]
