"""
Mock 어댑터

테스트용 구현체 제공.
Protocol 준수하여 실제 구현체와 교체 가능.
"""

from adapters.mock.ledger_store import FailureRule, InMemoryLedgerStore
from adapters.mock.notifier import MockNotifier, NotificationRecord

__all__ = [
    "InMemoryLedgerStore",
    "FailureRule",
    "MockNotifier",
    "NotificationRecord",
]
