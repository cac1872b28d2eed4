"""
어댑터 레이어

외부 자원(DB, 알림)과의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import ILedgerStore, INotifier

__all__ = [
    "ILedgerStore",
    "INotifier",
]
