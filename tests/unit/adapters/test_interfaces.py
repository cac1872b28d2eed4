"""
어댑터 인터페이스 테스트

구현체가 Protocol을 준수하는지 확인.
"""

from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import ILedgerStore, INotifier
from adapters.mock.ledger_store import InMemoryLedgerStore
from adapters.mock.notifier import MockNotifier
from adapters.slack.notifier import SlackNotifier
from core.ledger.store import LedgerStore


class TestILedgerStore:
    """ILedgerStore Protocol 테스트"""

    def test_in_memory_store_implements_protocol(self) -> None:
        assert isinstance(InMemoryLedgerStore(), ILedgerStore)

    def test_sqlite_store_implements_protocol(self, tmp_path: Path) -> None:
        store = LedgerStore(SQLiteAdapter(tmp_path / "test.db"))

        assert isinstance(store, ILedgerStore)

    def test_protocol_has_required_methods(self) -> None:
        required = [
            "get_business",
            "set_business_balance",
            "compare_and_set_balance",
            "get_product",
            "list_products",
            "set_product_stock",
            "compare_and_set_stock",
            "update_product_status",
            "create_transaction",
            "create_transaction_lines",
            "delete_transaction",
            "soft_delete_transaction",
            "get_transaction_with_lines",
            "update_transaction_fields",
            "get_totals_by_kind",
            "count_products",
            "count_transactions",
            "count_low_stock",
        ]
        for method in required:
            assert hasattr(ILedgerStore, method), method


class TestINotifier:
    """INotifier Protocol 테스트"""

    def test_mock_notifier_implements_protocol(self) -> None:
        assert isinstance(MockNotifier(), INotifier)

    def test_slack_notifier_implements_protocol(self) -> None:
        assert isinstance(SlackNotifier(webhook_url="https://hooks.slack.com/test"), INotifier)
