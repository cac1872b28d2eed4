"""
core/types.py 테스트

모든 Enum이 문자열 값으로 직렬화되는지 확인
"""

import pytest

from core.types import ErrorKind, RunMode, StockStatus, TransactionKind, TransactionStatus


class TestRunMode:
    """RunMode 테스트"""

    def test_values(self) -> None:
        assert RunMode.PRODUCTION.value == "production"
        assert RunMode.DEVELOPMENT.value == "development"

    def test_from_string(self) -> None:
        assert RunMode("development") == RunMode.DEVELOPMENT

    def test_invalid_value(self) -> None:
        with pytest.raises(ValueError):
            RunMode("testnet")


class TestStockStatus:
    """StockStatus 테스트"""

    def test_values(self) -> None:
        assert {s.value for s in StockStatus} == {"active", "low", "out", "inactive"}

    def test_is_str(self) -> None:
        """DB 저장 시 문자열 비교 가능"""
        assert StockStatus.LOW == "low"


class TestTransactionKind:
    """TransactionKind 테스트"""

    def test_values(self) -> None:
        """원래 저장 값과 동일 (대문자 시작)"""
        assert TransactionKind.INCOME.value == "Income"
        assert TransactionKind.EXPENSE.value == "Expense"

    def test_from_string(self) -> None:
        assert TransactionKind("Expense") == TransactionKind.EXPENSE


class TestTransactionStatus:
    """TransactionStatus 테스트"""

    def test_values(self) -> None:
        assert TransactionStatus.PENDING.value == "pending"
        assert TransactionStatus.COMPLETE.value == "complete"
        assert TransactionStatus.CANCEL.value == "cancel"


class TestErrorKind:
    """ErrorKind 테스트"""

    def test_closed_set(self) -> None:
        assert len(ErrorKind) == 4
