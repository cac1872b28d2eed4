"""
core/ledger/requests.py 테스트
"""

from decimal import Decimal

import pytest

from core.ledger.errors import InvalidStateError
from core.ledger.requests import (
    GeneralTransactionRequest,
    LineItem,
    TransactionUpdate,
    parse_line_items,
    validate_model,
)
from core.types import TransactionKind, TransactionStatus


class TestLineItem:
    """라인 입력 검증"""

    def test_subtotal(self) -> None:
        line = LineItem(product_id=1, quantity=5, unit_price=Decimal("75000"))

        assert line.subtotal == Decimal("375000")

    def test_string_price_coerced(self) -> None:
        line = validate_model(LineItem, {"product_id": 1, "quantity": 2, "unit_price": "0.10"})

        assert line.unit_price == Decimal("0.10")

    @pytest.mark.parametrize(
        "data",
        [
            {"product_id": 1, "quantity": 0, "unit_price": "1"},
            {"product_id": 1, "quantity": -3, "unit_price": "1"},
            {"product_id": 1, "quantity": 1, "unit_price": "-1"},
            {"product_id": 0, "quantity": 1, "unit_price": "1"},
            {"quantity": 1, "unit_price": "1"},
        ],
    )
    def test_invalid(self, data: dict) -> None:
        with pytest.raises(InvalidStateError) as exc_info:
            validate_model(LineItem, data)

        assert exc_info.value.context["errors"]


class TestParseLineItems:
    """라인 목록 검증"""

    def test_mixed_input(self) -> None:
        items = parse_line_items(
            [
                LineItem(product_id=1, quantity=1, unit_price=Decimal("10")),
                {"product_id": 2, "quantity": 3, "unit_price": "5"},
            ]
        )

        assert [i.product_id for i in items] == [1, 2]

    def test_empty_rejected(self) -> None:
        with pytest.raises(InvalidStateError, match="At least one line item"):
            parse_line_items([])


class TestGeneralTransactionRequest:
    """일반 거래 요청"""

    def test_defaults(self) -> None:
        request = validate_model(
            GeneralTransactionRequest, {"kind": "Expense", "amount": "300000"}
        )

        assert request.kind == TransactionKind.EXPENSE
        assert request.status == TransactionStatus.COMPLETE
        assert request.category is None

    @pytest.mark.parametrize("amount", ["0", "-1"])
    def test_non_positive_amount(self, amount: str) -> None:
        with pytest.raises(InvalidStateError):
            validate_model(GeneralTransactionRequest, {"kind": "Income", "amount": amount})

    def test_unknown_kind(self) -> None:
        with pytest.raises(InvalidStateError):
            validate_model(GeneralTransactionRequest, {"kind": "Transfer", "amount": "1"})


class TestTransactionUpdate:
    """수정 요청"""

    def test_only_set_fields_dumped(self) -> None:
        update = validate_model(TransactionUpdate, {"amount": "250000"})

        assert update.model_dump(exclude_unset=True) == {"amount": Decimal("250000")}

    def test_model_instance_passthrough(self) -> None:
        update = TransactionUpdate(category="Rent")

        assert validate_model(TransactionUpdate, update) is update
