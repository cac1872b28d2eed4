"""
요청 스키마 (Pydantic)

Ledger 오퍼레이션 입력 데이터 검증.
검증 실패는 InvalidStateError로 변환되어 다른 Ledger 오류와 같은 형태로 전달됨.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from core.ledger.errors import InvalidStateError
from core.types import TransactionKind, TransactionStatus


class LineItem(BaseModel):
    """거래 라인 입력 (판매/구매 공통)"""

    product_id: int = Field(..., gt=0, description="상품 ID")
    quantity: int = Field(..., gt=0, description="수량 (양의 정수)")
    unit_price: Decimal = Field(..., ge=0, description="거래 시점 단가")

    model_config = {"frozen": True}

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class GeneralTransactionRequest(BaseModel):
    """상품 없는 일반 거래 생성 요청"""

    kind: TransactionKind = Field(..., description="Income / Expense")
    amount: Decimal = Field(..., gt=0, description="금액 (양수)")
    category: str | None = Field(default=None, description="카테고리")
    description: str | None = Field(default=None, description="설명")
    status: TransactionStatus = Field(
        default=TransactionStatus.COMPLETE,
        description="complete일 때만 잔고에 반영",
    )


class TransactionUpdate(BaseModel):
    """일반 거래 수정 요청

    지정한 필드만 반영 (model_dump(exclude_unset=True))
    """

    amount: Decimal | None = Field(default=None, gt=0, description="새 금액")
    category: str | None = Field(default=None, description="카테고리")
    description: str | None = Field(default=None, description="설명")
    status: TransactionStatus | None = Field(default=None, description="상태 (부수효과 없음)")
    date: datetime | None = Field(default=None, description="거래 일자")


ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_model(model: type[ModelT], data: Any) -> ModelT:
    """Pydantic 검증 후 실패 시 InvalidStateError로 변환

    Args:
        model: 대상 모델 클래스
        data: 모델 인스턴스 또는 dict

    Raises:
        InvalidStateError: 검증 실패
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidStateError(
            f"Invalid {model.__name__}: {e.error_count()} validation error(s)",
            {"errors": e.errors(include_url=False)},
        ) from e


def parse_line_items(lines: Iterable[LineItem | dict[str, Any]]) -> list[LineItem]:
    """라인 목록 검증 (최소 1개)

    Raises:
        InvalidStateError: 라인이 없거나 검증 실패
    """
    items = [validate_model(LineItem, line) for line in lines]
    if not items:
        raise InvalidStateError("At least one line item is required")
    return items
