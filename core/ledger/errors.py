"""
Ledger 오류 정의

모든 오류는 ErrorKind(닫힌 집합)와 구조화된 context를 가진다.
호출자는 메시지 문자열이 아니라 타입/kind로 분기할 것.

    LedgerError (base)
    +-- NotFoundError            사업장/상품/거래 없음
    +-- InsufficientStockError   판매 수량 > 가용 재고
    +-- WriteFailureError        저장소가 쓰기를 거부
    +-- InvalidStateError        현재 상태에서 허용되지 않는 요청
"""

from dataclasses import dataclass
from typing import Any

from core.types import ErrorKind


@dataclass(frozen=True)
class CompensationFailure:
    """보상(롤백) 단계 실패 기록

    Attributes:
        step: 실패한 보상 단계 이름
        error: 오류 메시지
    """

    step: str
    error: str


class LedgerError(Exception):
    """Ledger 오류 기본 클래스

    Args:
        kind: 오류 종류
        message: 사람이 읽을 메시지
        context: 구조화된 부가 정보
    """

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}
        # Saga 보상 중 실패한 단계 (없으면 빈 리스트)
        self.compensation_failures: list[CompensationFailure] = []

    @property
    def fully_compensated(self) -> bool:
        """모든 보상 단계가 성공했는지 여부"""
        return not self.compensation_failures

    def to_dict(self) -> dict[str, Any]:
        """호출자 응답용 직렬화"""
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "context": {k: str(v) for k, v in self.context.items()},
        }
        if self.compensation_failures:
            result["compensation_failures"] = [
                {"step": f.step, "error": f.error} for f in self.compensation_failures
            ]
        return result


class NotFoundError(LedgerError):
    """레코드 없음 (삭제된 레코드 포함)"""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} {entity_id} not found",
            {"entity": entity, "entity_id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(LedgerError):
    """재고 부족"""

    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(
        self,
        product_id: int,
        available: int,
        requested: int,
        product_name: str | None = None,
    ):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. "
            f"Available: {available}, Required: {requested}",
            {
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class WriteFailureError(LedgerError):
    """저장소 쓰기 실패"""

    kind = ErrorKind.WRITE_FAILURE

    def __init__(self, entity: str, entity_id: Any, reason: str):
        super().__init__(
            f"Failed to write {entity} {entity_id}: {reason}",
            {"entity": entity, "entity_id": entity_id, "reason": reason},
        )
        self.entity = entity
        self.entity_id = entity_id
        self.reason = reason


class InvalidStateError(LedgerError):
    """허용되지 않는 상태/요청"""

    kind = ErrorKind.INVALID_STATE
