"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from core.types import StockStatus, TransactionKind

if TYPE_CHECKING:
    from core.ledger.models import (
        Business,
        Product,
        Transaction,
        TransactionHeader,
        TransactionLine,
    )
    from core.ledger.requests import LineItem


@runtime_checkable
class ILedgerStore(Protocol):
    """Ledger 데이터 접근 인터페이스

    모든 메서드는 레코드 1건 단위로만 원자적.
    여러 레코드를 묶는 트랜잭션 기능은 제공하지 않음.

    오류 규약:
    - 레코드 없음 (삭제된 레코드 포함): NotFoundError
    - 쓰기 거부: WriteFailureError
    """

    # -------------------------------------------------------------------------
    # Business
    # -------------------------------------------------------------------------

    async def get_business(self, business_id: int) -> "Business":
        """사업장 조회"""
        ...

    async def set_business_balance(self, business_id: int, new_balance: Decimal) -> "Business":
        """잔고 덮어쓰기 (read-modify-write용)"""
        ...

    async def compare_and_set_balance(
        self,
        business_id: int,
        expected: Decimal,
        new_balance: Decimal,
    ) -> bool:
        """현재 잔고가 expected일 때만 갱신

        Returns:
            갱신 여부 (False면 다른 쓰기와 경합)
        """
        ...

    # -------------------------------------------------------------------------
    # Product
    # -------------------------------------------------------------------------

    async def get_product(self, product_id: int) -> "Product":
        """상품 조회"""
        ...

    async def list_products(self, business_id: int) -> list["Product"]:
        """사업장의 삭제되지 않은 상품 목록"""
        ...

    async def set_product_stock(self, product_id: int, new_stock: int) -> "Product":
        """재고 덮어쓰기

        status는 같은 쓰기에서 resolve_stock_status(new_stock)로 함께 갱신.
        음수 재고는 WriteFailureError.
        """
        ...

    async def compare_and_set_stock(
        self,
        product_id: int,
        expected: int,
        new_stock: int,
    ) -> bool:
        """현재 재고가 expected일 때만 갱신 (status 함께 갱신)"""
        ...

    async def update_product_status(self, product_id: int, status: StockStatus) -> "Product":
        """status만 갱신 (일괄 재동기화용)"""
        ...

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    async def create_transaction(self, header: "TransactionHeader") -> "Transaction":
        """거래 헤더 생성"""
        ...

    async def create_transaction_lines(
        self,
        transaction_id: int,
        lines: Sequence["LineItem"],
    ) -> list["TransactionLine"]:
        """거래 라인 일괄 생성"""
        ...

    async def delete_transaction(self, transaction_id: int) -> None:
        """거래 hard delete (라인 포함)

        방금 만든 거래의 롤백에만 사용.
        """
        ...

    async def soft_delete_transaction(self, transaction_id: int) -> None:
        """거래 soft delete (deleted_at 설정)"""
        ...

    async def get_transaction_with_lines(self, transaction_id: int) -> "Transaction":
        """거래 + 라인 조회 (삭제된 거래는 NotFoundError)"""
        ...

    async def update_transaction_fields(
        self,
        transaction_id: int,
        fields: dict[str, Any],
    ) -> "Transaction":
        """거래 필드 부분 갱신

        허용 필드: amount, category, description, status, transaction_date
        """
        ...

    # -------------------------------------------------------------------------
    # 요약 조회
    # -------------------------------------------------------------------------

    async def get_totals_by_kind(
        self,
        business_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[TransactionKind, Decimal]:
        """complete 상태 거래의 유형별 합계"""
        ...

    async def count_products(self, business_id: int) -> int:
        ...

    async def count_transactions(self, business_id: int) -> int:
        ...

    async def count_low_stock(self, business_id: int, threshold: int) -> int:
        """stock <= threshold 인 상품 수"""
        ...


@runtime_checkable
class INotifier(Protocol):
    """알림 서비스 인터페이스

    보상(롤백) 실패 등 운영자가 확인해야 하는 상황을 외부로 전송.
    """

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송

        Args:
            message: 알림 메시지
            level: 알림 레벨 (INFO, WARNING, ERROR, CRITICAL)
            extra: 추가 데이터 (선택)

        Returns:
            전송 성공 여부
        """
        ...
