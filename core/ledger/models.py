"""
Ledger 도메인 레코드

Business, Product, Transaction, TransactionLine.
모든 금액은 Decimal, DB에는 문자열로 저장.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from core.types import StockStatus, TransactionKind, TransactionStatus


def _parse_ts(value: Any) -> datetime | None:
    """ISO 문자열 → datetime (None/빈 값은 None)"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def ensure_utc(value: datetime) -> datetime:
    """naive datetime은 UTC로 간주"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


@dataclass
class Business:
    """사업장

    Attributes:
        id: 사업장 ID
        user_id: 소유 사용자 ID
        name: 사업장 이름
        balance: 현재 잔고 (음수 가능)
    """

    id: int
    user_id: int
    name: str
    balance: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Business":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            balance=Decimal(str(row["balance"])),
            created_at=_parse_ts(row.get("created_at")),
            updated_at=_parse_ts(row.get("updated_at")),
            deleted_at=_parse_ts(row.get("deleted_at")),
        )


@dataclass
class Product:
    """상품

    Attributes:
        id: 상품 ID
        business_id: 소유 사업장 ID
        name: 상품명
        stock: 재고 수량 (음수 불가)
        status: 재고 상태 (stock에서 파생)
        purchase_price: 기본 매입가 (참고용, 거래 금액 계산에 사용하지 않음)
        selling_price: 기본 판매가 (참고용)
    """

    id: int
    business_id: int
    name: str
    stock: int
    status: StockStatus
    purchase_price: Decimal | None = None
    selling_price: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Product":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            business_id=row["business_id"],
            name=row["name"],
            stock=int(row["stock"]),
            status=StockStatus(row["status"]),
            purchase_price=_parse_decimal(row.get("purchase_price")),
            selling_price=_parse_decimal(row.get("selling_price")),
            created_at=_parse_ts(row.get("created_at")),
            updated_at=_parse_ts(row.get("updated_at")),
            deleted_at=_parse_ts(row.get("deleted_at")),
        )


@dataclass
class TransactionLine:
    """거래 라인 (상품별 수량/단가)

    unit_price는 거래 시점 가격으로 고정되며 이후 상품 가격 변경과 무관
    """

    id: int
    transaction_id: int
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TransactionLine":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            transaction_id=row["transaction_id"],
            product_id=row["product_id"],
            quantity=int(row["quantity"]),
            unit_price=Decimal(str(row["unit_price"])),
        )


@dataclass
class Transaction:
    """거래 헤더

    lines는 get_transaction_with_lines / record_sale 등에서만 채워짐
    """

    id: int
    business_id: int
    kind: TransactionKind
    amount: Decimal
    status: TransactionStatus
    category: str | None = None
    description: str | None = None
    transaction_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    lines: list[TransactionLine] = field(default_factory=list)

    @property
    def is_product_linked(self) -> bool:
        """상품 연동 거래 여부 (판매/구매)"""
        return bool(self.lines)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Transaction":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            business_id=row["business_id"],
            kind=TransactionKind(row["kind"]),
            amount=Decimal(str(row["amount"])),
            status=TransactionStatus(row["status"]),
            category=row.get("category"),
            description=row.get("description"),
            transaction_date=_parse_ts(row.get("transaction_date")),
            created_at=_parse_ts(row.get("created_at")),
            updated_at=_parse_ts(row.get("updated_at")),
            deleted_at=_parse_ts(row.get("deleted_at")),
        )


@dataclass(frozen=True)
class TransactionHeader:
    """신규 거래 헤더 (create_transaction 입력)"""

    business_id: int
    kind: TransactionKind
    amount: Decimal
    status: TransactionStatus
    category: str | None = None
    description: str | None = None
    transaction_date: datetime | None = None
