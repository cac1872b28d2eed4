"""
Ledger 저장소 (SQLite)

ILedgerStore 구현체.
쓰기는 모두 레코드 1건 단위로 즉시 커밋 (다중 레코드 트랜잭션 없음).

오류 변환:
- 행 없음 / soft delete된 행 → NotFoundError
- aiosqlite.Error (CHECK 위반 포함) → WriteFailureError
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiosqlite

from core.ledger.errors import InvalidStateError, NotFoundError, WriteFailureError
from core.ledger.models import (
    Business,
    Product,
    Transaction,
    TransactionHeader,
    TransactionLine,
    ensure_utc,
)
from core.ledger.stock_status import resolve_stock_status
from core.types import StockStatus, TransactionKind, TransactionStatus

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from core.ledger.requests import LineItem

logger = logging.getLogger(__name__)


# update_transaction_fields 허용 필드
UPDATABLE_TRANSACTION_FIELDS: frozenset[str] = frozenset(
    {"amount", "category", "description", "status", "transaction_date"}
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_db_value(value: Any) -> Any:
    """Decimal/Enum/datetime → SQLite 저장 값"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (StockStatus, TransactionKind, TransactionStatus)):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    return value


class LedgerStore:
    """Ledger 저장소

    Args:
        db: SQLite 어댑터 (연결된 상태)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)
        store = LedgerStore(db)
        business = await store.create_business(user_id=1, name="Coffee", balance=Decimal("0"))
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def _write(
        self,
        entity: str,
        entity_id: Any,
        sql: str,
        parameters: tuple[Any, ...],
    ) -> aiosqlite.Cursor:
        """쓰기 1건 실행 (드라이버 오류 → WriteFailureError)"""
        try:
            return await self.db.write(sql, parameters)
        except aiosqlite.Error as e:
            logger.error(
                f"Ledger write failed: {entity} {entity_id}: {e}",
                extra={"entity": entity, "entity_id": entity_id},
            )
            raise WriteFailureError(entity, entity_id, str(e)) from e

    # =========================================================================
    # Business
    # =========================================================================

    async def create_business(
        self,
        user_id: int,
        name: str,
        balance: Decimal = Decimal("0"),
    ) -> Business:
        """사업장 생성 (초기 데이터/스크립트용)"""
        now = _now()
        cursor = await self._write(
            "business",
            name,
            """
            INSERT INTO business (user_id, name, balance, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, name, str(balance), now, now),
        )
        return await self.get_business(cursor.lastrowid)

    async def get_business(self, business_id: int) -> Business:
        row = await self.db.fetchone_dict(
            "SELECT * FROM business WHERE id = ? AND deleted_at IS NULL",
            (business_id,),
        )
        if row is None:
            raise NotFoundError("business", business_id)
        return Business.from_row(row)

    async def set_business_balance(self, business_id: int, new_balance: Decimal) -> Business:
        cursor = await self._write(
            "business",
            business_id,
            """
            UPDATE business SET balance = ?, updated_at = ?
            WHERE id = ? AND deleted_at IS NULL
            """,
            (str(new_balance), _now(), business_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("business", business_id)
        return await self.get_business(business_id)

    async def compare_and_set_balance(
        self,
        business_id: int,
        expected: Decimal,
        new_balance: Decimal,
    ) -> bool:
        # Decimal → str 왕복은 원래 문자열을 그대로 재현하므로 TEXT 비교로 충분
        cursor = await self._write(
            "business",
            business_id,
            """
            UPDATE business SET balance = ?, updated_at = ?
            WHERE id = ? AND balance = ? AND deleted_at IS NULL
            """,
            (str(new_balance), _now(), business_id, str(expected)),
        )
        if cursor.rowcount == 0:
            # 경합인지 사업장이 없는 것인지 구분
            await self.get_business(business_id)
            return False
        return True

    # =========================================================================
    # Product
    # =========================================================================

    async def create_product(
        self,
        business_id: int,
        name: str,
        stock: int = 0,
        purchase_price: Decimal | None = None,
        selling_price: Decimal | None = None,
    ) -> Product:
        """상품 생성 (status는 stock에서 계산)"""
        if stock < 0:
            raise WriteFailureError("product", name, f"negative stock {stock}")

        now = _now()
        cursor = await self._write(
            "product",
            name,
            """
            INSERT INTO product (
                business_id, name, stock, status,
                purchase_price, selling_price, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                business_id,
                name,
                stock,
                resolve_stock_status(stock).value,
                _to_db_value(purchase_price),
                _to_db_value(selling_price),
                now,
                now,
            ),
        )
        return await self.get_product(cursor.lastrowid)

    async def get_product(self, product_id: int) -> Product:
        row = await self.db.fetchone_dict(
            "SELECT * FROM product WHERE id = ? AND deleted_at IS NULL",
            (product_id,),
        )
        if row is None:
            raise NotFoundError("product", product_id)
        return Product.from_row(row)

    async def list_products(self, business_id: int) -> list[Product]:
        rows = await self.db.fetchall_dict(
            """
            SELECT * FROM product
            WHERE business_id = ? AND deleted_at IS NULL
            ORDER BY id
            """,
            (business_id,),
        )
        return [Product.from_row(row) for row in rows]

    async def set_product_stock(self, product_id: int, new_stock: int) -> Product:
        if new_stock < 0:
            raise WriteFailureError("product", product_id, f"negative stock {new_stock}")

        cursor = await self._write(
            "product",
            product_id,
            """
            UPDATE product SET stock = ?, status = ?, updated_at = ?
            WHERE id = ? AND deleted_at IS NULL
            """,
            (new_stock, resolve_stock_status(new_stock).value, _now(), product_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("product", product_id)
        return await self.get_product(product_id)

    async def compare_and_set_stock(
        self,
        product_id: int,
        expected: int,
        new_stock: int,
    ) -> bool:
        if new_stock < 0:
            raise WriteFailureError("product", product_id, f"negative stock {new_stock}")

        cursor = await self._write(
            "product",
            product_id,
            """
            UPDATE product SET stock = ?, status = ?, updated_at = ?
            WHERE id = ? AND stock = ? AND deleted_at IS NULL
            """,
            (new_stock, resolve_stock_status(new_stock).value, _now(), product_id, expected),
        )
        if cursor.rowcount == 0:
            await self.get_product(product_id)
            return False
        return True

    async def update_product_status(self, product_id: int, status: StockStatus) -> Product:
        cursor = await self._write(
            "product",
            product_id,
            """
            UPDATE product SET status = ?, updated_at = ?
            WHERE id = ? AND deleted_at IS NULL
            """,
            (status.value, _now(), product_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("product", product_id)
        return await self.get_product(product_id)

    # =========================================================================
    # Transaction
    # =========================================================================

    async def create_transaction(self, header: TransactionHeader) -> Transaction:
        now = _now()
        transaction_date = header.transaction_date or datetime.now(timezone.utc)

        cursor = await self._write(
            "transaction",
            None,
            """
            INSERT INTO transactions (
                business_id, kind, category, amount, description, status,
                transaction_date, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                header.business_id,
                header.kind.value,
                header.category,
                str(header.amount),
                header.description,
                header.status.value,
                _to_db_value(transaction_date),
                now,
                now,
            ),
        )
        return await self._get_transaction(cursor.lastrowid)

    async def create_transaction_lines(
        self,
        transaction_id: int,
        lines: Sequence[LineItem],
    ) -> list[TransactionLine]:
        """라인 일괄 INSERT (한 번의 커밋)"""
        try:
            async with self.db.transaction():
                await self.db.executemany(
                    """
                    INSERT INTO transaction_line (
                        transaction_id, product_id, quantity, unit_price
                    ) VALUES (?, ?, ?, ?)
                    """,
                    [
                        (transaction_id, line.product_id, line.quantity, str(line.unit_price))
                        for line in lines
                    ],
                )
        except aiosqlite.Error as e:
            logger.error(
                f"Ledger write failed: transaction_line for transaction {transaction_id}: {e}"
            )
            raise WriteFailureError("transaction_line", transaction_id, str(e)) from e

        return await self._get_lines(transaction_id)

    async def delete_transaction(self, transaction_id: int) -> None:
        # transaction_line은 ON DELETE CASCADE
        await self._write(
            "transaction",
            transaction_id,
            "DELETE FROM transactions WHERE id = ?",
            (transaction_id,),
        )
        logger.debug(f"Transaction hard-deleted: {transaction_id}")

    async def soft_delete_transaction(self, transaction_id: int) -> None:
        now = _now()
        cursor = await self._write(
            "transaction",
            transaction_id,
            """
            UPDATE transactions SET deleted_at = ?, updated_at = ?
            WHERE id = ? AND deleted_at IS NULL
            """,
            (now, now, transaction_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("transaction", transaction_id)

    async def get_transaction_with_lines(self, transaction_id: int) -> Transaction:
        transaction = await self._get_transaction(transaction_id)
        transaction.lines = await self._get_lines(transaction_id)
        return transaction

    async def update_transaction_fields(
        self,
        transaction_id: int,
        fields: dict[str, Any],
    ) -> Transaction:
        unknown = set(fields) - UPDATABLE_TRANSACTION_FIELDS
        if unknown:
            raise InvalidStateError(
                f"Cannot update transaction fields: {', '.join(sorted(unknown))}",
                {"transaction_id": transaction_id},
            )
        if not fields:
            return await self.get_transaction_with_lines(transaction_id)

        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        parameters = tuple(_to_db_value(fields[column]) for column in columns)

        cursor = await self._write(
            "transaction",
            transaction_id,
            f"""
            UPDATE transactions SET {assignments}, updated_at = ?
            WHERE id = ? AND deleted_at IS NULL
            """,
            (*parameters, _now(), transaction_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("transaction", transaction_id)
        return await self._get_transaction(transaction_id)

    async def _get_transaction(self, transaction_id: int) -> Transaction:
        row = await self.db.fetchone_dict(
            "SELECT * FROM transactions WHERE id = ? AND deleted_at IS NULL",
            (transaction_id,),
        )
        if row is None:
            raise NotFoundError("transaction", transaction_id)
        return Transaction.from_row(row)

    async def _get_lines(self, transaction_id: int) -> list[TransactionLine]:
        rows = await self.db.fetchall_dict(
            "SELECT * FROM transaction_line WHERE transaction_id = ? ORDER BY id",
            (transaction_id,),
        )
        return [TransactionLine.from_row(row) for row in rows]

    # =========================================================================
    # 요약 조회
    # =========================================================================

    async def get_totals_by_kind(
        self,
        business_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[TransactionKind, Decimal]:
        """complete 거래 유형별 합계

        금액이 TEXT라 SQL SUM(float) 대신 Decimal로 합산.
        """
        rows = await self.db.fetchall_dict(
            """
            SELECT kind, amount, transaction_date FROM transactions
            WHERE business_id = ? AND status = ? AND deleted_at IS NULL
            """,
            (business_id, TransactionStatus.COMPLETE.value),
        )

        lower = ensure_utc(start) if start else None
        upper = ensure_utc(end) if end else None

        totals = {kind: Decimal("0") for kind in TransactionKind}
        for row in rows:
            occurred = ensure_utc(datetime.fromisoformat(row["transaction_date"]))
            if lower is not None and occurred < lower:
                continue
            if upper is not None and occurred > upper:
                continue
            totals[TransactionKind(row["kind"])] += Decimal(row["amount"])
        return totals

    async def count_products(self, business_id: int) -> int:
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM product WHERE business_id = ? AND deleted_at IS NULL",
            (business_id,),
        )
        return int(row[0]) if row else 0

    async def count_transactions(self, business_id: int) -> int:
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM transactions WHERE business_id = ? AND deleted_at IS NULL",
            (business_id,),
        )
        return int(row[0]) if row else 0

    async def count_low_stock(self, business_id: int, threshold: int) -> int:
        row = await self.db.fetchone(
            """
            SELECT COUNT(*) FROM product
            WHERE business_id = ? AND stock <= ? AND deleted_at IS NULL
            """,
            (business_id, threshold),
        )
        return int(row[0]) if row else 0
