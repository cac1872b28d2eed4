"""LedgerStore 통합 테스트 (SQLite)"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.errors import InvalidStateError, NotFoundError, WriteFailureError
from core.ledger.models import Business, Product, TransactionHeader
from core.ledger.requests import LineItem
from core.ledger.schema import LEDGER_TABLES, init_ledger_schema
from core.ledger.store import LedgerStore
from core.types import StockStatus, TransactionKind, TransactionStatus


def income(business: Business, amount: str = "100", **kwargs) -> TransactionHeader:
    return TransactionHeader(
        business_id=business.id,
        kind=TransactionKind.INCOME,
        amount=Decimal(amount),
        status=kwargs.pop("status", TransactionStatus.COMPLETE),
        **kwargs,
    )


class TestSchema:
    """스키마 초기화"""

    @pytest.mark.asyncio
    async def test_tables_created(self, db: SQLiteAdapter) -> None:
        for table in LEDGER_TABLES:
            assert await db.table_exists(table)

    @pytest.mark.asyncio
    async def test_idempotent(self, db: SQLiteAdapter) -> None:
        await init_ledger_schema(db)
        await init_ledger_schema(db)


class TestBusiness:
    """사업장 잔고"""

    @pytest.mark.asyncio
    async def test_decimal_round_trip(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        await sqlite_store.set_business_balance(sqlite_business.id, Decimal("1234.5600"))

        business = await sqlite_store.get_business(sqlite_business.id)
        assert business.balance == Decimal("1234.5600")
        assert str(business.balance) == "1234.5600"

    @pytest.mark.asyncio
    async def test_compare_and_set(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        assert not await sqlite_store.compare_and_set_balance(
            sqlite_business.id, Decimal("1"), Decimal("2")
        )
        assert await sqlite_store.compare_and_set_balance(
            sqlite_business.id, Decimal("5000000"), Decimal("5000100")
        )
        assert (await sqlite_store.get_business(sqlite_business.id)).balance == Decimal("5000100")

    @pytest.mark.asyncio
    async def test_missing(self, sqlite_store: LedgerStore) -> None:
        with pytest.raises(NotFoundError):
            await sqlite_store.get_business(999)
        with pytest.raises(NotFoundError):
            await sqlite_store.set_business_balance(999, Decimal("1"))


class TestProduct:
    """상품 재고"""

    @pytest.mark.asyncio
    async def test_create_derives_status(
        self,
        sqlite_store: LedgerStore,
        sqlite_product: Product,
    ) -> None:
        assert sqlite_product.status == StockStatus.ACTIVE
        assert sqlite_product.selling_price == Decimal("75000")

    @pytest.mark.asyncio
    async def test_set_stock_derives_status(
        self,
        sqlite_store: LedgerStore,
        sqlite_product: Product,
    ) -> None:
        updated = await sqlite_store.set_product_stock(sqlite_product.id, 7)

        assert (updated.stock, updated.status) == (7, StockStatus.LOW)

    @pytest.mark.asyncio
    async def test_negative_stock_rejected(
        self,
        sqlite_store: LedgerStore,
        sqlite_product: Product,
    ) -> None:
        with pytest.raises(WriteFailureError):
            await sqlite_store.set_product_stock(sqlite_product.id, -1)

    @pytest.mark.asyncio
    async def test_check_constraint_maps_to_write_failure(
        self,
        db: SQLiteAdapter,
        sqlite_store: LedgerStore,
        sqlite_product: Product,
    ) -> None:
        """DB CHECK 제약 위반도 WriteFailureError로 변환"""
        with pytest.raises(WriteFailureError):
            await sqlite_store._write(
                "product",
                sqlite_product.id,
                "UPDATE product SET stock = -5 WHERE id = ?",
                (sqlite_product.id,),
            )
        assert (await sqlite_store.get_product(sqlite_product.id)).stock == 12

    @pytest.mark.asyncio
    async def test_compare_and_set_stock(
        self,
        sqlite_store: LedgerStore,
        sqlite_product: Product,
    ) -> None:
        assert not await sqlite_store.compare_and_set_stock(sqlite_product.id, 3, 0)
        assert await sqlite_store.compare_and_set_stock(sqlite_product.id, 12, 0)

        updated = await sqlite_store.get_product(sqlite_product.id)
        assert (updated.stock, updated.status) == (0, StockStatus.OUT)

    @pytest.mark.asyncio
    async def test_compare_and_set_missing_product(self, sqlite_store: LedgerStore) -> None:
        with pytest.raises(NotFoundError):
            await sqlite_store.compare_and_set_stock(404, 1, 0)

    @pytest.mark.asyncio
    async def test_list_and_update_status(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
        sqlite_product: Product,
    ) -> None:
        await sqlite_store.update_product_status(sqlite_product.id, StockStatus.INACTIVE)

        products = await sqlite_store.list_products(sqlite_business.id)

        assert [p.status for p in products] == [StockStatus.INACTIVE]


class TestTransaction:
    """거래 헤더/라인"""

    @pytest.mark.asyncio
    async def test_create_with_lines(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
        sqlite_product: Product,
    ) -> None:
        tx = await sqlite_store.create_transaction(income(sqlite_business, "150000"))
        lines = await sqlite_store.create_transaction_lines(
            tx.id,
            [LineItem(product_id=sqlite_product.id, quantity=2, unit_price=Decimal("75000"))],
        )

        loaded = await sqlite_store.get_transaction_with_lines(tx.id)

        assert loaded.amount == Decimal("150000")
        assert loaded.kind == TransactionKind.INCOME
        assert loaded.transaction_date is not None
        assert loaded.lines == lines
        assert loaded.is_product_linked

    @pytest.mark.asyncio
    async def test_line_with_unknown_product(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        tx = await sqlite_store.create_transaction(income(sqlite_business))

        with pytest.raises(WriteFailureError):
            await sqlite_store.create_transaction_lines(
                tx.id, [LineItem(product_id=404, quantity=1, unit_price=Decimal("1"))]
            )
        assert (await sqlite_store.get_transaction_with_lines(tx.id)).lines == []

    @pytest.mark.asyncio
    async def test_hard_delete_cascades(
        self,
        db: SQLiteAdapter,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
        sqlite_product: Product,
    ) -> None:
        tx = await sqlite_store.create_transaction(income(sqlite_business))
        await sqlite_store.create_transaction_lines(
            tx.id, [LineItem(product_id=sqlite_product.id, quantity=1, unit_price=Decimal("100"))]
        )

        await sqlite_store.delete_transaction(tx.id)

        assert await db.fetchall("SELECT * FROM transaction_line") == []
        assert await db.fetchall("SELECT * FROM transactions") == []

    @pytest.mark.asyncio
    async def test_soft_delete(
        self,
        db: SQLiteAdapter,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        tx = await sqlite_store.create_transaction(income(sqlite_business))

        await sqlite_store.soft_delete_transaction(tx.id)

        with pytest.raises(NotFoundError):
            await sqlite_store.get_transaction_with_lines(tx.id)
        with pytest.raises(NotFoundError):
            await sqlite_store.soft_delete_transaction(tx.id)
        # 행은 남아 있음
        assert len(await db.fetchall("SELECT * FROM transactions")) == 1

    @pytest.mark.asyncio
    async def test_update_fields(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        tx = await sqlite_store.create_transaction(income(sqlite_business))
        new_date = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

        updated = await sqlite_store.update_transaction_fields(
            tx.id,
            {
                "amount": Decimal("250.75"),
                "status": TransactionStatus.CANCEL,
                "category": "Catering",
                "transaction_date": new_date,
            },
        )

        assert updated.amount == Decimal("250.75")
        assert updated.status == TransactionStatus.CANCEL
        assert updated.category == "Catering"
        assert updated.transaction_date == new_date

    @pytest.mark.asyncio
    async def test_update_unknown_field(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        tx = await sqlite_store.create_transaction(income(sqlite_business))

        with pytest.raises(InvalidStateError):
            await sqlite_store.update_transaction_fields(tx.id, {"business_id": 2})


class TestSummaryQueries:
    """요약 조회"""

    @pytest.mark.asyncio
    async def test_totals_by_kind(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
    ) -> None:
        await sqlite_store.create_transaction(income(sqlite_business, "0.10"))
        await sqlite_store.create_transaction(income(sqlite_business, "0.20"))
        await sqlite_store.create_transaction(
            income(sqlite_business, "5", status=TransactionStatus.PENDING)
        )
        await sqlite_store.create_transaction(
            TransactionHeader(
                business_id=sqlite_business.id,
                kind=TransactionKind.EXPENSE,
                amount=Decimal("0.05"),
                status=TransactionStatus.COMPLETE,
                transaction_date=datetime(2025, 12, 31, tzinfo=timezone.utc),
            )
        )

        totals = await sqlite_store.get_totals_by_kind(sqlite_business.id)
        this_year = await sqlite_store.get_totals_by_kind(
            sqlite_business.id, start=datetime(2026, 1, 1)
        )

        # float 합산 오차 없이 Decimal로 정확히 합산
        assert totals[TransactionKind.INCOME] == Decimal("0.30")
        assert totals[TransactionKind.EXPENSE] == Decimal("0.05")
        assert this_year[TransactionKind.EXPENSE] == Decimal("0")

    @pytest.mark.asyncio
    async def test_counts(
        self,
        sqlite_store: LedgerStore,
        sqlite_business: Business,
        sqlite_product: Product,
    ) -> None:
        await sqlite_store.create_product(sqlite_business.id, name="Filter", stock=3)
        deleted = await sqlite_store.create_transaction(income(sqlite_business))
        await sqlite_store.create_transaction(income(sqlite_business))
        await sqlite_store.soft_delete_transaction(deleted.id)

        assert await sqlite_store.count_products(sqlite_business.id) == 2
        assert await sqlite_store.count_transactions(sqlite_business.id) == 1
        assert await sqlite_store.count_low_stock(sqlite_business.id, 10) == 1
