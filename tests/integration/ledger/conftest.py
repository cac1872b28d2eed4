"""
SQLite 통합 테스트 fixture

임시 파일 DB + Ledger 스키마 + 기본 사업장/상품
"""

from decimal import Decimal
from pathlib import Path

import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.models import Business, Product
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    """테스트용 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "test_ledger.db")
    await adapter.connect()
    await init_ledger_schema(adapter)
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def sqlite_store(db: SQLiteAdapter) -> LedgerStore:
    return LedgerStore(db)


@pytest_asyncio.fixture
async def sqlite_business(sqlite_store: LedgerStore) -> Business:
    """잔고 5,000,000 사업장"""
    return await sqlite_store.create_business(
        user_id=1, name="Coffee Roasters", balance=Decimal("5000000")
    )


@pytest_asyncio.fixture
async def sqlite_product(sqlite_store: LedgerStore, sqlite_business: Business) -> Product:
    """재고 12 상품"""
    return await sqlite_store.create_product(
        sqlite_business.id,
        name="House Blend 1kg",
        stock=12,
        purchase_price=Decimal("60000"),
        selling_price=Decimal("75000"),
    )
