"""
Ledger 스키마 초기화

서비스/스크립트 시작 시 Ledger 테이블과 인덱스 생성.
CREATE IF NOT EXISTS 패턴으로 여러 번 호출해도 안전하게 동작.

금액(balance, amount, unit_price)은 Decimal 문자열(TEXT)로 저장.
stock은 CHECK 제약으로 음수 쓰기를 거부 → WriteFailure로 변환됨.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


LEDGER_TABLES: tuple[str, ...] = ("business", "product", "transactions", "transaction_line")


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스)

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # business 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS business (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id          INTEGER NOT NULL,
            name             TEXT NOT NULL,
            balance          TEXT NOT NULL DEFAULT '0',
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now')),
            deleted_at       TEXT
        )
    """)

    # product 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS product (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            business_id      INTEGER NOT NULL,
            name             TEXT NOT NULL,
            stock            INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
            status           TEXT NOT NULL DEFAULT 'out',
            purchase_price   TEXT,
            selling_price    TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now')),
            deleted_at       TEXT,
            FOREIGN KEY (business_id) REFERENCES business(id)
        )
    """)

    # transactions 테이블 (transaction은 SQLite 예약어)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            business_id      INTEGER NOT NULL,
            kind             TEXT NOT NULL,
            category         TEXT,
            amount           TEXT NOT NULL,
            description      TEXT,
            status           TEXT NOT NULL DEFAULT 'complete',
            transaction_date TEXT NOT NULL,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now')),
            deleted_at       TEXT,
            FOREIGN KEY (business_id) REFERENCES business(id)
        )
    """)

    # transaction_line 테이블 (헤더 hard delete 시 함께 삭제)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transaction_line (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            transaction_id   INTEGER NOT NULL,
            product_id       INTEGER NOT NULL,
            quantity         INTEGER NOT NULL CHECK (quantity > 0),
            unit_price       TEXT NOT NULL,
            FOREIGN KEY (transaction_id) REFERENCES transactions(id) ON DELETE CASCADE,
            FOREIGN KEY (product_id) REFERENCES product(id)
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """조회용 인덱스 생성"""
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_product_business
        ON product(business_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_business_date
        ON transactions(business_id, transaction_date)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transaction_line_transaction
        ON transaction_line(transaction_id)
    """)
