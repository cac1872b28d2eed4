"""
Ledger 스키마 초기화

사용법:
    python -m scripts.init_db
    python -m scripts.init_db --config config/settings.yaml
    python -m scripts.init_db --db data/custom.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import load_settings
from core.ledger.schema import LEDGER_TABLES, init_ledger_schema
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def verify_schema(db: SQLiteAdapter) -> bool:
    """필수 테이블 존재 확인"""
    for table in LEDGER_TABLES:
        if not await db.table_exists(table):
            logger.error(f"테이블 누락: {table}")
            return False
        logger.info(f"테이블 확인: {table} ✓")
    return True


async def main(db_path: Path) -> None:
    logger.info(f"스키마 초기화 시작: {db_path}")

    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)

        if not await verify_schema(db):
            raise RuntimeError("스키마 검증 실패")

    logger.info("스키마 초기화 완료 ✓")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger 스키마 초기화")
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml 경로")
    parser.add_argument("--db", type=Path, default=None, help="DB 경로 (설정값 대신 사용)")
    args = parser.parse_args()

    settings = load_settings(args.config)
    setup_logging("scripts", settings.logging.console_level, settings.logging.file_level)

    asyncio.run(main(args.db or settings.db_path))
