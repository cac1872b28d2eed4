"""
재고 상태 일괄 재동기화

저장된 status가 stock과 맞지 않는 상품만 수정.
(DB를 직접 수정했거나 임계값을 바꾼 뒤 실행)

사용법:
    python -m scripts.resync_stock_status --business-id 1
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import load_settings
from core.ledger.stock_status import StockStatusResolver
from core.ledger.store import LedgerStore
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def main(db_path: Path, business_id: int) -> int:
    async with SQLiteAdapter(db_path) as db:
        store = LedgerStore(db)
        # 사업장 존재 확인 (없으면 NotFoundError)
        await store.get_business(business_id)

        corrected = await StockStatusResolver(store).batch_resync(business_id)

    logger.info(f"재동기화 완료: business {business_id}, 수정 {corrected}건")
    return corrected


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="재고 상태 일괄 재동기화")
    parser.add_argument("--business-id", type=int, required=True, help="사업장 ID")
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml 경로")
    args = parser.parse_args()

    settings = load_settings(args.config)
    setup_logging("scripts", settings.logging.console_level, settings.logging.file_level)

    asyncio.run(main(settings.db_path, args.business_id))
