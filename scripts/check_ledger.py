#!/usr/bin/env python3
"""
사업장 장부 상태 확인

사용법:
    python -m scripts.check_ledger --business-id 1
    python -m scripts.check_ledger --business-id 1 --start 2026-01-01 --end 2026-01-31
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import load_settings
from core.ledger.errors import LedgerError
from core.ledger.store import LedgerStore
from core.ledger.summary import BusinessSummaryService


async def main(
    db_path: Path,
    business_id: int,
    start: datetime | None,
    end: datetime | None,
) -> None:
    async with SQLiteAdapter(db_path, readonly=True) as db:
        service = BusinessSummaryService(LedgerStore(db))
        summary = await service.get_balance_summary(business_id, start, end)
        overview = await service.get_overview(business_id)

    print(f"DB Path: {db_path}")
    print(f"Business: {summary.business.name} (id={business_id})")
    print(f"  Current balance: {summary.current_balance}")
    print(f"  Total income:    {summary.total_income}")
    print(f"  Total expense:   {summary.total_expense}")
    print(f"  Net profit:      {summary.net_profit}")
    print(f"  Products: {overview.total_products} (low stock: {overview.low_stock_products})")
    print(f"  Transactions: {overview.total_transactions}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="사업장 장부 상태 확인")
    parser.add_argument("--business-id", type=int, required=True, help="사업장 ID")
    parser.add_argument("--start", type=datetime.fromisoformat, default=None, help="시작일 (ISO)")
    parser.add_argument("--end", type=datetime.fromisoformat, default=None, help="종료일 (ISO)")
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml 경로")
    args = parser.parse_args()

    settings = load_settings(args.config)

    try:
        asyncio.run(main(settings.db_path, args.business_id, args.start, args.end))
    except LedgerError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
