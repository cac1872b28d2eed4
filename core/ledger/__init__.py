"""
사업장 장부 (Business Ledger)

판매/구매/일반 거래를 기록하면서 잔고, 재고, 재고 상태를 함께 맞춘다.
저장소는 레코드 1건 단위 원자성만 제공하므로 다중 레코드 변경은
Saga 보상 단계로 되돌린다.

사용 예시:
```python
from core.ledger import LedgerOrchestrator, LedgerStore, init_ledger_schema

async with SQLiteAdapter(db_path) as db:
    await init_ledger_schema(db)
    orchestrator = LedgerOrchestrator(LedgerStore(db))

    sale = await orchestrator.record_sale(
        business_id=1,
        lines=[{"product_id": 10, "quantity": 5, "unit_price": "75000"}],
    )
```
"""

from core.ledger.balance import BalanceAccumulator
from core.ledger.errors import (
    CompensationFailure,
    InsufficientStockError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    WriteFailureError,
)
from core.ledger.models import Business, Product, Transaction, TransactionHeader, TransactionLine
from core.ledger.orchestrator import DeletionResult, LedgerOrchestrator
from core.ledger.requests import GeneralTransactionRequest, LineItem, TransactionUpdate
from core.ledger.saga import Saga, SagaStep
from core.ledger.schema import init_ledger_schema
from core.ledger.stock_status import StockStatusResolver, resolve_stock_status
from core.ledger.store import LedgerStore
from core.ledger.summary import BalanceSummary, BusinessOverview, BusinessSummaryService
from core.ledger.types import LOW_STOCK_THRESHOLD, SIDE_EFFECTS, SideEffect

__all__ = [
    # 핵심 클래스
    "LedgerOrchestrator",
    "LedgerStore",
    "BalanceAccumulator",
    "StockStatusResolver",
    "BusinessSummaryService",
    "Saga",
    "SagaStep",
    "init_ledger_schema",
    "resolve_stock_status",
    # 레코드
    "Business",
    "Product",
    "Transaction",
    "TransactionHeader",
    "TransactionLine",
    "DeletionResult",
    "BalanceSummary",
    "BusinessOverview",
    # 요청
    "LineItem",
    "GeneralTransactionRequest",
    "TransactionUpdate",
    # 오류
    "LedgerError",
    "NotFoundError",
    "InsufficientStockError",
    "WriteFailureError",
    "InvalidStateError",
    "CompensationFailure",
    # 상수
    "LOW_STOCK_THRESHOLD",
    "SIDE_EFFECTS",
    "SideEffect",
]
