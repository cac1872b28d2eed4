"""
사업장 요약 조회 (읽기 전용)

- 잔고 요약: 기간별 수입/지출 합계 + 현재 잔고 + 순이익
- 개요: 상품 수, 거래 수, 재고 부족 상품 수

집계 대상은 삭제되지 않은 complete 거래만.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.ledger.errors import InvalidStateError
from core.ledger.models import Business, ensure_utc
from core.ledger.types import LOW_STOCK_THRESHOLD
from core.types import TransactionKind

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceSummary:
    """잔고 요약"""

    business: Business
    total_income: Decimal
    total_expense: Decimal
    start: datetime | None = None
    end: datetime | None = None

    @property
    def current_balance(self) -> Decimal:
        return self.business.balance

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expense

    def to_dict(self) -> dict[str, Any]:
        return {
            "business_id": self.business.id,
            "business_name": self.business.name,
            "total_income": str(self.total_income),
            "total_expense": str(self.total_expense),
            "current_balance": str(self.current_balance),
            "net_profit": str(self.net_profit),
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


@dataclass(frozen=True)
class BusinessOverview:
    """사업장 개요"""

    business: Business
    total_products: int
    total_transactions: int
    low_stock_products: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "business_id": self.business.id,
            "business_name": self.business.name,
            "balance": str(self.business.balance),
            "total_products": self.total_products,
            "total_transactions": self.total_transactions,
            "low_stock_products": self.low_stock_products,
        }


class BusinessSummaryService:
    """사업장 요약 서비스

    Args:
        store: Ledger 저장소
        low_stock_threshold: 재고 부족 기준 (stock <= threshold)
    """

    def __init__(self, store: "ILedgerStore", low_stock_threshold: int = LOW_STOCK_THRESHOLD):
        self.store = store
        self.low_stock_threshold = low_stock_threshold

    async def get_balance_summary(
        self,
        business_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> BalanceSummary:
        """잔고 요약

        Args:
            business_id: 사업장 ID
            start: 시작 일시 (포함, 선택)
            end: 종료 일시 (포함, 선택)

        Raises:
            NotFoundError: 사업장 없음
            InvalidStateError: start > end
        """
        # naive 값은 UTC로 간주 (naive/aware 혼용 비교 방지)
        start = ensure_utc(start) if start is not None else None
        end = ensure_utc(end) if end is not None else None

        if start is not None and end is not None and start > end:
            raise InvalidStateError(
                "start must not be after end",
                {"start": start.isoformat(), "end": end.isoformat()},
            )

        business = await self.store.get_business(business_id)
        totals = await self.store.get_totals_by_kind(business_id, start, end)

        summary = BalanceSummary(
            business=business,
            total_income=totals.get(TransactionKind.INCOME, Decimal("0")),
            total_expense=totals.get(TransactionKind.EXPENSE, Decimal("0")),
            start=start,
            end=end,
        )
        logger.debug(
            f"Balance summary: business {business_id}",
            extra={"net_profit": str(summary.net_profit)},
        )
        return summary

    async def get_overview(self, business_id: int) -> BusinessOverview:
        """사업장 개요

        Raises:
            NotFoundError: 사업장 없음
        """
        business = await self.store.get_business(business_id)

        return BusinessOverview(
            business=business,
            total_products=await self.store.count_products(business_id),
            total_transactions=await self.store.count_transactions(business_id),
            low_stock_products=await self.store.count_low_stock(
                business_id, self.low_stock_threshold
            ),
        )
