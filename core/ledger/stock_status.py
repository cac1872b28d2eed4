"""
재고 상태 계산

stock 수량 → 상태 라벨 (out / low / active).
모든 재고 쓰기 경로가 resolve_stock_status를 거치므로
batch_resync는 외부(수동) 쓰기로 생긴 불일치만 복구한다.
"""

import logging
from typing import TYPE_CHECKING

from core.ledger.errors import LedgerError
from core.ledger.types import LOW_STOCK_THRESHOLD
from core.types import StockStatus

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)


def resolve_stock_status(stock: int) -> StockStatus:
    """재고 수량에 대한 상태

    - 0 → out
    - 1 ~ 9 → low
    - 10 이상 → active

    Raises:
        ValueError: 음수 재고
    """
    if stock < 0:
        raise ValueError(f"stock must be non-negative: {stock}")
    if stock == 0:
        return StockStatus.OUT
    if stock < LOW_STOCK_THRESHOLD:
        return StockStatus.LOW
    return StockStatus.ACTIVE


class StockStatusResolver:
    """재고 상태 일괄 재동기화

    Args:
        store: Ledger 저장소
    """

    def __init__(self, store: "ILedgerStore"):
        self.store = store

    async def batch_resync(self, business_id: int) -> int:
        """사업장 상품 전체의 status 재계산

        저장된 status와 계산 결과가 다른 상품만 갱신.
        상품별 갱신은 서로 독립적이며 실패해도 다음 상품을 계속 처리.

        Args:
            business_id: 사업장 ID

        Returns:
            수정된 상품 수
        """
        products = await self.store.list_products(business_id)

        corrected = 0
        for product in products:
            expected = resolve_stock_status(product.stock)
            if product.status == expected:
                continue

            try:
                await self.store.update_product_status(product.id, expected)
            except LedgerError as e:
                logger.error(
                    f"Stock status correction failed: product {product.id}",
                    extra={"business_id": business_id, "error": e.message},
                )
                continue

            corrected += 1
            logger.info(
                f"Stock status corrected: product {product.id} "
                f"{product.status.value} → {expected.value}",
                extra={"business_id": business_id, "stock": product.stock},
            )

        logger.info(
            f"Stock status resync done: business {business_id}",
            extra={"checked": len(products), "corrected": corrected},
        )
        return corrected
