"""
잔고 누산기

사업장 잔고에 부호 있는 delta를 더한다.
잔고는 이 클래스를 통해서만 변경되어야 함.

주의 (기본 모드):
read → 계산 → write 순서의 비원자적 갱신이라
같은 사업장에 대한 동시 delta 두 건 중 하나가 유실될 수 있다.
optimistic=True로 생성하면 compare-and-set + 재시도로 유실을 막는다.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from core.constants import Defaults
from core.ledger.errors import WriteFailureError
from core.ledger.models import Business

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)


class BalanceAccumulator:
    """잔고 누산기

    Args:
        store: Ledger 저장소
        optimistic: compare-and-set 사용 여부
        max_retries: compare-and-set 경합 시 최대 시도 횟수
    """

    def __init__(
        self,
        store: "ILedgerStore",
        optimistic: bool = False,
        max_retries: int = Defaults.MAX_WRITE_RETRIES,
    ):
        self.store = store
        self.optimistic = optimistic
        self.max_retries = max_retries

    async def apply_delta(self, business_id: int, delta: Decimal) -> Business:
        """잔고에 delta 반영

        Args:
            business_id: 사업장 ID
            delta: 더할 금액 (음수면 차감)

        Returns:
            갱신된 Business

        Raises:
            NotFoundError: 사업장 없음
            WriteFailureError: 쓰기 실패 또는 경합 재시도 초과
        """
        if self.optimistic:
            return await self._apply_with_cas(business_id, delta)

        business = await self.store.get_business(business_id)
        new_balance = business.balance + delta
        updated = await self.store.set_business_balance(business_id, new_balance)

        logger.debug(
            f"Balance updated: business {business_id} {business.balance} → {new_balance}",
            extra={"delta": str(delta)},
        )
        return updated

    async def _apply_with_cas(self, business_id: int, delta: Decimal) -> Business:
        """compare-and-set 기반 갱신 (경합 시 재조회 후 재시도)"""
        for attempt in range(1, self.max_retries + 1):
            business = await self.store.get_business(business_id)
            new_balance = business.balance + delta

            if await self.store.compare_and_set_balance(
                business_id, business.balance, new_balance
            ):
                logger.debug(
                    f"Balance updated (cas): business {business_id} "
                    f"{business.balance} → {new_balance}",
                    extra={"delta": str(delta), "attempt": attempt},
                )
                return await self.store.get_business(business_id)

            logger.warning(
                f"Balance write conflict: business {business_id}",
                extra={"attempt": attempt, "max_retries": self.max_retries},
            )

        raise WriteFailureError(
            "business",
            business_id,
            f"concurrent balance modification (gave up after {self.max_retries} attempts)",
        )
