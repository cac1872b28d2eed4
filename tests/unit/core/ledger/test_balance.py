"""
core/ledger/balance.py 테스트
"""

from decimal import Decimal

import pytest

from adapters.mock.ledger_store import InMemoryLedgerStore
from core.ledger.balance import BalanceAccumulator
from core.ledger.errors import NotFoundError, WriteFailureError
from core.ledger.models import Business


class TestApplyDelta:
    """기본 모드 (read-modify-write)"""

    @pytest.mark.asyncio
    async def test_positive_and_negative(
        self,
        store: InMemoryLedgerStore,
        business: Business,
    ) -> None:
        accumulator = BalanceAccumulator(store)

        await accumulator.apply_delta(business.id, Decimal("375000"))
        updated = await accumulator.apply_delta(business.id, Decimal("-1200000"))

        assert updated.balance == Decimal("4175000")

    @pytest.mark.asyncio
    async def test_balance_may_go_negative(self, store: InMemoryLedgerStore) -> None:
        business = store.add_business(balance=Decimal("100"))

        updated = await BalanceAccumulator(store).apply_delta(business.id, Decimal("-250.50"))

        assert updated.balance == Decimal("-150.50")

    @pytest.mark.asyncio
    async def test_missing_business(self, store: InMemoryLedgerStore) -> None:
        with pytest.raises(NotFoundError):
            await BalanceAccumulator(store).apply_delta(999, Decimal("1"))

    @pytest.mark.asyncio
    async def test_write_failure_propagates(
        self,
        store: InMemoryLedgerStore,
        business: Business,
    ) -> None:
        store.fail_on("set_business_balance")

        with pytest.raises(WriteFailureError):
            await BalanceAccumulator(store).apply_delta(business.id, Decimal("1"))
        assert (await store.get_business(business.id)).balance == Decimal("5000000")

    @pytest.mark.asyncio
    async def test_concurrent_write_is_lost(
        self,
        store: InMemoryLedgerStore,
        business: Business,
    ) -> None:
        """기본 모드: read와 write 사이의 다른 쓰기는 덮어써짐"""

        async def concurrent_write() -> None:
            await store.set_business_balance(business.id, Decimal("9999999"))

        store.before("set_business_balance", concurrent_write)

        updated = await BalanceAccumulator(store).apply_delta(business.id, Decimal("100"))

        assert updated.balance == Decimal("5000100")


class TestApplyDeltaOptimistic:
    """compare-and-set 모드"""

    @pytest.mark.asyncio
    async def test_retries_on_conflict(
        self,
        store: InMemoryLedgerStore,
        business: Business,
    ) -> None:
        async def concurrent_write() -> None:
            await store.set_business_balance(business.id, Decimal("6000000"))

        store.before("compare_and_set_balance", concurrent_write)

        updated = await BalanceAccumulator(store, optimistic=True).apply_delta(
            business.id, Decimal("100")
        )

        # 두 쓰기 모두 반영
        assert updated.balance == Decimal("6000100")
        assert store.count_calls("compare_and_set_balance") == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(
        self,
        store: InMemoryLedgerStore,
        business: Business,
    ) -> None:
        for i in range(3):

            async def concurrent_write(value: int = i) -> None:
                await store.set_business_balance(business.id, Decimal(value))

            store.before("compare_and_set_balance", concurrent_write)

        accumulator = BalanceAccumulator(store, optimistic=True, max_retries=3)

        with pytest.raises(WriteFailureError, match="concurrent balance modification"):
            await accumulator.apply_delta(business.id, Decimal("100"))
