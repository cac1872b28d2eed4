"""
Ledger Orchestrator

판매/구매/일반 거래를 기록하면서 세 가지 집계값을 함께 맞춘다.
- 사업장 잔고 (business.balance)
- 상품 재고 (product.stock)
- 재고 상태 (product.status, stock에서 파생)

저장소는 레코드 1건 단위 원자성만 보장하므로
다중 레코드 변경은 Saga(실행/보상 단계)로 구성한다.

부수효과 순서: 거래 생성 → 재고(라인 순서대로) → 잔고
실패 시: 이미 적용한 단계만 역순으로 보상 후 원래 오류 전파

사용 예시:
```python
store = LedgerStore(db)
orchestrator = LedgerOrchestrator(store)

tx = await orchestrator.record_sale(
    business_id=1,
    lines=[LineItem(product_id=10, quantity=5, unit_price=Decimal("75000"))],
)
result = await orchestrator.delete_transaction(business_id=1, transaction_id=tx.id)
```
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING, Any

from core.constants import Defaults
from core.domain.state_machines import StateMachineError, TransactionStateMachine
from core.ledger.balance import BalanceAccumulator
from core.ledger.errors import (
    CompensationFailure,
    InsufficientStockError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    WriteFailureError,
)
from core.ledger.models import Product, Transaction, TransactionHeader
from core.ledger.requests import (
    GeneralTransactionRequest,
    LineItem,
    TransactionUpdate,
    parse_line_items,
    validate_model,
)
from core.ledger.saga import Saga
from core.ledger.types import (
    PURCHASE_CATEGORY,
    PURCHASE_DESCRIPTION,
    SALE_DESCRIPTION,
    SALES_CATEGORY,
    SIDE_EFFECTS,
)
from core.types import TransactionKind, TransactionStatus

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore, INotifier
    from core.config.loader import AppSettings, Settings

logger = logging.getLogger(__name__)


@dataclass
class DeletionResult:
    """거래 삭제 결과

    Attributes:
        transaction_id: 삭제된 거래 ID
        reversed: 재고/잔고 되돌리기를 시도했는지 (complete 거래만 해당)
        failures: 되돌리기 실패 단계 (soft delete는 그래도 진행됨)
    """

    transaction_id: int
    reversed: bool
    failures: list[CompensationFailure] = field(default_factory=list)

    @property
    def fully_reversed(self) -> bool:
        return self.reversed and not self.failures


class LedgerOrchestrator:
    """Ledger 오퍼레이션 조정자

    Args:
        store: Ledger 저장소 (ILedgerStore)
        notifier: 보상 실패 알림용 (선택)
        optimistic: 재고/잔고 쓰기에 compare-and-set 사용 여부
        max_retries: compare-and-set 경합 시 최대 시도 횟수
    """

    def __init__(
        self,
        store: "ILedgerStore",
        notifier: "INotifier | None" = None,
        optimistic: bool = False,
        max_retries: int = Defaults.MAX_WRITE_RETRIES,
    ):
        self.store = store
        self.notifier = notifier
        self.optimistic = optimistic
        self.max_retries = max_retries
        self.balance = BalanceAccumulator(store, optimistic=optimistic, max_retries=max_retries)

    @classmethod
    def from_settings(
        cls,
        store: "ILedgerStore",
        settings: "AppSettings | Settings",
        notifier: "INotifier | None" = None,
    ) -> "LedgerOrchestrator":
        """Settings의 ledger 옵션으로 생성"""
        return cls(
            store,
            notifier=notifier,
            optimistic=settings.ledger.optimistic_writes,
            max_retries=settings.ledger.max_write_retries,
        )

    # =========================================================================
    # 상품 연동 거래 (판매 / 구매)
    # =========================================================================

    async def record_sale(
        self,
        business_id: int,
        lines: Iterable[LineItem | dict[str, Any]],
        description: str | None = None,
    ) -> Transaction:
        """상품 판매 기록

        1. 검증: 상품 존재 + 재고 충분 (실패 시 쓰기 없음)
        2. 거래(Income/Sales/complete) + 라인 생성
        3. 라인별 재고 차감
        4. 잔고 +amount

        Returns:
            라인이 채워진 Transaction

        Raises:
            NotFoundError: 상품/사업장 없음
            InsufficientStockError: 재고 부족
            InvalidStateError: 라인 없음, 합계 금액이 0
            WriteFailureError: 쓰기 실패 (보상 실행 후)
        """
        items = parse_line_items(lines)
        await self._validate_lines(business_id, items, check_stock=True)

        return await self._record_product_transaction(
            operation="record_sale",
            business_id=business_id,
            items=items,
            kind=TransactionKind.INCOME,
            category=SALES_CATEGORY,
            description=description or SALE_DESCRIPTION,
        )

    async def record_purchase(
        self,
        business_id: int,
        lines: Iterable[LineItem | dict[str, Any]],
        description: str | None = None,
    ) -> Transaction:
        """재고 구매 기록

        판매와 같은 흐름, 재고 +quantity / 잔고 -amount.
        재고 검증은 하지 않음 (상품 존재만 확인).
        """
        items = parse_line_items(lines)
        await self._validate_lines(business_id, items, check_stock=False)

        return await self._record_product_transaction(
            operation="record_purchase",
            business_id=business_id,
            items=items,
            kind=TransactionKind.EXPENSE,
            category=PURCHASE_CATEGORY,
            description=description or PURCHASE_DESCRIPTION,
        )

    async def _validate_lines(
        self,
        business_id: int,
        items: list[LineItem],
        check_stock: bool,
    ) -> dict[int, Product]:
        """라인 검증 (쓰기 전 단계)

        같은 상품이 여러 라인에 있으면 요청 수량을 합산해서 비교.
        """
        products: dict[int, Product] = {}
        requested: dict[int, int] = {}

        for item in items:
            if item.product_id not in products:
                product = await self.store.get_product(item.product_id)
                if product.business_id != business_id:
                    raise NotFoundError("product", item.product_id)
                products[item.product_id] = product

            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

        if check_stock:
            for product_id, quantity in requested.items():
                product = products[product_id]
                if product.stock < quantity:
                    logger.warning(
                        f"Sale rejected: insufficient stock for product {product_id}",
                        extra={
                            "business_id": business_id,
                            "available": product.stock,
                            "requested": quantity,
                        },
                    )
                    raise InsufficientStockError(
                        product_id=product_id,
                        available=product.stock,
                        requested=quantity,
                        product_name=product.name,
                    )

        return products

    async def _record_product_transaction(
        self,
        operation: str,
        business_id: int,
        items: list[LineItem],
        kind: TransactionKind,
        category: str,
        description: str,
    ) -> Transaction:
        """상품 연동 거래 Saga 구성 및 실행"""
        effect = SIDE_EFFECTS[kind]
        amount = sum((item.subtotal for item in items), Decimal("0"))
        if amount <= 0:
            raise InvalidStateError(
                f"{operation} rejected: transaction amount must be positive",
                {"business_id": business_id, "amount": str(amount)},
            )

        header = TransactionHeader(
            business_id=business_id,
            kind=kind,
            amount=amount,
            status=TransactionStatus.COMPLETE,
            category=category,
            description=description,
            transaction_date=datetime.now(timezone.utc),
        )

        created: dict[str, Any] = {}

        async def create_header() -> Transaction:
            created["transaction"] = await self.store.create_transaction(header)
            return created["transaction"]

        async def delete_header() -> None:
            await self.store.delete_transaction(created["transaction"].id)

        async def create_lines() -> None:
            created["lines"] = await self.store.create_transaction_lines(
                created["transaction"].id, items
            )

        saga = Saga(
            operation,
            notifier=self.notifier,
            context={"business_id": business_id, "amount": str(amount)},
        )
        saga.add_step("create_transaction", create_header, compensation=delete_header)
        # 라인은 헤더 hard delete 시 함께 삭제되므로 별도 보상 없음
        saga.add_step("create_lines", create_lines)

        for index, item in enumerate(items, start=1):
            saga.add_step(
                f"stock:{item.product_id}#{index}",
                partial(self._apply_stock_delta, item.product_id, effect.stock_delta(item.quantity)),
                compensation=partial(
                    self._apply_stock_delta,
                    item.product_id,
                    effect.reverse_stock_delta(item.quantity),
                ),
            )

        saga.add_step(
            "balance",
            partial(self.balance.apply_delta, business_id, effect.balance_delta(amount)),
            compensation=partial(
                self.balance.apply_delta, business_id, effect.reverse_balance_delta(amount)
            ),
        )

        await saga.execute()

        transaction: Transaction = created["transaction"]
        transaction.lines = created["lines"]

        logger.info(
            f"{operation} done: transaction {transaction.id}",
            extra={
                "business_id": business_id,
                "amount": str(amount),
                "line_count": len(items),
            },
        )
        return transaction

    async def _apply_stock_delta(self, product_id: int, delta: int) -> Product:
        """재고에 delta 반영 (매번 최신 재고를 다시 조회)

        status는 저장소 쓰기에서 함께 재계산됨.

        Raises:
            NotFoundError: 상품 없음
            InsufficientStockError: optimistic 모드에서 결과가 음수
            WriteFailureError: 쓰기 실패 (기본 모드에서 음수 재고 포함)
        """
        if self.optimistic:
            return await self._apply_stock_delta_cas(product_id, delta)

        product = await self.store.get_product(product_id)
        new_stock = product.stock + delta
        return await self.store.set_product_stock(product_id, new_stock)

    async def _apply_stock_delta_cas(self, product_id: int, delta: int) -> Product:
        """compare-and-set 기반 재고 갱신 (조건부 차감)"""
        for attempt in range(1, self.max_retries + 1):
            product = await self.store.get_product(product_id)
            new_stock = product.stock + delta

            if new_stock < 0:
                raise InsufficientStockError(
                    product_id=product_id,
                    available=product.stock,
                    requested=-delta,
                    product_name=product.name,
                )

            if await self.store.compare_and_set_stock(product_id, product.stock, new_stock):
                return await self.store.get_product(product_id)

            logger.warning(
                f"Stock write conflict: product {product_id}",
                extra={"attempt": attempt, "max_retries": self.max_retries},
            )

        raise WriteFailureError(
            "product",
            product_id,
            f"concurrent stock modification (gave up after {self.max_retries} attempts)",
        )

    # =========================================================================
    # 일반 거래
    # =========================================================================

    async def create_general_transaction(
        self,
        business_id: int,
        kind: TransactionKind | str,
        amount: Decimal | int | str,
        category: str | None = None,
        description: str | None = None,
        status: TransactionStatus | str = TransactionStatus.COMPLETE,
    ) -> Transaction:
        """상품 없는 일반 수입/지출 기록

        status가 complete일 때만 잔고 반영 (Income +amount, Expense -amount).
        잔고 반영 실패 시 방금 만든 거래 삭제.
        """
        request = validate_model(
            GeneralTransactionRequest,
            {
                "kind": kind,
                "amount": amount,
                "category": category,
                "description": description,
                "status": status,
            },
        )

        header = TransactionHeader(
            business_id=business_id,
            kind=request.kind,
            amount=request.amount,
            status=request.status,
            category=request.category,
            description=request.description,
            transaction_date=datetime.now(timezone.utc),
        )

        created: dict[str, Transaction] = {}

        async def create_header() -> Transaction:
            created["transaction"] = await self.store.create_transaction(header)
            return created["transaction"]

        async def delete_header() -> None:
            await self.store.delete_transaction(created["transaction"].id)

        saga = Saga(
            "create_general_transaction",
            notifier=self.notifier,
            context={"business_id": business_id, "amount": str(request.amount)},
        )
        saga.add_step("create_transaction", create_header, compensation=delete_header)

        if request.status == TransactionStatus.COMPLETE:
            effect = SIDE_EFFECTS[request.kind]
            saga.add_step(
                "balance",
                partial(self.balance.apply_delta, business_id, effect.balance_delta(request.amount)),
            )

        await saga.execute()

        transaction = created["transaction"]
        logger.info(
            f"General transaction created: {transaction.id}",
            extra={
                "business_id": business_id,
                "kind": request.kind.value,
                "status": request.status.value,
                "amount": str(request.amount),
            },
        )
        return transaction

    async def update_general_transaction(
        self,
        transaction_id: int,
        changes: TransactionUpdate | dict[str, Any],
        business_id: int | None = None,
    ) -> Transaction:
        """일반 거래 수정

        기존 상태가 complete이고 금액이 바뀌면 잔고를 두 번에 나눠 조정:
        기존 금액 효과 되돌리기 → 새 금액 효과 적용.
        status는 일반 필드로만 기록하며 잔고에 영향을 주지 않음.

        Raises:
            InvalidStateError: 거래 없음, 다른 사업장 거래,
                상품 연동 거래의 금액 변경, 허용되지 않는 상태 전이
        """
        update = validate_model(TransactionUpdate, changes)

        try:
            existing = await self.store.get_transaction_with_lines(transaction_id)
        except NotFoundError as e:
            raise InvalidStateError(
                f"Cannot update transaction {transaction_id}: it does not exist",
                {"transaction_id": transaction_id},
            ) from e

        self._check_owner(existing, business_id)

        fields = update.model_dump(exclude_unset=True)
        # amount/status/date는 null로 덮어쓸 수 없음
        for key in ("amount", "status", "date"):
            if key in fields and fields[key] is None:
                del fields[key]
        if "date" in fields:
            fields["transaction_date"] = fields.pop("date")

        if not fields:
            return existing

        new_amount: Decimal | None = fields.get("amount")
        amount_changed = new_amount is not None and new_amount != existing.amount

        if amount_changed and existing.is_product_linked:
            raise InvalidStateError(
                f"Cannot change amount of product-linked transaction {transaction_id}",
                {"transaction_id": transaction_id, "line_count": len(existing.lines)},
            )

        new_status = fields.get("status")
        if new_status is not None and new_status != existing.status:
            self._ensure_transition(existing, new_status)

        saga = Saga(
            "update_general_transaction",
            notifier=self.notifier,
            context={"business_id": existing.business_id, "transaction_id": transaction_id},
        )

        if amount_changed and existing.status == TransactionStatus.COMPLETE:
            assert new_amount is not None
            effect = SIDE_EFFECTS[existing.kind]
            revert_old = effect.reverse_balance_delta(existing.amount)
            apply_new = effect.balance_delta(new_amount)

            saga.add_step(
                "revert_old_amount",
                partial(self.balance.apply_delta, existing.business_id, revert_old),
                compensation=partial(self.balance.apply_delta, existing.business_id, -revert_old),
            )
            saga.add_step(
                "apply_new_amount",
                partial(self.balance.apply_delta, existing.business_id, apply_new),
                compensation=partial(self.balance.apply_delta, existing.business_id, -apply_new),
            )

        saga.add_step(
            "update_fields",
            partial(self.store.update_transaction_fields, transaction_id, fields),
        )

        results = await saga.execute()
        updated: Transaction = results[-1]
        updated.lines = existing.lines

        logger.info(
            f"Transaction updated: {transaction_id}",
            extra={
                "fields": ", ".join(sorted(fields)),
                "balance_adjusted": amount_changed and existing.status == TransactionStatus.COMPLETE,
            },
        )
        return updated

    # =========================================================================
    # 취소 / 삭제
    # =========================================================================

    async def cancel_transaction(
        self,
        transaction_id: int,
        business_id: int | None = None,
    ) -> Transaction:
        """거래 취소 (status = cancel)

        상태 라벨만 바꾼다. 재고/잔고는 되돌리지 않음.
        되돌리기가 필요하면 delete_transaction 사용.

        Raises:
            NotFoundError: 거래 없음
            InvalidStateError: 이미 취소됨, 다른 사업장 거래
        """
        transaction = await self.store.get_transaction_with_lines(transaction_id)
        self._check_owner(transaction, business_id)
        self._ensure_transition(transaction, TransactionStatus.CANCEL)

        updated = await self.store.update_transaction_fields(
            transaction_id, {"status": TransactionStatus.CANCEL}
        )
        updated.lines = transaction.lines

        logger.info(
            f"Transaction cancelled: {transaction_id}",
            extra={"previous_status": transaction.status.value},
        )
        return updated

    async def delete_transaction(self, business_id: int, transaction_id: int) -> DeletionResult:
        """거래 삭제 (soft delete)

        complete 거래만 잔고 → 재고(라인별) 순서로 되돌린 뒤 soft delete.
        pending/cancel 거래는 되돌리기 없이 soft delete.
        되돌리기 단계 실패는 기록만 하고 soft delete는 계속 진행 (best-effort).

        Raises:
            NotFoundError: 거래 없음 (이미 삭제된 경우 포함)
            InvalidStateError: 다른 사업장 거래
            WriteFailureError: soft delete 자체 실패
        """
        transaction = await self.store.get_transaction_with_lines(transaction_id)
        self._check_owner(transaction, business_id)

        result = DeletionResult(
            transaction_id=transaction_id,
            reversed=TransactionStateMachine(transaction.status).affects_aggregates,
        )

        if result.reversed:
            effect = SIDE_EFFECTS[transaction.kind]

            try:
                await self.balance.apply_delta(
                    business_id, effect.reverse_balance_delta(transaction.amount)
                )
            except LedgerError as e:
                result.failures.append(CompensationFailure(step="balance", error=e.message))
                logger.error(
                    f"Balance reversal failed: transaction {transaction_id}: {e.message}",
                    extra={"business_id": business_id},
                )

            for line in transaction.lines:
                try:
                    await self._apply_stock_delta(
                        line.product_id, effect.reverse_stock_delta(line.quantity)
                    )
                except LedgerError as e:
                    result.failures.append(
                        CompensationFailure(step=f"stock:{line.product_id}", error=e.message)
                    )
                    logger.error(
                        f"Stock reversal failed: transaction {transaction_id}, "
                        f"product {line.product_id}: {e.message}",
                        extra={"business_id": business_id, "quantity": line.quantity},
                    )

        await self.store.soft_delete_transaction(transaction_id)

        if result.failures and self.notifier is not None:
            await self.notifier.send(
                f"Ledger reversal incomplete: transaction {transaction_id}",
                level="CRITICAL",
                extra={
                    "business_id": business_id,
                    "failed_steps": ", ".join(f.step for f in result.failures),
                },
            )

        logger.info(
            f"Transaction deleted: {transaction_id}",
            extra={
                "business_id": business_id,
                "reversed": result.reversed,
                "failures": len(result.failures),
            },
        )
        return result

    # =========================================================================
    # 수동 재고 조정
    # =========================================================================

    async def adjust_stock(self, product_id: int, quantity_change: int) -> Product:
        """수동 재고 조정 (입고/손실 등, 거래 기록 없음)

        Raises:
            NotFoundError: 상품 없음
            InsufficientStockError: 결과 재고가 음수
        """
        product = await self.store.get_product(product_id)
        if quantity_change == 0:
            return product

        if product.stock + quantity_change < 0:
            raise InsufficientStockError(
                product_id=product_id,
                available=product.stock,
                requested=-quantity_change,
                product_name=product.name,
            )

        updated = await self._apply_stock_delta(product_id, quantity_change)
        logger.info(
            f"Stock adjusted: product {product_id} {product.stock} → {updated.stock}",
            extra={"status": updated.status.value},
        )
        return updated

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    @staticmethod
    def _check_owner(transaction: Transaction, business_id: int | None) -> None:
        if business_id is not None and transaction.business_id != business_id:
            raise InvalidStateError(
                f"Transaction {transaction.id} does not belong to business {business_id}",
                {"transaction_id": transaction.id, "business_id": business_id},
            )

    @staticmethod
    def _ensure_transition(transaction: Transaction, target: TransactionStatus) -> None:
        machine = TransactionStateMachine(transaction.status)
        try:
            machine.transition(target)
        except StateMachineError as e:
            raise InvalidStateError(
                str(e),
                {
                    "transaction_id": transaction.id,
                    "from": transaction.status.value,
                    "to": target.value,
                },
            ) from e
