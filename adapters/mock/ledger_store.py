"""
In-memory Ledger 저장소

테스트용 ILedgerStore 구현체.
- 레코드는 dict에 보관, 조회 시 복사본 반환 (호출자가 수정해도 저장소 불변)
- 음수 재고 쓰기는 WriteFailureError (SQLite CHECK 제약과 동일)
- 메서드/ID 단위 실패 주입, 메서드 실행 전 훅(동시 쓰기 흉내) 지원
"""

import copy
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.ledger.errors import InvalidStateError, NotFoundError, WriteFailureError
from core.ledger.models import (
    Business,
    Product,
    Transaction,
    TransactionHeader,
    TransactionLine,
    ensure_utc,
)
from core.ledger.stock_status import resolve_stock_status
from core.types import StockStatus, TransactionKind, TransactionStatus

if TYPE_CHECKING:
    from core.ledger.requests import LineItem


UPDATABLE_TRANSACTION_FIELDS = frozenset(
    {"amount", "category", "description", "status", "transaction_date"}
)

Hook = Callable[[], Awaitable[None]]


@dataclass
class FailureRule:
    """실패 주입 규칙

    Attributes:
        method: 대상 메서드 이름 (예: "set_product_stock")
        entity_id: 특정 ID에만 적용 (None이면 모든 ID)
        remaining: 남은 실패 횟수 (None이면 무제한)
        skip: 실패 전에 통과시킬 호출 수
    """

    method: str
    entity_id: Any = None
    remaining: int | None = 1
    skip: int = 0


class InMemoryLedgerStore:
    """In-memory Ledger 저장소

    사용 예시:
    ```python
    store = InMemoryLedgerStore()
    business = store.add_business(balance=Decimal("5000000"))
    product = store.add_product(business.id, stock=12)

    # 두 번째 재고 쓰기에서 실패
    store.fail_on("set_product_stock", skip=1)
    ```
    """

    def __init__(self, should_fail: bool = False):
        """
        Args:
            should_fail: True면 모든 쓰기 실패
        """
        self.should_fail = should_fail
        self.businesses: dict[int, Business] = {}
        self.products: dict[int, Product] = {}
        self.transactions: dict[int, Transaction] = {}
        self.lines: dict[int, TransactionLine] = {}
        self.calls: list[tuple[str, Any]] = []

        self._rules: list[FailureRule] = []
        self._hooks: dict[str, list[Hook]] = {}
        self._next_ids: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # 테스트 헬퍼
    # -------------------------------------------------------------------------

    def fail_on(
        self,
        method: str,
        entity_id: Any = None,
        times: int | None = 1,
        skip: int = 0,
    ) -> FailureRule:
        """쓰기 실패 주입

        Args:
            method: 대상 메서드
            entity_id: 특정 ID에만 적용
            times: 실패 횟수 (None이면 계속 실패)
            skip: 처음 skip번의 호출은 통과
        """
        rule = FailureRule(method=method, entity_id=entity_id, remaining=times, skip=skip)
        self._rules.append(rule)
        return rule

    def before(self, method: str, hook: Hook) -> None:
        """다음 method 호출 직전에 hook 1회 실행 (동시 쓰기 흉내)"""
        self._hooks.setdefault(method, []).append(hook)

    def add_business(
        self,
        balance: Decimal = Decimal("0"),
        name: str = "Test Business",
        user_id: int = 1,
    ) -> Business:
        now = datetime.now(timezone.utc)
        business = Business(
            id=self._next_id("business"),
            user_id=user_id,
            name=name,
            balance=Decimal(balance),
            created_at=now,
            updated_at=now,
        )
        self.businesses[business.id] = business
        return copy.deepcopy(business)

    def add_product(
        self,
        business_id: int,
        stock: int = 0,
        name: str | None = None,
        status: StockStatus | None = None,
        purchase_price: Decimal | None = None,
        selling_price: Decimal | None = None,
    ) -> Product:
        """상품 추가 (status 지정 시 불일치 상태도 만들 수 있음)"""
        product_id = self._next_id("product")
        now = datetime.now(timezone.utc)
        product = Product(
            id=product_id,
            business_id=business_id,
            name=name or f"Product {product_id}",
            stock=stock,
            status=status or resolve_stock_status(stock),
            purchase_price=purchase_price,
            selling_price=selling_price,
            created_at=now,
            updated_at=now,
        )
        self.products[product.id] = product
        return copy.deepcopy(product)

    def count_calls(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def _next_id(self, table: str) -> int:
        self._next_ids[table] = self._next_ids.get(table, 0) + 1
        return self._next_ids[table]

    async def _enter(self, method: str, entity_id: Any = None, entity: str = "") -> None:
        """호출 기록 → 훅 실행 → 실패 주입 확인"""
        self.calls.append((method, entity_id))

        hooks = self._hooks.get(method)
        if hooks:
            hook = hooks.pop(0)
            await hook()

        if self.should_fail:
            raise WriteFailureError(entity or method, entity_id, "injected failure")

        for rule in self._rules:
            if rule.method != method:
                continue
            if rule.entity_id is not None and rule.entity_id != entity_id:
                continue
            if rule.remaining is not None and rule.remaining <= 0:
                continue
            if rule.skip > 0:
                rule.skip -= 1
                continue
            if rule.remaining is not None:
                rule.remaining -= 1
            raise WriteFailureError(entity or method, entity_id, "injected failure")

    # -------------------------------------------------------------------------
    # Business
    # -------------------------------------------------------------------------

    def _business(self, business_id: int) -> Business:
        business = self.businesses.get(business_id)
        if business is None or business.deleted_at is not None:
            raise NotFoundError("business", business_id)
        return business

    async def get_business(self, business_id: int) -> Business:
        return copy.deepcopy(self._business(business_id))

    async def set_business_balance(self, business_id: int, new_balance: Decimal) -> Business:
        await self._enter("set_business_balance", business_id, "business")
        business = self._business(business_id)
        business.balance = new_balance
        business.updated_at = datetime.now(timezone.utc)
        return copy.deepcopy(business)

    async def compare_and_set_balance(
        self,
        business_id: int,
        expected: Decimal,
        new_balance: Decimal,
    ) -> bool:
        await self._enter("compare_and_set_balance", business_id, "business")
        business = self._business(business_id)
        if business.balance != expected:
            return False
        business.balance = new_balance
        business.updated_at = datetime.now(timezone.utc)
        return True

    # -------------------------------------------------------------------------
    # Product
    # -------------------------------------------------------------------------

    def _product(self, product_id: int) -> Product:
        product = self.products.get(product_id)
        if product is None or product.deleted_at is not None:
            raise NotFoundError("product", product_id)
        return product

    async def get_product(self, product_id: int) -> Product:
        return copy.deepcopy(self._product(product_id))

    async def list_products(self, business_id: int) -> list[Product]:
        return [
            copy.deepcopy(p)
            for p in self.products.values()
            if p.business_id == business_id and p.deleted_at is None
        ]

    async def set_product_stock(self, product_id: int, new_stock: int) -> Product:
        await self._enter("set_product_stock", product_id, "product")
        product = self._product(product_id)
        if new_stock < 0:
            raise WriteFailureError("product", product_id, f"negative stock {new_stock}")
        product.stock = new_stock
        product.status = resolve_stock_status(new_stock)
        product.updated_at = datetime.now(timezone.utc)
        return copy.deepcopy(product)

    async def compare_and_set_stock(
        self,
        product_id: int,
        expected: int,
        new_stock: int,
    ) -> bool:
        await self._enter("compare_and_set_stock", product_id, "product")
        product = self._product(product_id)
        if new_stock < 0:
            raise WriteFailureError("product", product_id, f"negative stock {new_stock}")
        if product.stock != expected:
            return False
        product.stock = new_stock
        product.status = resolve_stock_status(new_stock)
        product.updated_at = datetime.now(timezone.utc)
        return True

    async def update_product_status(self, product_id: int, status: StockStatus) -> Product:
        await self._enter("update_product_status", product_id, "product")
        product = self._product(product_id)
        product.status = status
        product.updated_at = datetime.now(timezone.utc)
        return copy.deepcopy(product)

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    def _transaction(self, transaction_id: int) -> Transaction:
        transaction = self.transactions.get(transaction_id)
        if transaction is None or transaction.deleted_at is not None:
            raise NotFoundError("transaction", transaction_id)
        return transaction

    def _lines_of(self, transaction_id: int) -> list[TransactionLine]:
        return [
            copy.deepcopy(line)
            for line in self.lines.values()
            if line.transaction_id == transaction_id
        ]

    async def create_transaction(self, header: TransactionHeader) -> Transaction:
        await self._enter("create_transaction", header.business_id, "transaction")
        now = datetime.now(timezone.utc)
        transaction = Transaction(
            id=self._next_id("transaction"),
            business_id=header.business_id,
            kind=header.kind,
            amount=header.amount,
            status=header.status,
            category=header.category,
            description=header.description,
            transaction_date=header.transaction_date or now,
            created_at=now,
            updated_at=now,
        )
        self.transactions[transaction.id] = transaction
        return copy.deepcopy(transaction)

    async def create_transaction_lines(
        self,
        transaction_id: int,
        lines: Sequence["LineItem"],
    ) -> list[TransactionLine]:
        await self._enter("create_transaction_lines", transaction_id, "transaction_line")
        self._transaction(transaction_id)

        for item in lines:
            # SQLite FK 제약과 동일하게 없는 상품은 쓰기 실패
            if item.product_id not in self.products:
                raise WriteFailureError(
                    "transaction_line", transaction_id, f"unknown product {item.product_id}"
                )

        for item in lines:
            line = TransactionLine(
                id=self._next_id("line"),
                transaction_id=transaction_id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            self.lines[line.id] = line
        return self._lines_of(transaction_id)

    async def delete_transaction(self, transaction_id: int) -> None:
        await self._enter("delete_transaction", transaction_id, "transaction")
        self.transactions.pop(transaction_id, None)
        for line_id in [
            i for i, line in self.lines.items() if line.transaction_id == transaction_id
        ]:
            del self.lines[line_id]

    async def soft_delete_transaction(self, transaction_id: int) -> None:
        await self._enter("soft_delete_transaction", transaction_id, "transaction")
        transaction = self._transaction(transaction_id)
        now = datetime.now(timezone.utc)
        transaction.deleted_at = now
        transaction.updated_at = now

    async def get_transaction_with_lines(self, transaction_id: int) -> Transaction:
        transaction = copy.deepcopy(self._transaction(transaction_id))
        transaction.lines = self._lines_of(transaction_id)
        return transaction

    async def update_transaction_fields(
        self,
        transaction_id: int,
        fields: dict[str, Any],
    ) -> Transaction:
        await self._enter("update_transaction_fields", transaction_id, "transaction")
        unknown = set(fields) - UPDATABLE_TRANSACTION_FIELDS
        if unknown:
            raise InvalidStateError(
                f"Cannot update transaction fields: {', '.join(sorted(unknown))}",
                {"transaction_id": transaction_id},
            )

        transaction = self._transaction(transaction_id)
        for key, value in fields.items():
            if key == "status":
                value = TransactionStatus(value)
            elif key == "amount":
                value = Decimal(value)
            setattr(transaction, key, value)
        transaction.updated_at = datetime.now(timezone.utc)
        return copy.deepcopy(transaction)

    # -------------------------------------------------------------------------
    # 요약 조회
    # -------------------------------------------------------------------------

    def _live_transactions(self, business_id: int) -> list[Transaction]:
        return [
            t
            for t in self.transactions.values()
            if t.business_id == business_id and t.deleted_at is None
        ]

    async def get_totals_by_kind(
        self,
        business_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[TransactionKind, Decimal]:
        lower = ensure_utc(start) if start else None
        upper = ensure_utc(end) if end else None

        totals = {kind: Decimal("0") for kind in TransactionKind}
        for transaction in self._live_transactions(business_id):
            if transaction.status != TransactionStatus.COMPLETE:
                continue
            occurred = ensure_utc(transaction.transaction_date or transaction.created_at)
            if lower is not None and occurred < lower:
                continue
            if upper is not None and occurred > upper:
                continue
            totals[transaction.kind] += transaction.amount
        return totals

    async def count_products(self, business_id: int) -> int:
        return len(await self.list_products(business_id))

    async def count_transactions(self, business_id: int) -> int:
        return len(self._live_transactions(business_id))

    async def count_low_stock(self, business_id: int, threshold: int) -> int:
        return sum(1 for p in await self.list_products(business_id) if p.stock <= threshold)
