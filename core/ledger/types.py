"""
Ledger 타입/상수 정의

거래 카테고리, 재고 임계값, 거래 유형별 부수효과 방향 정의
"""

from dataclasses import dataclass
from decimal import Decimal

from core.types import TransactionKind


# 재고 상태 임계값 (stock < 10 → low)
LOW_STOCK_THRESHOLD: int = 10

# 상품 연동 거래의 카테고리/기본 설명
SALES_CATEGORY: str = "Sales"
PURCHASE_CATEGORY: str = "Stock Purchase"
SALE_DESCRIPTION: str = "Product sale"
PURCHASE_DESCRIPTION: str = "Stock purchase"


@dataclass(frozen=True)
class SideEffect:
    """거래 유형별 부수효과 부호

    Attributes:
        stock_sign: 라인 수량에 곱하는 재고 부호 (판매 -1, 구매 +1)
        balance_sign: 금액에 곱하는 잔고 부호 (수입 +1, 지출 -1)

    역방향(삭제 시 되돌리기)은 각 부호를 뒤집어 적용
    """

    stock_sign: int
    balance_sign: int

    def stock_delta(self, quantity: int) -> int:
        return self.stock_sign * quantity

    def reverse_stock_delta(self, quantity: int) -> int:
        return -self.stock_sign * quantity

    def balance_delta(self, amount: Decimal) -> Decimal:
        return amount * self.balance_sign

    def reverse_balance_delta(self, amount: Decimal) -> Decimal:
        return -amount * self.balance_sign


# | 유형    | 재고   | 잔고     | 재고 역방향 | 잔고 역방향 |
# | Income  | -qty   | +amount  | +qty       | -amount    |
# | Expense | +qty   | -amount  | -qty       | +amount    |
SIDE_EFFECTS: dict[TransactionKind, SideEffect] = {
    TransactionKind.INCOME: SideEffect(stock_sign=-1, balance_sign=1),
    TransactionKind.EXPENSE: SideEffect(stock_sign=1, balance_sign=-1),
}
