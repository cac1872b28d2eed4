"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class RunMode(str, Enum):
    """실행 모드 (운영 / 개발)"""

    PRODUCTION = "production"
    DEVELOPMENT = "development"


class StockStatus(str, Enum):
    """재고 상태

    stock 수량에서 파생되는 라벨.
    INACTIVE는 판매 중지 상품용 (수량 기반 계산으로는 나오지 않음)
    """

    ACTIVE = "active"
    LOW = "low"
    OUT = "out"
    INACTIVE = "inactive"


class TransactionKind(str, Enum):
    """거래 유형 (수입 / 지출)"""

    INCOME = "Income"
    EXPENSE = "Expense"


class TransactionStatus(str, Enum):
    """거래 상태

    전이 규칙은 core.domain.state_machines.TransactionStateMachine 참고
    """

    PENDING = "pending"
    COMPLETE = "complete"
    CANCEL = "cancel"


class ErrorKind(str, Enum):
    """Ledger 오류 종류 (닫힌 집합)"""

    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    WRITE_FAILURE = "WRITE_FAILURE"
    INVALID_STATE = "INVALID_STATE"
