"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class MasterKind(str, Enum):
    """잔액을 보유하는 Master 엔티티 종류"""

    VEHICLE = "VEHICLE"
    DRIVER = "DRIVER"
    TRANSPORTER = "TRANSPORTER"
    BILLING_PARTY = "BILLING_PARTY"
    STOCK_ITEM = "STOCK_ITEM"


class TransactionKind(str, Enum):
    """Master에 delta를 기여하는 거래 엔티티 종류"""

    TRIP = "TRIP"
    TRIP_BOOK = "TRIP_BOOK"
    RETURN_TRIP = "RETURN_TRIP"
    EXPENSE = "EXPENSE"
    DRIVER_ADVANCE = "DRIVER_ADVANCE"
    PARTY_PAYMENT = "PARTY_PAYMENT"
    MARKET_VEH_PAYMENT = "MARKET_VEH_PAYMENT"
    STOCK_ENTRY = "STOCK_ENTRY"


class LookupKind(str, Enum):
    """잔액이 없는 조회용 Master"""

    EXPENSE_CATEGORY = "EXPENSE_CATEGORY"
    PAYMENT_MODE = "PAYMENT_MODE"


class MutationOp(str, Enum):
    """거래 변경 유형"""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class StockEntryType(str, Enum):
    """재고 입출고 구분"""

    IN = "IN"
    OUT = "OUT"


class ExpenseCategoryMode(str, Enum):
    """비용 카테고리 모드"""

    GENERAL = "General"
    EXPENSES = "Expenses"
    FUEL = "Fuel"


class RejectionType(str, Enum):
    """Bulk Import 거부 행 종류"""

    TRIP = "trip"
    EXPENSE = "expense"
    CATEGORY = "category"
