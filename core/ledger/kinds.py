"""
엔티티 종류별 정의 레지스트리

거래/Master 종류마다 테이블, 입력 페이로드, 필수 필드, Master 연결 규칙,
파생 필드 함수, 기본 정렬, 허용 필터를 한 곳에 모은다.
서비스 계층은 종류별 분기 없이 이 정의만 보고 동작한다.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from core.errors import ValidationError
from core.ledger import calculations
from core.ledger.delta import MasterDelta
from core.ledger.payloads import (
    BillingPartyPayload,
    DriverAdvancePayload,
    DriverPayload,
    ExpenseCategoryPayload,
    ExpensePayload,
    MarketVehPaymentPayload,
    PartyPaymentPayload,
    Payload,
    PaymentModePayload,
    ReturnTripPayload,
    StockEntryPayload,
    StockItemPayload,
    TransporterPayload,
    TripBookPayload,
    TripPayload,
    VehiclePayload,
)
from core.storage import schema
from core.storage.schema import Table
from core.types import LookupKind, MasterKind, TransactionKind

TRIP_NO_ORDER = "CAST(trip_no AS INTEGER) DESC, trip_no DESC"
RECENT_FIRST = "created_at DESC, rowid DESC"


@dataclass(frozen=True)
class MasterSpec:
    """Master(잔액 보유 또는 조회용) 정의

    Args:
        kind: Master 종류
        table: 테이블 정의
        label: 오류 메시지용 이름
        payload: 입력 페이로드 모델
        natural_key: 조직 내 유일한 표시 키
        required: 필수 필드
        order_by: 목록 정렬
    """

    kind: MasterKind | LookupKind
    table: Table
    label: str
    payload: type[Payload]
    natural_key: str = "name"
    required: tuple[str, ...] = ("name",)
    order_by: str = RECENT_FIRST


@dataclass(frozen=True)
class MasterLink:
    """거래 → Master 연결 규칙

    id_field가 권위 있는 연결이고 name_field는 표시용 캐시다.
    id가 없으면 name_field 값을 Master 자연키로 찾아 연결한다.
    """

    master_kind: MasterKind
    id_field: str
    name_field: str


@dataclass(frozen=True)
class TransactionSpec:
    """거래 정의

    Args:
        kind: 거래 종류
        table: 테이블 정의
        label: 오류 메시지용 이름
        payload: 입력 페이로드 모델
        required: 필수 필드 (병합 후 검사)
        link: 기여분을 받는 Master 연결 (Expense는 None)
        references: 전파 없이 같은 조직 소속만 확인하는 참조 (id 필드 → Master 종류)
        derive: 파생 필드 계산 함수
        natural_key: 조직 내 유일한 거래 키 (Trip의 trip_no)
        order_by: 목록 정렬
        equals_filters: 정확히 일치 필터
        contains_filters: 대소문자 무시 부분 일치 필터
    """

    kind: TransactionKind
    table: Table
    label: str
    payload: type[Payload]
    required: tuple[str, ...] = ("date",)
    link: MasterLink | None = None
    references: Mapping[str, MasterKind] = field(default_factory=dict)
    derive: Callable[[Mapping[str, Any]], dict[str, Any]] = calculations.no_derived
    natural_key: str | None = None
    order_by: str = RECENT_FIRST
    equals_filters: tuple[str, ...] = ()
    contains_filters: tuple[str, ...] = ()

    def contribution(self, values: Mapping[str, Any]) -> MasterDelta | None:
        return calculations.contribution(self.kind, values)


# =============================================================================
# Master
# =============================================================================

MASTER_SPECS: dict[MasterKind | LookupKind, MasterSpec] = {
    MasterKind.VEHICLE: MasterSpec(
        MasterKind.VEHICLE,
        schema.VEHICLE,
        "Vehicle",
        VehiclePayload,
        natural_key="veh_no",
        required=("veh_no",),
    ),
    MasterKind.DRIVER: MasterSpec(MasterKind.DRIVER, schema.DRIVER, "Driver", DriverPayload),
    MasterKind.TRANSPORTER: MasterSpec(
        MasterKind.TRANSPORTER,
        schema.TRANSPORTER,
        "Transporter",
        TransporterPayload,
        required=("name", "veh_no"),
    ),
    MasterKind.BILLING_PARTY: MasterSpec(
        MasterKind.BILLING_PARTY, schema.BILLING_PARTY, "Billing party", BillingPartyPayload
    ),
    MasterKind.STOCK_ITEM: MasterSpec(
        MasterKind.STOCK_ITEM, schema.STOCK_ITEM, "Stock item", StockItemPayload
    ),
    LookupKind.EXPENSE_CATEGORY: MasterSpec(
        LookupKind.EXPENSE_CATEGORY,
        schema.EXPENSE_CATEGORY,
        "Expense category",
        ExpenseCategoryPayload,
        required=("name", "mode"),
    ),
    LookupKind.PAYMENT_MODE: MasterSpec(
        LookupKind.PAYMENT_MODE,
        schema.PAYMENT_MODE,
        "Payment mode",
        PaymentModePayload,
        order_by="name ASC",
    ),
}


# =============================================================================
# 거래
# =============================================================================

TRANSACTION_SPECS: dict[TransactionKind, TransactionSpec] = {
    TransactionKind.TRIP: TransactionSpec(
        TransactionKind.TRIP,
        schema.TRIP,
        "Trip",
        TripPayload,
        required=("date", "veh_no", "from_location", "to_location"),
        link=MasterLink(MasterKind.VEHICLE, "vehicle_id", "veh_no"),
        derive=calculations.calc_trip,
        natural_key="trip_no",
        order_by=TRIP_NO_ORDER,
        contains_filters=("veh_no", "driver_name"),
    ),
    TransactionKind.TRIP_BOOK: TransactionSpec(
        TransactionKind.TRIP_BOOK,
        schema.TRIP_BOOK,
        "Trip book",
        TripBookPayload,
        required=("trip_no", "date"),
        link=MasterLink(MasterKind.BILLING_PARTY, "billing_party_id", "billing_party_name"),
        references={"transporter_id": MasterKind.TRANSPORTER},
        derive=calculations.calc_trip_book,
        equals_filters=("trip_no",),
    ),
    TransactionKind.RETURN_TRIP: TransactionSpec(
        TransactionKind.RETURN_TRIP,
        schema.RETURN_TRIP,
        "Return trip",
        ReturnTripPayload,
        link=MasterLink(MasterKind.BILLING_PARTY, "billing_party_id", "billing_party_name"),
        derive=calculations.calc_return_trip,
        equals_filters=("trip_no",),
    ),
    TransactionKind.PARTY_PAYMENT: TransactionSpec(
        TransactionKind.PARTY_PAYMENT,
        schema.PARTY_PAYMENT,
        "Party payment",
        PartyPaymentPayload,
        link=MasterLink(MasterKind.BILLING_PARTY, "billing_party_id", "billing_party_name"),
        equals_filters=("trip_no", "billing_party_id"),
    ),
    TransactionKind.MARKET_VEH_PAYMENT: TransactionSpec(
        TransactionKind.MARKET_VEH_PAYMENT,
        schema.MARKET_VEH_PAYMENT,
        "Market vehicle payment",
        MarketVehPaymentPayload,
        link=MasterLink(MasterKind.TRANSPORTER, "transporter_id", "transporter_name"),
        equals_filters=("trip_no", "transporter_id"),
    ),
    TransactionKind.DRIVER_ADVANCE: TransactionSpec(
        TransactionKind.DRIVER_ADVANCE,
        schema.DRIVER_ADVANCE,
        "Driver advance",
        DriverAdvancePayload,
        required=("date", "driver_name"),
        link=MasterLink(MasterKind.DRIVER, "driver_id", "driver_name"),
        equals_filters=("trip_no",),
        contains_filters=("driver_name",),
    ),
    TransactionKind.STOCK_ENTRY: TransactionSpec(
        TransactionKind.STOCK_ENTRY,
        schema.STOCK_ENTRY,
        "Stock entry",
        StockEntryPayload,
        required=("date", "entry_type", "quantity"),
        link=MasterLink(MasterKind.STOCK_ITEM, "stock_item_id", "stock_item_name"),
        equals_filters=("stock_item_id", "entry_type"),
    ),
    TransactionKind.EXPENSE: TransactionSpec(
        TransactionKind.EXPENSE,
        schema.EXPENSE,
        "Expense",
        ExpensePayload,
        required=("date", "expense_type", "amount"),
        equals_filters=("trip_no",),
        contains_filters=("expense_type",),
    ),
}


def master_spec(kind: MasterKind | LookupKind) -> MasterSpec:
    return MASTER_SPECS[kind]


def transaction_spec(kind: TransactionKind) -> TransactionSpec:
    return TRANSACTION_SPECS[kind]


def check_required(required: tuple[str, ...], values: Mapping[str, Any]) -> None:
    """병합된 값에서 필수 필드 확인 (빈 문자열도 누락으로 봄)

    Raises:
        ValidationError: 첫 번째 누락 필드
    """
    for name in required:
        value = values.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{name} is required", field=name)
