"""
입력 페이로드 스키마 (Pydantic)

거래/Master 생성·수정 입력 검증.
snake_case와 camelCase(tripNo 등) 이름을 모두 받으며, 알 수 없는 키(파생 필드 포함)는 무시한다.

모든 필드가 선택값이다. 어떤 필드가 "보내졌는지"는 model_fields_set으로 구분하며,
필수 필드 검사는 기존 값과 합친 뒤 서비스 계층에서 수행한다.
"""

import datetime
from decimal import Decimal
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel, to_snake

from core.errors import ValidationError
from core.types import ExpenseCategoryMode, RejectionType, StockEntryType

P = TypeVar("P", bound=BaseModel)


class Payload(BaseModel):
    """입력 페이로드 기반 클래스"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("trip_no", mode="before", check_fields=False)
    @classmethod
    def _trip_no_as_text(cls, value: Any) -> Any:
        # 숫자로 들어온 거래 번호도 문자열 키로 저장
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, Decimal)):
            return str(value)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator(
        "name",
        "veh_no",
        "driver_name",
        "billing_party_name",
        "transporter_name",
        "stock_item_name",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _strip_key(cls, value: Any) -> Any:
        # 자연키와 연결용 표시 이름은 저장과 조회가 같은 값을 보도록 공백 제거
        if isinstance(value, str):
            return value.strip()
        return value

    def values(self) -> dict[str, Any]:
        """보내진 필드만 dict로 (None 포함)"""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# 거래 페이로드
# =============================================================================


class TripPayload(Payload):
    """Trip 입력 (파생 필드 trip_km/average/total_trip_fare/profit_statement는 받지 않음)"""

    trip_no: str | None = None
    date: datetime.date | None = None
    veh_no: str | None = None
    vehicle_id: str | None = None
    driver_name: str | None = None
    from_location: str | None = None
    to_location: str | None = None
    fuel_exp_amt: Decimal | None = None
    trip_fare: Decimal | None = None
    rt_fare: Decimal | None = None
    trip_expense: Decimal | None = None
    st_miter: int | None = None
    end_miter: int | None = None
    diesel_rate: Decimal | None = None
    ltr: Decimal | None = None
    is_market_trip: bool | None = None
    ex_income: Decimal | None = None
    driver_bal: Decimal | None = None
    lock_status: bool | None = None
    plant_name: str | None = None
    car_qty: int | None = None
    load_km: int | None = None
    empty_km: int | None = None


class TripBookPayload(Payload):
    trip_no: str | None = None
    date: datetime.date | None = None
    lr_no: str | None = None
    billing_party_id: str | None = None
    billing_party_name: str | None = None
    freight_mode: str | None = None
    trip_amount: Decimal | None = None
    advance_amt: Decimal | None = None
    shortage_amt: Decimal | None = None
    deduction_amt: Decimal | None = None
    holding_amt: Decimal | None = None
    transporter_id: str | None = None
    transporter_name: str | None = None
    market_veh_no: str | None = None
    market_freight: Decimal | None = None
    market_advance: Decimal | None = None
    l_weight: Decimal | None = None
    u_weight: Decimal | None = None
    remark: str | None = None


class ReturnTripPayload(Payload):
    trip_no: str | None = None
    date: datetime.date | None = None
    billing_party_id: str | None = None
    billing_party_name: str | None = None
    lr_no: str | None = None
    rt_freight: Decimal | None = None
    advance_amt: Decimal | None = None
    shortage_amt: Decimal | None = None
    deduction_amt: Decimal | None = None
    holding_amt: Decimal | None = None
    mode: str | None = None
    to_bank: str | None = None
    remark: str | None = None


class PartyPaymentPayload(Payload):
    trip_no: str | None = None
    date: datetime.date | None = None
    billing_party_id: str | None = None
    billing_party_name: str | None = None
    mode: str | None = None
    receive_amt: Decimal | None = None
    shortage_amt: Decimal | None = None
    deduction_amt: Decimal | None = None
    lr_no: str | None = None
    to_bank: str | None = None
    remark: str | None = None
    run_bal: Decimal | None = None


class MarketVehPaymentPayload(Payload):
    trip_no: str | None = None
    date: datetime.date | None = None
    transporter_id: str | None = None
    transporter_name: str | None = None
    market_veh_no: str | None = None
    mode: str | None = None
    paid_amt: Decimal | None = None
    lr_no: str | None = None
    from_bank: str | None = None
    remark: str | None = None
    run_bal: Decimal | None = None


class DriverAdvancePayload(Payload):
    trip_no: str | None = None
    date: datetime.date | None = None
    driver_id: str | None = None
    driver_name: str | None = None
    mode: str | None = None
    from_account: str | None = None
    debit: Decimal | None = None
    credit: Decimal | None = None
    fuel_ltr: Decimal | None = None
    remark: str | None = None
    run_bal: Decimal | None = None


class StockEntryPayload(Payload):
    date: datetime.date | None = None
    stock_item_id: str | None = None
    stock_item_name: str | None = None
    entry_type: StockEntryType | None = None
    quantity: Decimal | None = None
    remark: str | None = None


class ExpensePayload(Payload):
    trip_no: str | None = None
    date: datetime.date | None = None
    expense_type: str | None = None
    amount: Decimal | None = None
    from_account: str | None = None
    ref_veh_no: str | None = None
    remark1: str | None = None
    remark2: str | None = None
    is_non_trip_exp: bool | None = None


# =============================================================================
# Master 페이로드
# =============================================================================


class VehiclePayload(Payload):
    """Vehicle 입력 (total_trip/net_profit은 Trip에서만 변경됨)"""

    veh_no: str | None = None
    veh_type: str | None = None


class DriverPayload(Payload):
    name: str | None = None
    contact_no: str | None = None
    dr_cr: str | None = None
    open_bal: Decimal | None = None
    remark: str | None = None


class TransporterPayload(Payload):
    """Transporter 입력

    bill_amt/total_trip/profit은 이를 채우는 거래가 없어 수동 입력값이다.
    paid_amt는 MarketVehPayment로만 변경된다.
    """

    name: str | None = None
    veh_no: str | None = None
    dr_cr: str | None = None
    open_bal: Decimal | None = None
    bill_amt: Decimal | None = None
    total_trip: int | None = None
    profit: Decimal | None = None
    remark: str | None = None


class BillingPartyPayload(Payload):
    name: str | None = None
    contact_no: str | None = None
    dr_cr: str | None = None
    open_bal: Decimal | None = None
    remark: str | None = None


class StockItemPayload(Payload):
    name: str | None = None
    open_qty: Decimal | None = None


class ExpenseCategoryPayload(Payload):
    name: str | None = None
    mode: ExpenseCategoryMode | None = None


class PaymentModePayload(Payload):
    name: str | None = None


# =============================================================================
# Bulk Import
# =============================================================================


class BulkImportRequest(Payload):
    """Bulk Import 요청

    행 단위 오류를 해당 행에만 붙이기 위해 각 행은 원본 dict로 받고,
    서비스에서 TripPayload/ExpensePayload/ExpenseCategoryPayload로 개별 검증한다.
    """

    trips: list[Any] = Field(default_factory=list, description="Trip 행")
    expenses: list[Any] = Field(default_factory=list, description="Expense 행")
    expense_categories: list[Any] = Field(
        default_factory=list, description="새 비용 카테고리"
    )


class ImportRejection(Payload):
    """거부된 행"""

    type: RejectionType
    index: int
    trip_no: str | None = None
    message: str


class BulkImportResult(Payload):
    """Bulk Import 결과 (부분 성공이 정상 경로)"""

    trips_created: int = 0
    trips_failed: int = 0
    expenses_created: int = 0
    expenses_failed: int = 0
    categories_created: int = 0
    rejections: list[ImportRejection] = Field(default_factory=list)


# =============================================================================
# 파싱
# =============================================================================


def parse_payload(model: type[P], data: Any) -> P:
    """dict/모델을 페이로드로 변환

    Raises:
        ValidationError: 첫 번째 잘못된 필드명(snake_case)을 담은 오류
    """
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Payload must be an object")

    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        loc = first.get("loc") or ()
        field = to_snake(str(loc[0])) if loc else None
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        raise ValidationError(message, field=field) from e
