"""
장부 계산 함수

거래 종류별 파생 필드 계산과 Master 기여분(delta) 계산.
모두 순수 함수: 입력 dict만 읽고 새 dict/MasterDelta를 돌려준다.

파생 필드는 항상 저장된 입력값에서 다시 계산되며, 호출자가 보낸 값은 무시된다.
"""

from decimal import Decimal
from typing import Any, Callable, Mapping

from core.ledger.delta import MasterDelta
from core.types import MasterKind, StockEntryType, TransactionKind
from core.utils.money import ZERO, quantize

Values = Mapping[str, Any]


def _num(values: Values, key: str) -> Decimal:
    value = values.get(key)
    if value is None:
        return ZERO
    return Decimal(value)


# =============================================================================
# 파생 필드
# =============================================================================


def calc_trip(values: Values) -> dict[str, Any]:
    """Trip 파생 필드

    - trip_km = end_miter - st_miter
    - average = trip_km / ltr (ltr <= 0 이면 0)
    - total_trip_fare = trip_fare + rt_fare
    - profit_statement = total_trip_fare - trip_expense

    Example:
        >>> calc_trip({"st_miter": 100, "end_miter": 350, "ltr": 25, "trip_fare": 5000, "trip_expense": 1200})
        {'trip_km': 250, 'average': Decimal('10.00'), 'total_trip_fare': Decimal('5000.00'), 'profit_statement': Decimal('3800.00')}
    """
    trip_km = int(values.get("end_miter") or 0) - int(values.get("st_miter") or 0)
    ltr = _num(values, "ltr")
    average = quantize(Decimal(trip_km) / ltr) if ltr > 0 else quantize(ZERO)
    total_trip_fare = quantize(_num(values, "trip_fare") + _num(values, "rt_fare"))
    profit_statement = quantize(total_trip_fare - _num(values, "trip_expense"))

    return {
        "trip_km": trip_km,
        "average": average,
        "total_trip_fare": total_trip_fare,
        "profit_statement": profit_statement,
    }


def _settlement(values: Values, amount_field: str) -> dict[str, Any]:
    received = (
        _num(values, amount_field)
        - _num(values, "shortage_amt")
        - _num(values, "deduction_amt")
        - _num(values, "holding_amt")
    )
    pending = received - _num(values, "advance_amt")
    return {"received_amt": quantize(received), "pending_amt": quantize(pending)}


def calc_trip_book(values: Values) -> dict[str, Any]:
    """TripBook 파생 필드

    - received_amt = trip_amount - shortage_amt - deduction_amt - holding_amt
    - pending_amt = received_amt - advance_amt
    - market_balance = market_freight - market_advance
    - net_profit = received_amt - market_freight
    """
    derived = _settlement(values, "trip_amount")
    market_freight = _num(values, "market_freight")
    derived["market_balance"] = quantize(market_freight - _num(values, "market_advance"))
    derived["net_profit"] = quantize(derived["received_amt"] - market_freight)
    return derived


def calc_return_trip(values: Values) -> dict[str, Any]:
    """ReturnTrip 파생 필드 (rt_freight 기준 정산)"""
    return _settlement(values, "rt_freight")


def no_derived(values: Values) -> dict[str, Any]:
    return {}


# =============================================================================
# Master 마감 값
# =============================================================================


def billing_party_balance(master: Values) -> Decimal:
    """balance_amt = open_bal + bill_amt_trip + bill_amt_rt - receive_amt"""
    return quantize(
        _num(master, "open_bal")
        + _num(master, "bill_amt_trip")
        + _num(master, "bill_amt_rt")
        - _num(master, "receive_amt")
    )


def driver_close_bal(master: Values) -> Decimal:
    """close_bal = open_bal + debit - credit"""
    return quantize(_num(master, "open_bal") + _num(master, "debit") - _num(master, "credit"))


def transporter_close_bal(master: Values) -> Decimal:
    """close_bal = open_bal + bill_amt - paid_amt"""
    return quantize(_num(master, "open_bal") + _num(master, "bill_amt") - _num(master, "paid_amt"))


def stock_close_qty(master: Values) -> Decimal:
    """close_qty = open_qty + stk_in - stk_out"""
    return quantize(_num(master, "open_qty") + _num(master, "stk_in") - _num(master, "stk_out"))


CLOSING_VALUES: dict[MasterKind, tuple[str, Callable[[Values], Decimal]]] = {
    MasterKind.BILLING_PARTY: ("balance_amt", billing_party_balance),
    MasterKind.DRIVER: ("close_bal", driver_close_bal),
    MasterKind.TRANSPORTER: ("close_bal", transporter_close_bal),
    MasterKind.STOCK_ITEM: ("close_qty", stock_close_qty),
}


# =============================================================================
# Master 기여분
# =============================================================================


def trip_contribution(values: Values) -> MasterDelta:
    """Trip → Vehicle (+1 운행, +profit_statement)"""
    return MasterDelta(
        MasterKind.VEHICLE,
        {"total_trip": Decimal(1), "net_profit": _num(values, "profit_statement")},
    )


def trip_book_contribution(values: Values) -> MasterDelta:
    return MasterDelta(MasterKind.BILLING_PARTY, {"bill_amt_trip": _num(values, "trip_amount")})


def return_trip_contribution(values: Values) -> MasterDelta:
    return MasterDelta(MasterKind.BILLING_PARTY, {"bill_amt_rt": _num(values, "rt_freight")})


def party_payment_contribution(values: Values) -> MasterDelta:
    return MasterDelta(MasterKind.BILLING_PARTY, {"receive_amt": _num(values, "receive_amt")})


def driver_advance_contribution(values: Values) -> MasterDelta:
    return MasterDelta(
        MasterKind.DRIVER,
        {"debit": _num(values, "debit"), "credit": _num(values, "credit")},
    )


def market_veh_payment_contribution(values: Values) -> MasterDelta:
    return MasterDelta(MasterKind.TRANSPORTER, {"paid_amt": _num(values, "paid_amt")})


def stock_entry_contribution(values: Values) -> MasterDelta:
    """StockEntry → StockItem (entry_type에 따라 stk_in 또는 stk_out)"""
    entry_type = getattr(values.get("entry_type"), "value", values.get("entry_type"))
    column = "stk_in" if entry_type == StockEntryType.IN.value else "stk_out"
    return MasterDelta(MasterKind.STOCK_ITEM, {column: _num(values, "quantity")})


CONTRIBUTIONS: dict[TransactionKind, Callable[[Values], MasterDelta]] = {
    TransactionKind.TRIP: trip_contribution,
    TransactionKind.TRIP_BOOK: trip_book_contribution,
    TransactionKind.RETURN_TRIP: return_trip_contribution,
    TransactionKind.PARTY_PAYMENT: party_payment_contribution,
    TransactionKind.DRIVER_ADVANCE: driver_advance_contribution,
    TransactionKind.MARKET_VEH_PAYMENT: market_veh_payment_contribution,
    TransactionKind.STOCK_ENTRY: stock_entry_contribution,
}


def contribution(kind: TransactionKind, values: Values) -> MasterDelta | None:
    """거래 종류의 Master 기여분 (Master가 없는 종류는 None)"""
    fn = CONTRIBUTIONS.get(kind)
    return fn(values) if fn else None
