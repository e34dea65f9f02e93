"""MasterDelta 테스트"""

from decimal import Decimal

import pytest

from core.ledger.delta import MasterDelta
from core.types import MasterKind


def _vehicle(total_trip: int, net_profit: str) -> MasterDelta:
    return MasterDelta(
        MasterKind.VEHICLE,
        {"total_trip": Decimal(total_trip), "net_profit": Decimal(net_profit)},
    )


class TestMasterDelta:
    """MasterDelta 연산"""

    def test_amounts_normalized_to_decimal(self) -> None:
        delta = MasterDelta(MasterKind.DRIVER, {"debit": 100, "credit": "25.50"})

        assert delta.amounts["debit"] == Decimal("100")
        assert delta.amounts["credit"] == Decimal("25.50")

    def test_amounts_read_only(self) -> None:
        delta = _vehicle(1, "3800")

        with pytest.raises(TypeError):
            delta.amounts["total_trip"] = Decimal(5)  # type: ignore[index]

    def test_add(self) -> None:
        total = _vehicle(1, "3800") + _vehicle(1, "1200")

        assert total == _vehicle(2, "5000")

    def test_add_disjoint_columns(self) -> None:
        a = MasterDelta(MasterKind.BILLING_PARTY, {"bill_amt_trip": Decimal("8000")})
        b = MasterDelta(MasterKind.BILLING_PARTY, {"receive_amt": Decimal("2000")})

        assert (a + b).nonzero() == {
            "bill_amt_trip": Decimal("8000"),
            "receive_amt": Decimal("2000"),
        }

    def test_negate(self) -> None:
        assert -_vehicle(1, "3800") == _vehicle(-1, "-3800")

    def test_subtract_to_zero(self) -> None:
        """같은 delta를 빼면 0"""
        delta = _vehicle(1, "3800")

        assert (delta - delta).is_zero
        assert (delta - delta).nonzero() == {}

    def test_update_difference(self) -> None:
        """수정 delta = new - old (운행 수는 그대로)"""
        diff = _vehicle(1, "3500") - _vehicle(1, "3800")

        assert diff.nonzero() == {"net_profit": Decimal("-300")}

    def test_zero(self) -> None:
        assert MasterDelta.zero(MasterKind.DRIVER).is_zero

    def test_equality_ignores_zero_columns(self) -> None:
        a = MasterDelta(MasterKind.DRIVER, {"debit": Decimal("10"), "credit": Decimal("0")})
        b = MasterDelta(MasterKind.DRIVER, {"debit": Decimal("10")})

        assert a == b
        assert hash(a) == hash(b)

    def test_different_kinds_not_combinable(self) -> None:
        """다른 Master 종류끼리 더하면 ValueError"""
        vehicle = _vehicle(1, "100")
        driver = MasterDelta(MasterKind.DRIVER, {"debit": Decimal("10")})

        with pytest.raises(ValueError):
            vehicle + driver
