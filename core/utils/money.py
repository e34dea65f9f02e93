"""
금액/수량 변환 유틸리티

Decimal ↔ 최소 단위 정수 (0.01) 변환.
저장소는 정수만 다루고, 계산/응답은 Decimal만 다룬다.
"""

from decimal import ROUND_HALF_UP, Decimal

from core.constants import Money

ZERO = Decimal("0")


def quantize(value: Decimal | int | str) -> Decimal:
    """소수점 2자리로 반올림 (ROUND_HALF_UP)

    Example:
        >>> quantize(Decimal("10.005"))
        Decimal('10.01')
    """
    return Decimal(value).quantize(Money.QUANTUM, rounding=ROUND_HALF_UP)


def to_minor(value: Decimal | int | str | None) -> int:
    """Decimal을 최소 단위 정수로 변환

    Example:
        >>> to_minor(Decimal("3800.5"))
        380050
    """
    if value is None:
        return 0
    return int(quantize(value) * Money.SCALE)


def from_minor(value: int | None) -> Decimal:
    """최소 단위 정수를 Decimal로 변환

    Example:
        >>> from_minor(380050)
        Decimal('3800.50')
    """
    if value is None:
        return quantize(ZERO)
    return Decimal(int(value)).scaleb(-2)
