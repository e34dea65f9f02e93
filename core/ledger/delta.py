"""
MasterDelta - Master 누적 컬럼에 대한 부호 있는 기여분

거래 하나가 Master에 기여하는 값.
생성은 +delta, 수정은 (new - old), 삭제는 -delta 로 적용된다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from core.types import MasterKind


@dataclass(frozen=True)
class MasterDelta:
    """Master 누적 컬럼별 증감량

    서로 다른 Master 종류의 delta끼리는 더할 수 없다.

    Example:
        >>> d = MasterDelta(MasterKind.VEHICLE, {"total_trip": Decimal(1), "net_profit": Decimal("3800")})
        >>> (d - d).is_zero
        True
    """

    master_kind: MasterKind
    amounts: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {k: Decimal(v) for k, v in self.amounts.items()}
        object.__setattr__(self, "amounts", MappingProxyType(normalized))

    @classmethod
    def zero(cls, master_kind: MasterKind) -> MasterDelta:
        return cls(master_kind, {})

    @property
    def is_zero(self) -> bool:
        return all(v == 0 for v in self.amounts.values())

    def nonzero(self) -> dict[str, Decimal]:
        """0이 아닌 컬럼만"""
        return {k: v for k, v in self.amounts.items() if v != 0}

    def _check(self, other: MasterDelta) -> None:
        if other.master_kind != self.master_kind:
            raise ValueError(
                f"Cannot combine {self.master_kind.value} delta with {other.master_kind.value} delta"
            )

    def __add__(self, other: MasterDelta) -> MasterDelta:
        self._check(other)
        merged = dict(self.amounts)
        for k, v in other.amounts.items():
            merged[k] = merged.get(k, Decimal(0)) + v
        return MasterDelta(self.master_kind, merged)

    def __neg__(self) -> MasterDelta:
        return MasterDelta(self.master_kind, {k: -v for k, v in self.amounts.items()})

    def __sub__(self, other: MasterDelta) -> MasterDelta:
        return self + (-other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MasterDelta):
            return NotImplemented
        return self.master_kind == other.master_kind and self.nonzero() == other.nonzero()

    def __hash__(self) -> int:
        return hash((self.master_kind, frozenset(self.nonzero().items())))
