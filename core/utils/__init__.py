"""
유틸리티 패키지

타임존 처리, 금액 스케일 변환 등 공통 유틸리티
"""

from core.utils.money import ZERO, from_minor, quantize, to_minor
from core.utils.timezone import now_iso, now_utc, parse_date

__all__ = [
    "ZERO",
    "from_minor",
    "quantize",
    "to_minor",
    "now_iso",
    "now_utc",
    "parse_date",
]
