"""
시간/날짜 유틸리티

내부 저장: UTC ISO 8601 문자열 | 거래일자: YYYY-MM-DD 문자열
"""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.
    """
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """현재 UTC 시간을 ISO 8601 문자열로 반환 (created_at/updated_at 용)"""
    return now_utc().isoformat()


def parse_date(value: date | datetime | str) -> date:
    """거래일자 파싱

    Args:
        value: date, datetime 또는 'YYYY-MM-DD' / ISO 8601 문자열

    Returns:
        date (datetime이면 UTC 기준 날짜)

    Raises:
        ValueError: 파싱 불가

    Example:
        >>> parse_date("2026-10-19T05:30:00Z")
        datetime.date(2026, 10, 19)
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
