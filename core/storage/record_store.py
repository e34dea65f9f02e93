"""
RecordStore - 조직 단위 레코드 저장소

테이블 하나에 대한 CRUD.
모든 조회/수정/삭제는 organization_id 조건을 포함하며,
다른 조직의 행은 존재하지 않는 것과 같이 취급된다.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import ConflictError, ErrorCodes, not_found
from core.storage.schema import ColumnType, Table
from core.utils.money import from_minor, to_minor
from core.utils.timezone import now_iso, parse_date

logger = logging.getLogger(__name__)


def encode_value(column_type: ColumnType, value: Any) -> Any:
    """Python 값 → SQLite 값"""
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if column_type == ColumnType.MONEY:
        return to_minor(value)
    if column_type == ColumnType.BOOL:
        return 1 if value else 0
    if column_type == ColumnType.INT:
        return int(value)
    if column_type == ColumnType.DATE:
        return parse_date(value).isoformat()
    return str(value)


def decode_value(column_type: ColumnType, value: Any) -> Any:
    """SQLite 값 → Python 값"""
    if column_type == ColumnType.MONEY:
        return from_minor(value)
    if value is None:
        return None
    if column_type == ColumnType.BOOL:
        return bool(value)
    if column_type == ColumnType.INT:
        return int(value)
    if column_type == ColumnType.DATE:
        return date.fromisoformat(value)
    return value


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RecordStore:
    """레코드 저장소

    Args:
        db: SQLiteAdapter 인스턴스
        table: 테이블 정의
        label: 오류 메시지에 쓰이는 엔티티 이름 (예: "Trip")

    사용 예시:
    ```python
    store = RecordStore(db, TRIP, "Trip")
    trip = await store.insert(org_id, {"trip_no": "1001", ...})
    trips = await store.list(org_id, contains={"veh_no": "mh12"}, order_by="date DESC")
    ```
    """

    def __init__(self, db: SQLiteAdapter, table: Table, label: str):
        self.db = db
        self.table = table
        self.label = label
        self._types = table.types

    # -------------------------------------------------------------------------
    # 변환
    # -------------------------------------------------------------------------

    def encode(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """쓰기 가능한 컬럼만 골라 SQLite 값으로 변환

        NOT NULL 컬럼의 None은 컬럼 기본값('' 또는 0)으로 바꾼다.
        """
        writable = self.table.writable
        encoded: dict[str, Any] = {}
        for name, value in values.items():
            if name not in writable:
                continue
            column = self.table.column(name)
            if value is None and not column.nullable and column.type != ColumnType.DATE:
                value = "" if column.type == ColumnType.TEXT else 0
            encoded[name] = encode_value(column.type, value)
        return encoded

    def decode(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """SQLite 행 → dict"""
        record: dict[str, Any] = {}
        for key in row.keys():
            column_type = self._types.get(key)
            record[key] = decode_value(column_type, row[key]) if column_type else row[key]
        return record

    def _conflict(self, error: sqlite3.IntegrityError) -> ConflictError:
        message = str(error)
        if "FOREIGN KEY" in message:
            return ConflictError(
                f"{self.label} is referenced by existing transactions",
                code=ErrorCodes.MASTER_IN_USE,
            )
        return ConflictError(f"{self.label} already exists")

    # -------------------------------------------------------------------------
    # 쓰기
    # -------------------------------------------------------------------------

    async def insert(
        self,
        org_id: str,
        values: Mapping[str, Any],
        ignore_conflict: bool = False,
    ) -> dict[str, Any] | None:
        """레코드 생성

        Args:
            org_id: 조직 ID
            values: 컬럼 값 (쓰기 불가 컬럼은 무시)
            ignore_conflict: True면 유니크 충돌 시 건너뛰고 None 반환

        Returns:
            생성된 레코드 (ignore_conflict로 건너뛴 경우 None)

        Raises:
            ConflictError: 유니크 키 충돌
        """
        record_id = str(uuid.uuid4())
        now = now_iso()
        encoded = self.encode(values)
        columns = ["id", "organization_id", *encoded.keys(), "created_at", "updated_at"]
        params = (record_id, org_id, *encoded.values(), now, now)
        placeholders = ", ".join("?" for _ in columns)
        suffix = " ON CONFLICT DO NOTHING" if ignore_conflict else ""

        try:
            cursor = await self.db.execute(
                f"INSERT INTO {self.table.name} ({', '.join(columns)}) "
                f"VALUES ({placeholders}){suffix}",
                params,
            )
        except sqlite3.IntegrityError as e:
            raise self._conflict(e) from e

        if ignore_conflict and cursor.rowcount == 0:
            logger.debug(
                f"{self.label} 중복으로 건너뜀",
                extra={"org_id": org_id, "table": self.table.name},
            )
            return None

        return await self.get(org_id, record_id)

    async def update(
        self,
        org_id: str,
        record_id: str,
        values: Mapping[str, Any],
    ) -> dict[str, Any]:
        """레코드 수정

        Raises:
            NotFoundError: 없거나 다른 조직 소유
            ConflictError: 유니크 키 충돌
        """
        encoded = self.encode(values)
        assignments = [f"{name} = ?" for name in encoded]
        assignments.append("updated_at = ?")
        params = (*encoded.values(), now_iso(), record_id, org_id)

        try:
            cursor = await self.db.execute(
                f"UPDATE {self.table.name} SET {', '.join(assignments)} "
                "WHERE id = ? AND organization_id = ?",
                params,
            )
        except sqlite3.IntegrityError as e:
            raise self._conflict(e) from e

        if cursor.rowcount == 0:
            raise not_found(self.label)

        record = await self.get(org_id, record_id)
        assert record is not None
        return record

    async def delete(self, org_id: str, record_id: str) -> None:
        """레코드 삭제

        Raises:
            NotFoundError: 없거나 다른 조직 소유
            ConflictError: 참조 중인 레코드 (MASTER_IN_USE)
        """
        try:
            cursor = await self.db.execute(
                f"DELETE FROM {self.table.name} WHERE id = ? AND organization_id = ?",
                (record_id, org_id),
            )
        except sqlite3.IntegrityError as e:
            raise self._conflict(e) from e

        if cursor.rowcount == 0:
            raise not_found(self.label)

    async def delete_all(self, org_id: str) -> int:
        """조직의 모든 레코드 삭제 (운영 정리용)

        Returns:
            삭제된 행 수
        """
        cursor = await self.db.execute(
            f"DELETE FROM {self.table.name} WHERE organization_id = ?",
            (org_id,),
        )
        return cursor.rowcount

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get(self, org_id: str, record_id: str) -> dict[str, Any] | None:
        """ID로 조회 (다른 조직 소유면 None)"""
        row = await self.db.fetchone(
            f"SELECT * FROM {self.table.name} WHERE id = ? AND organization_id = ?",
            (record_id, org_id),
        )
        return self.decode(row) if row else None

    async def require(self, org_id: str, record_id: str) -> dict[str, Any]:
        """ID로 조회, 없으면 NotFoundError"""
        record = await self.get(org_id, record_id)
        if record is None:
            raise not_found(self.label)
        return record

    async def find_one(self, org_id: str, **equals: Any) -> dict[str, Any] | None:
        """컬럼 일치 조건으로 단건 조회"""
        where, params = self._where(org_id, equals=equals)
        row = await self.db.fetchone(
            f"SELECT * FROM {self.table.name} WHERE {where} LIMIT 1",
            tuple(params),
        )
        return self.decode(row) if row else None

    async def list(
        self,
        org_id: str,
        equals: Mapping[str, Any] | None = None,
        contains: Mapping[str, str] | None = None,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
        order_by: str = "created_at DESC",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """조건 조회

        Args:
            org_id: 조직 ID
            equals: 정확히 일치해야 하는 컬럼 값
            contains: 대소문자 무시 부분 일치 컬럼 값
            date_from: date 컬럼 하한 (포함)
            date_to: date 컬럼 상한 (포함)
            order_by: 정렬 절 (호출 측 상수만 사용)
            limit: 최대 개수

        Returns:
            레코드 목록
        """
        where, params = self._where(org_id, equals, contains, date_from, date_to)
        sql = f"SELECT * FROM {self.table.name} WHERE {where} ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        rows = await self.db.fetchall(sql, tuple(params))
        return [self.decode(row) for row in rows]

    async def count(self, org_id: str, **equals: Any) -> int:
        """조건 개수"""
        where, params = self._where(org_id, equals=equals)
        row = await self.db.fetchone(
            f"SELECT COUNT(*) FROM {self.table.name} WHERE {where}",
            tuple(params),
        )
        return int(row[0]) if row else 0

    async def column_values(self, org_id: str, column: str) -> set[Any]:
        """조직 내 특정 컬럼의 모든 값 (자연키 중복 검사용)"""
        self.table.column(column)
        rows = await self.db.fetchall(
            f"SELECT {column} FROM {self.table.name} WHERE organization_id = ?",
            (org_id,),
        )
        return {row[0] for row in rows}

    async def sum_columns(
        self,
        org_id: str,
        columns: Iterable[str],
        date_from: date | str | None = None,
        date_to: date | str | None = None,
    ) -> dict[str, Decimal]:
        """MONEY/INT 컬럼 합계"""
        columns = list(columns)
        where, params = self._where(org_id, date_from=date_from, date_to=date_to)
        selects = ", ".join(f"COALESCE(SUM({c}), 0)" for c in columns)
        row = await self.db.fetchone(
            f"SELECT {selects} FROM {self.table.name} WHERE {where}",
            tuple(params),
        )
        totals: dict[str, Decimal] = {}
        for i, name in enumerate(columns):
            raw = row[i] if row else 0
            if self._types[name] == ColumnType.MONEY:
                totals[name] = from_minor(raw)
            else:
                totals[name] = Decimal(int(raw))
        return totals

    def _where(
        self,
        org_id: str,
        equals: Mapping[str, Any] | None = None,
        contains: Mapping[str, str] | None = None,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
    ) -> tuple[str, list[Any]]:
        clauses = ["organization_id = ?"]
        params: list[Any] = [org_id]

        for name, value in (equals or {}).items():
            column_type = self._types.get(name)
            if column_type is None and name != "id":
                raise KeyError(f"{self.table.name}.{name}")
            if value is None:
                clauses.append(f"{name} IS NULL")
            else:
                clauses.append(f"{name} = ?")
                params.append(encode_value(column_type or ColumnType.TEXT, value))

        for name, value in (contains or {}).items():
            self.table.column(name)
            clauses.append(f"{name} LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(value)}%")

        if date_from is not None:
            clauses.append("date >= ?")
            params.append(parse_date(date_from).isoformat())
        if date_to is not None:
            clauses.append("date <= ?")
            params.append(parse_date(date_to).isoformat())

        return " AND ".join(clauses), params
