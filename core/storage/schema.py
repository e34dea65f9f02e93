"""
운송 장부 스키마

테이블 정의(컬럼 타입 포함)와 DDL 생성/초기화.
CREATE IF NOT EXISTS 패턴으로 여러 번 호출해도 안전하게 동작.

모든 테이블 공통 컬럼: id, organization_id, created_at, updated_at
금액/수량(MONEY)은 최소 단위 정수로 저장 (core.utils.money 참고).
마감 잔액(close_bal 등)은 generated 컬럼이라 직접 쓸 수 없다.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class ColumnType(str, Enum):
    """컬럼 값 타입 (저장 ↔ Python 변환 규칙)"""

    TEXT = "TEXT"  # str
    MONEY = "MONEY"  # Decimal ↔ INTEGER (x100)
    INT = "INT"  # int
    BOOL = "BOOL"  # bool ↔ 0/1
    DATE = "DATE"  # date ↔ 'YYYY-MM-DD'


@dataclass(frozen=True)
class Column:
    """컬럼 정의

    Args:
        name: 컬럼명
        type: 값 타입
        nullable: NULL 허용 (Master 연결 id 등)
        generated: GENERATED ALWAYS AS 표현식 (있으면 쓰기 불가)
        references: 외래키 대상 테이블
    """

    name: str
    type: ColumnType = ColumnType.TEXT
    nullable: bool = False
    generated: str | None = None
    references: str | None = None

    def ddl(self) -> str:
        if self.generated:
            return f"{self.name} INTEGER GENERATED ALWAYS AS ({self.generated}) VIRTUAL"
        if self.type == ColumnType.TEXT:
            sql = f"{self.name} TEXT" if self.nullable else f"{self.name} TEXT NOT NULL DEFAULT ''"
        elif self.type == ColumnType.DATE:
            sql = f"{self.name} TEXT" + ("" if self.nullable else " NOT NULL")
        else:
            sql = f"{self.name} INTEGER NOT NULL DEFAULT 0"
        if self.references:
            sql += f" REFERENCES {self.references}(id)"
        return sql


@dataclass(frozen=True)
class Table:
    """테이블 정의

    Args:
        name: 테이블명
        columns: 공통 컬럼을 제외한 컬럼 목록
        unique: 조직 단위 유니크 키 (organization_id가 앞에 자동으로 붙음)
        indexes: 조직 단위 조회 인덱스
    """

    name: str
    columns: tuple[Column, ...]
    unique: tuple[tuple[str, ...], ...] = ()
    indexes: tuple[tuple[str, ...], ...] = ()

    @property
    def types(self) -> dict[str, ColumnType]:
        return {c.name: c.type for c in self.columns}

    @property
    def writable(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns if c.generated is None)

    def column(self, name: str) -> Column:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(f"{self.name}.{name}")

    def create_sql(self) -> str:
        parts = [
            "id TEXT PRIMARY KEY",
            "organization_id TEXT NOT NULL",
            *(c.ddl() for c in self.columns),
            "created_at TEXT NOT NULL",
            "updated_at TEXT NOT NULL",
            *(f"UNIQUE(organization_id, {', '.join(key)})" for key in self.unique),
        ]
        body = ",\n    ".join(parts)
        return f"CREATE TABLE IF NOT EXISTS {self.name} (\n    {body}\n)"

    def index_sql(self) -> list[str]:
        statements = [
            f"CREATE INDEX IF NOT EXISTS ix_{self.name}_org_created "
            f"ON {self.name}(organization_id, created_at)"
        ]
        for cols in self.indexes:
            statements.append(
                f"CREATE INDEX IF NOT EXISTS ix_{self.name}_{'_'.join(cols)} "
                f"ON {self.name}(organization_id, {', '.join(cols)})"
            )
        return statements


T, M, I, B, D = ColumnType.TEXT, ColumnType.MONEY, ColumnType.INT, ColumnType.BOOL, ColumnType.DATE


def _col(name: str, type: ColumnType = T, **kwargs) -> Column:
    return Column(name, type, **kwargs)


def _link(name: str, table: str) -> Column:
    return Column(name, T, nullable=True, references=table)


# -----------------------------------------------------------------------------
# Master 테이블
# -----------------------------------------------------------------------------

VEHICLE = Table(
    "vehicle",
    (
        _col("veh_no"),
        _col("veh_type"),
        _col("total_trip", I),
        _col("net_profit", M),
    ),
    unique=(("veh_no",),),
)

DRIVER = Table(
    "driver",
    (
        _col("name"),
        _col("contact_no"),
        _col("dr_cr"),
        _col("open_bal", M),
        _col("debit", M),
        _col("credit", M),
        _col("close_bal", M, generated="open_bal + debit - credit"),
        _col("remark"),
    ),
    unique=(("name",),),
)

TRANSPORTER = Table(
    "transporter",
    (
        _col("name"),
        _col("veh_no"),
        _col("dr_cr"),
        _col("open_bal", M),
        _col("bill_amt", M),
        _col("paid_amt", M),
        _col("close_bal", M, generated="open_bal + bill_amt - paid_amt"),
        _col("total_trip", I),
        _col("profit", M),
        _col("remark"),
    ),
    unique=(("name",),),
)

BILLING_PARTY = Table(
    "billing_party",
    (
        _col("name"),
        _col("contact_no"),
        _col("dr_cr"),
        _col("open_bal", M),
        _col("bill_amt_trip", M),
        _col("bill_amt_rt", M),
        _col("receive_amt", M),
        _col("balance_amt", M, generated="open_bal + bill_amt_trip + bill_amt_rt - receive_amt"),
        _col("remark"),
    ),
    unique=(("name",),),
)

STOCK_ITEM = Table(
    "stock_item",
    (
        _col("name"),
        _col("open_qty", M),
        _col("stk_in", M),
        _col("stk_out", M),
        _col("close_qty", M, generated="open_qty + stk_in - stk_out"),
    ),
    unique=(("name",),),
)

EXPENSE_CATEGORY = Table(
    "expense_category",
    (_col("name"), _col("mode")),
    unique=(("name",),),
)

PAYMENT_MODE = Table(
    "payment_mode",
    (_col("name"),),
    unique=(("name",),),
)

# -----------------------------------------------------------------------------
# 거래 테이블
# -----------------------------------------------------------------------------

TRIP = Table(
    "trip",
    (
        _col("trip_no"),
        _col("date", D),
        _col("veh_no"),
        _link("vehicle_id", "vehicle"),
        _col("driver_name"),
        _col("from_location"),
        _col("to_location"),
        _col("trip_km", I),
        _col("fuel_exp_amt", M),
        _col("average", M),
        _col("trip_fare", M),
        _col("rt_fare", M),
        _col("total_trip_fare", M),
        _col("trip_expense", M),
        _col("profit_statement", M),
        _col("st_miter", I),
        _col("end_miter", I),
        _col("diesel_rate", M),
        _col("ltr", M),
        _col("is_market_trip", B),
        _col("ex_income", M),
        _col("driver_bal", M),
        _col("lock_status", B),
        _col("plant_name"),
        _col("car_qty", I),
        _col("load_km", I),
        _col("empty_km", I),
    ),
    unique=(("trip_no",),),
    indexes=(("date",), ("veh_no",), ("vehicle_id",)),
)

TRIP_BOOK = Table(
    "trip_book",
    (
        _col("trip_no"),
        _col("date", D),
        _col("lr_no"),
        _link("billing_party_id", "billing_party"),
        _col("billing_party_name"),
        _col("freight_mode"),
        _col("trip_amount", M),
        _col("advance_amt", M),
        _col("shortage_amt", M),
        _col("deduction_amt", M),
        _col("holding_amt", M),
        _col("received_amt", M),
        _col("pending_amt", M),
        _link("transporter_id", "transporter"),
        _col("transporter_name"),
        _col("market_veh_no"),
        _col("market_freight", M),
        _col("market_advance", M),
        _col("market_balance", M),
        _col("l_weight", M),
        _col("u_weight", M),
        _col("remark"),
        _col("net_profit", M),
    ),
    indexes=(("trip_no",), ("billing_party_id",), ("transporter_id",)),
)

RETURN_TRIP = Table(
    "return_trip",
    (
        _col("trip_no"),
        _col("date", D),
        _link("billing_party_id", "billing_party"),
        _col("billing_party_name"),
        _col("lr_no"),
        _col("rt_freight", M),
        _col("advance_amt", M),
        _col("shortage_amt", M),
        _col("deduction_amt", M),
        _col("holding_amt", M),
        _col("received_amt", M),
        _col("pending_amt", M),
        _col("mode"),
        _col("to_bank"),
        _col("remark"),
    ),
    indexes=(("trip_no",), ("billing_party_id",)),
)

PARTY_PAYMENT = Table(
    "party_payment",
    (
        _col("trip_no"),
        _col("date", D),
        _link("billing_party_id", "billing_party"),
        _col("billing_party_name"),
        _col("mode"),
        _col("receive_amt", M),
        _col("shortage_amt", M),
        _col("deduction_amt", M),
        _col("lr_no"),
        _col("to_bank"),
        _col("remark"),
        _col("run_bal", M),
    ),
    indexes=(("trip_no",), ("billing_party_id",)),
)

MARKET_VEH_PAYMENT = Table(
    "market_veh_payment",
    (
        _col("trip_no"),
        _col("date", D),
        _link("transporter_id", "transporter"),
        _col("transporter_name"),
        _col("market_veh_no"),
        _col("mode"),
        _col("paid_amt", M),
        _col("lr_no"),
        _col("from_bank"),
        _col("remark"),
        _col("run_bal", M),
    ),
    indexes=(("trip_no",), ("transporter_id",)),
)

DRIVER_ADVANCE = Table(
    "driver_advance",
    (
        _col("trip_no"),
        _col("date", D),
        _link("driver_id", "driver"),
        _col("driver_name"),
        _col("mode"),
        _col("from_account"),
        _col("debit", M),
        _col("credit", M),
        _col("fuel_ltr", M),
        _col("remark"),
        _col("run_bal", M),
    ),
    indexes=(("trip_no",), ("driver_id",)),
)

STOCK_ENTRY = Table(
    "stock_entry",
    (
        _col("date", D),
        _link("stock_item_id", "stock_item"),
        _col("stock_item_name"),
        _col("entry_type"),
        _col("quantity", M),
        _col("remark"),
    ),
    indexes=(("stock_item_id",),),
)

EXPENSE = Table(
    "expense",
    (
        _col("trip_no"),
        _col("date", D),
        _col("expense_type"),
        _col("amount", M),
        _col("from_account"),
        _col("ref_veh_no"),
        _col("remark1"),
        _col("remark2"),
        _col("is_non_trip_exp", B),
    ),
    indexes=(("trip_no",), ("date",)),
)


MASTER_TABLES: tuple[Table, ...] = (
    VEHICLE,
    DRIVER,
    TRANSPORTER,
    BILLING_PARTY,
    STOCK_ITEM,
    EXPENSE_CATEGORY,
    PAYMENT_MODE,
)

# 삭제 순서: 거래(자식) → Master(부모)
TRANSACTION_TABLES: tuple[Table, ...] = (
    STOCK_ENTRY,
    MARKET_VEH_PAYMENT,
    PARTY_PAYMENT,
    RETURN_TRIP,
    EXPENSE,
    DRIVER_ADVANCE,
    TRIP_BOOK,
    TRIP,
)

ALL_TABLES: tuple[Table, ...] = MASTER_TABLES + TRANSACTION_TABLES


def referencing_columns(master_table: str) -> list[tuple[Table, str]]:
    """Master 테이블을 참조하는 (거래 테이블, 컬럼) 목록"""
    return [
        (table, column.name)
        for table in TRANSACTION_TABLES
        for column in table.columns
        if column.references == master_table
    ]


async def init_schema(db: "SQLiteAdapter") -> None:
    """스키마 초기화 (테이블 + 인덱스)

    엔진/스크립트 시작 시 호출되어 필요한 모든 테이블을 생성.
    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: 연결된 SQLiteAdapter
    """
    async with db.transaction():
        for table in ALL_TABLES:
            await db.execute(table.create_sql())
            for statement in table.index_sql():
                await db.execute(statement)

    logger.info("스키마 초기화 완료", extra={"tables": len(ALL_TABLES)})
