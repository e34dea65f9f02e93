"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
여러 연결(프로세스)이 동시에 접근 가능하도록 설정.

트랜잭션은 BEGIN IMMEDIATE로 시작하여 쓰기 락을 먼저 확보한다.
같은 연결을 공유하는 코루틴은 asyncio.Lock으로 직렬화된다.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import aiosqlite

from core.constants import Defaults
from core.errors import TransactionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드, autocommit)

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 다른 연결의 락 해제 대기 시간

    Returns:
        aiosqlite 연결 객체
    """
    db_path_str = str(db_path)

    # 디렉토리가 없으면 생성
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    # isolation_level=None: 암묵적 BEGIN 없음, 트랜잭션은 transaction()에서 명시적으로 관리
    if readonly:
        conn = await aiosqlite.connect(
            f"file:{db_path_str}?mode=ro", uri=True, isolation_level=None
        )
    else:
        conn = await aiosqlite.connect(db_path_str, isolation_level=None)

    conn.row_factory = aiosqlite.Row

    if not readonly:
        await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (리포트 조회용)
        busy_timeout_ms: 쓰기 락 대기 시간

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")
        await adapter.execute("UPDATE vehicle SET total_trip = total_trip + 1 ...")

    await adapter.close()
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """현재 태스크가 트랜잭션을 보유 중인지 여부"""
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path, self.readonly, self.busy_timeout_ms)

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    @asynccontextmanager
    async def _statement_guard(self) -> AsyncIterator[None]:
        """트랜잭션 밖의 단일 문장은 락을 잡고 실행

        다른 태스크의 진행 중인 트랜잭션 상태를 읽지 않도록 한다.
        """
        if self.in_transaction:
            yield
        else:
            async with self._lock:
                yield

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        conn = self._require_conn()
        async with self._statement_guard():
            if parameters:
                return await conn.execute(sql, parameters)
            return await conn.execute(sql)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        conn = self._require_conn()
        async with self._statement_guard():
            return await conn.executemany(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Row | None:
        """단일 행 조회"""
        conn = self._require_conn()
        async with self._statement_guard():
            cursor = await conn.execute(sql, parameters or ())
            return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[aiosqlite.Row]:
        """전체 행 조회"""
        conn = self._require_conn()
        async with self._statement_guard():
            cursor = await conn.execute(sql, parameters or ())
            return list(await cursor.fetchall())

    async def commit(self) -> None:
        """커밋 (autocommit 연결에서 열린 트랜잭션이 있을 때만 의미 있음)"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외(취소 포함) 시 자동 롤백.
        같은 태스크에서 중첩 호출하면 바깥 트랜잭션에 합류한다.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        conn = self._require_conn()

        if self.in_transaction:
            yield conn
            return

        async with self._lock:
            await conn.execute("BEGIN IMMEDIATE")
            self._tx_owner = asyncio.current_task()
            try:
                yield conn
                await conn.execute("COMMIT")
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            finally:
                self._tx_owner = None

    async def run_in_transaction(
        self,
        work: Callable[[], Awaitable[T]],
        timeout: float | None = None,
    ) -> T:
        """제한 시간 안에서 트랜잭션 실행

        제한 시간을 넘기면 전체 롤백 후 TransactionTimeoutError.

        Args:
            work: 트랜잭션 안에서 실행할 코루틴 함수
            timeout: 제한 시간 (초, None이면 무제한)
        """

        async def _run() -> T:
            async with self.transaction():
                return await work()

        if timeout is None:
            return await _run()

        try:
            return await asyncio.wait_for(_run(), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                "트랜잭션 제한 시간 초과 (롤백됨)",
                extra={"timeout_sec": timeout, "db_path": str(self.db_path)},
            )
            raise TransactionTimeoutError(
                f"Transaction exceeded {timeout:g}s and was rolled back"
            ) from e

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def get_table_info(self, table_name: str) -> list[dict[str, Any]]:
        """테이블 정보 조회 (generated 컬럼 포함)"""
        rows = await self.fetchall(f"PRAGMA table_xinfo({table_name})")

        return [
            {
                "cid": row[0],
                "name": row[1],
                "type": row[2],
                "notnull": bool(row[3]),
                "default_value": row[4],
                "pk": bool(row[5]),
                "hidden": row[6],
            }
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
