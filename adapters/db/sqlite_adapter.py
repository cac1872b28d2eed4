"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
Ledger 저장소는 레코드 단위 쓰기만 사용 (쓰기마다 즉시 커밋).

주의: 여러 레코드에 걸친 원자성은 보장하지 않음.
다중 레코드 일관성은 core.ledger.saga의 보상 단계로 맞춤.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)


# 연결마다 적용하는 PRAGMA
# - WAL: 조회 스크립트(readonly)와 쓰기 연결 동시 사용
# - busy_timeout: 잠금 대기 30초
# - foreign_keys: transaction_line ON DELETE CASCADE에 필요
CONNECTION_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=30000",
    "PRAGMA foreign_keys=ON",
)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
) -> aiosqlite.Connection:
    """SQLite 연결 생성

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (파일이 이미 있어야 함)

    Returns:
        aiosqlite 연결 객체
    """
    path = Path(db_path)

    if readonly:
        conn = await aiosqlite.connect(f"file:{path}?mode=ro", uri=True)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))

    for pragma in CONNECTION_PRAGMAS:
        await conn.execute(pragma)

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": str(path), "readonly": readonly},
    )
    return conn


def _rows_to_dicts(
    cursor: aiosqlite.Cursor,
    rows: list[tuple[Any, ...]] | Any,
) -> list[dict[str, Any]]:
    """cursor.description 기준으로 행을 dict로 변환"""
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row)) for row in rows]


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    write()는 단일 문장 실행 후 즉시 커밋, 실패 시 롤백 후 예외 전파.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (조회 스크립트용)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        cursor = await db.write(
            "UPDATE product SET stock = ? WHERE id = ?", (7, 1)
        )
        row = await db.fetchone_dict("SELECT * FROM product WHERE id = ?", (1,))
    ```
    """

    def __init__(self, db_path: Path | str, readonly: bool = False):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path, self.readonly)

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

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행 (커밋하지 않음)"""
        conn = self._require_conn()

        if parameters:
            return await conn.execute(sql, parameters)
        return await conn.execute(sql)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행 (커밋하지 않음)"""
        conn = self._require_conn()
        return await conn.executemany(sql, parameters)

    async def write(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """쓰기 1건 실행 후 즉시 커밋

        실패 시 롤백하고 원래 예외를 그대로 전파.

        Returns:
            실행된 cursor (rowcount, lastrowid 확인용)
        """
        async with self.transaction():
            return await self.execute(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def fetchone_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> dict[str, Any] | None:
        """단일 행 조회 (컬럼명 → 값 dict)"""
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        if row is None:
            return None
        return _rows_to_dicts(cursor, [row])[0]

    async def fetchall_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """전체 행 조회 (컬럼명 → 값 dict 목록)"""
        cursor = await self.execute(sql, parameters)
        rows = await cursor.fetchall()
        return _rows_to_dicts(cursor, rows)

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외 시 자동 롤백.
        Ledger 저장소는 레코드 1건(또는 한 테이블의 일괄 INSERT 1회)에만 사용.
        """
        conn = self._require_conn()

        try:
            yield conn
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
