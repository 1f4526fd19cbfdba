"""
DbConnection：延迟打开的 SQLite 连接句柄。

创建时不打开（state == CLOSED），调用 open() 后才真正连接；
close() 可重复调用，底层连接只关闭一次。
"""
from __future__ import annotations

import enum
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional

from .errors import DbConnectionError, err_closed
from .mapper import RowMapper, zero_value
from .params import bind_params
from .sqltext import split_statements

logger = logging.getLogger(__name__)

_TXN_KEYWORDS = ("BEGIN", "COMMIT", "END", "ROLLBACK", "SAVEPOINT", "RELEASE")


def _is_txn_control(stmt: str) -> bool:
    words = stmt.split(None, 1)
    return bool(words) and words[0].upper() in _TXN_KEYWORDS


class ConnectionState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class BatchResult:
    """一个语句批次的执行结果：第一个结果集 + 累计影响行数"""
    columns: List[str] = field(default_factory=list)
    rows: List[Any] = field(default_factory=list)
    rowcount: int = 0


class DbConnection:
    def __init__(self, db_path: str, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.OPEN if self._conn is not None else ConnectionState.CLOSED

    @property
    def raw(self) -> sqlite3.Connection:
        if self._conn is None:
            raise err_closed("connection is not open; call open() first", {"db_path": self.db_path})
        return self._conn

    def open(self) -> "DbConnection":
        if self._conn is not None:
            return self
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False,
                isolation_level=None,
                uri=self.db_path.startswith("file:"),
            )
        except sqlite3.Error as e:
            raise DbConnectionError(
                f"cannot open database '{self.db_path}': {e}", {"db_path": self.db_path}
            ) from e
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as e:
            conn.close()
            raise DbConnectionError(
                f"database '{self.db_path}' is not usable: {e}", {"db_path": self.db_path}
            ) from e
        conn.row_factory = sqlite3.Row
        self._conn = conn
        logger.debug("opened %s", self.db_path)
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        conn.close()
        logger.debug("closed %s", self.db_path)

    def __enter__(self) -> "DbConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- 事务 ----------------

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    @contextmanager
    def transaction(self) -> Iterator["DbConnection"]:
        """BEGIN ... COMMIT；异常时 ROLLBACK。已在事务中时不再嵌套"""
        raw = self.raw
        if raw.in_transaction:
            yield self
            return
        raw.execute("BEGIN")
        try:
            yield self
        except BaseException:
            if raw.in_transaction:
                raw.rollback()
            raise
        else:
            if raw.in_transaction:
                raw.commit()

    # ---------------- 执行 ----------------

    def execute(self, sql: str, params: Any = None) -> sqlite3.Cursor:
        """执行单条语句，返回游标（调用方负责读取 / 关闭）"""
        return self.raw.execute(sql, bind_params(sql, params))

    def execute_batch(self, sql: str, params: Any = None) -> BatchResult:
        """
        依次执行 ';' 分隔的多条语句，参数按各语句的占位符分别绑定。
        多于一条语句时在同一事务内执行；批次自带 BEGIN / COMMIT 等事务语句时不再包裹。
        返回第一个结果集，影响行数为各语句之和。
        """
        statements = split_statements(sql)
        if len(statements) <= 1 or any(_is_txn_control(s) for s in statements):
            return self._run(statements, params)
        with self.transaction():
            return self._run(statements, params)

    def _run(self, statements: List[str], params: Any) -> BatchResult:
        result = BatchResult()
        raw = self.raw
        for stmt in statements:
            cur = raw.execute(stmt, bind_params(stmt, params))
            try:
                if cur.description is not None and not result.columns:
                    result.columns = [d[0] for d in cur.description]
                    result.rows = cur.fetchall()
                if cur.rowcount > 0:
                    result.rowcount += cur.rowcount
            finally:
                cur.close()
        return result

    def query(self, sql: str, params: Any = None, model: Any = None) -> List[Any]:
        rows = self.execute_batch(sql, params).rows
        return RowMapper.for_type(model).map_rows(rows)

    def execute_scalar(self, sql: str, params: Any = None, scalar_type: Any = None) -> Any:
        rows = self.execute_batch(sql, params).rows
        # 无结果 / NULL 返回类型零值而不是报错
        if not rows or rows[0][0] is None:
            return zero_value(scalar_type)
        if scalar_type is None:
            return rows[0][0]
        return RowMapper.for_type(scalar_type).map_row(rows[0])

    def execute_non_query(self, sql: str, params: Any = None) -> int:
        return self.execute_batch(sql, params).rowcount
