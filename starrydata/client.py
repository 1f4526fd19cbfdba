"""
DbClient：一次调用一个连接的便捷访问层。

每个操作都会新建连接、打开、执行、关闭；关闭在任何退出路径上都会发生。
"""
from __future__ import annotations

from typing import Any, Callable, List, Optional, TypeVar

import pandas as pd

from .connection import DbConnection
from .db import get_db_path, get_timeout
from .logs import CommandLog
from .sqltext import placeholder_names

T = TypeVar("T")


class DbClient:
    def __init__(self, db_name: str, db_path: Optional[str] = None, timeout: Optional[float] = None):
        # 构造时不访问文件系统；路径在创建连接时解析
        self._db_name = db_name
        self._db_path = db_path
        self._timeout = timeout

    @property
    def db_name(self) -> str:
        return self._db_name

    @property
    def db_path(self) -> str:
        return self._db_path or get_db_path(self._db_name)

    def __repr__(self) -> str:
        return f"DbClient(db_name={self._db_name!r})"

    def create_connection(self) -> DbConnection:
        """返回未打开的连接；open() 失败时抛 DbConnectionError"""
        timeout = self._timeout if self._timeout is not None else get_timeout()
        return DbConnection(self.db_path, timeout=timeout)

    def execute(self, body: Callable[[DbConnection], T]) -> T:
        """
        把未打开的连接交给 body，由 body 自行 open() 与执行。
        无论 body 正常返回还是抛异常，连接都会被关闭。
        """
        with CommandLog("execute", self._db_name):
            conn = self.create_connection()
            try:
                return body(conn)
            finally:
                conn.close()

    def _run(self, action: str, sql: str, params: Any, op: Callable[[DbConnection], T]) -> T:
        with CommandLog(action, self._db_name, sql) as log:
            log.set_params(placeholder_names(sql))
            with self.create_connection() as conn:
                conn.open()
                result = op(conn)
            if isinstance(result, (list, pd.DataFrame)):
                log.set_rows(len(result))
            elif action == "non_query":
                log.set_rows(result)
            return result

    def query(self, sql: str, params: Any = None, model: Any = None) -> List[Any]:
        """执行查询并按 model 映射每一行；无结果返回空列表"""
        return self._run("query", sql, params, lambda c: c.query(sql, params, model))

    def query_first(self, sql: str, params: Any = None, model: Any = None) -> Any:
        rows = self.query(sql, params, model)
        return rows[0] if rows else None

    def execute_scalar(self, sql: str, params: Any = None, scalar_type: Any = None) -> Any:
        """
        返回第一个结果集首行首列。

        无结果行或值为 NULL 时返回 scalar_type 的零值（int -> 0，str -> ''），
        而不是报错；无法区分“没有结果”和“结果为 0”，调用方需要时请用 query_first。
        """
        return self._run("scalar", sql, params, lambda c: c.execute_scalar(sql, params, scalar_type))

    def execute_non_query(self, sql: str, params: Any = None) -> int:
        """执行 INSERT / UPDATE / DELETE，返回影响行数"""
        return self._run("non_query", sql, params, lambda c: c.execute_non_query(sql, params))

    def query_frame(self, sql: str, params: Any = None) -> pd.DataFrame:
        """查询结果 -> DataFrame（报表 / 命令行输出用），列顺序与结果集一致"""
        def _frame(conn: DbConnection) -> pd.DataFrame:
            res = conn.execute_batch(sql, params)
            return pd.DataFrame.from_records([tuple(r) for r in res.rows], columns=res.columns)
        return self._run("frame", sql, params, _frame)
