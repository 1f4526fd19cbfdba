import json, time, uuid, logging
from typing import Any, Optional

logger = logging.getLogger("starrydata.sql")


class CommandLog:
    """
    单次命令的日志上下文：记录动作、库名、参数名、行数与耗时。
    参数值不落日志。成功写 DEBUG，失败写 WARNING；异常照常抛出。
    """

    def __init__(self, action: str, db_name: str, sql: str = ""):
        self.action = action
        self.db_name = db_name
        self.sql = sql
        self.request_id = uuid.uuid4().hex[:12]
        self.start = time.perf_counter()
        self.param_names: list[str] = []
        self.rows: Optional[int] = None
        self.record: Optional[dict] = None

    def set_params(self, names): self.param_names = list(names)
    def set_rows(self, n: int): self.rows = n

    def write(self, result: str = "OK", err: Optional[str] = None) -> dict:
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        rec: dict[str, Any] = {
            "request_id": self.request_id,
            "action": self.action,
            "db": self.db_name,
            "sql": " ".join(self.sql.split())[:200],
            "params": self.param_names,
            "rows": self.rows,
            "result": result,
            "err_msg": err,
            "latency_ms": elapsed_ms,
        }
        self.record = rec
        msg = json.dumps(rec, ensure_ascii=False)
        if result == "OK":
            logger.debug(msg)
        else:
            logger.warning(msg)
        return rec

    def __enter__(self) -> "CommandLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.write("OK")
        else:
            self.write("ERROR", f"{exc_type.__name__}: {exc}")
