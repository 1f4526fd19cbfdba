from __future__ import annotations

# starrydata/db.py
import os
from contextlib import contextmanager
from typing import Iterator

import yaml

from .connection import DbConnection

# DB 路径解析顺序：
# 1) DbClient 显式传入的 db_path
# 2) 环境变量 STARRY_DB_PATH（最高优先级的外部配置）
# 3) config.yaml 的 test_db_path（当检测到测试环境时）
# 4) config.yaml 的 databases.<db_name>
# 5) config.yaml 的 db_path（默认库）
# 6) 兜底：当前目录下 <db_name>.db
DEFAULT_TIMEOUT = 5.0
DEFAULT_DB_NAME = "starry"


def config_path() -> str:
    return os.environ.get("STARRY_CONFIG") or os.path.join(os.getcwd(), "config.yaml")


def _resolve(base_dir: str, p: str) -> str:
    p = os.path.expanduser(p)
    if p == ":memory:" or p.startswith("file:") or os.path.isabs(p):
        return p
    return os.path.join(base_dir, p)


def read_config() -> dict:
    cfg_path = config_path()
    if not os.path.exists(cfg_path):
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(cfg, dict):
        return {}
    base_dir = os.path.dirname(os.path.abspath(cfg_path))
    out = {}
    for k in ("db_path", "test_db_path"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = _resolve(base_dir, v.strip())
    dbs = cfg.get("databases")
    if isinstance(dbs, dict):
        out["databases"] = {
            str(name): _resolve(base_dir, v.strip())
            for name, v in dbs.items()
            if isinstance(v, str) and v.strip()
        }
    try:
        out["timeout"] = float(cfg.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError):
        out["timeout"] = DEFAULT_TIMEOUT
    return out


def is_test_env() -> bool:
    return (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)


def get_db_path(db_name: str | None = None) -> str:
    env_path = os.environ.get("STARRY_DB_PATH")
    if env_path:
        return env_path
    cfg = read_config()
    if is_test_env() and cfg.get("test_db_path"):
        return cfg["test_db_path"]
    named = cfg.get("databases", {})
    if db_name and db_name in named:
        return named[db_name]
    if cfg.get("db_path"):
        return cfg["db_path"]
    return os.path.join(os.getcwd(), f"{db_name or DEFAULT_DB_NAME}.db")


def get_timeout() -> float:
    return read_config().get("timeout", DEFAULT_TIMEOUT)


def ensure_parent_dir(path: str) -> None:
    if path == ":memory:" or path.startswith("file:"):
        return
    dirn = os.path.dirname(os.path.abspath(path))
    os.makedirs(dirn, exist_ok=True)


@contextmanager
def get_conn(db_path: str | None = None, db_name: str | None = None) -> Iterator[DbConnection]:
    """
    获取已打开的连接。优先使用显式传入的 db_path，否则走 get_db_path(db_name)。
    退出时关闭连接。
    """
    conn = DbConnection(db_path or get_db_path(db_name), timeout=get_timeout())
    try:
        conn.open()
        yield conn
    finally:
        conn.close()
