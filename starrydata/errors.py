from __future__ import annotations

from typing import Any, Dict, Optional


class DbClientError(Exception):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class DbConnectionError(DbClientError):
    """数据库不可达或连接无法打开（不重试）"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("ERR_CONNECTION", message, details)


class MappingError(DbClientError):
    """结果列缺失，或列值无法转换为目标字段类型"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("ERR_MAPPING", message, details)


def err_closed(msg: str, details: Optional[Dict[str, Any]] = None) -> DbClientError:
    return DbClientError("ERR_CONNECTION_CLOSED", msg, details)
