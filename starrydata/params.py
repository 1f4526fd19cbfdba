"""
参数绑定：把领域对象 / 字典转换为 SQL 命名参数。

只绑定 SQL 文本中出现的占位符（@Name / :Name / $Name）；
类型优先取字段声明类型，其次按值推断。
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import typing
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from pydantic import BaseModel

from .mapper import unwrap_optional
from .sqltext import placeholder_names

INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1


class DbType(str, enum.Enum):
    STRING = "String"
    INT32 = "Int32"
    INT64 = "Int64"
    DOUBLE = "Double"
    DECIMAL = "Decimal"
    BOOLEAN = "Boolean"
    DATE = "Date"
    DATETIME = "DateTime"
    BINARY = "Binary"
    OBJECT = "Object"


class BoundParameter(NamedTuple):
    name: str
    db_type: DbType
    value: Any


def _type_from_annotation(tp: Any, value: Any) -> Optional[DbType]:
    tp, _ = unwrap_optional(tp)
    if not isinstance(tp, type):
        return None
    if issubclass(tp, enum.Enum):
        return None
    if tp is bool:
        return DbType.BOOLEAN
    if tp is int:
        if isinstance(value, int) and not INT32_MIN <= value <= INT32_MAX:
            return DbType.INT64
        return DbType.INT32
    if tp is float:
        return DbType.DOUBLE
    if tp is Decimal:
        return DbType.DECIMAL
    if tp is str:
        return DbType.STRING
    if tp is dt.datetime:
        return DbType.DATETIME
    if tp is dt.date:
        return DbType.DATE
    if tp in (bytes, bytearray, memoryview):
        return DbType.BINARY
    return None


def infer_db_type(value: Any, annotation: Any = None) -> DbType:
    if annotation is not None:
        t = _type_from_annotation(annotation, value)
        if t is not None:
            return t
    if isinstance(value, enum.Enum):
        value = value.value
    if value is None:
        return DbType.OBJECT
    return _type_from_annotation(type(value), value) or (
        DbType.STRING if isinstance(value, uuid.UUID) else DbType.OBJECT
    )


def adapt_value(value: Any) -> Any:
    """转换为 sqlite3 原生可绑定的值"""
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, dt.datetime):
        # 与 CURRENT_TIMESTAMP 的文本格式一致：YYYY-MM-DD HH:MM:SS
        return value.isoformat(sep=" ")
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


def _fields_of(params: Any) -> Dict[str, tuple]:
    """返回 {字段名: (值, 声明类型或 None)}"""
    if isinstance(params, Mapping):
        return {str(k): (v, None) for k, v in params.items()}
    if isinstance(params, BaseModel):
        return {
            name: (getattr(params, name), f.annotation)
            for name, f in type(params).model_fields.items()
        }
    if dataclasses.is_dataclass(params) and not isinstance(params, type):
        hints = typing.get_type_hints(type(params))
        return {
            f.name: (getattr(params, f.name), hints.get(f.name))
            for f in dataclasses.fields(params)
        }
    if isinstance(params, tuple) and hasattr(params, "_fields"):
        hints = getattr(type(params), "__annotations__", {})
        return {name: (getattr(params, name), hints.get(name)) for name in params._fields}
    if isinstance(params, (list, tuple, set, str, bytes)):
        raise TypeError(
            f"named parameters expected, got {type(params).__name__}; "
            "pass a mapping or an object with attributes"
        )
    try:
        attrs = vars(params)
    except TypeError:
        raise TypeError(f"cannot bind parameters from {type(params).__name__}") from None
    hints = typing.get_type_hints(type(params)) if getattr(type(params), "__annotations__", None) else {}
    return {k: (v, hints.get(k)) for k, v in attrs.items() if not k.startswith("_")}


def build_parameters(sql: str, params: Any = None) -> List[BoundParameter]:
    """为 SQL 中每个占位符生成一个 BoundParameter；找不到字段的占位符留给驱动报错"""
    if params is None:
        return []
    fields = _fields_of(params)
    lowered = {}
    for k in fields:
        lowered.setdefault(k.lower(), k)
    out: List[BoundParameter] = []
    for name in placeholder_names(sql):
        key = name if name in fields else lowered.get(name.lower())
        if key is None:
            continue
        value, annotation = fields[key]
        out.append(BoundParameter(name, infer_db_type(value, annotation), adapt_value(value)))
    return out


def bind_params(sql: str, params: Any = None) -> Dict[str, Any]:
    """sqlite3 可直接使用的 {名称: 值}"""
    return {p.name: p.value for p in build_parameters(sql, params)}
