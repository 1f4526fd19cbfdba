"""
行映射：按列名把结果行转换为记录对象（dataclass / pydantic BaseModel / dict / 标量）。

- 字段与列同名匹配，先精确匹配，再忽略大小写匹配（SQLite 标识符不区分大小写）
- 多余的列忽略；字段缺少对应列 -> MappingError
- 类型转换交给 pydantic（lax 模式）：BaseModel 直接 model_validate，
  其余目标按字段声明类型各建一个 TypeAdapter
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import types
import typing
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import MappingError

SCALAR_TYPES = (str, int, float, bool, Decimal, bytes, dt.date, dt.datetime)


def unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is getattr(types, "UnionType", None):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        optional = len(args) < len(typing.get_args(tp))
        return (args[0] if len(args) == 1 else Any), optional
    return tp, tp is Any or tp is None or tp is type(None)


@lru_cache(maxsize=512)
def type_adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def coerce(value: Any, tp: Any) -> Any:
    """按声明类型转换数据库返回值；失败抛 pydantic.ValidationError"""
    return type_adapter(tp).validate_python(value)


def zero_value(tp: Any) -> Any:
    """类型的零值：int -> 0、str -> ''、bool -> False；无零值的类型返回 None"""
    if tp is None:
        return None
    tp, optional = unwrap_optional(tp)
    if optional or not isinstance(tp, type):
        return None
    if tp in (str, int, float, bool, Decimal, bytes):
        return tp()
    return None


@dataclasses.dataclass(frozen=True)
class FieldPlan:
    name: str
    annotation: Any
    adapter: TypeAdapter | None = None


def _mapping_error(model: Any, exc: ValidationError, field: str, column: str) -> MappingError:
    name = getattr(model, "__name__", repr(model))
    return MappingError(
        f"column '{column}' does not map to {name}.{field}: {exc}",
        {"model": name, "field": field, "column": column},
    )


class RowMapper:
    """单个目标类型的映射器；字段表按类型缓存，见 RowMapper.for_type"""

    def __init__(self, model: Any):
        self.model = model
        self.kind, self.fields = self._plan(model)

    @classmethod
    def for_type(cls, model: Any) -> "RowMapper":
        return _mapper_for(model)

    @staticmethod
    def _plan(model: Any) -> Tuple[str, Tuple[FieldPlan, ...]]:
        if model is None or model is dict:
            return "dict", ()
        if isinstance(model, type) and issubclass(model, BaseModel):
            # 由 model_validate 统一转换，不再逐字段建 adapter
            return "pydantic", tuple(
                FieldPlan(name, f.annotation) for name, f in model.model_fields.items()
            )
        if dataclasses.is_dataclass(model) and isinstance(model, type):
            hints = typing.get_type_hints(model)
            return "dataclass", tuple(
                FieldPlan(f.name, hints.get(f.name, Any), type_adapter(hints.get(f.name, Any)))
                for f in dataclasses.fields(model) if f.init
            )
        base, _ = unwrap_optional(model)
        if base in SCALAR_TYPES or (isinstance(base, type) and issubclass(base, enum.Enum)):
            return "scalar", (FieldPlan("", model, type_adapter(model)),)
        raise TypeError(f"unsupported record type: {model!r}")

    def _column_index(self, columns: Iterable[str]) -> Dict[str, str]:
        cols = list(columns)
        exact = set(cols)
        lowered: Dict[str, str] = {}
        for c in cols:
            lowered.setdefault(c.lower(), c)
        index = {}
        for f in self.fields:
            if f.name in exact:
                index[f.name] = f.name
            elif f.name.lower() in lowered:
                index[f.name] = lowered[f.name.lower()]
            else:
                raise MappingError(
                    f"column '{f.name}' not found in result set for {self.model.__name__}",
                    {"field": f.name, "columns": cols, "model": self.model.__name__},
                )
        return index

    def map_row(self, row: Mapping[str, Any]) -> Any:
        columns = list(row.keys())
        if self.kind == "dict":
            return {c: row[c] for c in columns}
        if self.kind == "scalar":
            if not columns:
                raise MappingError("result set has no columns", {"model": repr(self.model)})
            return self._convert(row[columns[0]], self.fields[0], columns[0])
        return self._build(row, self._column_index(columns))

    def map_rows(self, rows: Iterable[Mapping[str, Any]]) -> List[Any]:
        rows = list(rows)
        if not rows:
            return []
        if self.kind in ("dict", "scalar"):
            return [self.map_row(r) for r in rows]
        index = self._column_index(rows[0].keys())
        return [self._build(r, index) for r in rows]

    def _build(self, row: Mapping[str, Any], index: Dict[str, str]) -> Any:
        if self.kind == "pydantic":
            raw = {f.name: row[index[f.name]] for f in self.fields}
            try:
                return self.model.model_validate(raw)
            except ValidationError as e:
                loc = e.errors()[0].get("loc") or ("",)
                field = str(loc[0])
                raise _mapping_error(self.model, e, field, index.get(field, field)) from e
        values = {f.name: self._convert(row[index[f.name]], f, index[f.name]) for f in self.fields}
        return self.model(**values)

    def _convert(self, value: Any, field: FieldPlan, column: str) -> Any:
        try:
            return field.adapter.validate_python(value)
        except ValidationError as e:
            raise _mapping_error(self.model, e, field.name or column, column) from e


@lru_cache(maxsize=256)
def _mapper_for(model: Any) -> RowMapper:
    return RowMapper(model)


def map_rows(rows: Iterable[Mapping[str, Any]], model: Any = None) -> List[Any]:
    return RowMapper.for_type(model).map_rows(rows)


def map_row(row: Mapping[str, Any], model: Any = None) -> Any:
    return RowMapper.for_type(model).map_row(row)
