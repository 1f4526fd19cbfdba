"""
SQL 文本扫描：识别命名占位符、拆分多语句批次。
引号字面量、[标识符]、`标识符` 与注释内的内容一律跳过。
"""
from __future__ import annotations

import sqlite3
from typing import Iterator, List, Tuple

PARAM_PREFIXES = "@:$"

_QUOTES = {"'": "'", '"': '"', "`": "`", "[": "]"}


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _scan(sql: str) -> Iterator[Tuple[str, int, int]]:
    """产出 (kind, start, end)：kind 为 'param' 或 ';'"""
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if ch in _QUOTES:
            close = _QUOTES[ch]
            j = i + 1
            while j < n:
                if sql[j] == close:
                    # '' / "" 为转义
                    if close != "]" and j + 1 < n and sql[j + 1] == close:
                        j += 2
                        continue
                    break
                j += 1
            i = j + 1
        elif ch == "-" and sql.startswith("--", i):
            j = sql.find("\n", i)
            i = n if j < 0 else j + 1
        elif ch == "/" and sql.startswith("/*", i):
            j = sql.find("*/", i + 2)
            i = n if j < 0 else j + 2
        elif ch in PARAM_PREFIXES:
            j = i + 1
            while j < n and _is_name_char(sql[j]):
                j += 1
            if j > i + 1:
                yield "param", i, j
            i = max(j, i + 1)
        elif ch == ";":
            yield ";", i, i + 1
            i += 1
        else:
            i += 1


def placeholder_names(sql: str) -> List[str]:
    """按出现顺序返回去重后的占位符名称（不含前缀）"""
    out: List[str] = []
    for kind, start, end in _scan(sql):
        if kind == "param":
            name = sql[start + 1:end]
            if name not in out:
                out.append(name)
    return out


def _clean(stmt: str) -> str:
    stmt = stmt.strip()
    while stmt.endswith(";"):
        stmt = stmt[:-1].rstrip()
    return stmt


def split_statements(sql: str) -> List[str]:
    """
    将以 ';' 分隔的批次拆成单条语句。
    借助 sqlite3.complete_statement 合并片段，CREATE TRIGGER ... BEGIN ...; END; 保持完整。
    """
    out: List[str] = []
    buf = ""
    pos = 0
    for kind, start, end in _scan(sql):
        if kind != ";":
            continue
        buf += sql[pos:end]
        pos = end
        if sqlite3.complete_statement(buf):
            stmt = _clean(buf)
            if stmt:
                out.append(stmt)
            buf = ""
    tail = _clean(buf + sql[pos:])
    if tail:
        out.append(tail)
    return out
