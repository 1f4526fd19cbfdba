#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
starrydata command line

Commands:
  init                Create the schema (default: bundled schema.sql) in the target DB
  query SQL           Run a query and print the rows as a table
  scalar SQL          Run a statement and print the first column of the first row
  exec SQL            Run insert/update/delete statements and print the affected row count

Named parameters are passed as `-p Name=value` and bound to `@Name` placeholders.
"""
from __future__ import annotations

import argparse
import logging
import os
import re
import sqlite3
import sys

from .client import DbClient
from .db import DEFAULT_DB_NAME, ensure_parent_dir, get_conn
from .errors import DbClientError

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")


_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d+\.\d+")


def _parse_value(s: str):
    # 只转换纯数字字面量；nan / inf / 1_000 等保持字符串
    if _INT_RE.fullmatch(s):
        return int(s)
    if _FLOAT_RE.fullmatch(s):
        return float(s)
    return s


def parse_params(pairs: list[str] | None) -> dict:
    out = {}
    for item in pairs or []:
        if "=" not in item:
            raise ValueError(f"parameter must look like name=value: {item!r}")
        k, v = item.split("=", 1)
        out[k.strip().lstrip("@:$")] = _parse_value(v)
    return out


def _client(args) -> DbClient:
    return DbClient(args.db, db_path=args.path)


def cmd_init(args):
    db = _client(args)
    path = db.db_path
    ensure_parent_dir(path)
    with open(args.schema or SCHEMA_PATH, "r", encoding="utf-8") as f:
        script = f.read()
    with get_conn(path) as conn:
        conn.raw.executescript(script)
    print("DB initialized:", path)


def cmd_query(args):
    df = _client(args).query_frame(args.sql, parse_params(args.param))
    if df.empty:
        print("(empty)")
    else:
        print(df.to_string(index=False))


def cmd_scalar(args):
    print(_client(args).execute_scalar(args.sql, parse_params(args.param)))


def cmd_exec(args):
    print(_client(args).execute_non_query(args.sql, parse_params(args.param)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="starrydata", description="SQLite access helper")
    parser.add_argument("--config", default=None, help="config.yaml path (default: ./config.yaml)")
    parser.add_argument("--db", default=DEFAULT_DB_NAME, help="logical database name")
    parser.add_argument("--path", default=None, help="explicit SQLite file, overrides config")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers()

    p_init = sub.add_parser("init", help="create schema")
    p_init.add_argument("--schema", required=False, help="SQL script (default: bundled schema.sql)")
    p_init.set_defaults(func=cmd_init)

    for name, func, help_ in (
        ("query", cmd_query, "run a query and print rows"),
        ("scalar", cmd_scalar, "print a single value"),
        ("exec", cmd_exec, "print affected row count"),
    ):
        p = sub.add_parser(name, help=help_)
        p.add_argument("sql")
        p.add_argument("-p", "--param", action="append", help="Name=value, repeatable")
        p.set_defaults(func=func)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    if args.config:
        os.environ["STARRY_CONFIG"] = args.config
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    try:
        args.func(args)
    except (DbClientError, sqlite3.Error, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
