"""SQLite access helper: connections, named-parameter execution and row mapping.

Keep the public surface here; modules under the package stay importable directly.
"""
from __future__ import annotations

from .client import DbClient
from .connection import BatchResult, ConnectionState, DbConnection
from .db import get_conn, get_db_path
from .errors import DbClientError, DbConnectionError, MappingError
from .mapper import RowMapper, map_row, map_rows
from .params import BoundParameter, DbType, bind_params, build_parameters

__version__ = "0.1.0"

__all__ = [
    "DbClient",
    "DbConnection",
    "ConnectionState",
    "BatchResult",
    "get_conn",
    "get_db_path",
    "DbClientError",
    "DbConnectionError",
    "MappingError",
    "RowMapper",
    "map_row",
    "map_rows",
    "BoundParameter",
    "DbType",
    "bind_params",
    "build_parameters",
]
