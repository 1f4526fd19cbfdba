import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

import pytest
from pydantic import BaseModel

from starrydata import MappingError, RowMapper, map_row, map_rows
from starrydata.mapper import coerce, zero_value


class Status(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass
class Post:
    id: int
    title: str
    created: datetime
    score: Optional[float] = None


class PostModel(BaseModel):
    id: int
    title: str
    status: Status
    published_on: date | None = None


def test_maps_dataclass_with_coercion_and_ignores_extra_columns():
    row = {"id": "7", "title": "5", "created": "2024-01-02 03:04:05", "score": None, "extra": 1}
    post = map_row(row, Post)
    assert post == Post(7, "5", datetime(2024, 1, 2, 3, 4, 5), None)


def test_column_match_is_case_insensitive_after_exact():
    post = map_row({"ID": 1, "TITLE": "a", "CREATED": "2024-01-02 00:00:00", "SCORE": None}, Post)
    assert post.id == 1
    assert post.created == datetime(2024, 1, 2)


def test_missing_column_is_mapping_error():
    with pytest.raises(MappingError) as ei:
        map_row({"id": 1, "title": "a"}, Post)
    assert ei.value.code == "ERR_MAPPING"
    assert ei.value.details["field"] == "created"


def test_missing_column_with_default_is_still_an_error():
    with pytest.raises(MappingError):
        map_row({"id": 1, "title": "a", "created": "2024-01-02"}, Post)


def test_null_for_required_field_is_mapping_error():
    with pytest.raises(MappingError):
        map_row({"id": None, "title": "a", "created": "2024-01-02", "score": 1.0}, Post)


@pytest.mark.parametrize("bad", ["abc", 1.5])
def test_incompatible_value_is_mapping_error(bad):
    with pytest.raises(MappingError) as ei:
        map_row({"id": bad, "title": "a", "created": "2024-01-02", "score": None}, Post)
    assert ei.value.details["column"] == "id"


def test_maps_pydantic_model():
    rows = [
        {"id": 1, "title": "x", "status": "draft", "published_on": None},
        {"id": 2, "title": "y", "status": "published", "published_on": "2024-05-06"},
    ]
    out = map_rows(rows, PostModel)
    assert out[0].status is Status.DRAFT
    assert out[1].published_on == date(2024, 5, 6)


def test_invalid_enum_value_is_mapping_error():
    with pytest.raises(MappingError):
        map_row({"id": 1, "title": "x", "status": "gone", "published_on": None}, PostModel)


def test_maps_sqlite_rows():
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    try:
        rows = conn.execute(
            "SELECT 3 AS id, 'hello' AS title, '2024-01-02T10:00:00' AS created, 1.5 AS score"
        ).fetchall()
    finally:
        conn.close()
    assert map_rows(rows, Post) == [Post(3, "hello", datetime(2024, 1, 2, 10), 1.5)]


def test_dict_and_scalar_targets():
    rows = [{"n": "3", "m": 1}, {"n": "4", "m": 2}]
    assert map_rows(rows) == rows
    assert map_rows(rows, dict) == rows
    assert map_rows(rows, int) == [3, 4]
    assert map_rows([], Post) == []


def test_mapper_is_cached_per_type():
    assert RowMapper.for_type(Post) is RowMapper.for_type(Post)


def test_unsupported_type():
    with pytest.raises(TypeError):
        RowMapper.for_type(list)


@pytest.mark.parametrize(
    "value, tp, expected",
    [
        (1, bool, True),
        ("false", bool, False),
        (b"abc", str, "abc"),
        ("12", int, 12),
        (3.0, int, 3),
        ("1.25", Decimal, Decimal("1.25")),
        (2, float, 2.0),
        ("2024-01-02", date, date(2024, 1, 2)),
        ("2024-01-02T03:04:05Z", datetime, datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        ("abc", bytes, b"abc"),
        ("draft", Status, Status.DRAFT),
        (None, Optional[int], None),
        (5, int | None, 5),
    ],
)
def test_coerce(value, tp, expected):
    assert coerce(value, tp) == expected


@pytest.mark.parametrize(
    "tp, expected",
    [(int, 0), (str, ""), (float, 0.0), (bool, False), (Decimal, Decimal(0)),
     (datetime, None), (Optional[int], None), (None, None)],
)
def test_zero_value(tp, expected):
    assert zero_value(tp) == expected


def test_case_insensitive_match_carries_values():
    post = map_row({"ID": 1, "TITLE": "a", "CREATED": "2024-01-02 00:00:00", "SCORE": "2.5"}, Post)
    assert post.score == 2.5


def test_exact_column_wins_over_case_insensitive():
    post = map_row({"TITLE": "upper", "title": "exact", "id": 1, "created": "2024-01-02 00:00:00",
                    "score": None}, Post)
    assert post.title == "exact"


@dataclass
class PostRow:
    id: int
    title: str
    status: Status
    published_on: date | None = None


def test_dataclass_and_pydantic_targets_convert_alike():
    row = {"id": "9", "title": "t", "status": "published", "published_on": "2024-05-06"}
    a = map_row(row, PostRow)
    b = map_row(row, PostModel)
    assert (a.id, a.title, a.status, a.published_on) == (b.id, b.title, b.status, b.published_on)


def test_epoch_and_iso_datetimes_are_both_utc_aware():
    from_epoch = coerce(0, datetime)
    from_text = coerce("1970-01-01T00:00:00Z", datetime)
    assert from_epoch == from_text
    assert from_epoch.tzinfo is not None and from_text.tzinfo is not None


def test_pydantic_target_bad_value_reports_field_and_column():
    with pytest.raises(MappingError) as ei:
        map_row({"ID": "abc", "title": "x", "status": "draft", "published_on": None}, PostModel)
    assert ei.value.details["field"] == "id"
    assert ei.value.details["column"] == "ID"
