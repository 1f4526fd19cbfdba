import logging

import pytest

from starrydata.logs import CommandLog
from blog_models import INSERT_SQL, new_blog


def test_command_log_records_latency_and_result():
    with CommandLog("query", "blog", "SELECT 1") as log:
        log.set_rows(1)
    rec = log.record
    assert rec["result"] == "OK"
    assert rec["rows"] == 1
    assert isinstance(rec["latency_ms"], int)
    assert len(rec["request_id"]) == 12


def test_command_log_marks_errors_and_reraises():
    with pytest.raises(KeyError):
        with CommandLog("query", "blog") as log:
            raise KeyError("x")
    assert log.record["result"] == "ERROR"
    assert "KeyError" in log.record["err_msg"]


def test_client_logs_param_names_but_not_values(db, caplog):
    blog = new_blog()
    with caplog.at_level(logging.DEBUG, logger="starrydata.sql"):
        db.execute_non_query(INSERT_SQL, blog)
    text = caplog.text
    assert "non_query" in text
    assert "BITitle" in text
    assert blog.BITitle not in text


def test_client_logs_failures_as_warning(db, caplog):
    with caplog.at_level(logging.DEBUG, logger="starrydata.sql"):
        with pytest.raises(Exception):
            db.query("SELEC 1")
    assert any(r.levelno == logging.WARNING for r in caplog.records)
