"""
数据库路径解析测试：环境变量 / config.yaml / 兜底
"""
import os
import uuid

import pytest

from starrydata import DbClient
from starrydata.db import get_db_path, get_timeout, read_config


@pytest.fixture()
def no_env_path(monkeypatch, tmp_path):
    monkeypatch.delenv("STARRY_DB_PATH", raising=False)
    monkeypatch.setenv("STARRY_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write_cfg(tmp_path, text):
    (tmp_path / "config.yaml").write_text(text, encoding="utf-8")


def test_env_path_has_priority(monkeypatch, tmp_path):
    monkeypatch.setenv("STARRY_DB_PATH", str(tmp_path / "env.db"))
    assert get_db_path("blog") == str(tmp_path / "env.db")


def test_named_database_from_config(no_env_path):
    _write_cfg(no_env_path, "db_path: data/default.db\ndatabases:\n  blog: data/blog.db\n")
    assert get_db_path("blog") == os.path.join(str(no_env_path), "data/blog.db")
    assert get_db_path("other") == os.path.join(str(no_env_path), "data/default.db")


def test_test_db_path_used_under_pytest(no_env_path):
    _write_cfg(no_env_path, "db_path: prod.db\ntest_db_path: /tmp/starry-test.db\n")
    # PYTEST_CURRENT_TEST is set while a test runs
    assert get_db_path("blog") == "/tmp/starry-test.db"


def test_fallback_is_name_in_cwd(no_env_path):
    name = str(uuid.uuid4())
    assert get_db_path(name) == os.path.join(os.getcwd(), f"{name}.db")
    assert get_db_path() == os.path.join(os.getcwd(), "starry.db")


def test_malformed_config_is_ignored(no_env_path):
    _write_cfg(no_env_path, "db_path: [unclosed\n")
    assert read_config() == {}
    _write_cfg(no_env_path, "- just\n- a list\n")
    assert read_config() == {}


def test_timeout_from_config(no_env_path):
    assert get_timeout() == 5.0
    _write_cfg(no_env_path, "timeout: 12\n")
    assert get_timeout() == 12.0
    _write_cfg(no_env_path, "timeout: soon\n")
    assert get_timeout() == 5.0


def test_client_construction_does_not_touch_filesystem(no_env_path):
    name = str(uuid.uuid4())
    db = DbClient(name)
    assert db.db_name == name
    assert not (no_env_path / f"{name}.db").exists()
    db.create_connection()
    assert not (no_env_path / f"{name}.db").exists()
