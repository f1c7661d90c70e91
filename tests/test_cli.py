"""Tests for tablecache.cli — commands run against a SQLite file via CliRunner."""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from tablecache import __version__
from tablecache.cli import app

runner = CliRunner()

TARGET = ["--target", "sqlite:///cache.db"]


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def invoke(*args: str):
    return runner.invoke(app, list(args))


@pytest.fixture
def initialized():
    result = invoke("init", *TARGET)
    assert result.exit_code == 0, result.output


class TestRoot:
    def test_version(self):
        result = invoke("--version")
        assert result.exit_code == 0
        assert f"tablecache {__version__}" in result.stdout

    def test_no_args_shows_help(self):
        result = invoke()
        assert "init" in result.output
        assert "sweep" in result.output


class TestInit:
    def test_creates_table(self):
        result = invoke("init", *TARGET, "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["created"] is True
        assert data["store"] == "sqlite"
        assert data["table"] == '"main"."cache_entries"'

    def test_custom_table(self):
        result = invoke("init", *TARGET, "--table", "sessions", "--json")
        assert json.loads(result.stdout)["table"] == '"main"."sessions"'

    def test_missing_target(self):
        result = invoke("init")
        assert result.exit_code == 2
        assert "connection_target" in result.output

    def test_target_from_environment(self, monkeypatch):
        monkeypatch.setenv("TABLECACHE_CONNECTION_TARGET", "sqlite:///env.db")
        result = invoke("init", "--json")
        assert result.exit_code == 0, result.output


@pytest.mark.usefixtures("initialized")
class TestEntries:
    def test_set_then_get(self):
        result = invoke("set", "greeting", "hello", "--sliding", "60", *TARGET)
        assert result.exit_code == 0, result.output

        result = invoke("get", "greeting", *TARGET)
        assert result.exit_code == 0
        assert result.stdout.strip() == "hello"

    def test_get_json(self):
        invoke("set", "k", "v", "--sliding", "60", "--absolute-in", "3600", *TARGET)
        result = invoke("get", "k", *TARGET, "--json")
        data = json.loads(result.stdout)
        assert data["found"] is True
        assert data["value"] == "v"
        assert data["sliding_expiration_seconds"] == 60.0
        assert data["absolute_expiration"] is not None

    def test_set_json(self):
        result = invoke("set", "k", "v", "--absolute-in", "30", *TARGET, "--json")
        data = json.loads(result.stdout)
        assert data["id"] == "k"
        assert data["size"] == 1
        assert data["sliding_expiration_seconds"] is None

    def test_get_missing(self):
        result = invoke("get", "missing", *TARGET)
        assert result.exit_code == 1

    def test_get_missing_json(self):
        result = invoke("get", "missing", *TARGET, "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"key": "missing", "found": False}

    def test_set_requires_expiration(self):
        result = invoke("set", "k", "v", *TARGET)
        assert result.exit_code == 2
        assert "VALIDATION" in result.output

    def test_set_rejects_non_positive_sliding(self):
        result = invoke("set", "k", "v", "--sliding", "0", *TARGET)
        assert result.exit_code == 2

    def test_refresh(self):
        invoke("set", "k", "v", "--sliding", "60", *TARGET)
        result = invoke("refresh", "k", *TARGET, "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"key": "k", "found": True}

    def test_refresh_missing(self):
        result = invoke("refresh", "missing", *TARGET)
        assert result.exit_code == 1

    def test_remove(self):
        invoke("set", "k", "v", "--sliding", "60", *TARGET)
        result = invoke("remove", "k", *TARGET)
        assert result.exit_code == 0
        assert invoke("get", "k", *TARGET).exit_code == 1

    def test_remove_missing_is_ok(self):
        assert invoke("remove", "missing", *TARGET).exit_code == 0


@pytest.mark.usefixtures("initialized")
class TestMaintenance:
    def test_sweep(self):
        result = invoke("sweep", *TARGET, "--json")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"deleted": 0}

    def test_stats(self):
        invoke("set", "a", "1", "--sliding", "60", *TARGET)
        invoke("set", "b", "2", "--sliding", "60", *TARGET)
        result = invoke("stats", *TARGET, "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["live"] == 2
        assert data["total"] == 2
        assert data["store"] == "sqlite"
        assert data["sweeper"]["interval_seconds"] == 1800.0

    def test_stats_text(self):
        result = invoke("stats", *TARGET)
        assert result.exit_code == 0
        assert "Cache Stats" in result.stdout
        assert "live" in result.stdout

    def test_missing_table_is_reported(self):
        result = invoke("stats", *TARGET, "--table", "nope")
        assert result.exit_code == 2
        assert "DATABASE" in result.output
