"""Tests for the gqlproxy command line."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from importlib.metadata import PackageNotFoundError
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from typer.testing import CliRunner

from gqlproxy import __version__
from gqlproxy._version import get_version
from gqlproxy.cli import app
from gqlproxy.instances.chat import DEFAULT_QUERY as CHAT_DEFAULT_QUERY

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_gqlproxy_logger() -> Iterator[None]:
    root = logging.getLogger("gqlproxy")
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


class TestInspectionCommands:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"gqlproxy {__version__}"

    def test_instances(self) -> None:
        result = runner.invoke(app, ["instances"])
        assert result.exit_code == 0
        assert "chat" in result.output
        assert "DeepSeek" in result.output
        assert "read/write" in result.output
        assert "read-only" in result.output

    def test_instances_json(self) -> None:
        result = runner.invoke(app, ["instances", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == [
            {"name": "chat", "title": "DeepSeek", "mode": "read/write", "cors": True},
            {"name": "pokemon", "title": "PokeAPI", "mode": "read-only", "cors": True},
        ]

    def test_schema(self) -> None:
        result = runner.invoke(app, ["schema", "pokemon"])
        assert result.exit_code == 0
        assert "pokemon(id: ID!): Pokemon" in result.output

    def test_sample_query(self) -> None:
        result = runner.invoke(app, ["sample-query", "chat"])
        assert result.exit_code == 0
        assert result.output.strip() == CHAT_DEFAULT_QUERY.strip()

    def test_unknown_instance(self) -> None:
        result = runner.invoke(app, ["schema", "weather"])
        assert result.exit_code == 1
        assert "Unknown gateway instance 'weather'" in result.output


class TestServe:
    def test_runs_uvicorn_with_app(self) -> None:
        captured: dict[str, Any] = {}

        def fake_run(application: FastAPI, **kwargs: Any) -> None:
            captured["app"] = application
            captured.update(kwargs)

        with patch("uvicorn.run", fake_run):
            result = runner.invoke(app, ["serve", "chat", "--port", "9000", "--log-level", "debug"])

        assert result.exit_code == 0, result.output
        assert "Serving DeepSeek gateway on http://127.0.0.1:9000/graphql" in result.output
        assert "DEEPSEEK_API_KEY is not set" in result.output
        assert isinstance(captured["app"], FastAPI)
        assert captured["host"] == "127.0.0.1"
        assert captured["port"] == 9000
        assert captured["log_level"] == "debug"

    def test_unknown_instance_does_not_serve(self) -> None:
        with patch("uvicorn.run") as run:
            result = runner.invoke(app, ["serve", "weather"])

        assert result.exit_code == 1
        run.assert_not_called()


class TestGetVersion:
    def test_installed_distribution_wins(self) -> None:
        with patch("gqlproxy._version.version", return_value="9.9.9"):
            assert get_version() == "9.9.9"

    def test_falls_back_to_pyproject(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[project]\nname = "gqlproxy"\nversion = "1.2.3"\n')

        with (
            patch("gqlproxy._version.version", side_effect=PackageNotFoundError("gqlproxy")),
            patch("gqlproxy._version._PYPROJECT", pyproject),
        ):
            assert get_version() == "1.2.3"

    def test_unknown_without_metadata_or_pyproject(self, tmp_path: Path) -> None:
        with (
            patch("gqlproxy._version.version", side_effect=PackageNotFoundError("gqlproxy")),
            patch("gqlproxy._version._PYPROJECT", tmp_path / "missing.toml"),
        ):
            assert get_version() == "0.0.0"
