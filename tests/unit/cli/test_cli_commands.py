"""Tests for the claude-provider command line."""

import importlib
import json
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest
from pytest_httpx import HTTPXMock
from typer.testing import CliRunner

from claude_provider import __version__
from claude_provider.cli import app
from claude_provider.config.constants import CLAUDE_TOKEN_URL


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """The runner swaps stdio, so the CLI must not rebind log handlers."""
    monkeypatch.setattr(
        importlib.import_module("claude_provider.cli.main"),
        "setup_logging",
        lambda *args, **kwargs: None,
    )


@pytest.mark.unit
class TestInfoCommands:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_command_prints_info(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, [])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["id"] == "claude"

    def test_info(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["info"])
        assert result.exit_code == 0
        info = json.loads(result.stdout)
        assert len(info["auth_types"]) == 6

    def test_models_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["models", "--json"])
        assert result.exit_code == 0
        assert len(json.loads(result.stdout)) == 6

    def test_models_table(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "Claude models" in result.output


@pytest.mark.auth
class TestOAuthCommands:
    def test_oauth_url(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["oauth-url"])
        assert result.exit_code == 0

        params = json.loads(result.stdout)
        query = parse_qs(urlsplit(params["auth_url"]).query)
        assert query["state"] == [params["state"]]
        assert query["scope"] == ["org:create_api_key user:profile user:inference"]

    def test_oauth_url_setup(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["oauth-url", "--setup"])
        assert result.exit_code == 0

        params = json.loads(result.stdout)
        query = parse_qs(urlsplit(params["auth_url"]).query)
        assert query["scope"] == ["user:inference"]

    def test_exchange(self, cli_runner: CliRunner, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=CLAUDE_TOKEN_URL,
            json={"access_token": "from-cli", "refresh_token": "r"},
        )

        result = cli_runner.invoke(
            app, ["exchange", "the-code", "--verifier", "v", "--state", "s"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["access_token"] == "from-cli"
        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.content)["code"] == "the-code"

    def test_exchange_failure(
        self, cli_runner: CliRunner, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(status_code=400, text="invalid_grant")

        result = cli_runner.invoke(
            app, ["exchange", "bad", "--verifier", "v", "--state", "s"]
        )

        assert result.exit_code == 1


@pytest.mark.unit
class TestGlobalOptions:
    def test_json_rpc_mode(self, cli_runner: CliRunner) -> None:
        request = {
            "jsonrpc": "2.0",
            "method": "supports_model",
            "params": {"model": "claude-opus-4-20250514"},
            "id": 1,
        }

        result = cli_runner.invoke(
            app, ["--json-rpc"], input=json.dumps(request) + "\n"
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout.strip()) == {
            "jsonrpc": "2.0",
            "result": {"supports": True},
            "id": 1,
        }

    def test_unsupported_config_format(
        self, cli_runner: CliRunner, tmp_path: Path
    ) -> None:
        config = tmp_path / "config.json"
        config.write_text("{}")

        result = cli_runner.invoke(app, ["--config", str(config), "info"])

        assert result.exit_code == 1

    def test_toml_config(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "config.toml"
        config.write_text('[oauth]\nsetup_scopes = "user:inference user:profile"\n')

        result = cli_runner.invoke(
            app, ["--config", str(config), "oauth-url", "--setup"]
        )

        assert result.exit_code == 0
        query = parse_qs(urlsplit(json.loads(result.stdout)["auth_url"]).query)
        assert query["scope"] == ["user:inference user:profile"]
