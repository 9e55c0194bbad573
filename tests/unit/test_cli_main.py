"""Tests for ucan_inspect.cli.main — CLI commands via Click test runner."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from ucan_inspect.cli.main import cli

from conftest import DAY, Principal, TokenFactory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def jwt_file(tmp_path: Path, factory: TokenFactory, alice: Principal, bob: Principal) -> Path:
    path = tmp_path / "token.jwt"
    path.write_bytes(factory.jwt(alice, bob))
    return path


@pytest.fixture()
def chain_file(tmp_path: Path, delegation_chain: dict) -> Path:
    path = tmp_path / "delegation.car"
    path.write_bytes(delegation_chain["archive"])
    return path


# ---------------------------------------------------------------------------
# Root CLI
# ---------------------------------------------------------------------------


class TestRootCLI:
    def test_help_exits_zero(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("parse", "chain", "validate", "analyze", "version"):
            assert command in result.output

    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "ucan-inspect" in result.output.lower()

    def test_log_level_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "debug", "version"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParseCommand:
    def test_table_output(self, runner: CliRunner, jwt_file: Path, alice: Principal) -> None:
        result = runner.invoke(cli, ["parse", str(jwt_file)])
        assert result.exit_code == 0
        assert "store/add" in result.output
        assert "Level 0" in result.output

    def test_json_output(self, runner: CliRunner, jwt_file: Path, alice: Principal) -> None:
        result = runner.invoke(cli, ["parse", str(jwt_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["issuer"] == alice.did
        assert data["format"] == "jwt"
        assert data["signature"]["valid"] is True

    def test_stdin(self, runner: CliRunner, jwt_file: Path) -> None:
        result = runner.invoke(cli, ["parse", "-", "--json"], input=jwt_file.read_bytes())
        assert result.exit_code == 0
        assert json.loads(result.output)["level"] == 0

    def test_format_hint_mismatch_fails(self, runner: CliRunner, jwt_file: Path) -> None:
        result = runner.invoke(cli, ["parse", str(jwt_file), "--format", "car"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_garbage_exits_one(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "garbage.bin"
        path.write_bytes(b"not a token")
        result = runner.invoke(cli, ["parse", str(path)])
        assert result.exit_code == 1
        assert "unrecognized_format" in result.output

    @pytest.mark.parametrize(
        "command, expected",
        [
            ("parse", "did:key:[/x]"),
            ("chain", "storage:[/y]"),
            ("validate", "Chain is valid"),
            ("analyze", "store/[bold]add"),
        ],
    )
    def test_markup_in_token_fields_printed_literally(
        self,
        runner: CliRunner,
        tmp_path: Path,
        factory: TokenFactory,
        alice: Principal,
        bob: Principal,
        command: str,
        expected: str,
    ) -> None:
        path = tmp_path / "markup.jwt"
        path.write_bytes(
            factory.jwt(
                alice,
                bob,
                capabilities=[factory.capability("storage:[/y]", "store/[bold]add")],
                iss="did:key:[/x]",
            )
        )
        result = runner.invoke(cli, [command, str(path)])
        assert result.exit_code == 0, result.output
        assert expected in result.output

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["parse", str(tmp_path / "missing")])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# chain
# ---------------------------------------------------------------------------


class TestChainCommand:
    def test_json_output(
        self, runner: CliRunner, chain_file: Path, delegation_chain: dict
    ) -> None:
        result = runner.invoke(cli, ["chain", str(chain_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [link["cid"] for link in data["chain"]] == [
            delegation_chain["child_cid"],
            delegation_chain["parent_cid"],
        ]
        assert data["info"]["totalLevels"] == 2
        assert data["info"]["isComplete"] is True

    def test_table_output(self, runner: CliRunner, chain_file: Path) -> None:
        result = runner.invoke(cli, ["chain", str(chain_file)])
        assert result.exit_code == 0
        assert "2 link(s)" in result.output

    def test_max_depth_exceeded(self, runner: CliRunner, chain_file: Path) -> None:
        result = runner.invoke(cli, ["chain", str(chain_file), "--max-depth", "0"])
        assert result.exit_code == 1
        assert "chain_too_deep" in result.output


# ---------------------------------------------------------------------------
# validate / analyze
# ---------------------------------------------------------------------------


class TestValidateCommand:
    def test_valid_chain(self, runner: CliRunner, chain_file: Path) -> None:
        result = runner.invoke(cli, ["validate", str(chain_file)])
        assert result.exit_code == 0
        assert "Chain is valid" in result.output

    def test_expired_token_exits_one(
        self,
        runner: CliRunner,
        tmp_path: Path,
        factory: TokenFactory,
        alice: Principal,
        bob: Principal,
    ) -> None:
        path = tmp_path / "expired.jwt"
        path.write_bytes(factory.jwt(alice, bob, expiration=factory.now - DAY))
        result = runner.invoke(cli, ["validate", str(path), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert data["rootCause"]["type"] == "expired"
        assert data["summary"]["invalidLinks"] == 1


class TestAnalyzeCommand:
    def test_json_output(self, runner: CliRunner, jwt_file: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(jwt_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["invocation"]["taskType"] == "delegation"
        assert data["capabilities"]["totalCount"] == 1
        assert "storage" in data["capabilities"]["categories"]

    def test_table_output(self, runner: CliRunner, jwt_file: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(jwt_file)])
        assert result.exit_code == 0
        assert "Task type" in result.output
