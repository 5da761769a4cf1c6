"""
Tests for the command-line interface.
"""

import argparse
import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from game_session_client import cli
from game_session_client.models import Failure, PlayerInfo, Success


def make_client(**overrides):
    client = MagicMock()
    client.is_logged_in = False
    client.username = ""
    for name, value in overrides.items():
        setattr(client, name, value)
    return client


class TestParser:
    def test_login_arguments(self):
        args = cli.build_parser().parse_args(["login", "alice", "-p", "pw"])

        assert args.command == "login"
        assert args.username == "alice"
        assert args.password == "pw"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_status_logged_out(self, capsys):
        code = await cli.run_command(make_client(), argparse.Namespace(command="status"))

        assert code == 0
        assert "Not logged in" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_login_success(self, capsys):
        client = make_client(login=AsyncMock(return_value=Success(message="Login successful")))
        args = argparse.Namespace(command="login", username="alice", password="pw")

        code = await cli.run_command(client, args)

        assert code == 0
        client.login.assert_awaited_once_with("alice", "pw")
        assert "Login successful" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_login_prompts_for_password(self):
        client = make_client(login=AsyncMock(return_value=Success(message="Login successful")))
        args = argparse.Namespace(command="login", username="alice", password=None)

        with patch("game_session_client.cli.getpass.getpass", return_value="typed"):
            await cli.run_command(client, args)

        client.login.assert_awaited_once_with("alice", "typed")

    @pytest.mark.asyncio
    async def test_failure_exit_code(self, capsys):
        client = make_client(logout=AsyncMock(return_value=Failure("Network error: refused")))

        code = await cli.run_command(client, argparse.Namespace(command="logout"))

        assert code == 1
        assert "Network error: refused" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_players(self, capsys):
        client = make_client(get_online_players=AsyncMock(
            return_value=Success(value=["alice", "bob"], message="Success")
        ))

        code = await cli.run_command(client, argparse.Namespace(command="players"))

        out = capsys.readouterr().out
        assert code == 0
        assert "alice" in out and "bob" in out
        assert "2 player(s) online" in out

    @pytest.mark.asyncio
    async def test_whoami(self, capsys):
        client = make_client(get_player_info=AsyncMock(
            return_value=Success(value=PlayerInfo("alice", True), message="Success")
        ))

        code = await cli.run_command(client, argparse.Namespace(command="whoami"))

        assert code == 0
        assert "alice (online)" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_whoami_not_logged_in(self, capsys):
        client = make_client(get_player_info=AsyncMock(return_value=Failure("Not logged in")))

        code = await cli.run_command(client, argparse.Namespace(command="whoami"))

        assert code == 1
        assert "Not logged in" in capsys.readouterr().err


class TestMain:
    def test_init_config(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"

        assert cli.main(["init-config", str(path)]) == 0
        assert path.exists()

    def test_configuration_error(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        path.write_text("api:\n  timeout: -5\n")

        assert cli.main(["--config", str(path), "status"]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_non_numeric_expanded_value_is_configuration_error(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("API_TIMEOUT", "soon")
        path = tmp_path / "config.yaml"
        path.write_text("api:\n  timeout: ${API_TIMEOUT}\n")

        assert cli.main(["--config", str(path), "status"]) == 2
        assert "Invalid value for api.timeout" in capsys.readouterr().err

    def test_status_end_to_end(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("GAME_API_BASE_URL", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(f"storage:\n  data_dir: {tmp_path}\n")

        with patch("game_session_client.cli.setup_logging"):
            assert cli.main(["--config", str(path), "status"]) == 0

        assert "Not logged in" in capsys.readouterr().out

    def test_stats_flag_prints_diagnostics(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("GAME_API_BASE_URL", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(f"storage:\n  data_dir: {tmp_path}\n")

        with patch("game_session_client.cli.setup_logging"):
            assert cli.main(["--config", str(path), "--stats", "status"]) == 0

        stats = json.loads(capsys.readouterr().err)
        assert stats['errors']['total_errors'] == 0
        assert stats['requests'] == {}
