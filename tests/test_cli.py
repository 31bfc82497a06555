"""Tests for command line parsing."""

from pathlib import Path
from unittest.mock import patch

import pytest

from mcp_monitor import __version__
from mcp_monitor.cli import main, parse_settings


class TestParseSettings:
    def test_all_options(self, tmp_path):
        settings = parse_settings(
            [
                "--logs-root",
                str(tmp_path),
                "-p",
                "250",
                "-v",
                "warn",
                "-f",
                "*.log",
                "--filter",
                "npx",
                "--host",
                "0.0.0.0",
                "--port",
                "6000",
                "--no-console",
            ]
        )

        assert settings.logs_root == Path(tmp_path)
        assert settings.poll_interval_ms == 250
        assert settings.verbosity == "warning"
        assert settings.log_pattern == "*.log"
        assert settings.filter == "npx"
        assert settings.host == "0.0.0.0"
        assert settings.port == 6000
        assert settings.console is False

    def test_no_options_keeps_defaults(self):
        settings = parse_settings([])

        assert settings.console is True
        assert settings.log_pattern == "Cursor MCP.log"

    def test_version_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_settings(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_help_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_settings(["--help"])

        assert exc_info.value.code == 0
        assert "--logs-root" in capsys.readouterr().out

    def test_invalid_value_is_a_usage_error(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_settings(["--verbosity", "chatty"])

        assert exc_info.value.code == 2
        assert "verbosity" in capsys.readouterr().err

    def test_non_integer_poll_interval(self):
        with pytest.raises(SystemExit):
            parse_settings(["--poll-interval", "fast"])


class TestMain:
    def test_runs_server_with_parsed_settings(self, tmp_path):
        with (
            patch("uvicorn.run") as run,
            patch("mcp_monitor.main.create_app") as create_app,
        ):
            result = main(["-l", str(tmp_path), "--port", "6001"])

        assert result == 0
        app_settings = create_app.call_args.args[0]
        assert app_settings.logs_root == Path(tmp_path)
        run.assert_called_once()
        assert run.call_args.args[0] is create_app.return_value
        assert run.call_args.kwargs["port"] == 6001
