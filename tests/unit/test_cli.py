"""
Unit tests for the command-line entry point.
"""

import socket

import pytest

from namesite import __version__
from namesite.__main__ import build_parser, main


class TestParser:
    """Tests for argument parsing."""

    def test_defaults_defer_to_environment(self):
        args = build_parser().parse_args([])

        assert args.host is None
        assert args.port is None
        assert args.log_level is None
        assert args.log_format is None

    def test_options(self):
        args = build_parser().parse_args(
            ["-H", "127.0.0.1", "-p", "8080", "-l", "debug", "--log-format", "json"]
        )

        assert args.host == "127.0.0.1"
        assert args.port == 8080
        assert args.log_level == "DEBUG"
        assert args.log_format == "json"

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "loud"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main() exit codes."""

    def test_invalid_port_variable(self, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-port")
        assert main([]) == 1

    def test_port_in_use(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("NODE_PORT", raising=False)

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            assert main(["--host", "127.0.0.1", "--port", str(port)]) == 1
