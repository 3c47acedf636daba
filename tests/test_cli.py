"""Tests for the CLI entry point."""

from unittest.mock import AsyncMock, patch

import pytest

from storage_mcp.backends import DROPBOX, GOOGLE_DRIVE, get_integration
from storage_mcp.cli import build_parser, main_async
from storage_mcp.config import Config


class TestParser:

    def test_backend_choices(self):
        args = build_parser().parse_args(["--backend", "google-drive", "--drain-timeout", "1.5"])

        assert args.backend == "google-drive"
        assert args.drain_timeout == 1.5

    def test_rejects_unknown_backend(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--backend", "ftp"])

    def test_get_integration(self):
        assert get_integration("dropbox") is DROPBOX
        assert get_integration("google-drive") is GOOGLE_DRIVE
        with pytest.raises(ValueError, match="Available: dropbox, google-drive"):
            get_integration("ftp")


@pytest.mark.asyncio
class TestMainAsync:

    async def test_cli_overrides_config(self):
        args = build_parser().parse_args(["--backend", "google-drive", "--drain-timeout", "1", "--log-level", "INFO"])
        manager = AsyncMock()
        manager.load.return_value = Config()

        with patch("storage_mcp.cli.ConfigManager.get_instance", return_value=manager), \
                patch("storage_mcp.server.run_stdio", new=AsyncMock(return_value=0)) as run_stdio:
            exit_code = await main_async(args)

        assert exit_code == 0
        integration, config = run_stdio.call_args[0]
        assert integration is GOOGLE_DRIVE
        assert config.drain_timeout == 1.0
        assert config.log_level == "INFO"
