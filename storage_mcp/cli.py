#!/usr/bin/env python3
"""
Storage MCP CLI Entry Point

Selects the storage backend and runs the stdio server.
"""

import argparse
import asyncio
import sys

from storage_mcp import __version__, __package_name__
from storage_mcp.backends import INTEGRATIONS, get_integration
from storage_mcp.config import ConfigManager


def print_version():
    """Print version info."""
    print(f"{__package_name__} v{__version__}")


async def main_async(args) -> int:
    """Load configuration, apply CLI overrides and run the server."""
    from storage_mcp.server import run_stdio

    config = await ConfigManager.get_instance().load()

    if args.backend:
        config.backend = args.backend
    if args.drain_timeout is not None:
        config.drain_timeout = args.drain_timeout
    if args.log_level:
        config.log_level = args.log_level

    integration = get_integration(config.backend)
    return await run_stdio(integration, config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storage-mcp",
        description="Storage MCP - cloud storage tools over the Model Context Protocol",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  storage-mcp --backend dropbox         Serve Dropbox tools on stdio
  storage-mcp --backend google-drive    Serve Google Drive tools on stdio

Credentials:
  dropbox        DROPBOX_ACCESS_TOKEN
  google-drive   GOOGLE_DRIVE_CREDENTIALS_PATH (service account JSON),
                 GOOGLE_DRIVE_TOKEN_PATH (saved OAuth token JSON),
                 GOOGLE_DRIVE_ACCESS_TOKEN, tried in that order

MCP Configuration:

  {
    "mcpServers": {
      "dropbox": {
        "command": "storage-mcp",
        "args": ["--backend", "dropbox"]
      }
    }
  }
"""
    )

    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Show version and exit"
    )
    parser.add_argument(
        "--backend", "-b",
        choices=sorted(INTEGRATIONS),
        help="Storage backend to serve (default: $STORAGE_MCP_BACKEND or dropbox)"
    )
    parser.add_argument(
        "--drain-timeout",
        type=float,
        help="Seconds to wait for in-flight calls on shutdown (default: 5)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr diagnostics"
    )
    return parser


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    if args.version:
        print_version()
        sys.exit(0)

    try:
        exit_code = asyncio.run(main_async(args))
    except ValueError as e:
        print(f"storage-mcp: {e}", file=sys.stderr)
        exit_code = 2
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
