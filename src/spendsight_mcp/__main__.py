"""
CLI entry point for SpendSight MCP server.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from spendsight_mcp.config import get_settings
from spendsight_mcp.core.csv_import import LocalFile
from spendsight_mcp.models.imports import ImportSuccess
from spendsight_mcp.server import SpendSightServer, run_server


async def _prepare(server: SpendSightServer, csv_paths: list[Path], seed: bool) -> None:
    """Seed categories and import start-up CSV files."""
    if seed:
        server.categories.seed_defaults()

    for path in csv_paths:
        outcome = await server.tools.importer.run_import(LocalFile(path))
        server.tools.importer.reset()
        if isinstance(outcome, ImportSuccess):
            logging.info(
                "Loaded %s: %d imported, %d skipped",
                path,
                outcome.imported_count,
                outcome.skipped_count,
            )
        else:
            logging.error("Could not load %s: %s", path, outcome.message)


async def _main(csv_paths: list[Path], seed: bool) -> None:
    server = SpendSightServer()
    await _prepare(server, csv_paths, seed)
    await run_server(server)


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="SpendSight MCP Server - Track and review expenses through MCP"
    )
    parser.add_argument(
        "--csv",
        type=Path,
        action="append",
        default=[],
        help="CSV file to import at start-up (may be repeated)",
    )
    parser.add_argument(
        "--seed-defaults",
        action="store_true",
        help="Create the default category tree at start-up",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else get_settings().log_level
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,  # MCP uses stdout for protocol, so log to stderr
    )

    # Run the server
    try:
        asyncio.run(_main(args.csv, args.seed_defaults))
    except KeyboardInterrupt:
        logging.info("Server stopped by user")
        sys.exit(0)
    except Exception as e:
        logging.exception(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
