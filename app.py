#!/usr/bin/env python3
"""
CCPI Engine - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
- run:   one aggregation run, JSON on stdout
- serve: the read-only HTTP API

============================================================
USAGE
============================================================
Direct execution:
    python app.py run
    python app.py run --persist --config ccpi.yaml
    python app.py serve --port 8000

With PM2:
    pm2 start app.py --interpreter python --name ccpi -- serve

Environment-based configuration:
    LOG_LEVEL=DEBUG CCPI_RUN_DEADLINE=30 python app.py run

============================================================
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ccpi.config import CCPIConfig, set_config
from ccpi.engine import CCPIEngine
from ccpi.registry import load_default_registry
from indicator_sources.catalog import build_default_catalog


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ccpi",
        description="Crash & Correction Prediction Index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run                       # One run, JSON to stdout
  %(prog)s run --persist             # ... and store it in the history DB
  %(prog)s serve --port 8080         # HTTP API
        """
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="YAML configuration file (default: environment variables)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Log level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --------------------------------------------------------
    # run
    # --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Run one aggregation and print JSON")
    run_parser.add_argument(
        "--persist",
        action="store_true",
        help="Store the run in the history database",
    )
    run_parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL (default: CCPI_DATABASE_URL)",
    )
    run_parser.add_argument(
        "--compact",
        action="store_true",
        help="Print JSON on one line",
    )

    # --------------------------------------------------------
    # serve
    # --------------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default=os.getenv("DASHBOARD_HOST", "0.0.0.0"))
    serve_parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("DASHBOARD_PORT", os.getenv("PORT", "8000"))),
    )

    return parser


def load_config(path: Optional[Path]) -> CCPIConfig:
    """YAML file when given, environment otherwise."""
    config = CCPIConfig.from_yaml(path) if path else CCPIConfig.from_env()
    set_config(config)
    return config


# ============================================================
# COMMANDS
# ============================================================

async def run_once(args, config: CCPIConfig) -> int:
    """
    One aggregation run.

    Returns:
        Exit code
    """
    from dashboard.schemas import build_ccpi_response

    logger = logging.getLogger(__name__)

    async with build_default_catalog() as catalog:
        registry = load_default_registry(catalog.source_kinds())
        engine = CCPIEngine(catalog, registry, config)
        snapshot = await engine.run()

    if args.persist:
        from database.engine import (
            DatabasePersistenceError,
            configure_database,
            initialize_database,
            transaction_scope,
        )
        from database.persistence import persist_snapshot

        try:
            if args.database_url:
                configure_database(args.database_url)
            initialize_database()
            with transaction_scope() as session:
                persist_snapshot(session, snapshot)
        except DatabasePersistenceError as e:
            logger.error(f"Run not persisted: {e}")
            return 1

    payload = build_ccpi_response(snapshot, registry).model_dump(mode="json", by_alias=True)
    print(json.dumps(payload, indent=None if args.compact else 2))
    return 0


def serve(args) -> int:
    """Run the API server."""
    import uvicorn

    logging.getLogger(__name__).info(f"Starting CCPI API on {args.host}:{args.port}")
    uvicorn.run("dashboard.api:app", host=args.host, port=args.port, log_level="info")
    return 0


def main() -> int:
    """Main entry point."""
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.command == "serve":
        return serve(args)

    try:
        return asyncio.run(run_once(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
