#!/usr/bin/env python3
"""
QueryJam CLI - Main entry point.

Usage:
    queryjam init                        # Write a default queryjam.yaml
    queryjam init-db [--config FILE]     # Create database tables
    queryjam serve [--config FILE]       # Run the API server
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from ..settings import Settings, load_settings


DEFAULT_CONFIG = """# QueryJam configuration
# Keys map to environment variables (case-insensitive).
database_url: sqlite+aiosqlite:///./queryjam.db
# redis_url: redis://localhost:6379/0

host: 0.0.0.0
port: 8000
log_level: INFO

query_rate_limit: 30
message_rate_limit: 20
ai_rate_limit: 60

# openai_api_key: sk-...
# openai_model: gpt-3.5-turbo
"""


def _settings(args: argparse.Namespace) -> Settings:
    config = getattr(args, "config", None)
    if config and not Path(config).exists():
        raise FileNotFoundError(f"{config} not found")
    return load_settings(config)


def cmd_init(args: argparse.Namespace) -> int:
    """Write a default config file."""
    config_path = Path(args.path)

    if config_path.exists() and not args.force:
        print(f"Error: {config_path} already exists. Use --force to overwrite.")
        return 1

    config_path.write_text(DEFAULT_CONFIG)
    print(f"Created {config_path}")
    print("Next steps:")
    print(f"  queryjam init-db --config {config_path}")
    print(f"  queryjam serve --config {config_path}")
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create all tables."""
    from ..service.database import Database

    try:
        settings = _settings(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    async def run():
        database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
        try:
            await database.init()
        finally:
            await database.close()

    asyncio.run(run())
    print(f"Database initialized: {settings.DATABASE_URL}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API server with uvicorn."""
    import uvicorn

    from ..service.app import create_app

    try:
        settings = _settings(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="queryjam",
        description="QueryJam - collaborative dataset queries",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 1.0.0")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Write a default config file")
    init_parser.add_argument("--path", default="queryjam.yaml", help="Config file to create")
    init_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing config")

    # init-db
    db_parser = subparsers.add_parser("init-db", help="Create database tables")
    db_parser.add_argument("--config", "-c", help="YAML config file")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--config", "-c", help="YAML config file")
    serve_parser.add_argument("--host", help="Bind address (overrides config)")
    serve_parser.add_argument("--port", "-p", type=int, help="Port (overrides config)")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "init-db": cmd_init_db,
        "serve": cmd_serve,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
