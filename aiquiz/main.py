"""
AIQuiz manager - command line entry point.

    aiquiz serve          Run the API with uvicorn
    aiquiz seed-admin     Create the configured super admin if missing
    aiquiz purge-tokens   Clear expired invitation and reset tokens
"""

from __future__ import annotations

import argparse
import asyncio
import logging

import uvicorn

from aiquiz.auth.tokens import purge_expired_tokens
from aiquiz.auth.users import UserStore
from aiquiz.config import configure_logging, get_settings
from aiquiz.services.bootstrap import seed_admin
from aiquiz.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aiquiz", description="AIQuiz manager back-office")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=None, help="Defaults to API_HOST")
    serve.add_argument("--port", type=int, default=None, help="Defaults to API_PORT")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    commands.add_parser("seed-admin", help="Create the configured super admin")
    commands.add_parser("purge-tokens", help="Clear expired one-time tokens")

    return parser


def main(argv: list[str] | None = None, storage: StorageProvider | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "serve":
        uvicorn.run(
            "aiquiz.api.app:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
        )
        return 0

    if storage is None:
        if settings.metadata_backend == "memory":
            logger.error(f"{args.command} needs METADATA_BACKEND=sqlite; in-memory metadata is not shared")
            return 1
        storage = create_local_storage(
            settings.content_dir,
            settings.metadata_backend,
            settings.metadata_path,
        )
    users = UserStore(storage.metadata)

    if args.command == "seed-admin":
        try:
            user = asyncio.run(seed_admin(users, settings))
        except ValueError as e:
            logger.error(str(e))
            return 1
        if user:
            print(f"Created super admin {user.email} ({user.id})")
        else:
            print(f"Super admin {settings.super_admin_email} already exists")
        return 0

    if args.command == "purge-tokens":
        purged = asyncio.run(purge_expired_tokens(users))
        print(f"Purged {purged} expired tokens")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
