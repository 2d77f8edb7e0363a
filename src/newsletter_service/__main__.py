"""CLI entry points: web server, delivery worker and maintenance jobs."""
from __future__ import annotations

import argparse
import asyncio
import getpass
import signal
import sys
from datetime import timedelta
from typing import List, Optional

import uvicorn

from newsletter_service.delivery.application.worker import DeliveryWorker
from newsletter_service.delivery.infrastructure.email_client import EmailClient
from newsletter_service.dependencies import build_database
from newsletter_service.identity.application.auth_service import AuthService
from newsletter_service.identity.infrastructure.password_service import PasswordService
from newsletter_service.idempotency import IdempotencyStore
from newsletter_service.shared.config import Settings, get_settings
from newsletter_service.shared.exceptions import DomainError, ValidationError, error_chain
from newsletter_service.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def run_delivery_worker(settings: Settings, interval: Optional[float], once: bool) -> None:
    database = build_database(settings)
    email_client = EmailClient.from_settings(settings)
    worker = DeliveryWorker.from_settings(settings, database, email_client, idle_interval=interval)
    try:
        if once:
            outcomes = await worker.drain()
            logger.info("Delivery queue drained", **{k.value: v for k, v in outcomes.items()})
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, worker.stop)
        await worker.run()
    finally:
        await email_client.aclose()
        await database.dispose()


async def purge_idempotency(settings: Settings, ttl_hours: Optional[int]) -> int:
    database = build_database(settings)
    try:
        ttl = timedelta(hours=ttl_hours) if ttl_hours is not None else settings.idempotency_ttl
        return await IdempotencyStore(database).purge_expired(ttl)
    finally:
        await database.dispose()


async def create_user(settings: Settings, username: str, password: str) -> None:
    database = build_database(settings)
    try:
        auth = AuthService(
            database,
            PasswordService.from_settings(settings),
            min_password_length=settings.PASSWORD_MIN_LENGTH,
            max_password_length=settings.PASSWORD_MAX_LENGTH,
        )
        await auth.create_user(username, password)
    finally:
        await database.dispose()


def _read_password(from_stdin: bool) -> str:
    if from_stdin:
        return sys.stdin.readline().rstrip("\n")
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        raise ValidationError("Passwords do not match.")
    return password


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newsletter_service",
        description="Newsletter service: web server, delivery worker and maintenance commands",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web application with uvicorn")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    deliver = sub.add_parser("deliver", help="Run the delivery worker")
    deliver.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Sleep between polls of an empty queue",
    )
    deliver.add_argument("--once", action="store_true", help="Drain due tasks and exit")

    purge = sub.add_parser("purge-idempotency", help="Delete expired idempotency records")
    purge.add_argument("--ttl-hours", type=int, default=None)

    user = sub.add_parser("create-user", help="Create an admin account")
    user.add_argument("username")
    user.add_argument("--password-stdin", action="store_true", help="Read the password from stdin")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings)

    try:
        if args.command == "serve":
            uvicorn.run(
                "newsletter_service.main:create_app",
                factory=True,
                host=args.host or settings.APP_HOST,
                port=args.port or settings.APP_PORT,
                log_config=None,
            )
        elif args.command == "deliver":
            asyncio.run(run_delivery_worker(settings, args.interval, args.once))
        elif args.command == "purge-idempotency":
            count = asyncio.run(purge_idempotency(settings, args.ttl_hours))
            print(f"Purged {count} idempotency record(s)")
        elif args.command == "create-user":
            password = _read_password(args.password_stdin)
            asyncio.run(create_user(settings, args.username, password))
            print(f"Created user {args.username!r}")
    except DomainError as e:
        logger.error("Command failed", command=args.command, cause_chain=error_chain(e))
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted", command=args.command)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
