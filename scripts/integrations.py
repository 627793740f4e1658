#!/usr/bin/env python3
"""Manage an owner's third-party integrations from the command line.

Usage:
    python scripts/integrations.py --owner OWNER list
    python scripts/integrations.py --owner OWNER create READWISE --token TOKEN
    python scripts/integrations.py --owner OWNER enable INTEGRATION_ID
    python scripts/integrations.py --owner OWNER disable INTEGRATION_ID
    python scripts/integrations.py --owner OWNER delete INTEGRATION_ID
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

logger = logging.getLogger("integrations_cli")


async def run(args: argparse.Namespace) -> int:
    """Run one integration command.

    Returns:
        Exit code (0 for success, 1 for error, 2 for partial success)
    """
    from readlater.application.use_cases.integration_lifecycle import (
        CreateIntegrationCommand,
        DeleteIntegrationCommand,
        UpdateIntegrationCommand,
    )
    from readlater.config import load_config
    from readlater.core.logging_utils import mask_secret, setup_json_logging
    from readlater.db.session import DatabaseSessionManager
    from readlater.di.container import Container
    from readlater.domain.exceptions.domain_exceptions import DomainException
    from readlater.infrastructure.redis import close_redis, get_redis

    cfg = load_config()
    setup_json_logging(cfg.runtime.log_level, log_file=cfg.runtime.log_file)

    db = DatabaseSessionManager(
        cfg.runtime.db_path, timeout=cfg.integrations.persistence_timeout_sec
    )
    db.migrate()
    try:
        redis = await get_redis(cfg.redis)
        coordinator = Container(cfg, db, redis).integration_coordinator()

        if args.command == "list":
            for record in await coordinator.list_integrations(args.owner):
                print(
                    f"{record.id}  {record.name:<10} {record.type.value:<6} "
                    f"{record.state.value:<15} {mask_secret(record.token):<12} "
                    f"{record.task_name or '-'}"
                )
            return 0

        if args.command == "create":
            outcome = await coordinator.create(
                CreateIntegrationCommand(
                    owner_id=args.owner, name=args.name, token=args.token, type=args.type
                )
            )
        elif args.command == "delete":
            outcome = await coordinator.delete(
                DeleteIntegrationCommand(owner_id=args.owner, integration_id=args.id)
            )
        else:
            outcome = await coordinator.update(
                UpdateIntegrationCommand(
                    owner_id=args.owner,
                    integration_id=args.id,
                    enabled=args.command == "enable",
                    token=args.token,
                )
            )
    except DomainException as exc:
        logger.error("integration_command_failed", extra={"command": args.command})
        print(f"ERROR: {exc.message}")
        return 1
    finally:
        await close_redis()
        db.close()

    record = outcome.integration
    print(f"{args.command}: {record.id} {record.name} -> {record.state.value}")
    if outcome.partial:
        print(f"WARNING: sync task not provisioned: {outcome.error}")
        return 2
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage read-later integrations")
    parser.add_argument("--owner", required=True, help="Owner (user) id")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List the owner's integrations")

    create = sub.add_parser("create", help="Validate a token and create an integration")
    create.add_argument("name", help="Provider name, e.g. READWISE or KARAKEEP")
    create.add_argument("--token", required=True)
    create.add_argument("--type", default="EXPORT", choices=["EXPORT", "IMPORT"])

    for command in ("enable", "disable"):
        p = sub.add_parser(command, help=f"{command.capitalize()} an integration")
        p.add_argument("id", help="Integration id")
        p.add_argument("--token", default=None, help="Replace the token at the same time")

    delete = sub.add_parser("delete", help="Cancel the sync task and delete an integration")
    delete.add_argument("id", help="Integration id")

    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
