"""Seed the first academy administrator.

Creates the schema if needed, registers a lead employee and prints a
development access token for them (the hosted auth provider issues real
tokens).

Usage:
    cd api && python -m scripts.seed_admin admin@quitcode.dev Ada Lovelace
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from src.auth.security import create_access_token
from src.config.settings import get_settings
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.redis import IdAllocator, init_redis, shutdown_redis
from src.employees.schemas import CreateEmployeeRequest
from src.employees.service import EmployeeEmailExistsError, EmployeeService


logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument("--position", default="Academy lead")
    return parser.parse_args(argv)


async def seed_admin(args: argparse.Namespace) -> None:
    """Register the administrator and print a token."""
    settings = get_settings()
    session = await init_async_cassandra()
    redis_client = await init_redis()

    try:
        service = EmployeeService(
            session=session,
            keyspace=settings.cassandra_keyspace,
            ids=IdAllocator(redis_client, prefix=settings.redis_id_prefix),
        )
        try:
            employee = await service.create_employee(
                CreateEmployeeRequest(
                    email=args.email,
                    first_name=args.first_name,
                    last_name=args.last_name,
                    position=args.position,
                    is_lead=True,
                )
            )
        except EmployeeEmailExistsError:
            employee = await service.resolve_employee(args.email)
            logger.info("seed_admin_exists", employee_id=employee.id)
        else:
            logger.info("seed_admin_created", employee_id=employee.id)

        token = create_access_token(subject=f"seed-{employee.id}", email=employee.email)
        print(token)
    finally:
        await shutdown_redis()
        await shutdown_async_cassandra()


if __name__ == "__main__":
    asyncio.run(seed_admin(parse_args()))
