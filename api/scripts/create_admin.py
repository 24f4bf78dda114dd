"""Seed an Admin account.

Creates the keyspace and tables when missing, then an Admin user. Running it
again with the same email is a no-op.

Usage:
    cd api && python -m scripts.create_admin --email admin@example.com \
        --name "Site Admin" --password "change-me-please"
"""

import argparse
import asyncio

import structlog

from skillwise.auth.permissions import UserRole
from skillwise.auth.schemas import CreateUserRequest
from skillwise.auth.service import UserExistsError, UserService
from skillwise.config.settings import get_settings
from skillwise.core.context import RequestContext
from skillwise.core.database import init_async_cassandra, shutdown_async_cassandra


logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a SkillWise admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--handle", default=None)
    return parser.parse_args(argv)


async def create_admin(args: argparse.Namespace) -> None:
    """Create the admin account described by ``args``."""
    settings = get_settings()
    session = await init_async_cassandra()
    try:
        service = UserService(session=session, keyspace=settings.cassandra_keyspace)
        with RequestContext(correlation_id="create-admin"):
            user = await service.create_user(
                CreateUserRequest(
                    email=args.email,
                    name=args.name,
                    handle=args.handle,
                    password=args.password,
                    role=UserRole.ADMIN,
                )
            )
        logger.info("admin_created", user_id=str(user.id), handle=user.handle)
    except UserExistsError as e:
        logger.info("admin_exists", field=e.field, message=e.message)
    finally:
        await shutdown_async_cassandra()


if __name__ == "__main__":
    asyncio.run(create_admin(parse_args()))
