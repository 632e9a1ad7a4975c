"""
Delete audit log entries older than the retention window.

Meant for a cron entry or a scheduler job of its own.

Usage:
    python -m scripts.clean_audit_logs [--days N]
"""
import argparse
import asyncio
import logging

from app.config import settings
from app.database import AsyncSessionLocal, engine
from app.services.audit.audit_service import AuditService

logger = logging.getLogger("jobgate.scripts.clean_audit_logs")


async def clean_audit_logs(days: int) -> int:
    async with AsyncSessionLocal() as session:
        return await AuditService(session).clean_old_logs(days)


def resolve_days(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--days", type=int, default=None)
    args = parser.parse_args(argv)
    return args.days if args.days is not None else settings.audit_retention_days


async def main(days: int) -> None:
    try:
        deleted = await clean_audit_logs(days)
    finally:
        await engine.dispose()
    print(f"Deleted {deleted} audit log entries older than {days} days")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    asyncio.run(main(resolve_days()))
