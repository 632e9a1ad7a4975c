import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


async def check_database_connection(engine: AsyncEngine) -> None:
    """Run a trivial query; raises ``SQLAlchemyError`` when the database is unreachable."""
    async with engine.connect() as connection:
        await connection.execute(text("SELECT 1"))
