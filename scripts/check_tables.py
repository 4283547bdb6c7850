"""List every table in the database with its row count."""
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


async def list_tables(engine: AsyncEngine) -> List[str]:
    async with engine.connect() as conn:
        names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    return sorted(names)


async def count_rows(engine: AsyncEngine, table_name: str) -> Optional[int]:
    """Row count of a table, or None when it cannot be counted."""
    # Own connection per table so one failure cannot abort the others
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text(f'SELECT COUNT(*) FROM "{table_name}"'))
            return result.scalar()
    except SQLAlchemyError as e:
        logger.warning(f"Could not count rows of {table_name}: {e}")
        return None


def format_count(table_name: str, count: Optional[int]) -> str:
    if count is None:
        return f"  {table_name}: error counting"
    return f"  {table_name}: {count} rows"


async def table_report(engine: AsyncEngine) -> List[Tuple[str, Optional[int]]]:
    return [(name, await count_rows(engine, name)) for name in await list_tables(engine)]


async def main():
    from storefront.database import engine

    try:
        report = await table_report(engine)
        print(f"=== {len(report)} TABLES ===")
        for table_name, count in report:
            print(format_count(table_name, count))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
