"""Initialize database tables."""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from storefront.database import engine, init_db


async def init():
    """Create all tables."""
    print("Creating database tables...")
    try:
        await init_db()
    finally:
        await engine.dispose()
    print("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init())
