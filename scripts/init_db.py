#!/usr/bin/env python3
"""Initialize database tables for development and list them."""

import asyncio

from sqlalchemy import text

from cinejournal.config import get_settings
from cinejournal.db.models import create_tables, dispose_engine, init_engine


async def init_database() -> None:
    """Create all tables and print what exists afterwards."""
    url = str(get_settings().database.url)
    print(f"Connecting to database: {url.split('@')[-1]}")
    engine = init_engine(url)

    try:
        print("Creating tables...")
        await create_tables(engine)
        print("Tables created successfully")

        async with engine.connect() as conn:
            result = await conn.execute(text("""
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public'
                ORDER BY table_name
            """))
            tables = result.fetchall()
            print(f"\n  Tables ({len(tables)}):")
            for table in tables:
                print(f"    - {table[0]}")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(init_database())
