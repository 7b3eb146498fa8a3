import argparse
import asyncio
import sys
import os

# Add backend to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config.settings import settings
from app.models.database import Database


async def create_tables(reset: bool = False):
    """Create all database tables"""
    database = Database(settings.database_url)
    try:
        if reset:
            print("⚠️  Dropping existing tables...")
            await database.reset_db()

        print("Creating database tables...")
        print("Tables to create:")
        print("  - users")
        print("  - call_requests")
        print("  - call_sessions")
        print("  - transactions")
        print("  - host_earnings")
        await database.init_db()
    finally:
        await database.dispose()

    print("✅ All tables created successfully!")
    print("\nDatabase schema ready for Host Call Signaling")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the call signaling tables")
    parser.add_argument("--reset", action="store_true", help="Drop every table first (destroys data)")
    args = parser.parse_args()
    asyncio.run(create_tables(reset=args.reset))
