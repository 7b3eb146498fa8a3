"""
Cleanup script for stale call requests and stuck sessions.

Expires pending requests past their TTL and cancels (unbilled) sessions that
have been active for longer than the limit, the same sweep the server runs
in the background.

Usage:
    python scripts/cleanup_stale_calls.py
    python scripts/cleanup_stale_calls.py --max-minutes 120
    python scripts/cleanup_stale_calls.py --dry-run
"""
import argparse
import asyncio
import sys
import os
from datetime import timedelta

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select, func, and_

from app.config.constants import MAX_ACTIVE_SESSION_MINUTES
from app.config.settings import settings
from app.models.call_request import CallRequest, CallRequestStatus
from app.models.call_session import CallSession, CallSessionStatus
from app.models.database import Database, utcnow
from app.services.call.maintenance import expire_stale_requests, reconcile_stale_sessions


async def count_stale(db, max_minutes: int):
    now = utcnow()
    requests = await db.execute(
        select(func.count(CallRequest.id)).where(
            and_(
                CallRequest.status == CallRequestStatus.PENDING.value,
                CallRequest.expires_at <= now,
            )
        )
    )
    sessions = await db.execute(
        select(func.count(CallSession.id)).where(
            and_(
                CallSession.status == CallSessionStatus.ACTIVE.value,
                CallSession.start_time <= now - timedelta(minutes=max_minutes),
            )
        )
    )
    return requests.scalar(), sessions.scalar()


async def cleanup_stale_calls(max_minutes: int, dry_run: bool):
    """Expire stale requests and cancel stuck sessions."""
    database = Database(settings.database_url)
    try:
        async with database.session() as db:
            print("🔍 Searching for stale requests and stuck sessions...")
            stale_requests, stuck_sessions = await count_stale(db, max_minutes)

            if not stale_requests and not stuck_sessions:
                print("✅ Nothing stale found. Database is clean!")
                return

            print(f"📞 Pending requests past TTL: {stale_requests}")
            print(f"📞 Sessions active for over {max_minutes} min: {stuck_sessions}")

            if dry_run:
                print("ℹ️ Dry run, nothing changed")
                return

            expired = await expire_stale_requests(db)
            cancelled = await reconcile_stale_sessions(db, max_minutes)

        print(f"✅ Expired {expired} request(s)")
        print(f"✅ Cancelled {cancelled} session(s) without billing")
    finally:
        await database.dispose()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Expire stale call requests and cancel stuck sessions")
    parser.add_argument("--max-minutes", type=int, default=MAX_ACTIVE_SESSION_MINUTES,
                        help="Cancel sessions active for longer than this")
    parser.add_argument("--dry-run", action="store_true", help="Only report what would change")
    args = parser.parse_args()

    print("🧹 Call Cleanup Script")
    print("=" * 50)
    asyncio.run(cleanup_stale_calls(args.max_minutes, args.dry_run))


if __name__ == "__main__":
    main()
