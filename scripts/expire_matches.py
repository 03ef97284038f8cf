#!/usr/bin/env python3
"""
Tandem — Expire stale match proposals.

Marks every ``pending`` match older than the cutoff as ``expired`` and drops
the affected users' cached match lists from the configured cache.  Intended
for a daily cron job.

Usage examples
--------------
  # Use MATCH_EXPIRY_DAYS from the environment (default 14)
  python scripts/expire_matches.py

  # Expire anything pending for more than a week
  python scripts/expire_matches.py --older-than-days 7
"""

from __future__ import annotations

import argparse
import asyncio
import sys

# Ensure the project root is importable
sys.path.insert(0, ".")

from app.config import get_settings
from app.database import async_session_factory, engine
from app.services.cache_service import RecommendationCache, build_cache_backend
from app.services.interaction_service import InteractionService
from app.services.match_service import MatchService


async def expire(older_than_days: int | None) -> int:
    settings = get_settings()
    backend = build_cache_backend(settings)
    await backend.ping()
    cache = RecommendationCache(backend, settings)
    service = MatchService(cache, InteractionService(cache))

    try:
        async with async_session_factory() as session:
            expired = await service.expire_stale_matches(session, older_than_days)
            await session.commit()
    finally:
        await backend.close()
        await engine.dispose()
    return expired


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Expire pending match proposals older than a cutoff.",
    )
    parser.add_argument(
        "--older-than-days",
        type=int,
        default=None,
        help="Age in days after which a pending proposal expires "
        "(default: MATCH_EXPIRY_DAYS)",
    )
    args = parser.parse_args()

    expired = asyncio.run(expire(args.older_than_days))
    print(f"Expired {expired} pending match(es).")


if __name__ == "__main__":
    main()
