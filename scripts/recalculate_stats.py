#!/usr/bin/env python3
"""
Rebuild every cached standing from the recorded games.

This script:
1. Fetches all tournaments from the database
2. Rebuilds tournament_player_stats for each tournament
3. Rebuilds the all-time player_stats table
4. Provides progress feedback and summary statistics
"""

import asyncio
import os
import sys

# Add apps to path (so scoreboard.* imports work)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
apps_path = os.path.join(project_root, "apps")
sys.path.insert(0, apps_path)

from scoreboard.database.db import AsyncSessionLocal  # noqa: E402
from scoreboard.services import data_service  # noqa: E402


async def recalculate_stats():
    """Recalculate cached stats for all tournaments."""
    async with AsyncSessionLocal() as session:
        print("=" * 60)
        print("Fetching all tournaments...")
        print("=" * 60)

        tournaments = await data_service.list_tournaments(session)
        print(f"✓ Found {len(tournaments)} tournament(s)\n")

        successful = 0
        failed = []

        for idx, tournament in enumerate(tournaments, 1):
            print(f"[{idx}/{len(tournaments)}] Rebuilding {tournament['name']} (ID: {tournament['id']})")
            try:
                result = await data_service.refresh_cached_stats(session, tournament["id"])
                print(f"   ✓ {result['player_count']} players, {result['game_count']} games")
                successful += 1
            except Exception as e:
                print(f"   ❌ Error: {str(e)}")
                await session.rollback()
                failed.append((tournament, str(e)))

        print("=" * 60)
        print("Rebuilding all-time stats...")
        print("=" * 60)
        try:
            result = await data_service.refresh_cached_stats(session)
            print(f"✓ All-time stats rebuilt: {result['player_count']} players, {result['game_count']} games\n")
        except Exception as e:
            print(f"❌ Error rebuilding all-time stats: {str(e)}")
            await session.rollback()
            return

        # Summary
        print("=" * 60)
        print("Summary")
        print("=" * 60)
        print(f"Total tournaments: {len(tournaments)}")
        print(f"✅ Successful: {successful}")
        print(f"❌ Failed: {len(failed)}")
        for tournament, error in failed:
            print(f"  - {tournament['name']} (ID: {tournament['id']}): {error}")


if __name__ == "__main__":
    asyncio.run(recalculate_stats())
