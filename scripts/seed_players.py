#!/usr/bin/env python3
"""
Create the player roster.

Usage:
    python scripts/seed_players.py Alice Bob Carol Dave
    python scripts/seed_players.py --file roster.txt   # one name per line

Players that already exist are skipped, so the script can be re-run safely.
"""

import argparse
import asyncio
import os
import sys

# Add apps to path (so scoreboard.* imports work)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
apps_path = os.path.join(project_root, "apps")
sys.path.insert(0, apps_path)

from scoreboard.database.db import AsyncSessionLocal, init_database  # noqa: E402
from scoreboard.services import data_service  # noqa: E402


def read_names(args) -> list:
    names = list(args.names)
    if args.file:
        with open(args.file, encoding="utf-8") as f:
            names.extend(line.strip() for line in f)
    # Preserve order, drop blanks and duplicates
    unique = []
    for name in (n.strip() for n in names):
        if name and name not in unique:
            unique.append(name)
    return unique


async def seed_players(names: list):
    """Create any players on the list that are not in the database yet."""
    await init_database()

    created = 0
    skipped = 0
    async with AsyncSessionLocal() as session:
        for name in names:
            if await data_service.get_player_by_name(session, name):
                print(f"  - {name} already exists, skipping")
                skipped += 1
                continue
            player = await data_service.create_player(session, name)
            print(f"  ✓ Created {player['name']} (ID: {player['id']})")
            created += 1

    print("=" * 60)
    print(f"✅ Created: {created}")
    print(f"Skipped: {skipped}")


def main():
    parser = argparse.ArgumentParser(description="Create the player roster")
    parser.add_argument("names", nargs="*", help="Player names")
    parser.add_argument("--file", help="File with one player name per line")
    args = parser.parse_args()

    names = read_names(args)
    if not names:
        parser.error("No player names given")

    asyncio.run(seed_players(names))


if __name__ == "__main__":
    main()
