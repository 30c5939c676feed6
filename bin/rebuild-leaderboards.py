"""Recompute every leaderboard from the stored lifetime aggregates.

Usage: python bin/rebuild-leaderboards.py [metric ...]

Reads HAT_* settings for the storage location. With metric names given,
prints those boards after the rebuild; otherwise prints a summary line per
board.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from hat.app.factory import configure_logging, create_recorder, create_repositories
from hat.app.settings import HatSettings


async def main() -> None:
    settings = HatSettings()
    configure_logging(settings)
    if settings.storage_backend != "file":
        print("Error: leaderboards can only be rebuilt for HAT_STORAGE_BACKEND=file")
        sys.exit(1)

    _match_repository, stats_repository = create_repositories(settings)
    recorder = create_recorder(settings, stats_repository)
    boards = await recorder.rebuild_leaderboards()

    requested = sys.argv[1:]
    unknown = [m for m in requested if m not in boards]
    if unknown:
        print(f"Error: unknown metric(s): {', '.join(unknown)}")
        print(f"Known metrics: {', '.join(sorted(boards))}")
        sys.exit(1)

    if not requested:
        for metric in sorted(boards):
            print(f"{metric}: {len(boards[metric])} entries")
        return

    for metric in requested:
        print(f"== {metric}")
        for entry in boards[metric]:
            print(f"{entry.rank:>3}. {entry.display_name} ({entry.player_key}) {entry.value:g}")


if __name__ == "__main__":
    asyncio.run(main())
