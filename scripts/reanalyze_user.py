#!/usr/bin/env python3
"""
Re-run style analysis for a user whose posts are already ingested.

Recomputes engagement scores, refreshes changed embeddings, re-extracts the
style profile and re-seeds long-term memory. The user ends in `ready` on
success or `error` on failure.

Usage:
    python scripts/reanalyze_user.py --user-id <userId> [--wait 60]
"""

import argparse
import asyncio
import sys

from ghostwriter.core.config import get_settings
from ghostwriter.core.container import ServiceContainer
from ghostwriter.core.logging import configure_logging


async def reanalyze(user_id: str, wait: float) -> int:
    settings = get_settings()
    configure_logging(settings)

    container = ServiceContainer.build(settings)
    await container.startup()
    try:
        confidence = await container.analysis.reanalyze(user_id)
        print(f"Analysis complete for '{user_id}': confidence={confidence.value}")

        # Memory seeding runs as a background task
        await container.tasks.drain(timeout=wait)
        return 0
    except Exception as e:
        print(f"ERROR: analysis failed for '{user_id}': {e}", file=sys.stderr)
        return 1
    finally:
        await container.shutdown()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Re-run style analysis for an already ingested user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--user-id", required=True, help="User ID to re-analyze")
    parser.add_argument(
        "--wait",
        type=float,
        default=60.0,
        help="Seconds to wait for memory seeding before exiting (default: 60)",
    )

    args = parser.parse_args()

    sys.exit(asyncio.run(reanalyze(args.user_id, args.wait)))


if __name__ == "__main__":
    main()
