#!/usr/bin/env python3
"""
Run one polling tick against live GitHub and print the resulting events.

Uses the same settings as the service (.env or environment). Cursors start
`--since-minutes` in the past so recent activity shows up immediately.
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from activity_sync.config import get_settings  # noqa: E402
from activity_sync.consumers import describe_event  # noqa: E402
from activity_sync.github_client import GitHubClient  # noqa: E402
from activity_sync.polling import ActivitySyncEngine, EventDispatcher  # noqa: E402
from activity_sync.polling.cursors import utc_now  # noqa: E402


def print_event(event) -> None:
    summary = describe_event(event)
    kind = summary.pop("kind")
    action = summary.pop("action")
    repository = summary.pop("repository")
    details = ", ".join(f"{key}={value}" for key, value in summary.items())
    print(f"   📨 [{repository}] {kind} {action}: {details}")


async def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--since-minutes",
        type=int,
        default=60,
        help="How far back the first tick looks (default: 60)",
    )
    parser.add_argument(
        "repositories",
        nargs="*",
        help="owner/repo identifiers; defaults to GITHUB_REPOSITORIES",
    )
    args = parser.parse_args()

    print("🚀 Activity Sync - One-shot Activity Check")
    print("=" * 50)

    settings = get_settings()
    github_client = GitHubClient(settings)

    try:
        login = await github_client.get_authenticated_login()
        print(f"✅ Connected as: {login}")
    except Exception as e:
        print(f"❌ GitHub connection failed: {e}")
        return 1

    engine = ActivitySyncEngine(github_client, settings)
    monitored = await engine.validate(args.repositories or None)
    if not monitored:
        print("❌ No valid repositories to check")
        return 1

    print(f"📋 Checking {len(monitored)} repositories:")
    for repo_name in monitored:
        print(f"   - {repo_name}")

    start = utc_now() - timedelta(minutes=args.since_minutes)
    for repo_name in monitored:
        engine.cursors.discard(repo_name)
        engine.cursors.initialize(repo_name, start)

    engine.dispatcher = EventDispatcher(print_event)
    handled = await engine.run_tick()

    print("\n" + "=" * 50)
    print(f"📈 {handled} events since {start.isoformat()}")
    rate_limit = await github_client.get_rate_limit_info()
    if "core" in rate_limit:
        core = rate_limit["core"]
        print(f"ℹ️  Rate limit: {core['remaining']}/{core['limit']}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
