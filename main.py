"""
Maintainer Dashboard - one-shot activity summary across your projects.
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

from api_client import ProjectsClient
from board import Board
from models import Project
from orchestrator import ProjectFetchOrchestrator

DEFAULT_LIMIT = 15


def setup_logging(verbose: bool = False):
    """Configure logging for all modules."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def main(as_of: datetime | None = None, limit: int | None = DEFAULT_LIMIT, client: ProjectsClient | None = None):
    """
    Run the dashboard once.

    Args:
        as_of: Virtual "current time" for time-travel debugging (default: now)
        limit: Maximum number of projects to include
        client: Backend client (default: configured from the environment)
    """
    as_of = as_of or datetime.now(timezone.utc)

    print("=" * 80)
    print("Maintainer Dashboard")
    print(f"Time: {as_of.strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 80 + "\n")

    client = client or ProjectsClient()
    orchestrator = ProjectFetchOrchestrator(client)

    print("Fetching projects...\n")
    projects = [Project.model_validate(p) for p in await client.get_projects(limit=limit)]

    if not projects:
        print("No projects found. Make sure API_TOKEN and API_BASE_URL are set.")
        return

    print(f"Found {len(projects)} projects\n")
    await orchestrator.load_data(projects)

    dashboard = Board(orchestrator.issues, orchestrator.prs, as_of=as_of).get_dashboard()

    print("=" * 80)
    print("STATS")
    print("=" * 80)
    for stat in dashboard.stats:
        print(f"{stat.title:<24} {stat.value:>6}  {stat.change:+d}%  ({stat.subtitle})")

    print("\n" + "=" * 80)
    print("LAST ACTIVITY")
    print("=" * 80)
    if not dashboard.activities:
        print("No recent activity")
    for activity in dashboard.activities:
        kind = "PR" if activity.type == "pr" else "Issue"
        label = f" [{activity.label}]" if activity.label else ""
        title = activity.title[:40] + "..." if len(activity.title) > 43 else activity.title
        print(f"{kind:<6} #{activity.number or '?':<6} {title:<44} {activity.relative_time_label}{label}")

    print("\n" + "=" * 80)
    print("APPLICATIONS HISTORY")
    print("=" * 80)
    print(f"{'Month':<8} {'Applications':<14} {'Merged'}")
    print("-" * 80)
    for point in dashboard.chart_data:
        print(f"{point.month:<8} {point.applications:<14} {point.merged}")
    print("=" * 80)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize recent activity across your projects")
    parser.add_argument("--as-of", type=datetime.fromisoformat, help="Virtual current time (ISO 8601)")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Maximum projects (default: {DEFAULT_LIMIT})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    setup_logging(args.verbose)
    asyncio.run(main(as_of=args.as_of, limit=args.limit))
