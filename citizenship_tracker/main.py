"""
Main Entry Point - Citizenship Tracker

Lists countries or runs the tracker for one country and prints the result
as a table, a per-player overview or per-player timelines.
"""

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from .coreutils.logging import setup_logging
from .extract.warera_api import WarEraAPIClient
from .load.report import (
    export_rows,
    render_countries,
    render_overview,
    render_table,
    render_timeline,
    summarize_counts,
)
from .orchestration.tracker import CitizenshipTracker, TrackerProgress
from .transformation.transformers import (
    build_view,
    flatten_changes,
    get_summary_stats,
    group_by_username,
)
from .transformation.validators import validate_change_rows_schema

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def _log_progress(progress: TrackerProgress) -> None:
    logger.info(f"Progress: {progress.current}/{progress.total} users")


def run_countries(client: WarEraAPIClient) -> int:
    countries = client.get_all_countries()
    if not countries:
        print("No countries available")
        return 1
    print(render_countries(countries))
    return 0


def run_track(client: WarEraAPIClient, args: argparse.Namespace) -> int:
    if args.token:
        client.set_auth_token(args.token)

    tracker = CitizenshipTracker(client, on_progress=_log_progress)
    result = tracker.run(args.country)
    if not result.succeeded:
        print(f"❌ {result.error}")
        return 1

    # Make sure every referenced country is cached so rows get display names
    client.get_all_countries()

    rows_df = flatten_changes(result.players, result.country_names(client))
    validate_change_rows_schema(rows_df)
    view_df = build_view(
        rows_df,
        from_country_id=args.from_country,
        to_country_id=args.to_country,
        start_date=args.start_date,
        end_date=args.end_date,
        descending=args.descending,
    )

    if args.view == "table":
        print(render_table(view_df))
    elif args.view == "overview":
        print(render_overview(group_by_username(view_df)))
    else:
        for group in group_by_username(view_df):
            print(render_timeline(group))
            print()

    print(
        summarize_counts(
            {
                "users": result.total_users,
                "active": result.active_users,
                "inactive": result.inactive_users,
                "failed": len(result.failures),
                "changes": view_df.height,
            }
        )
    )
    for player in result.players:
        if player.error:
            print(f"⚠️  {player.username}: {player.error}")

    stats = get_summary_stats(view_df)
    logger.info(f"Summary: {stats}")

    if args.output:
        export_rows(view_df, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WarEra Citizenship Tracker")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("countries", help="List all countries")

    track = subparsers.add_parser(
        "track", help="Show citizenship changes of a country's active players"
    )
    track.add_argument("--country", required=True, help="Country identifier")
    track.add_argument(
        "--token", help="Authorization token (defaults to WARERA_AUTH_TOKEN)"
    )
    track.add_argument("--from-country", help="Only changes leaving this country")
    track.add_argument("--to-country", help="Only changes joining this country")
    track.add_argument("--start-date", type=_parse_date, help="YYYY-MM-DD, inclusive")
    track.add_argument("--end-date", type=_parse_date, help="YYYY-MM-DD, inclusive")
    track.add_argument(
        "--descending", action="store_true", help="Newest changes first"
    )
    track.add_argument(
        "--view",
        choices=["table", "overview", "timeline"],
        default="table",
        help="How to display the changes",
    )
    track.add_argument("--output", help="Export rows to a .parquet or .csv file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else None)

    client = WarEraAPIClient()
    try:
        if args.command == "countries":
            return run_countries(client)
        return run_track(client, args)
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
