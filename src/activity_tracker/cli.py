#!/usr/bin/env python3
"""
Activity Tracker CLI.

Browse the activity history and statistics stored in the local database.

Usage:
    activity-tracker list --type running --sort distance_desc
    activity-tracker stats
    activity-tracker records --type cycling
    activity-tracker streaks
    activity-tracker rebuild
    activity-tracker serve --port 8000
"""

import argparse
from typing import List, Optional

from .config import get_settings
from .db.repositories.activity_repository import SQLiteActivityRepository
from .db.repositories.statistics_repository import StatisticsRepository
from .models.activity import ActivitySortOrder, ActivityType, IntensityLevel
from .models.statistics import RecordKind
from .services.activity_service import ActivityService, OperationResult
from .utils.logging_setup import setup_logging


# ANSI color codes
class Colors:
    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def get_intensity_color(intensity: IntensityLevel) -> str:
    """Get color for an intensity level."""
    colors = {
        IntensityLevel.LOW: Colors.BLUE,
        IntensityLevel.MODERATE: Colors.GREEN,
        IntensityLevel.HIGH: Colors.YELLOW,
        IntensityLevel.EXTREME: Colors.RED,
    }
    return colors.get(intensity, Colors.RESET)


def format_record_value(kind: RecordKind, value: float) -> str:
    if kind == RecordKind.FASTEST_PACE:
        minutes = int(value)
        seconds = int(round((value - minutes) * 60))
        if seconds == 60:
            minutes, seconds = minutes + 1, 0
        return f"{minutes}:{seconds:02d} /km"
    if kind == RecordKind.LONGEST_DISTANCE:
        return f"{value / 1000:.2f} km"
    if kind == RecordKind.LONGEST_DURATION:
        return f"{value / 60:.0f} min"
    return f"{value:.0f} {kind.unit}"


def print_header(title: str) -> None:
    print()
    print(f"{Colors.BOLD}Activity Tracker - {title}{Colors.RESET}")
    print("=" * 40)
    print()


def print_failure(result: OperationResult) -> None:
    print(f"{Colors.RED}{result.operation} failed: {result.error_message}{Colors.RESET}")


def cmd_list(args, service: ActivityService):
    """List activities from the history."""
    activity_type = ActivityType(args.type) if args.type else None
    result = service.list_activities(args.search, activity_type, ActivitySortOrder(args.sort))
    if not result.success:
        print_failure(result)
        return

    listing = result.value
    activities = listing.activities[: args.limit]
    print_header("Activities")
    if not activities:
        print("No activities recorded yet.")
        print()
        return

    for activity in activities:
        color = get_intensity_color(activity.intensity)
        print(
            f"{activity.start_time:%Y-%m-%d %H:%M}  "
            f"{activity.activity_type.display_name:<12} "
            f"{activity.formatted_distance:>10} {activity.formatted_duration:>9}  "
            f"{color}{activity.intensity.value}{Colors.RESET}  {activity.name}"
        )
    print()
    print(f"{len(activities)} of {len(listing.activities)} activities")
    if listing.skipped:
        print(f"{Colors.YELLOW}{listing.skipped} corrupt record(s) skipped{Colors.RESET}")
    print()


def cmd_stats(args, service: ActivityService):
    """Show aggregate statistics."""
    stats = service.get_statistics()
    weekly = service.weekly_summary()
    monthly = service.monthly_summary()

    print_header("Statistics")
    print(f"Total activities: {stats.total_activities}")
    print(f"Total distance: {stats.total_distance / 1000:.1f} km")
    print(f"Total time: {stats.total_duration / 3600:.1f} h")
    print(f"Calories burned: {stats.total_calories_burned}")
    print(f"Elevation gain: {stats.total_elevation_gain:.0f} m")
    print(f"Workouts per week: {stats.average_workouts_per_week:.1f}")
    if stats.favorite_activity_type:
        print(f"Favorite activity: {stats.favorite_activity_type.display_name}")
    print(
        f"Streak: {Colors.GREEN}{stats.current_streak} days{Colors.RESET} "
        f"(longest {stats.longest_streak})"
    )
    print()
    print(f"{Colors.CYAN}This week{Colors.RESET} (from {weekly.week_start_date}):")
    print(f"  {weekly.total_activities} workouts, {weekly.total_distance / 1000:.1f} km")
    print(f"{Colors.CYAN}This month{Colors.RESET}:")
    print(f"  {monthly.total_activities} workouts, {monthly.total_distance / 1000:.1f} km")
    print()


def cmd_records(args, service: ActivityService):
    """Show personal records."""
    activity_type = ActivityType(args.type) if args.type else None
    records = service.personal_records(activity_type)

    print_header("Personal Records")
    if not records:
        print("No personal records yet.")
        print()
        return

    for record in sorted(records, key=lambda r: (r.activity_type.value, r.record_kind.value)):
        label = record.record_kind.value.replace("_", " ").title()
        print(
            f"{record.activity_type.display_name:<12} {label:<24} "
            f"{Colors.BOLD}{format_record_value(record.record_kind, record.value)}{Colors.RESET}"
            f"  ({record.achieved_at:%Y-%m-%d})"
        )
    print()


def cmd_streaks(args, service: ActivityService):
    """Show active streaks."""
    streaks = service.active_streaks()

    print_header("Active Streaks")
    if not streaks:
        print("No active streaks.")
        print()
        return

    for streak in streaks:
        label = streak.streak_type.value.replace("_", " ").title()
        print(
            f"{label:<20} {Colors.GREEN}{streak.current_count}{Colors.RESET} "
            f"(longest {streak.longest_count}, since {streak.start_date})"
        )
    print()


def cmd_rebuild(args, service: ActivityService):
    """Recompute statistics from the activity history."""
    result = service.rebuild_statistics()
    if not result.success:
        print_failure(result)
        return
    print(
        f"{Colors.GREEN}Rebuilt statistics from "
        f"{result.value.total_activities} activities{Colors.RESET}"
    )


def cmd_verify(args, service: ActivityService):
    """Check statistics consistency, rebuilding when needed."""
    result = service.verify_statistics()
    if not result.success:
        print_failure(result)
        return
    if not result.value["issues"]:
        print(f"{Colors.GREEN}Statistics are consistent{Colors.RESET}")
        return
    for issue in result.value["issues"]:
        print(f"{Colors.YELLOW}- {issue}{Colors.RESET}")
    print(f"{Colors.GREEN}Statistics rebuilt{Colors.RESET}")


def cmd_delete(args, service: ActivityService):
    """Delete an activity (statistics are not recomputed)."""
    result = service.delete_activity(args.activity_id)
    if not result.success:
        print_failure(result)
        return
    print(f"Deleted {args.activity_id}. Run 'activity-tracker rebuild' to refresh statistics.")


def cmd_serve(args):
    """Run the HTTP API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "activity_tracker.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Activity Tracker - workout history and statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  activity-tracker list --search park --limit 10
  activity-tracker records --type running
  activity-tracker rebuild
        """,
    )
    parser.add_argument("--db", help="Path to the activity database")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # List command
    list_p = subparsers.add_parser("list", help="List activities")
    list_p.add_argument("--search", "-s", help="Match on name or activity type")
    list_p.add_argument("--type", "-t", choices=[t.value for t in ActivityType])
    list_p.add_argument(
        "--sort",
        choices=[s.value for s in ActivitySortOrder],
        default=ActivitySortOrder.DATE_DESCENDING.value,
    )
    list_p.add_argument("--limit", "-n", type=int, default=20)

    subparsers.add_parser("stats", help="Show aggregate statistics")

    records_p = subparsers.add_parser("records", help="Show personal records")
    records_p.add_argument("--type", "-t", choices=[t.value for t in ActivityType])

    subparsers.add_parser("streaks", help="Show active streaks")
    subparsers.add_parser("rebuild", help="Recompute statistics from history")
    subparsers.add_parser("verify", help="Check statistics and rebuild if inconsistent")

    delete_p = subparsers.add_parser("delete", help="Delete an activity")
    delete_p.add_argument("activity_id")

    serve_p = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host")
    serve_p.add_argument("--port", type=int)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, settings.redact_locations)

    if args.command == "serve":
        cmd_serve(args)
        return
    if args.command is None:
        parser.print_help()
        return

    db_path = args.db or str(settings.db_path)
    service = ActivityService(
        repository=SQLiteActivityRepository(db_path),
        statistics_repository=StatisticsRepository(db_path),
        account_created_at=settings.account_created_at,
    )

    commands = {
        "list": cmd_list,
        "stats": cmd_stats,
        "records": cmd_records,
        "streaks": cmd_streaks,
        "rebuild": cmd_rebuild,
        "verify": cmd_verify,
        "delete": cmd_delete,
    }
    try:
        commands[args.command](args, service)
    finally:
        service.shutdown()


if __name__ == "__main__":
    main()
