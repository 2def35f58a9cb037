"""Print the resolved availability/booking grid for one week.

Standalone CLI script against the remote scheduling feed. Loads the
timezone list and the teacher directory, fetches the week summary and
prints one row per catalog time with "available/booked" per day.

Run with: python scripts/show_week.py
Week:     python scripts/show_week.py --date 2025-07-23
Teacher:  python scripts/show_week.py --teacher TJL123
Timezone: python scripts/show_week.py --timezone "(GMT+05:30) IST"
JSON:     python scripts/show_week.py --json

Exit codes:
  0 = success (table or JSON on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import date

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.slotgrid.client import SchedulingApiClient  # noqa: E402
from src.slotgrid.config import get_config  # noqa: E402
from src.slotgrid.dashboard import GridRow, SchedulingDashboard  # noqa: E402
from src.slotgrid.logging import get_logger, setup_logging  # noqa: E402

log = get_logger(__name__)

_CELL_MARKS = {"neutral": " ", "alert": "!", "open": "+"}


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Print the resolved weekly availability grid.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Any date inside the week to show (default: today).",
    )
    parser.add_argument(
        "--teacher",
        type=str,
        default=None,
        help="Teacher uid or id to filter the summary by.",
    )
    parser.add_argument(
        "--timezone",
        type=str,
        default=None,
        help='Display timezone label, e.g. "(GMT+02:00) CET".',
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the grid as JSON instead of a table.",
    )
    return parser.parse_args()


def _format_table(dashboard: SchedulingDashboard, rows: list[GridRow]) -> str:
    """Render grid rows as a fixed-width table; cells are "available/booked"."""
    headers = ["UTC", "Local"] + [d.strftime("%a %d") for d in dashboard.week_dates]
    lines = [" | ".join(h.ljust(8) for h in headers)]
    lines.append("-+-".join("-" * 8 for _ in headers))
    for row in rows:
        cells = [row.time, row.cells[0].display_time]
        for cell in row.cells:
            text = f"{cell.counts.available}/{cell.counts.booked}{_CELL_MARKS[cell.cell_class.value]}"
            cells.append("off" if cell.week_off else text)
        lines.append(" | ".join(c.ljust(8) for c in cells))
    return "\n".join(lines)


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    client = SchedulingApiClient(config)
    try:
        dashboard = SchedulingDashboard(client, config)
        await dashboard.start()

        if args.timezone:
            await dashboard.select_timezone(args.timezone)
        if args.teacher:
            teacher = dashboard.directory.lookup(args.teacher)
            if teacher is None:
                raise SystemExit(f"Unknown teacher: {args.teacher}")
            await dashboard.select_teacher(teacher)
        if args.date:
            await dashboard.go_to_date(args.date)

        if dashboard.week_data.status.error:
            raise RuntimeError(dashboard.week_data.status.error)

        rows = dashboard.grid()
        log.info(
            "week_resolved",
            week_start=dashboard.week_start.isoformat(),
            timezone=dashboard.timezone,
            rows=len(rows),
        )
        if args.json:
            print(json.dumps([row.model_dump(mode="json") for row in rows], indent=2))
        else:
            print(_format_table(dashboard, rows))
    finally:
        await client.aclose()


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
