"""``send-scheduling-reminders``: run one reminder sweep and exit.

Meant to be triggered by cron (or any scheduler) with the business timezone
as reference: ``--type=24h`` once a day at 08:00 and ``--type=1h`` every hour.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime

import pytz

from . import create_app
from .errors import InvalidReminderType
from .reminders import LEAD_TIMES, send_scheduling_reminders


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="send-scheduling-reminders",
        description="Send reminders for confirmed schedulings (24h or 1h before).",
    )
    # Validated by the job so a bad value exits with status 1.
    parser.add_argument(
        "--type",
        dest="reminder_type",
        help=f"Reminder type ({' or '.join(LEAD_TIMES)})",
    )
    parser.add_argument(
        "--now",
        help="Pretend the current time is this ISO 8601 timestamp (business timezone if naive)",
    )
    return parser.parse_args(argv)


def parse_now(value: str | None, tz_name: str) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = pytz.timezone(tz_name).localize(parsed)
    return parsed


def run(reminder_type: str | None, now: str | None = None, app=None) -> int:
    app = app or create_app()
    try:
        now_value = parse_now(now, app.config["BUSINESS_TIMEZONE"])
    except ValueError as exc:
        print(f"Invalid --now value: {exc}", file=sys.stderr)
        return 1

    with app.app_context():
        try:
            result = send_scheduling_reminders(reminder_type, now=now_value)
        except InvalidReminderType:
            print("Invalid type. Use 24h or 1h.", file=sys.stderr)
            return 1

    print(result.summary())
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    app = create_app()
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(args.reminder_type, args.now, app=app)


if __name__ == "__main__":
    sys.exit(main())
