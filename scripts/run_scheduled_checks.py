#!/usr/bin/env python3
"""
Scheduled Checks Script

Runs every recurring check once against the Supabase database, for cron
deployments that do not keep the API process running:
- Non-RTS numbers whose RTS date has arrived become RTS
- System reminders for arrived COCP safe custody dates and RTS pre-bookings
- Completed reminders past the retention window are deleted

Usage:
    python run_scheduled_checks.py
    python run_scheduled_checks.py --retention-days 14
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import Settings
from repositories.document_store import SupabaseDocumentStore
from services.automation import run_scheduled_checks
from services.record_store import RecordStore


def main() -> int:
    """Main entry point for the CLI."""
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="Run the recurring RTS and reminder checks once",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Hourly from cron
  0 * * * * cd /srv/vip-numbers && python scripts/run_scheduled_checks.py
        """
    )

    parser.add_argument(
        "--retention-days",
        type=int,
        default=settings.completed_reminder_retention_days,
        help=f"Delete Done reminders older than this (default: {settings.completed_reminder_retention_days})"
    )

    args = parser.parse_args()

    try:
        store = RecordStore(SupabaseDocumentStore())
        store.start()

        report = run_scheduled_checks(
            store,
            timezone=settings.business_timezone,
            retention_days=args.retention_days,
        )

        print("=" * 60)
        print("SCHEDULED CHECKS")
        print("=" * 60)
        print(f"Numbers promoted to RTS:   {len(report.promoted_rts)}")
        print(f"System reminders created:  {len(report.reminders_created)}")
        print(f"Done reminders deleted:    {len(report.reminders_swept)}")
        print("=" * 60)

        return 0

    except KeyboardInterrupt:
        print("\n\nChecks interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
