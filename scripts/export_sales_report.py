#!/usr/bin/env python3
"""
Sales Report Export Script

Exports the sales report (summary rows followed by one row per sale) from the
Supabase database to CSV.

Usage:
    python export_sales_report.py --as-user <uid>
    python export_sales_report.py --as-user <uid> --sold-to vipnumbershop --output vip.csv
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import Settings
from repositories.document_store import SupabaseDocumentStore
from services.context import OperationContext
from services.csv_export_service import export_sales_report
from services.query_pipeline import ALL
from services.record_store import RecordStore


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Export the sales report from Supabase database to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export every sale visible to the user
  python export_sales_report.py --as-user 8f2c...

  # Export one buyer's sales to a custom file
  python export_sales_report.py --as-user 8f2c... --sold-to vipnumbershop --output vip.csv
        """
    )

    parser.add_argument(
        "--as-user",
        required=True,
        help="uid of the user the export is recorded under"
    )

    parser.add_argument(
        "--sold-to",
        default=ALL,
        help="Buyer name to filter by (default: all)"
    )

    parser.add_argument(
        "--search",
        default="",
        help="Only sales whose mobile contains this text"
    )

    parser.add_argument(
        "--output",
        "-o",
        help="Output CSV path (default: sales_report_<sold-to>.csv)"
    )

    args = parser.parse_args()

    try:
        settings = Settings.from_env()
        print("Fetching records from database...")
        print(f"  Buyer filter: {args.sold_to}")
        print()

        store = RecordStore(SupabaseDocumentStore())
        store.start()

        user = store.user_by_uid(args.as_user)
        if user is None:
            print(f"Unknown user: {args.as_user}", file=sys.stderr)
            return 1

        ctx = OperationContext(store=store, actor=user, timezone=settings.business_timezone)
        try:
            export = export_sales_report(ctx, args.sold_to, args.search)
        except ValueError as e:
            print(str(e))
            return 1

        output = args.output or export.filename
        with open(output, "w", encoding="utf-8", newline="") as f:
            f.write(export.content)

        print("=" * 60)
        print("EXPORT SUMMARY")
        print("=" * 60)
        print(f"Total sales exported: {export.record_count}")
        print(f"Output file: {output}")
        print("=" * 60)

        return 0

    except KeyboardInterrupt:
        print("\n\nExport interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
