#!/usr/bin/env python3
"""
CSV Number Import Script

Imports inventory numbers from a CSV file into the Supabase database with:
- Row validation (required columns, dates, amounts, known employees)
- Duplicate detection against every collection and within the file
- One atomic batch for all valid rows
- Summary statistics and error logging

Usage:
    python import_numbers_csv.py path/to/numbers.csv --as-user <uid>
    python import_numbers_csv.py path/to/numbers.csv --as-user <uid> --dry-run
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import Settings
from repositories.document_store import SupabaseDocumentStore
from services.context import OperationContext
from services.csv_import_service import ImportResult, import_numbers, read_csv_rows
from services.record_store import RecordStore


def print_summary(result: ImportResult) -> None:
    """Print import summary statistics."""
    print()
    print("=" * 60)
    print("IMPORT SUMMARY" + (" (DRY RUN)" if result.dry_run else ""))
    print("=" * 60)
    print(f"Total Rows:       {result.total_rows}")
    print(f"Imported:         {result.success_count}" + (" (would be)" if result.dry_run else ""))
    print(f"Failed:           {len(result.failed)}")
    print()

    if result.failed:
        print("First 5 errors:")
        for failure in result.failed[:5]:
            print(f"  - Row {failure.row_number}: {failure.reason}")
        if len(result.failed) > 5:
            print(f"  ... and {len(result.failed) - 5} more")
    else:
        print("No errors!")

    print("=" * 60)


def save_error_log(result: ImportResult, output_path: str) -> None:
    """Save failed rows to a JSON file."""
    if not result.failed:
        return

    errors = [
        {"row_num": f.row_number, "error": f.reason, "csv_row": dict(f.record)}
        for f in result.failed
    ]
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(errors, f, indent=2, default=str)

    print(f"\nError log saved to: {output_path}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Import inventory numbers from CSV into Supabase database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic import, recorded as the given user
  python import_numbers_csv.py numbers.csv --as-user 8f2c...

  # Dry run (validate only, don't insert)
  python import_numbers_csv.py numbers.csv --as-user 8f2c... --dry-run

Required columns: Mobile, Status, PurchasePrice, PurchaseDate
(RTSDate is required when Status is Non-RTS)
        """
    )

    parser.add_argument(
        "csv_path",
        help="Path to the CSV file to import"
    )

    parser.add_argument(
        "--as-user",
        required=True,
        help="uid of the user the import is recorded under"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the CSV without inserting to database"
    )

    parser.add_argument(
        "--error-log",
        default="import_errors.json",
        help="Path to save error log (default: import_errors.json)"
    )

    args = parser.parse_args()

    try:
        csv_file = Path(args.csv_path)
        if not csv_file.exists():
            raise FileNotFoundError(f"CSV file not found: {args.csv_path}")

        rows = read_csv_rows(csv_file.read_text(encoding="utf-8"))
        if not rows:
            print("CSV file has no data rows")
            return 1

        settings = Settings.from_env()
        print("Loading records from database...")
        store = RecordStore(SupabaseDocumentStore())
        store.start()

        user = store.user_by_uid(args.as_user)
        if user is None:
            print(f"Unknown user: {args.as_user}", file=sys.stderr)
            return 1

        ctx = OperationContext(store=store, actor=user, timezone=settings.business_timezone)

        print(f"Reading CSV: {args.csv_path}")
        print(f"Rows: {len(rows)}")
        print(f"Dry run: {args.dry_run}")

        result = import_numbers(ctx, rows, dry_run=args.dry_run)

        print_summary(result)
        save_error_log(result, args.error_log)

        return 1 if result.failed else 0

    except KeyboardInterrupt:
        print("\n\nImport interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
