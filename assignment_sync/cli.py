"""Command-line entry point for the Teams assignment sync."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from assignment_sync.core.config import DEFAULT_ENV_FILE, Settings, load_settings
from assignment_sync.core.errors import (
    ConfigurationError, CredentialError, SyncError, SyncValidationError, log_error
)
from assignment_sync.integrations.teams.client import AssignmentsClient
from assignment_sync.integrations.teams.token_manager import CredentialRefreshOrchestrator
from assignment_sync.schemas.assignment import parse_iso
from assignment_sync.schemas.sync import FilterCriteria, SyncMode, SyncReport
from assignment_sync.services.sync.normalizer import extract_description
from assignment_sync.services.sync.pipeline import SyncPipeline


logger = logging.getLogger(__name__)

PREVIEW_ROWS = 10

EPILOG = """\
examples:
  assignment-sync
  assignment-sync --incomplete
  assignment-sync --due-before=2025-12-31T23:59:59Z
  assignment-sync --incomplete --overdue --incremental
  assignment-sync --details=<classId>:<assignmentId>

environment (.env):
  AUI_TOKEN, AUI_SESSION_ID, AUI_URL         assignments API credential and listing URL
  NOTION_TOKEN, NOTION_DATABASE_ID           optional Notion upload target
  AUI_AUTO_REFRESH=0                         never launch the token extractor
  CI=true / GITHUB_ACTIONS=true              same, detected automatically

outputs (in OUTPUT_DIR, default outputs/):
  assignments.json, assignments.csv, assignments.xlsx, notion_payload.json
  by-year/YYYY/ and by-month/YYYY/mon/ copies of each except the workbook
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assignment-sync",
        description="Sync Microsoft Teams assignments to local files and Notion.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--full", action="store_true",
                        help="Sync all assignments and replace the seen set (default)")
    parser.add_argument("--incremental", action="store_true",
                        help="Only report and upload assignments not seen by an earlier run")
    parser.add_argument("--refresh-tokens", action="store_true",
                        help="Refresh the token before syncing even if it is still valid")
    parser.add_argument("--status", dest="statuses", action="append", default=[], metavar="STATUS",
                        help="Keep assignments with this status (repeatable)")
    parser.add_argument("--class-id", dest="class_ids", action="append", default=[], metavar="UUID",
                        help="Keep assignments from this class (repeatable)")
    parser.add_argument("--due-before", metavar="ISO_DATE",
                        help="Keep assignments due on or before this date")
    parser.add_argument("--due-after", metavar="ISO_DATE",
                        help="Keep assignments due on or after this date")
    parser.add_argument("--incomplete", action="store_true",
                        help="Keep assignments that are not fully turned in")
    parser.add_argument("--overdue", action="store_true",
                        help="Keep assignments whose due date has passed")
    parser.add_argument("--details", metavar="CLASS_ID:ASSIGNMENT_ID",
                        help="Save the full record of one assignment and exit")
    parser.add_argument("--env-file", default=DEFAULT_ENV_FILE,
                        help=f"Dotenv file with credentials (default: {DEFAULT_ENV_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_criteria(args: argparse.Namespace) -> FilterCriteria:
    """Validate the filter flags; bad dates stop the run before any network call."""
    bounds = {}
    for flag, value in (("--due-before", args.due_before), ("--due-after", args.due_after)):
        if value is None:
            continue
        parsed = parse_iso(value)
        if parsed is None:
            raise SyncValidationError(f"Invalid {flag} date: {value}")
        bounds[flag] = parsed

    return FilterCriteria(
        due_before=bounds.get("--due-before"),
        due_after=bounds.get("--due-after"),
        statuses=args.statuses,
        group_ids=args.class_ids,
        incomplete=args.incomplete,
        overdue=args.overdue,
    )


def parse_details(value: str) -> Tuple[str, str]:
    class_id, _, assignment_id = value.partition(":")
    if not class_id.strip() or not assignment_id.strip():
        raise SyncValidationError("Invalid details format. Use: --details=classId:assignmentId")
    return class_id.strip(), assignment_id.strip()


def resolve_mode(args: argparse.Namespace) -> SyncMode:
    return SyncMode.INCREMENTAL if args.incremental else SyncMode.FULL


async def dump_details(settings: Settings, class_id: str, assignment_id: str) -> Path:
    logger.info(f"Fetching assignment details for {assignment_id}...")
    async with AssignmentsClient(settings) as client:
        assignment = await client.get_assignment_detail(class_id, assignment_id)

    logger.info(f"Fetched assignment: \"{assignment.get('displayName')}\"")
    logger.info(f"Description: {extract_description(assignment) or 'No description'}")
    logger.info(f"Due: {assignment.get('dueDateTime')}")
    logger.info(f"Status: {assignment.get('status')}, All turned in: {assignment.get('allTurnedIn')}")

    path = Path(f"assignment-{assignment_id}-details.json")
    path.write_text(json.dumps(assignment, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Detailed assignment info saved to {path}")
    return path


def _trim(value: str, width: int) -> str:
    if not value:
        return ""
    return value[:width - 3] + "..." if len(value) > width else value


def print_summary(report: SyncReport, preview: List[dict], output_dir: str) -> None:
    print("\nSummary:")
    print(f"- Total fetched from API: {report.total_fetched}")
    print(f"- Total after filters: {report.total_filtered}")
    for name in ("assignments.json", "assignments.csv", "assignments.xlsx", "notion_payload.json"):
        print(f"- Written to {output_dir}/{name}: {report.total_filtered}")
    if report.mode == SyncMode.INCREMENTAL and report.new_items is not None:
        print(f"- New items (incremental): {report.new_items}")
    upload = report.upload
    if upload.skipped:
        print("- Notion upload: skipped")
    else:
        print(f"- Notion upload: {upload.uploaded} uploaded, {upload.failed} failed, "
              f"{upload.existing} already present")

    print("\nOrganized Files:")
    print(f"- Year folders: {len(report.year_counts)} ({', '.join(report.year_counts)})")
    print(f"- Month folders: {len(report.month_counts)}")
    for year, count in report.year_counts.items():
        print(f"  - {output_dir}/by-year/{year}/: {count} assignments")

    if preview:
        print(f"\nPreview (first {PREVIEW_ROWS} items):")
        print(f"{'Due Date':<25} {'Title':<40} {'Teacher':<25} {'Status':<10} Students")
        print("-" * 120)
        for row in preview[:PREVIEW_ROWS]:
            print(
                f"{(row['dueDate'] or 'N/A'):<25} {_trim(row['title'], 38):<40} "
                f"{_trim(row['teacherName'], 23):<25} {row['status']:<10} {row['studentCount']}"
            )


async def run(args: argparse.Namespace, settings: Settings) -> int:
    details = parse_details(args.details) if args.details else None
    criteria = build_criteria(args)
    mode = resolve_mode(args)

    orchestrator = CredentialRefreshOrchestrator(settings)
    if not await orchestrator.ensure_valid(force_refresh=args.refresh_tokens):
        if orchestrator.refresh_allowed:
            raise CredentialError("Token refresh failed. Please provide valid tokens manually.")
        raise CredentialError(
            "Invalid or expired token. Use --refresh-tokens outside CI or update .env manually."
        )
    settings = orchestrator.settings

    if details:
        await dump_details(settings, *details)
        return 0

    pipeline = SyncPipeline(settings, criteria=criteria, mode=mode)
    report = await pipeline.run()

    preview = _load_preview(Path(settings.OUTPUT_DIR) / "assignments.json")
    print_summary(report, preview, settings.OUTPUT_DIR)
    print("\nSync completed successfully!")
    return 0


def _load_preview(path: Path) -> List[dict]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))[:PREVIEW_ROWS]
    except (OSError, ValueError) as e:
        logger.debug(f"No preview available: {e}")
        return []


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        # Operator input is checked before any credential or network work
        if args.details:
            parse_details(args.details)
        build_criteria(args)
        settings = load_settings(args.env_file)
    except ValidationError as e:
        log_error(ConfigurationError(f"Invalid configuration: {e}"))
        return 1
    except SyncError as e:
        log_error(e)
        return 1

    try:
        return asyncio.run(run(args, settings))
    except SyncError as e:
        log_error(e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
