"""
Local exports of the filtered assignment set: JSON, CSV and the Notion
payload document, plus by-year and by-month partitions of each, and an
XLSX workbook at the top level.
"""

import csv
import json
import logging
from collections import OrderedDict
from datetime import timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from openpyxl import Workbook

from assignment_sync.integrations.notion.client import build_payload_document
from assignment_sync.schemas.assignment import CanonicalAssignment


logger = logging.getLogger(__name__)

JSON_FILE = "assignments.json"
CSV_FILE = "assignments.csv"
PAYLOAD_FILE = "notion_payload.json"
XLSX_FILE = "assignments.xlsx"
XLSX_SHEET = "Assignments"

MONTH_NAMES = ("jan", "feb", "mar", "apr", "may", "jun",
               "jul", "aug", "sep", "oct", "nov", "dec")

CSV_COLUMNS = [
    'id', 'title', 'groupId', 'teacherName', 'teacherEmail', 'studentCount',
    'status', 'dueDate', 'assignedDate', 'createdDate', 'modifiedDate',
    'allTurnedIn', 'anySubmittedState', 'allowLateSubmissions',
    'totalSubmissions', 'submittedCount', 'externalUrl',
]


def _csv_value(value: Any) -> Any:
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    return value


def partition_items(items: Sequence[CanonicalAssignment]):
    """
    Group items by the UTC year and (year, month) of their due date.

    Returns two ordered mappings keyed ``"2025"`` and ``"2025/sep"``; items
    without a parsable due date are left out of both.
    """
    by_year: Dict[str, List[CanonicalAssignment]] = OrderedDict()
    by_month: Dict[str, List[CanonicalAssignment]] = OrderedDict()
    for item in items:
        due = item.due_datetime
        if due is None:
            continue
        due = due.astimezone(timezone.utc)
        year = f"{due.year:04d}"
        month_key = f"{year}/{MONTH_NAMES[due.month - 1]}"
        by_year.setdefault(year, []).append(item)
        by_month.setdefault(month_key, []).append(item)
    return by_year, by_month


class MultiFormatExporter:
    """JSON, CSV and payload at the top level and in each partition; the workbook only at the top."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.written: List[Path] = []

    def export(self, items: Sequence[CanonicalAssignment]) -> List[Path]:
        self.written = []
        self._write_set(self.output_dir, items)
        self.write_xlsx(self.output_dir / XLSX_FILE, items)

        by_year, by_month = partition_items(items)
        for year, year_items in by_year.items():
            self._write_set(self.output_dir / "by-year" / year, year_items)
        for month_key, month_items in by_month.items():
            self._write_set(self.output_dir / "by-month" / month_key, month_items)

        logger.info(
            f"Exported {len(items)} assignment(s) to {self.output_dir} "
            f"({len(by_year)} year folder(s), {len(by_month)} month folder(s))"
        )
        return list(self.written)

    def _write_set(self, directory: Path, items: Sequence[CanonicalAssignment]) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self.write_json(directory / JSON_FILE, items)
        self.write_csv(directory / CSV_FILE, items)
        self.write_payload(directory / PAYLOAD_FILE, items)

    def write_json(self, path: Path, items: Sequence[CanonicalAssignment]) -> None:
        records = [item.model_dump(by_alias=True) for item in items]
        self._dump(path, records)

    def write_csv(self, path: Path, items: Sequence[CanonicalAssignment]) -> None:
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(CSV_COLUMNS)
            for item in items:
                record = item.model_dump(by_alias=True)
                writer.writerow([_csv_value(record[column]) for column in CSV_COLUMNS])
        self.written.append(path)

    def write_xlsx(self, path: Path, items: Sequence[CanonicalAssignment]) -> None:
        """Single-sheet workbook with the CSV columns; top level only."""
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = XLSX_SHEET
        sheet.append(CSV_COLUMNS)
        for item in items:
            record = item.model_dump(by_alias=True)
            sheet.append([_csv_value(record[column]) for column in CSV_COLUMNS])
        workbook.save(path)
        self.written.append(path)

    def write_payload(self, path: Path, items: Sequence[CanonicalAssignment]) -> None:
        self._dump(path, build_payload_document(list(items)))

    def _dump(self, path: Path, data: Any) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        self.written.append(path)
