"""
Pydantic schemas for canonical assignment records.
"""

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime, timezone
import re


DESCRIPTION_MAX_LENGTH = 2000

_FRACTION = re.compile(r"\.(\d+)")


class CanonicalAssignment(BaseModel):
    """
    Normalized, stable-shape view of one upstream assignment.

    Date fields are ISO-8601 strings in UTC or the empty string. Field names
    serialize in camelCase (``dueDate``, ``groupId``) for the JSON export.
    """
    id: str
    title: str = ""
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    due_date: str = ""
    assigned_date: str = ""
    created_date: str = ""
    modified_date: str = ""
    status: str = ""
    group_id: str = ""
    teacher_name: str = ""
    teacher_email: str = ""
    student_count: int = 0
    external_url: str = ""
    all_turned_in: bool = False
    any_submitted_state: bool = False
    allow_late_submissions: bool = False
    total_submissions: int = 0
    submitted_count: int = 0

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @property
    def due_datetime(self) -> Optional[datetime]:
        return parse_iso(self.due_date)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip().replace("Z", "+00:00").replace("z", "+00:00")
    # fromisoformat accepts at most six fractional digits on older interpreters
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Optional[str]) -> str:
    """Render a timestamp as UTC ISO-8601 with milliseconds, or '' when unparsable."""
    parsed = parse_iso(value)
    if parsed is None:
        return ""
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
