"""
Raw upstream assignment -> CanonicalAssignment.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from assignment_sync.core.errors import SyncError
from assignment_sync.integrations.teams.client import AssignmentsClient
from assignment_sync.integrations.teams.roster import RosterCache
from assignment_sync.schemas.assignment import CanonicalAssignment, DESCRIPTION_MAX_LENGTH, to_iso
from assignment_sync.schemas.roster import Roster


logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]*>")


def extract_description(raw: Optional[Dict[str, Any]]) -> str:
    """Plain-text instructions: tags stripped, trimmed, capped."""
    if not raw:
        return ""
    instructions = raw.get('instructions') or {}
    content = instructions.get('content') if isinstance(instructions, dict) else None
    if not content or not isinstance(content, str):
        return ""
    return _TAG.sub("", content).strip()[:DESCRIPTION_MAX_LENGTH]


def resolve_teacher(raw: Dict[str, Any], roster: Roster) -> Tuple[str, str]:
    """
    (name, email) of the teacher for an assignment.

    The creator wins when the roster lists them as a teacher; otherwise the
    first teacher on the roster; otherwise nobody.
    """
    created_by = raw.get('createdBy')
    user = created_by.get('user') if isinstance(created_by, dict) else None
    creator_id = user.get('id') if isinstance(user, dict) else None

    if isinstance(creator_id, str) and creator_id in roster.by_id:
        creator = roster.by_id[creator_id]
        if creator.role == 'teacher':
            return creator.display_name or '', creator.email or ''

    if roster.teachers:
        teacher = roster.teachers[0]
        return teacher.display_name or '', teacher.email or ''

    return '', ''


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class AssignmentNormalizer:
    """Maps raw records to the canonical schema using roster and detail lookups."""

    def __init__(self, client: AssignmentsClient, rosters: RosterCache):
        self.client = client
        self.rosters = rosters
        self.detail_fetches = 0

    async def normalize(self, raw: Dict[str, Any]) -> CanonicalAssignment:
        class_id = str(raw.get('classId') or '')
        assignment_id = str(raw.get('id') or '')

        teacher_name, teacher_email = '', ''
        student_count = 0
        if class_id:
            roster = await self.rosters.members_of(class_id)
            teacher_name, teacher_email = resolve_teacher(raw, roster)
            student_count = len(roster.students)

        description = extract_description(raw)
        if not description and class_id and assignment_id:
            description = await self._description_from_detail(class_id, assignment_id, raw)

        aggregates = raw.get('submissionAggregates')
        if not isinstance(aggregates, dict):
            aggregates = {}

        return CanonicalAssignment(
            id=assignment_id,
            title=str(raw.get('displayName') or ''),
            description=description,
            due_date=to_iso(raw.get('dueDateTime')),
            assigned_date=to_iso(raw.get('assignedDateTime')),
            created_date=to_iso(raw.get('createdDateTime')),
            modified_date=to_iso(raw.get('lastModifiedDateTime')),
            status=str(raw.get('status') or ''),
            group_id=class_id,
            teacher_name=teacher_name,
            teacher_email=teacher_email,
            student_count=student_count,
            external_url=str(raw.get('webUrl') or ''),
            all_turned_in=bool(raw.get('allTurnedIn')),
            any_submitted_state=bool(raw.get('anySubmittedState')),
            allow_late_submissions=bool(raw.get('allowLateSubmissions')),
            total_submissions=_as_int(aggregates.get('total')),
            submitted_count=_as_int(aggregates.get('submitted')),
        )

    async def _description_from_detail(self, class_id: str, assignment_id: str, raw: Dict[str, Any]) -> str:
        logger.info(f"Fetching detailed instructions for assignment: {raw.get('displayName') or assignment_id}")
        self.detail_fetches += 1
        try:
            detail = await self.client.get_assignment_detail(class_id, assignment_id)
        except SyncError as e:
            logger.warning(f"Could not fetch detailed assignment {assignment_id}: {e.message}")
            return ''
        return extract_description(detail)
