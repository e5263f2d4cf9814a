"""
Per-run class roster lookups.
"""

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from assignment_sync.core.errors import SyncError
from assignment_sync.integrations.teams.client import AssignmentsClient
from assignment_sync.schemas.roster import Roster, RosterEntry


logger = logging.getLogger(__name__)


class RosterCache:
    """
    Memoized class membership for one sync run.

    Each class is fetched at most once; a failed lookup is cached as an empty
    roster so the same restricted class is not retried within the run.
    """

    def __init__(self, client: AssignmentsClient):
        self.client = client
        self._rosters: Dict[str, Roster] = {}

    def __len__(self) -> int:
        return len(self._rosters)

    async def members_of(self, class_id: str) -> Roster:
        if class_id in self._rosters:
            return self._rosters[class_id]

        try:
            members = await self.client.get_class_members(class_id)
        except SyncError as e:
            logger.warning(f"Could not fetch members for class {class_id}: {e.message}")
            members = []

        roster = Roster.from_members(self._parse_members(class_id, members))
        logger.debug(
            f"Class {class_id}: {len(roster.teachers)} teacher(s), "
            f"{len(roster.students)} student(s)"
        )
        self._rosters[class_id] = roster
        return roster

    def _parse_members(self, class_id: str, members: List[Any]) -> List[RosterEntry]:
        entries = []
        for member in members:
            if not isinstance(member, dict) or not member.get('id'):
                continue
            try:
                entries.append(RosterEntry.model_validate(member))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed member {member.get('id')} of class {class_id}: "
                    f"{e.error_count()} validation error(s)"
                )
        return entries
