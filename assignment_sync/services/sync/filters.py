"""
Operator filters over canonical assignments.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Set

from assignment_sync.schemas.assignment import CanonicalAssignment
from assignment_sync.schemas.sync import FilterCriteria, SyncMode


logger = logging.getLogger(__name__)


class FilterEngine:
    """
    Conjunction of independent predicates.

    Every criterion is optional. ``seen_ids`` only applies in incremental
    mode, where items already processed by an earlier run are dropped.
    """

    def __init__(
        self,
        criteria: Optional[FilterCriteria] = None,
        mode: SyncMode = SyncMode.FULL,
        seen_ids: Optional[Iterable[str]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.criteria = criteria or FilterCriteria()
        self.mode = mode
        self.seen_ids: Set[str] = set(seen_ids or ())
        self.clock = clock

    def apply(self, items: Iterable[CanonicalAssignment]) -> List[CanonicalAssignment]:
        now = self.clock()
        kept = [item for item in items if self.matches(item, now)]
        logger.info(f"{len(kept)} assignment(s) left after filters")
        return kept

    def matches(self, item: CanonicalAssignment, now: Optional[datetime] = None) -> bool:
        c = self.criteria
        due = item.due_datetime

        if c.due_before and due and due > _aware(c.due_before):
            return False
        if c.due_after and due and due < _aware(c.due_after):
            return False

        if c.statuses and item.status not in c.statuses:
            return False
        if c.group_ids and item.group_id not in c.group_ids:
            return False

        # Only fully turned-in work that also has a submission counts as complete
        if c.incomplete and item.all_turned_in and item.any_submitted_state:
            return False

        if c.overdue:
            now = now or self.clock()
            if due is None or due >= now:
                return False

        if self.mode == SyncMode.INCREMENTAL and item.id in self.seen_ids:
            return False

        return True


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
