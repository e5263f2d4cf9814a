"""
End-to-end sync run: fetch, normalize, filter, export, upload, record state.
"""

import logging
from typing import List, Optional

from assignment_sync.core.config import Settings
from assignment_sync.integrations.teams.client import AssignmentsClient
from assignment_sync.integrations.teams.roster import RosterCache
from assignment_sync.schemas.assignment import CanonicalAssignment
from assignment_sync.schemas.sync import FilterCriteria, SyncMode, SyncReport
from assignment_sync.services.sync.exporter import MultiFormatExporter, partition_items
from assignment_sync.services.sync.filters import FilterEngine
from assignment_sync.services.sync.normalizer import AssignmentNormalizer
from assignment_sync.services.sync.state_store import StateStore
from assignment_sync.services.sync.upsert import UpsertSync


logger = logging.getLogger(__name__)


class SyncPipeline:
    """
    One sync invocation.

    The settings passed in carry the credential validated by the caller;
    the roster cache lives only as long as one ``run`` call. State is only
    committed after exports (and the optional upload) have finished, so a
    crash earlier leaves the previous state untouched.
    """

    def __init__(
        self,
        settings: Settings,
        criteria: Optional[FilterCriteria] = None,
        mode: SyncMode = SyncMode.FULL,
        state_store: Optional[StateStore] = None,
        exporter: Optional[MultiFormatExporter] = None,
        upsert: Optional[UpsertSync] = None,
        client: Optional[AssignmentsClient] = None,
    ):
        self.settings = settings
        self.criteria = criteria or FilterCriteria()
        self.mode = mode
        self.state_store = state_store or StateStore(settings.STATE_FILE)
        self.exporter = exporter or MultiFormatExporter(settings.OUTPUT_DIR)
        self.upsert = upsert or UpsertSync(settings)
        self._client = client

    async def run(self) -> SyncReport:
        state = self.state_store.load()
        logger.info(
            f"Starting {self.mode.value} sync "
            f"(last run: {state.last_run.isoformat() if state.last_run else 'never'}, "
            f"{len(state.seen_ids)} seen id(s))"
        )

        if self._client is not None:
            raw_items, normalized = await self._fetch_and_normalize(self._client)
        else:
            async with AssignmentsClient(self.settings) as client:
                raw_items, normalized = await self._fetch_and_normalize(client)

        engine = FilterEngine(self.criteria, self.mode, state.seen_ids)
        filtered = engine.apply(normalized)

        new_items = None
        if self.mode == SyncMode.INCREMENTAL:
            new_items = len([item for item in filtered if item.id not in state.seen_ids])

        written = self.exporter.export(filtered)
        upload = await self.upsert.sync(filtered)

        self.state_store.commit([item.id for item in filtered], self.mode, previous=state)

        by_year, by_month = partition_items(filtered)
        return SyncReport(
            mode=self.mode,
            total_fetched=len(raw_items),
            total_filtered=len(filtered),
            new_items=new_items,
            exported_files=[str(path) for path in written],
            year_counts={year: len(items) for year, items in by_year.items()},
            month_counts={month: len(items) for month, items in by_month.items()},
            upload=upload,
        )

    async def _fetch_and_normalize(self, client: AssignmentsClient):
        logger.info("Fetching assignments from Microsoft Teams...")
        raw_items = await client.fetch_all(self.settings.AUI_URL)

        logger.info("Normalizing assignments and fetching class details...")
        normalizer = AssignmentNormalizer(client, RosterCache(client))
        normalized: List[CanonicalAssignment] = []
        seen = set()
        for raw in raw_items:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed assignment record: {raw!r}")
                continue
            item = await normalizer.normalize(raw)
            if item.id in seen:
                logger.debug(f"Skipping duplicate assignment {item.id}")
                continue
            seen.add(item.id)
            normalized.append(item)
        return raw_items, normalized
