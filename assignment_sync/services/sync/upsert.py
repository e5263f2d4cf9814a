"""
Idempotent upload of canonical assignments to the Notion database.
"""

import logging
from typing import List, Optional, Sequence

from assignment_sync.core.config import Settings
from assignment_sync.core.errors import RemoteStoreError, log_error
from assignment_sync.integrations.notion.client import NotionClient
from assignment_sync.schemas.assignment import CanonicalAssignment
from assignment_sync.schemas.sync import UploadResult
from assignment_sync.services.sync.rate_limiter import MinIntervalRateLimiter


logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


class UpsertSync:
    """
    Creates a Notion page for every assignment not already in the database.

    The existing ids are read to completion before the first create, and
    creates go out one at a time through the rate limiter.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[NotionClient] = None,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
    ):
        self.settings = settings
        self._client = client
        self.rate_limiter = rate_limiter or MinIntervalRateLimiter(settings.NOTION_MIN_INTERVAL_MS)

    async def sync(self, items: Sequence[CanonicalAssignment]) -> UploadResult:
        if not self.settings.notion_configured:
            logger.warning("Notion upload skipped: NOTION_TOKEN or NOTION_DATABASE_ID is not set")
            return UploadResult(skipped=True)

        if self._client is not None:
            return await self._sync_with(self._client, items)
        async with NotionClient(self.settings) as client:
            return await self._sync_with(client, items)

    async def _sync_with(self, client: NotionClient, items: Sequence[CanonicalAssignment]) -> UploadResult:
        logger.info("Checking for existing assignments in Notion...")
        try:
            existing = await client.query_existing_ids()
        except RemoteStoreError as e:
            # A partial id set could create duplicates, so nothing is written
            log_error(e, {'operation_type': 'notion_query'})
            logger.error("Notion upload skipped: could not read existing assignments")
            return UploadResult(skipped=True)

        new_items: List[CanonicalAssignment] = []
        queued = set()
        for item in items:
            if item.id and item.id not in existing and item.id not in queued:
                new_items.append(item)
                queued.add(item.id)

        result = UploadResult(existing=len(existing), attempted=len(new_items))
        if not new_items:
            logger.info("All assignments already exist in Notion")
            return result

        logger.info(f"Uploading {len(new_items)} new assignment(s) to Notion...")
        for item in new_items:
            await self.rate_limiter.acquire()
            try:
                await client.create_page(item)
            except RemoteStoreError as e:
                logger.error(f"Failed to upload assignment {item.id}: {e.message}")
                result.failed += 1
                result.failed_ids.append(item.id)
                continue

            result.uploaded += 1
            if result.uploaded % PROGRESS_EVERY == 0:
                logger.info(f"Uploaded {result.uploaded}/{len(new_items)} assignments...")

        logger.info(f"Notion upload complete: {result.uploaded} uploaded, {result.failed} failed")
        return result
