"""
Notion database client: existing-id query and page creation.
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Set

import aiohttp

from assignment_sync.core.config import Settings
from assignment_sync.core.errors import ConfigurationError, RemoteStoreError
from assignment_sync.schemas.assignment import CanonicalAssignment, DESCRIPTION_MAX_LENGTH


logger = logging.getLogger(__name__)

ID_PROPERTY = "Assignment ID"

_TEACHER_NAME = re.compile(r"^(.+?),\s*(.+?)\s*-\s*(.+)$")


def format_teacher_name(name: Optional[str]) -> str:
    """Render ``Last, First - CODE`` as ``First Last - CODE``."""
    if not name:
        return ""
    match = _TEACHER_NAME.match(name)
    if match:
        last_name, first_name, code = match.groups()
        return f"{first_name.strip()} {last_name.strip()} - {code.strip()}"
    # Notion multi-select options cannot contain commas
    return name.replace(",", " ")


def _rich_text(content: str) -> List[Dict[str, Any]]:
    return [{"text": {"content": content}}]


def _date(value: str) -> Optional[Dict[str, str]]:
    return {"start": value} if value else None


def build_properties(item: CanonicalAssignment) -> Dict[str, Any]:
    """Database properties for one assignment page."""
    teacher = format_teacher_name(item.teacher_name)
    return {
        "Title": {"title": _rich_text(item.title)},
        ID_PROPERTY: {"rich_text": _rich_text(item.id)},
        "Notes": {"rich_text": _rich_text(item.description[:DESCRIPTION_MAX_LENGTH])},
        "Status": {"select": {"name": item.status} if item.status else None},
        "allTurnedIn": {"select": {"name": "true" if item.all_turned_in else "false"}},
        "allowLateSubmissions": {"select": {"name": "true" if item.allow_late_submissions else "false"}},
        "anySubmittedState": {"select": {"name": "true" if item.any_submitted_state else "false"}},
        "teacherEmail": {"email": item.teacher_email or None},
        "teacherName": {"multi_select": [{"name": teacher}] if teacher else []},
        "classId": {"rich_text": _rich_text(item.group_id)},
        "webUrl": {"url": item.external_url or None},
        "studentCount": {"number": item.student_count},
        "agg_total": {"number": item.total_submissions},
        "agg_submitted": {"number": item.submitted_count},
        "assignedDate": {"date": _date(item.assigned_date)},
        "createdDate": {"date": _date(item.created_date)},
        "dueDate": {"date": _date(item.due_date)},
        "modifiedDate": {"date": _date(item.modified_date)},
    }


def build_payload_document(items: List[CanonicalAssignment]) -> List[Dict[str, Any]]:
    """The ``notion_payload.json`` export: one entry per assignment."""
    return [{"external_id": item.id, "properties": build_properties(item)} for item in items]


def _external_id(page: Dict[str, Any]) -> Optional[str]:
    prop = (page.get("properties") or {}).get(ID_PROPERTY) or {}
    texts = prop.get("rich_text") or []
    if not texts:
        return None
    return ((texts[0] or {}).get("text") or {}).get("content") or None


class NotionClient:
    """Async access to one Notion database."""

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        if not settings.notion_configured:
            raise ConfigurationError("NOTION_TOKEN and NOTION_DATABASE_ID are required")
        self.settings = settings
        self.database_id = settings.NOTION_DATABASE_ID
        self.base_url = settings.NOTION_API_BASE
        self._http_session = session
        self._owns_session = session is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.HTTP_TIMEOUT)
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._http_session and self._owns_session:
            await self._http_session.close()
            self._http_session = None

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {self.settings.NOTION_TOKEN}",
            'Notion-Version': self.settings.NOTION_VERSION,
            'Content-Type': 'application/json',
        }

    async def _post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self._http_session:
            raise RuntimeError("HTTP session not initialized")
        try:
            async with self._http_session.post(url, json=body, headers=self.headers) as response:
                text = await response.text()
                try:
                    data = json.loads(text) if text else {}
                except ValueError:
                    data = None
                if response.status >= 400:
                    message = data.get('message') if isinstance(data, dict) else None
                    raise RemoteStoreError(
                        f"Notion API error {response.status}: {message or response.reason}",
                        status=response.status,
                    )
                if not isinstance(data, dict):
                    raise RemoteStoreError("Notion API returned an unexpected response", status=response.status)
                return data
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteStoreError(f"Notion request failed: {e}", original_exception=e)

    async def query_existing_ids(self) -> Set[str]:
        """Every external id already in the database, read to completion."""
        url = f"{self.base_url}/databases/{self.database_id}/query"
        existing: Set[str] = set()
        cursor: Optional[str] = None

        while True:
            body: Dict[str, Any] = {'page_size': self.settings.NOTION_PAGE_SIZE}
            if cursor:
                body['start_cursor'] = cursor
            data = await self._post(url, body)

            for page in data.get('results') or []:
                external_id = _external_id(page)
                if external_id:
                    existing.add(external_id)

            cursor = data.get('next_cursor')
            if not data.get('has_more') or not cursor:
                break

        logger.info(f"Found {len(existing)} existing assignment(s) in Notion")
        return existing

    async def create_page(self, item: CanonicalAssignment) -> Dict[str, Any]:
        body = {
            'parent': {'database_id': self.database_id},
            'properties': build_properties(item),
        }
        return await self._post(f"{self.base_url}/pages", body)
