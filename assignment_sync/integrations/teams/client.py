"""
Teams assignments API client.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode, quote

import aiohttp

from assignment_sync.core.config import Settings
from assignment_sync.core.errors import AuthorizationError, ConfigurationError, FetchError


logger = logging.getLogger(__name__)

ERROR_BODY_LIMIT = 2000

AUI_VERSION = "aui.v20250908.5"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/26.0 Safari/605.1.15"
)

DETAIL_EXPAND = (
    "rubric,resources($expand=dependentResources),postSubmitOperations,"
    "gradingCategory,submissionAggregates,gradingScheme"
)


def month_start(now: Optional[datetime] = None) -> datetime:
    """First instant of the current month in UTC."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def with_month_filter(url: str, now: Optional[datetime] = None) -> str:
    """
    Replace any ``$filter`` on the listing URL with a due-this-month filter.

    The captured listing URL carries whatever filter the browser happened to
    use; every run instead asks for items due at or after the start of the
    current UTC month.
    """
    start = month_start(now).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "$filter"]
    query.append(("$filter", f"dueDateTime ge {start}"))
    logger.info(f"Applying API date filter: dueDateTime ge {start}")
    return urlunsplit(parts._replace(query=urlencode(query, quote_via=quote, safe="$(),")))


class AssignmentsClient:
    """Authenticated access to the listing, members and detail endpoints."""

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        self.settings = settings
        self.base_url = settings.AUI_API_BASE
        self._http_session = session
        self._owns_session = session is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._http_session is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.HTTP_TIMEOUT)
            self._http_session = aiohttp.ClientSession(timeout=timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._http_session and self._owns_session:
            await self._http_session.close()
            self._http_session = None

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Request headers with a fresh correlation id."""
        credential = self.settings.credential
        headers = {
            'Authorization': f"Bearer {credential.token}",
            'Accept': 'application/json, text/plain, */*',
            'User-Agent': USER_AGENT,
            'Referer': 'https://assignments.onenote.com/',
            'Accept-Language': 'en-GB,en;q=0.9',
            'x-aui-version': AUI_VERSION,
            'MS-Int-AppID': 'assignments-ui',
            'x-aui-app': 'assignments',
            'x-teams-ring': 'general',
            'x-rh': '1',
            'x-correlationid': str(uuid.uuid4()),
            'x-usersessionid': credential.session_id or str(uuid.uuid4()),
        }
        if extra:
            headers.update(extra)
        return headers

    async def _get_json(self, url: str, extra_headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GET a JSON document, raising AuthorizationError on 401/403 and FetchError otherwise."""
        if not self._http_session:
            raise RuntimeError("HTTP session not initialized")

        try:
            async with self._http_session.get(url, headers=self._headers(extra_headers)) as response:
                if response.status in (401, 403):
                    raise AuthorizationError(
                        "Authorization failed (likely expired token). Recapture a fresh bearer token.",
                        status=response.status,
                        url=url,
                    )
                if response.status != 200:
                    body = await response.text()
                    raise FetchError(
                        f"HTTP {response.status}: {body[:ERROR_BODY_LIMIT]}",
                        status=response.status,
                        url=url,
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise FetchError(f"Invalid JSON response: {e}", status=response.status, url=url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"HTTP client error: {e}", url=url, original_exception=e)

        if not isinstance(data, dict):
            raise FetchError("Unexpected response shape: expected a JSON object", status=200, url=url)
        return data

    async def fetch_all(self, listing_url: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Walk the paginated listing endpoint and return every raw assignment.

        Args:
            listing_url: Listing URL; defaults to the configured AUI_URL

        Returns:
            Raw assignment records in page order
        """
        url = listing_url or self.settings.AUI_URL
        if not url:
            raise ConfigurationError("AUI_URL is required")
        if not self.settings.AUI_TOKEN:
            raise ConfigurationError("AUI_TOKEN is required")

        next_url: Optional[str] = with_month_filter(url)
        items: List[Dict[str, Any]] = []
        pages = 0

        while next_url:
            data = await self._get_json(next_url)
            page = data.get('value')
            if isinstance(page, list):
                records = [entry for entry in page if isinstance(entry, dict)]
                if len(records) != len(page):
                    logger.warning(f"Skipping {len(page) - len(records)} malformed listing entry(ies)")
                items.extend(records)
            pages += 1
            next_url = data.get('@odata.nextLink') or None

        logger.info(f"Fetched {len(items)} assignment(s) across {pages} page(s)")
        return items

    async def get_class_members(self, class_id: str) -> List[Dict[str, Any]]:
        """Members of one class, ordered by display name."""
        url = f"{self.base_url}/edu/classes/{class_id}/members?$orderBy=displayName%20asc"
        data = await self._get_json(url)
        members = data.get('value')
        return members if isinstance(members, list) else []

    async def get_assignment_detail(self, class_id: str, assignment_id: str) -> Dict[str, Any]:
        """The single-item endpoint, which carries full instructions."""
        url = (
            f"{self.base_url}/edu/classes/{class_id}/assignments/{assignment_id}"
            f"?$expand={DETAIL_EXPAND}"
        )
        return await self._get_json(url, {'Prefer': 'AssignmentStatusV2'})
