"""
Tests for the Notion database client and property mapping.
"""

import aiohttp
import pytest
from aioresponses import aioresponses

from assignment_sync.core.errors import ConfigurationError, RemoteStoreError
from assignment_sync.integrations.notion.client import (
    ID_PROPERTY, NotionClient, build_payload_document, build_properties, format_teacher_name
)
from assignment_sync.schemas.assignment import CanonicalAssignment


QUERY_URL = "https://notion.example.test/v1/databases/db-1/query"
PAGES_URL = "https://notion.example.test/v1/pages"


def _page(external_id):
    return {"object": "page", "properties": {ID_PROPERTY: {"rich_text": [{"text": {"content": external_id}}]}}}


def _bodies(mocked, url):
    return [call.kwargs["json"] for (_, sent), calls in mocked.requests.items()
            if str(sent) == url for call in calls]


@pytest.fixture
def assignment():
    return CanonicalAssignment(
        id="a1",
        title="Essay",
        description="Write 500 words",
        due_date="2025-09-18T22:59:00.000Z",
        status="assigned",
        group_id="class-1",
        teacher_name="Smith, Jane - JSM",
        teacher_email="jsm@example.edu",
        student_count=24,
        external_url="https://teams.example.test/a1",
        all_turned_in=False,
        any_submitted_state=True,
        total_submissions=24,
        submitted_count=3,
    )


class TestFormatTeacherName:

    @pytest.mark.parametrize("name,expected", [
        ("Smith, Jane - JSM", "Jane Smith - JSM"),
        ("Van Dyke,  Mary Ann  -  MVD", "Mary Ann Van Dyke - MVD"),
        ("Jane Smith", "Jane Smith"),
        ("Smith, Jane", "Smith  Jane"),
        ("", ""),
        (None, ""),
    ])
    def test_format(self, name, expected):
        assert format_teacher_name(name) == expected


class TestBuildProperties:
    """Test the database property mapping."""

    def test_maps_fields(self, assignment):
        props = build_properties(assignment)

        assert props["Title"] == {"title": [{"text": {"content": "Essay"}}]}
        assert props[ID_PROPERTY] == {"rich_text": [{"text": {"content": "a1"}}]}
        assert props["Status"] == {"select": {"name": "assigned"}}
        assert props["allTurnedIn"] == {"select": {"name": "false"}}
        assert props["anySubmittedState"] == {"select": {"name": "true"}}
        assert props["teacherName"] == {"multi_select": [{"name": "Jane Smith - JSM"}]}
        assert props["teacherEmail"] == {"email": "jsm@example.edu"}
        assert props["studentCount"] == {"number": 24}
        assert props["agg_submitted"] == {"number": 3}
        assert props["dueDate"] == {"date": {"start": "2025-09-18T22:59:00.000Z"}}

    def test_empty_values_become_null(self):
        props = build_properties(CanonicalAssignment(id="a2"))

        assert props["Status"] == {"select": None}
        assert props["teacherEmail"] == {"email": None}
        assert props["teacherName"] == {"multi_select": []}
        assert props["webUrl"] == {"url": None}
        assert props["assignedDate"] == {"date": None}

    def test_payload_document(self, assignment):
        document = build_payload_document([assignment])

        assert document == [{"external_id": "a1", "properties": build_properties(assignment)}]


class TestNotionClient:
    """Test existing-id queries and page creation."""

    def test_requires_configuration(self, settings):
        with pytest.raises(ConfigurationError):
            NotionClient(settings)

    def test_headers(self, notion_settings):
        headers = NotionClient(notion_settings).headers

        assert headers["Authorization"] == "Bearer secret_notion"
        assert headers["Notion-Version"] == "2022-06-28"

    @pytest.mark.asyncio
    async def test_query_existing_ids_paginates(self, notion_settings):
        with aioresponses() as m:
            m.post(QUERY_URL, payload={
                "results": [_page("a1"), _page("a2")], "has_more": True, "next_cursor": "cursor-2",
            })
            m.post(QUERY_URL, payload={
                "results": [_page("a3"), {"properties": {}}], "has_more": False, "next_cursor": None,
            })

            async with NotionClient(notion_settings) as client:
                existing = await client.query_existing_ids()

            bodies = _bodies(m, QUERY_URL)

        assert existing == {"a1", "a2", "a3"}
        assert bodies == [{"page_size": 100}, {"page_size": 100, "start_cursor": "cursor-2"}]

    @pytest.mark.asyncio
    async def test_query_error_keeps_status(self, notion_settings):
        with aioresponses() as m:
            m.post(QUERY_URL, status=401, payload={"message": "API token is invalid."})

            async with NotionClient(notion_settings) as client:
                with pytest.raises(RemoteStoreError) as exc_info:
                    await client.query_existing_ids()

        assert exc_info.value.status == 401
        assert "API token is invalid." in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, notion_settings):
        with aioresponses() as m:
            m.post(QUERY_URL, status=502, body="<html>Bad Gateway</html>")

            async with NotionClient(notion_settings) as client:
                with pytest.raises(RemoteStoreError) as exc_info:
                    await client.query_existing_ids()

        assert exc_info.value.status == 502

    @pytest.mark.asyncio
    async def test_transport_error(self, notion_settings):
        with aioresponses() as m:
            m.post(QUERY_URL, exception=aiohttp.ClientConnectionError("reset"))

            async with NotionClient(notion_settings) as client:
                with pytest.raises(RemoteStoreError):
                    await client.query_existing_ids()

    @pytest.mark.asyncio
    async def test_create_page(self, notion_settings, assignment):
        with aioresponses() as m:
            m.post(PAGES_URL, payload={"object": "page", "id": "page-1"})

            async with NotionClient(notion_settings) as client:
                page = await client.create_page(assignment)

            body, = _bodies(m, PAGES_URL)

        assert page["id"] == "page-1"
        assert body["parent"] == {"database_id": "db-1"}
        assert body["properties"] == build_properties(assignment)
