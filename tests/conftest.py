"""
Shared fixtures for the assignment sync tests.
"""

import time

import pytest
from jose import jwt

from assignment_sync.core.config import Settings


API_BASE = "https://assignments.example.test/api/v1.0"
LISTING_URL = f"{API_BASE}/edu/me/assignments?$top=2"
NOTION_BASE = "https://notion.example.test/v1"


def encode_token(expires_in: int = 3600, **claims) -> str:
    claims.setdefault("exp", int(time.time()) + expires_in)
    claims.setdefault("sub", "student@example.edu")
    return jwt.encode(claims, "test-secret", algorithm="HS256")


@pytest.fixture
def make_token():
    """Factory for signed tokens expiring ``expires_in`` seconds from now."""
    return encode_token


@pytest.fixture
def make_settings(tmp_path):
    """Factory for isolated settings; no dotenv file and no CI detection."""
    def _make(**overrides):
        values = dict(
            AUI_TOKEN=encode_token(),
            AUI_SESSION_ID="session-1",
            AUI_URL=LISTING_URL,
            AUI_API_BASE=API_BASE,
            NOTION_TOKEN=None,
            NOTION_DATABASE_ID=None,
            NOTION_API_BASE=NOTION_BASE,
            NOTION_MIN_INTERVAL_MS=0,
            OUTPUT_DIR=str(tmp_path / "outputs"),
            STATE_FILE=str(tmp_path / "state.json"),
            ENV_FILE=str(tmp_path / ".env"),
            AUI_AUTO_REFRESH="1",
            AUI_REFRESH_MODE="browser",
            CI="",
            GITHUB_ACTIONS="",
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def notion_settings(make_settings):
    return make_settings(NOTION_TOKEN="secret_notion", NOTION_DATABASE_ID="db-1")


@pytest.fixture
def make_raw():
    """Factory for raw upstream assignment records."""
    def _make(assignment_id="a1", **overrides):
        raw = {
            "id": assignment_id,
            "classId": "class-1",
            "displayName": f"Assignment {assignment_id}",
            "status": "assigned",
            "dueDateTime": "2025-09-18T22:59:00Z",
            "assignedDateTime": "2025-09-01T08:00:00Z",
            "createdDateTime": "2025-08-30T10:15:30.1234567Z",
            "lastModifiedDateTime": "2025-09-02T09:00:00Z",
            "instructions": {"content": f"<p>Do {assignment_id}</p>", "contentType": "html"},
            "createdBy": {"user": {"id": "teacher-1"}},
            "webUrl": f"https://teams.example.test/assignments/{assignment_id}",
            "allTurnedIn": False,
            "anySubmittedState": False,
            "allowLateSubmissions": True,
            "submissionAggregates": {"total": 25, "submitted": 3},
        }
        raw.update(overrides)
        return raw
    return _make


@pytest.fixture
def members():
    return [
        {"id": "teacher-1", "displayName": "Smith, Jane - JSM", "email": "jsm@example.edu", "role": "teacher"},
        {"id": "student-1", "displayName": "Student One", "email": None, "role": "student"},
        {"id": "student-2", "displayName": "Student Two", "email": None, "role": "student"},
    ]
