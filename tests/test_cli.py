"""
Tests for the command-line entry point.
"""

import json
import logging
import re
from unittest.mock import AsyncMock, Mock, patch

import pytest
from aioresponses import aioresponses

from assignment_sync import cli
from assignment_sync.core.errors import SyncValidationError
from assignment_sync.schemas.sync import SyncMode, SyncReport, UploadResult


@pytest.fixture
def orchestrator(settings):
    orchestrator = Mock()
    orchestrator.settings = settings
    orchestrator.refresh_allowed = True
    orchestrator.ensure_valid = AsyncMock(return_value=True)
    return orchestrator


@pytest.fixture
def patched(settings, orchestrator):
    with patch.object(cli, "load_settings", return_value=settings) as load_settings, \
            patch.object(cli, "CredentialRefreshOrchestrator", return_value=orchestrator):
        yield load_settings


class TestArguments:
    """Test argument parsing and early validation."""

    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--help"])

        assert exc_info.value.code == 0
        assert "--incremental" in capsys.readouterr().out

    def test_criteria(self):
        args = cli.build_parser().parse_args([
            "--status=assigned", "--status", "published", "--class-id=c1",
            "--due-before=2025-12-31T23:59:59Z", "--incomplete", "--overdue",
        ])

        criteria = cli.build_criteria(args)

        assert criteria.statuses == ["assigned", "published"]
        assert criteria.group_ids == ["c1"]
        assert criteria.due_before.year == 2025
        assert criteria.due_after is None
        assert criteria.incomplete and criteria.overdue

    @pytest.mark.parametrize("argv,expected", [
        ([], SyncMode.FULL),
        (["--full"], SyncMode.FULL),
        (["--incremental"], SyncMode.INCREMENTAL),
        (["--full", "--incremental"], SyncMode.INCREMENTAL),
    ])
    def test_mode(self, argv, expected):
        assert cli.resolve_mode(cli.build_parser().parse_args(argv)) == expected

    @pytest.mark.parametrize("value", ["abc", ":a1", "c1:", "c1"])
    def test_invalid_details(self, value):
        with pytest.raises(SyncValidationError):
            cli.parse_details(value)

    def test_details(self):
        assert cli.parse_details("class-1:a1") == ("class-1", "a1")

    @pytest.mark.parametrize("argv", [
        ["--due-before=not-a-date"],
        ["--due-after=2025-13-45"],
        ["--details=missing-colon"],
    ])
    def test_bad_input_fails_before_any_work(self, patched, argv):
        assert cli.main(argv) == 1
        patched.assert_not_called()

    def test_bad_date_logged_as_error(self, patched, caplog):
        with caplog.at_level(logging.INFO, logger="assignment_sync"):
            assert cli.main(["--due-before=not-a-date"]) == 1

        assert [r.levelno for r in caplog.records] == [logging.ERROR]
        assert "not-a-date" in caplog.text


class TestMain:
    """Test the run flow with collaborators patched out."""

    def test_credential_failure_exits_one(self, patched, orchestrator):
        orchestrator.ensure_valid.return_value = False
        orchestrator.refresh_allowed = False

        assert cli.main([]) == 1

    def test_refresh_flag_forwarded(self, patched, orchestrator):
        orchestrator.ensure_valid.return_value = False

        cli.main(["--refresh-tokens"])

        orchestrator.ensure_valid.assert_awaited_once_with(force_refresh=True)

    def test_sync_run(self, patched, settings, capsys):
        report = SyncReport(
            mode=SyncMode.INCREMENTAL, total_fetched=3, total_filtered=1, new_items=1,
            year_counts={"2025": 1}, month_counts={"2025/sep": 1}, upload=UploadResult(skipped=True),
        )
        pipeline = Mock()
        pipeline.run = AsyncMock(return_value=report)

        with patch.object(cli, "SyncPipeline", return_value=pipeline) as pipeline_cls:
            assert cli.main(["--incremental", "--status=assigned"]) == 0

        _, kwargs = pipeline_cls.call_args
        assert kwargs["mode"] == SyncMode.INCREMENTAL
        assert kwargs["criteria"].statuses == ["assigned"]
        out = capsys.readouterr().out
        assert "Total fetched from API: 3" in out
        assert "New items (incremental): 1" in out
        assert "Sync completed successfully!" in out

    def test_details_mode(self, patched, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        detail = {"id": "a1", "displayName": "Essay", "instructions": {"content": "<p>Write</p>"}}

        with aioresponses() as m:
            m.get(re.compile(r".*/edu/classes/class-1/assignments/a1\?.*"), payload=detail)
            with patch.object(cli, "SyncPipeline") as pipeline_cls:
                assert cli.main(["--details=class-1:a1"]) == 0

        pipeline_cls.assert_not_called()
        saved = json.loads((tmp_path / "assignment-a1-details.json").read_text())
        assert saved == detail

    def test_details_failure_exits_one(self, patched, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with aioresponses() as m:
            m.get(re.compile(r".*/edu/classes/class-1/assignments/a1\?.*"), status=404, body="missing")
            assert cli.main(["--details=class-1:a1"]) == 1

        assert not (tmp_path / "assignment-a1-details.json").exists()


class TestPrintSummary:

    def test_preview_truncates(self, capsys):
        report = SyncReport(mode=SyncMode.FULL, total_fetched=1, total_filtered=1, year_counts={"2025": 1})
        preview = [{
            "dueDate": "", "title": "T" * 60, "teacherName": "Smith, Jane - JSM",
            "status": "assigned", "studentCount": 24,
        }]

        cli.print_summary(report, preview, "outputs")

        out = capsys.readouterr().out
        assert "T" * 35 + "..." in out
        assert "T" * 39 not in out
        assert "N/A" in out
        assert "outputs/by-year/2025/: 1 assignments" in out

    def test_trim(self):
        assert cli._trim("short", 10) == "short"
        assert cli._trim("x" * 12, 10) == "x" * 7 + "..."
        assert cli._trim("", 10) == ""
