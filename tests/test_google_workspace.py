"""Tests for the Google Sheets / Drive wrapper, with mocked discovery clients."""

from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from core.config import ConfigurationError, GoogleConfig
from services.errors import UpstreamError
from services.google_workspace import (
    SPREADSHEET_MIME_TYPE,
    GoogleWorkspace,
    escape_query_literal,
)


def http_error(status: int, message: str = "boom") -> HttpError:
    content = ('{"error": {"code": %d, "message": "%s"}}' % (status, message)).encode()
    return HttpError(httplib2.Response({"status": status}), content)


@pytest.fixture
def no_backoff(monkeypatch):
    """Skip the real sleep between retries."""
    monkeypatch.setattr(GoogleWorkspace._execute_read.retry, "sleep", lambda seconds: None)


@pytest.fixture
def sheets():
    return MagicMock()


@pytest.fixture
def drive():
    return MagicMock()


@pytest.fixture
def google(sheets, drive):
    return GoogleWorkspace(GoogleConfig(), sheets_service=sheets, drive_service=drive)


def test_escape_query_literal():
    assert escape_query_literal("Bob's") == "Bob\\'s"
    assert escape_query_literal("a\\b") == "a\\\\b"


class TestSheets:
    """Tests for Sheets calls."""

    def test_get_values(self, google, sheets):
        values = sheets.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {"values": [["Bidder Number"], ["1001"]]}

        assert google.get_values("sid", "'Auction 22'") == [["Bidder Number"], ["1001"]]
        values.get.assert_called_once_with(spreadsheetId="sid", range="'Auction 22'")

    def test_get_values_empty_range(self, google, sheets):
        values = sheets.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}
        assert google.get_values("sid", "'Empty'") == []

    def test_get_tab_names(self, google, sheets):
        spreadsheets = sheets.spreadsheets.return_value
        spreadsheets.get.return_value.execute.return_value = {
            "sheets": [{"properties": {"title": "Notes"}}, {"properties": {"title": "Bidders"}}, {}]
        }
        assert google.get_tab_names("sid") == ["Notes", "Bidders"]

    def test_batch_update(self, google, sheets):
        values = sheets.spreadsheets.return_value.values.return_value
        values.batchUpdate.return_value.execute.return_value = {"totalUpdatedCells": 2}

        updated = google.batch_update("sid", [("'Bidders'!F4", "Y"), ("'Bidders'!H4", "")])

        assert updated == 2
        body = values.batchUpdate.call_args.kwargs["body"]
        assert body["valueInputOption"] == "RAW"
        assert body["data"] == [
            {"range": "'Bidders'!F4", "values": [["Y"]]},
            {"range": "'Bidders'!H4", "values": [[""]]},
        ]

    def test_batch_update_nothing(self, google, sheets):
        assert google.batch_update("sid", []) == 0
        sheets.spreadsheets.assert_not_called()

    def test_write_not_retried(self, google, sheets):
        values = sheets.spreadsheets.return_value.values.return_value
        values.batchUpdate.return_value.execute.side_effect = http_error(503)

        with pytest.raises(UpstreamError):
            google.batch_update("sid", [("'Bidders'!F4", "Y")])
        assert values.batchUpdate.return_value.execute.call_count == 1


class TestRetries:
    """Transient read failures are retried, others surface immediately."""

    def test_transient_error_retried(self, google, sheets, no_backoff):
        request = sheets.spreadsheets.return_value.values.return_value.get.return_value
        request.execute.side_effect = [http_error(503), {"values": [["ok"]]}]

        assert google.get_values("sid", "'Tab'") == [["ok"]]
        assert request.execute.call_count == 2

    def test_gives_up_after_three_attempts(self, google, sheets, no_backoff):
        request = sheets.spreadsheets.return_value.values.return_value.get.return_value
        request.execute.side_effect = http_error(429)

        with pytest.raises(UpstreamError) as exc_info:
            google.get_values("sid", "'Tab'")
        assert request.execute.call_count == 3
        assert "429" in exc_info.value.message

    def test_permission_error_not_retried(self, google, sheets, no_backoff):
        request = sheets.spreadsheets.return_value.values.return_value.get.return_value
        request.execute.side_effect = http_error(403, "The caller does not have permission")

        with pytest.raises(UpstreamError) as exc_info:
            google.get_values("sid", "'Tab'")
        assert request.execute.call_count == 1
        assert "403" in exc_info.value.message
        assert exc_info.value.status_code == 500

    def test_connection_error_wrapped(self, google, sheets, no_backoff):
        request = sheets.spreadsheets.return_value.values.return_value.get.return_value
        request.execute.side_effect = ConnectionError("connection reset")

        with pytest.raises(UpstreamError) as exc_info:
            google.get_values("sid", "'Tab'")
        assert exc_info.value.message == "connection reset"


class TestDrive:
    """Tests for Drive listing."""

    def test_list_files_follows_pages(self, google, drive):
        files = drive.files.return_value
        files.list.return_value.execute.side_effect = [
            {"files": [{"id": "a", "name": "Auction 21", "mimeType": SPREADSHEET_MIME_TYPE}],
             "nextPageToken": "p2"},
            {"files": [{"id": "b", "name": "Auction 22", "mimeType": SPREADSHEET_MIME_TYPE},
                       {"name": "no id"}]},
        ]

        result = google.list_spreadsheets("folder")

        assert [f.id for f in result] == ["a", "b"]
        calls = files.list.call_args_list
        assert len(calls) == 2
        assert calls[0].kwargs["pageToken"] is None
        assert calls[1].kwargs["pageToken"] == "p2"
        query = calls[0].kwargs["q"]
        assert "'folder' in parents" in query
        assert f"mimeType='{SPREADSHEET_MIME_TYPE}'" in query
        assert "trashed=false" in query
        assert calls[0].kwargs["supportsAllDrives"] is True

    def test_find_file_escapes_name(self, google, drive):
        files = drive.files.return_value
        files.list.return_value.execute.return_value = {
            "files": [{"id": "x", "name": "O'Neil.pdf", "webViewLink": "https://example/x"}]
        }

        found = google.find_file("inv", "O'Neil.pdf")

        assert found.id == "x"
        assert found.view_url == "https://example/x"
        assert "name='O\\'Neil.pdf'" in files.list.call_args.kwargs["q"]

    def test_find_file_missing(self, google, drive):
        drive.files.return_value.list.return_value.execute.return_value = {"files": []}
        assert google.find_file("inv", "1.pdf") is None


def test_missing_credentials():
    google = GoogleWorkspace(GoogleConfig())
    with pytest.raises(ConfigurationError):
        google.get_values("sid", "'Tab'")
