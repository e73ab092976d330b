"""
Pytest configuration and shared fixtures.
"""

import os
import re
import sys
from pathlib import Path

# Set environment variables BEFORE any imports that might use them
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SHIFT_PASSWORD"] = "test-shift-password"
os.environ["SESSION_SECRET"] = "test-session-secret-key-for-testing-only"
os.environ.pop("GOOGLE_SHEET_ID", None)
os.environ.pop("AUCTION_SHEETS_FOLDER_ID", None)

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import AppConfig, AuthConfig, GoogleConfig  # noqa: E402
from models.bidder import DriveFile  # noqa: E402
from schemas.auction_sheet import column_letter_to_index  # noqa: E402
from services.errors import UpstreamError  # noqa: E402
from services.google_workspace import SPREADSHEET_MIME_TYPE  # noqa: E402

AUCTIONS_FOLDER = "auctions-folder"
INVOICES_FOLDER = "invoices-folder"

_CELL_RE = re.compile(r"^'(.*)'!([A-Z]+)([0-9]+)$")


def _unquote_tab(range_name: str) -> str:
    if range_name.startswith("'") and range_name.endswith("'"):
        return range_name[1:-1].replace("''", "'")
    return range_name


class FakeWorkspace:
    """In-memory stand-in for GoogleWorkspace.

    spreadsheets: {spreadsheet_id: {tab name: rows}}
    folders: {folder_id: [DriveFile]}
    """

    def __init__(self, spreadsheets=None, folders=None):
        self.spreadsheets = spreadsheets or {}
        self.folders = folders or {}
        self.writes = []

    def get_values(self, spreadsheet_id, range_name):
        tab = _unquote_tab(range_name)
        tabs = self.spreadsheets.get(spreadsheet_id)
        if tabs is None or tab not in tabs:
            raise UpstreamError(f"Google API error 400: Unable to parse range: {range_name}")
        return [list(row) for row in tabs[tab]]

    def get_tab_names(self, spreadsheet_id):
        if spreadsheet_id not in self.spreadsheets:
            raise UpstreamError("Google API error 404: Requested entity was not found.")
        return list(self.spreadsheets[spreadsheet_id])

    def batch_update(self, spreadsheet_id, cells):
        cells = list(cells)
        self.writes.append((spreadsheet_id, cells))
        for rng, value in cells:
            tab, letters, row_number = _CELL_RE.match(rng).groups()
            rows = self.spreadsheets[spreadsheet_id][tab.replace("''", "'")]
            row_index = int(row_number) - 1
            col_index = column_letter_to_index(letters)
            while len(rows) <= row_index:
                rows.append([])
            row = rows[row_index]
            while len(row) <= col_index:
                row.append("")
            row[col_index] = value
        return len(cells)

    def list_spreadsheets(self, folder_id):
        return [f for f in self.folders.get(folder_id, []) if f.mime_type == SPREADSHEET_MIME_TYPE]

    def find_file(self, folder_id, name):
        for f in self.folders.get(folder_id, []):
            if f.name == name:
                return f
        return None


def auction_22_rows():
    """Two note rows above the header, header on sheet row 3."""
    return [
        ["Auction 22 - pickup list"],
        [],
        ["Bidder Number", "Buyer First Name", "Buyer Last Name", "Lots Bought",
         "Balance", "Payment Status", "Shipping Required", "Shipped status"],
        ["1001", "Ada", "Lovelace", "3", "0", "Y", "Y", ""],
        ["1002", "Bob", "Stone", "1", "0", "Y", "N", ""],
        ["1003", "Cy", "Young", "2", "45", "", "Y", ""],
        ["1004", "Dee", "Fox", "5", "0", "Y", "Y", "Y"],
        ["", "", "", "", "", "Y", "Y", ""],
        ["1005", "Eve", "Moss", "12", "0", "y - hibid", "yes"],
    ]


def auction_23_rows():
    """Header on the first row, alternate header spellings."""
    return [
        ["Bidcard", "First Name", "Last Name", "Lots Won", "Paid", "Ship Required", "Shipping Status"],
        ["2001", "Finn", "Hall", "7", "TRUE", "1", ""],
        ["2002", "Gus", "Lee", "2", "Y", "Y", "shipped 10/2"],
    ]


def sample_spreadsheets():
    return {
        "sheet-22": {
            "Notes": [["Pickup Saturday only"]],
            "Bidders": auction_22_rows(),
        },
        "sheet-23": {"Sheet1": auction_23_rows()},
        "sheet-notes": {"Sheet1": [["Volunteer rota"], ["Sat", "Sun"]]},
        "workbook": {
            "Auction 22": auction_22_rows(),
            "Auction 23 (online)": auction_23_rows(),
            "Special": auction_23_rows(),
        },
    }


def sample_folders():
    return {
        AUCTIONS_FOLDER: [
            DriveFile("sheet-22", "Auction 22", SPREADSHEET_MIME_TYPE),
            DriveFile("sheet-23", "Mad Bids Auction-23", SPREADSHEET_MIME_TYPE),
            DriveFile("sheet-notes", "Staff Notes", SPREADSHEET_MIME_TYPE),
        ],
        INVOICES_FOLDER: [
            DriveFile("inv-1001", "1001.pdf", "application/pdf",
                      "https://drive.google.com/file/d/inv-1001/view?usp=drivesdk"),
            DriveFile("inv-2001", "2001.pdf", "application/pdf"),
        ],
    }


def make_config(**google) -> AppConfig:
    """Test config in folder mode unless overridden."""
    settings = {
        "service_account_json": '{"type": "service_account"}',
        "auction_sheets_folder_id": AUCTIONS_FOLDER,
        "invoices_folder_id": INVOICES_FOLDER,
    }
    settings.update(google)
    return AppConfig(
        google=GoogleConfig(**settings),
        auth=AuthConfig(
            shift_password=os.environ["SHIFT_PASSWORD"],
            session_secret=os.environ["SESSION_SECRET"],
        ),
        log_level="WARNING",
    )


@pytest.fixture
def workspace():
    """Fresh sample workspace; writes do not leak between tests."""
    return FakeWorkspace(spreadsheets=sample_spreadsheets(), folders=sample_folders())


@pytest.fixture
def make_workspace():
    """Build a FakeWorkspace from custom spreadsheets and folders."""
    return FakeWorkspace


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def workbook_config():
    """Workbook mode: one spreadsheet, one tab per auction."""
    return make_config(
        spreadsheet_id="workbook",
        auction_sheets_folder_id="",
        tab_overrides={"Auction 30": "Special"},
    )


@pytest.fixture
def app(config, workspace):
    """FastAPI app wired to the fake workspace and test config."""
    from api.dependencies import get_app_config, get_workspace
    from api.main import app

    app.dependency_overrides[get_app_config] = lambda: config
    app.dependency_overrides[get_workspace] = lambda: workspace
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Create test client."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def auth_headers(config):
    """Bearer header for a valid shift session."""
    from api.auth import create_session_token

    token = create_session_token(config.auth)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_client(app, auth_headers):
    """Create authenticated test client."""
    from fastapi.testclient import TestClient

    client = TestClient(app)
    client.headers.update(auth_headers)
    return client
