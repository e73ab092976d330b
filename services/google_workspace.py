"""Google Sheets and Drive access for auction sheets and invoices.

Wraps the two discovery clients behind the handful of calls the services
need: read a range, list tabs, batch-write cells, list folder files.
Reads are retried on transient failures; writes are sent once.
"""
import logging
from typing import Any, List, Optional, Sequence, Tuple

from googleapiclient.errors import HttpError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from core.config import GoogleConfig
from core.secrets import get_service_account_info
from models.bidder import DriveFile
from services.errors import UpstreamError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
]

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
DRIVE_PAGE_SIZE = 200


def escape_query_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _is_transient(exc: BaseException) -> bool:
    """Rate limits, server errors and dropped connections are worth retrying."""
    if isinstance(exc, HttpError):
        status = getattr(exc.resp, "status", None)
        return status in (429, 500, 502, 503, 504)
    return isinstance(exc, (ConnectionError, TimeoutError))


def _upstream_message(exc: Exception) -> str:
    if isinstance(exc, HttpError):
        status = getattr(exc.resp, "status", "?")
        reason = getattr(exc, "reason", "") or str(exc)
        return f"Google API error {status}: {reason}"
    return str(exc) or exc.__class__.__name__


class GoogleWorkspace:
    """Sheets v4 + Drive v3 client built from the service account config."""

    def __init__(
        self,
        config: GoogleConfig,
        sheets_service: Any = None,
        drive_service: Any = None,
    ):
        self.config = config
        self._sheets = sheets_service
        self._drive = drive_service
        self._credentials = None

    def _get_credentials(self):
        if self._credentials is None:
            from google.oauth2 import service_account

            info = get_service_account_info(self.config)
            self._credentials = service_account.Credentials.from_service_account_info(
                info, scopes=SCOPES
            )
        return self._credentials

    def _get_sheets(self):
        """Get or create Google Sheets API service."""
        if self._sheets is None:
            from googleapiclient.discovery import build

            self._sheets = build(
                "sheets", "v4", credentials=self._get_credentials(), cache_discovery=False
            )
        return self._sheets

    def _get_drive(self):
        """Get or create Google Drive API service."""
        if self._drive is None:
            from googleapiclient.discovery import build

            self._drive = build(
                "drive", "v3", credentials=self._get_credentials(), cache_discovery=False
            )
        return self._drive

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def _execute_read(self, request) -> dict:
        return request.execute()

    def _read(self, request, what: str) -> dict:
        try:
            return self._execute_read(request)
        except (HttpError, ConnectionError, TimeoutError) as e:
            logger.error(f"Google read failed ({what}): {e}")
            raise UpstreamError(_upstream_message(e), details={"operation": what})

    # -------------------------------------------------------------------------
    # Sheets
    # -------------------------------------------------------------------------

    def get_values(self, spreadsheet_id: str, range_name: str) -> List[List[str]]:
        """Read a range; trailing empty cells/rows are omitted by the API."""
        request = self._get_sheets().spreadsheets().values().get(
            spreadsheetId=spreadsheet_id,
            range=range_name,
        )
        result = self._read(request, f"values.get {range_name}")
        return result.get("values", [])

    def get_tab_names(self, spreadsheet_id: str) -> List[str]:
        """Tab titles in workbook order."""
        request = self._get_sheets().spreadsheets().get(
            spreadsheetId=spreadsheet_id,
            fields="sheets(properties(title))",
        )
        result = self._read(request, "spreadsheets.get")
        titles = [s.get("properties", {}).get("title") for s in result.get("sheets", [])]
        return [t for t in titles if t]

    def batch_update(self, spreadsheet_id: str, cells: Sequence[Tuple[str, str]]) -> int:
        """
        Write single-cell values in one request.

        Args:
            spreadsheet_id: Target spreadsheet
            cells: (A1 range, value) pairs

        Returns:
            Number of cells the API reports as updated
        """
        if not cells:
            return 0
        body = {
            "valueInputOption": "RAW",
            "data": [{"range": rng, "values": [[value]]} for rng, value in cells],
        }
        try:
            result = self._get_sheets().spreadsheets().values().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body=body,
            ).execute()
        except (HttpError, ConnectionError, TimeoutError) as e:
            logger.error(f"Google write failed for {len(cells)} cell(s): {e}")
            raise UpstreamError(_upstream_message(e), details={"operation": "values.batchUpdate"})

        updated = result.get("totalUpdatedCells", len(cells))
        logger.info(f"Wrote {updated} cell(s) to spreadsheet {spreadsheet_id}")
        return updated

    # -------------------------------------------------------------------------
    # Drive
    # -------------------------------------------------------------------------

    def list_files(self, query: str, page_size: int = DRIVE_PAGE_SIZE) -> List[DriveFile]:
        """List every file matching a Drive query, following page tokens."""
        files: List[DriveFile] = []
        page_token: Optional[str] = None
        while True:
            request = self._get_drive().files().list(
                q=query,
                fields="nextPageToken, files(id, name, mimeType, webViewLink)",
                pageSize=page_size,
                pageToken=page_token,
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            )
            result = self._read(request, "files.list")
            for f in result.get("files", []):
                if not f.get("id"):
                    continue
                files.append(DriveFile(
                    id=f["id"],
                    name=f.get("name", ""),
                    mime_type=f.get("mimeType", ""),
                    web_view_link=f.get("webViewLink", ""),
                ))
            page_token = result.get("nextPageToken")
            if not page_token:
                return files

    def list_spreadsheets(self, folder_id: str) -> List[DriveFile]:
        """Google Sheets files directly inside a folder, excluding trashed ones."""
        query = (
            f"'{escape_query_literal(folder_id)}' in parents "
            f"and mimeType='{SPREADSHEET_MIME_TYPE}' and trashed=false"
        )
        return self.list_files(query)

    def find_file(self, folder_id: str, name: str) -> Optional[DriveFile]:
        """First non-trashed file in a folder with exactly this name."""
        query = (
            f"'{escape_query_literal(folder_id)}' in parents "
            f"and name='{escape_query_literal(name)}' and trashed=false"
        )
        files = self.list_files(query, page_size=5)
        return files[0] if files else None
