"""
Auction Sheet Directory - find the tab holding an auction's bidders

Two layouts are supported:
1. Workbook mode (GOOGLE_SHEET_ID): one spreadsheet, one tab per auction
2. Folder mode (AUCTION_SHEETS_FOLDER_ID): one spreadsheet per auction

Names are compared after normalize_auction_name(), then by auction number,
so "22", "auction 22" and "Mad Bids Auction-22" all find the same sheet.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from core.config import AppConfig, ConfigurationError
from models.bidder import BidderRecord, DriveFile, SheetLocation
from schemas.auction_sheet import (
    BALANCE,
    BIDDER_NUMBER,
    BUYER_PHONE,
    FIRST_NAME,
    LAST_NAME,
    LOTS_BOUGHT,
    NOTES,
    PAYMENT_STATUS,
    PICKUP_STATUS,
    REFUND,
    SHIPPED_STATUS,
    SHIPPING_REQUIRED,
    ColumnMap,
    cell,
    find_header_row,
    normalize_header,
    quote_tab,
    resolve_columns,
)
from services.errors import AuctionNotFoundError, HeaderRowNotFoundError, InvalidRequestError
from services.google_workspace import GoogleWorkspace
from services.predicates import extract_auction_number, normalize_auction_name

logger = logging.getLogger(__name__)


@dataclass
class AuctionSheet:
    """One tab's values with its header row located and columns resolved."""
    location: SheetLocation
    rows: List[List[Any]]
    header_index: int
    columns: ColumnMap

    @property
    def first_data_row_number(self) -> int:
        """1-based sheet row number of the first row below the header."""
        return self.header_index + 2

    def data_rows(self) -> Iterator[Tuple[int, List[Any]]]:
        """Yield (1-based row number, row) for every row below the header."""
        start = self.header_index + 1
        for offset, row in enumerate(self.rows[start:]):
            yield self.first_data_row_number + offset, row or []

    def get_row(self, row_number: int) -> List[Any]:
        """Row by 1-based sheet row number; rows past the end read as empty."""
        if row_number < self.first_data_row_number:
            raise InvalidRequestError(
                f"Row {row_number} is not a data row (header is row {self.header_index + 1})"
            )
        index = row_number - 1
        return self.rows[index] if index < len(self.rows) else []


def build_record(
    columns: ColumnMap,
    location: SheetLocation,
    row_number: int,
    row: Sequence[Any],
) -> BidderRecord:
    """Map a raw row to a BidderRecord through resolved columns."""
    raw = {}
    for i, header in enumerate(columns.headers):
        if header and header not in raw:
            raw[header] = cell(row, i)

    return BidderRecord(
        bidder_number=columns.value(row, BIDDER_NUMBER),
        row_number=row_number,
        spreadsheet_id=location.spreadsheet_id,
        tab_name=location.tab_name,
        first_name=columns.value(row, FIRST_NAME),
        last_name=columns.value(row, LAST_NAME),
        lots_bought=columns.value(row, LOTS_BOUGHT),
        balance=columns.value(row, BALANCE),
        payment_status=columns.value(row, PAYMENT_STATUS),
        shipping_required=columns.value(row, SHIPPING_REQUIRED),
        shipped_status=columns.value(row, SHIPPED_STATUS),
        refund=columns.value(row, REFUND),
        notes=columns.value(row, NOTES),
        pickup_status=columns.value(row, PICKUP_STATUS),
        buyer_phone=columns.value(row, BUYER_PHONE),
        raw=raw,
    )


def _same_auction(candidate: str, name: str) -> bool:
    return normalize_header(normalize_auction_name(candidate)) == normalize_header(name)


def _match_by_name(items: Sequence[Any], name: str, number: Optional[int], key) -> Optional[Any]:
    """Exact normalized name first, then the first item carrying the same auction number."""
    for item in items:
        if _same_auction(key(item), name):
            return item
    if number is not None:
        for item in items:
            if extract_auction_number(key(item)) == number:
                return item
    return None


class AuctionDirectory:
    """Resolves auction names to sheet tabs and reads them."""

    def __init__(self, workspace: GoogleWorkspace, config: AppConfig):
        self.workspace = workspace
        self.config = config

    @property
    def header_scan_rows(self) -> int:
        return self.config.header_scan_rows

    def read_tab(self, spreadsheet_id: str, tab_name: str, **location) -> AuctionSheet:
        """
        Read a whole tab and resolve its header row.

        Raises:
            HeaderRowNotFoundError: if no header row is found in the scan window
        """
        rows = self.workspace.get_values(spreadsheet_id, quote_tab(tab_name))
        header_index = find_header_row(rows, window=self.header_scan_rows)
        columns = resolve_columns(rows[header_index])
        logger.debug(
            f"Read {len(rows)} row(s) from {tab_name!r}, header at row {header_index + 1}"
        )
        return AuctionSheet(
            location=SheetLocation(spreadsheet_id=spreadsheet_id, tab_name=tab_name, **location),
            rows=rows,
            header_index=header_index,
            columns=columns,
        )

    def first_bidder_tab(
        self,
        spreadsheet_id: str,
        tabs: Optional[List[str]] = None,
        required: Sequence[str] = (BIDDER_NUMBER,),
        **location,
    ) -> Tuple[Optional[AuctionSheet], List[str]]:
        """
        Try each tab in order until one has a header row with the required columns.

        When the tab list is fetched here, SHEET_TAB_NAME is tried first.

        Returns:
            (sheet or None, tab names scanned)
        """
        if tabs is None:
            tabs = self.workspace.get_tab_names(spreadsheet_id)
            preferred = self.config.google.sheet_tab_name
            if preferred in tabs:
                tabs = [preferred] + [t for t in tabs if t != preferred]
        scanned = []
        for tab in tabs:
            scanned.append(tab)
            try:
                sheet = self.read_tab(spreadsheet_id, tab, **location)
            except HeaderRowNotFoundError:
                continue
            if not sheet.columns.missing(*required):
                return sheet, scanned
        return None, scanned

    def open(self, auction: str) -> AuctionSheet:
        """
        Locate and read the tab for an auction name or number.

        Raises:
            InvalidRequestError: blank auction
            AuctionNotFoundError: no tab or spreadsheet matches
            ConfigurationError: neither layout is configured
        """
        name = normalize_auction_name(auction)
        if not name:
            raise InvalidRequestError("Missing auction")
        number = extract_auction_number(name)
        google = self.config.google

        if google.spreadsheet_id:
            tab = self._workbook_tab(name, number)
            if tab:
                return self.read_tab(
                    google.spreadsheet_id, tab, auction_name=name, auction_number=number
                )

        if google.auction_sheets_folder_id:
            return self._folder_sheet(name, number)

        if not google.spreadsheet_id:
            raise ConfigurationError("Missing GOOGLE_SHEET_ID or AUCTION_SHEETS_FOLDER_ID")
        raise AuctionNotFoundError(f"Auction not found: {name}")

    def _workbook_tab(self, name: str, number: Optional[int]) -> Optional[str]:
        google = self.config.google
        for override_name, tab in google.tab_overrides.items():
            if _same_auction(override_name, name):
                return tab

        tabs = self.workspace.get_tab_names(google.spreadsheet_id)
        tab = _match_by_name(tabs, name, number, key=lambda t: t)
        if tab:
            logger.info(f"Auction {name!r} -> tab {tab!r}")
        return tab

    def _folder_sheet(self, name: str, number: Optional[int]) -> AuctionSheet:
        folder_id = self.config.google.auction_sheets_folder_id
        files = self.workspace.list_spreadsheets(folder_id)
        match: Optional[DriveFile] = _match_by_name(files, name, number, key=lambda f: f.name)
        if match is None:
            raise AuctionNotFoundError(f"Auction not found: {name}")

        sheet, scanned = self.first_bidder_tab(
            match.id, auction_name=match.name, auction_number=number
        )
        if sheet is None:
            raise HeaderRowNotFoundError(
                f"No tab in {match.name!r} has a bidder header row "
                f"(scanned: {', '.join(scanned) or 'none'})"
            )
        logger.info(f"Auction {name!r} -> {match.name!r} / {sheet.location.tab_name!r}")
        return sheet
