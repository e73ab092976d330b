"""
Outstanding Shipments

An outstanding shipment is a bidder row where payment is confirmed, shipping
was requested and nothing has been recorded as shipped yet:

    is_yes(payment) and is_yes(shipping_required) and is_blank(shipped)

The filter is a pure function over resolved columns and data rows; the
ShipmentService wraps it with the Drive folder scan, search and sorting.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.config import AppConfig, ConfigurationError
from models.bidder import SheetLocation, SheetScan, ShipmentCandidate
from schemas.auction_sheet import (
    BIDDER_NUMBER,
    PAYMENT_STATUS,
    SHIPMENT_REQUIRED_FIELDS,
    SHIPPED_STATUS,
    SHIPPING_REQUIRED,
    ColumnMap,
    cell_range,
)
from services.auction_directory import AuctionDirectory, AuctionSheet, build_record
from services.errors import HeaderRowNotFoundError, InvalidRequestError
from services.google_workspace import GoogleWorkspace
from services.invoices import InvoiceService
from services.predicates import extract_auction_number, is_blank, is_yes, yes_flag

logger = logging.getLogger(__name__)

SORT_AUCTION_ASC = "auction_asc"
SORT_AUCTION_DESC = "auction_desc"
SORT_LOTS_ASC = "lots_asc"
SORT_LOTS_DESC = "lots_desc"
SORT_KEYS = (SORT_AUCTION_ASC, SORT_AUCTION_DESC, SORT_LOTS_ASC, SORT_LOTS_DESC)

# Update payload keys for the shipment item toggles
FLAG_FIELDS = {
    "paymentStatus": PAYMENT_STATUS,
    "shippingRequired": SHIPPING_REQUIRED,
    "shippedStatus": SHIPPED_STATUS,
}


def make_candidate(
    columns: ColumnMap,
    location: SheetLocation,
    row_number: int,
    row: Sequence[Any],
) -> ShipmentCandidate:
    """Decorate a row with auction identity and its computed flags."""
    number = location.auction_number
    if number is None:
        number = extract_auction_number(location.auction_name or location.tab_name)
    return ShipmentCandidate(
        record=build_record(columns, location, row_number, row),
        auction_name=location.auction_name,
        auction_number=number,
        paid=is_yes(columns.value(row, PAYMENT_STATUS)),
        shipping_required=is_yes(columns.value(row, SHIPPING_REQUIRED)),
        shipped=not is_blank(columns.value(row, SHIPPED_STATUS)),
    )


def filter_outstanding(
    rows: Sequence[Sequence[Any]],
    columns: ColumnMap,
    auction_name: str = "",
    auction_number: Optional[int] = None,
    spreadsheet_id: str = "",
    tab_name: str = "",
    first_row_number: int = 2,
) -> List[ShipmentCandidate]:
    """
    Select the outstanding shipments from data rows, in scan order.

    Args:
        rows: Data rows (header excluded)
        columns: Columns resolved from the header row
        auction_name: File or tab name the rows came from
        auction_number: Explicit auction number; parsed from auction_name when None
        spreadsheet_id: Source spreadsheet, carried into each record
        tab_name: Source tab, carried into each record
        first_row_number: 1-based sheet row number of rows[0]

    Raises:
        ColumnNotFoundError: a required column is missing
    """
    columns.require(*SHIPMENT_REQUIRED_FIELDS, where=tab_name or auction_name)
    location = SheetLocation(
        spreadsheet_id=spreadsheet_id,
        tab_name=tab_name,
        auction_name=auction_name,
        auction_number=auction_number,
    )
    shipments = []
    for offset, row in enumerate(rows):
        row = row or []
        if not columns.value(row, BIDDER_NUMBER):
            continue
        item = make_candidate(columns, location, first_row_number + offset, row)
        if item.is_outstanding:
            shipments.append(item)
    return shipments


def search_shipments(items: Iterable[ShipmentCandidate], q: Optional[str]) -> List[ShipmentCandidate]:
    """Keep items whose name, bidder number or auction number contains q."""
    query = (q or "").strip().lower()
    items = list(items)
    if not query:
        return items

    def matches(item: ShipmentCandidate) -> bool:
        name = item.record.full_name.lower()
        return (
            query in name
            or query in item.bidder_number.lower()
            or (item.auction_number is not None and query in str(item.auction_number))
        )

    return [item for item in items if matches(item)]


def _bidder_key(item: ShipmentCandidate):
    text = item.bidder_number
    return (0, int(text), text) if text.isdecimal() else (1, 0, text)


def sort_shipments(items: Iterable[ShipmentCandidate], sort: Optional[str]) -> List[ShipmentCandidate]:
    """
    Order items by auction number or lot count; ties fall back to bidder number.

    Missing auction numbers and non-numeric lot counts sort as 0. A falsy
    sort key keeps scan order.
    """
    items = list(items)
    if not sort:
        return items
    key = sort.strip().lower()
    if key not in SORT_KEYS:
        raise InvalidRequestError(f"Unknown sort {sort!r}; expected one of {', '.join(SORT_KEYS)}")

    if key in (SORT_AUCTION_ASC, SORT_AUCTION_DESC):
        primary = lambda item: item.auction_number or 0  # noqa: E731
    else:
        primary = lambda item: item.lots_count()  # noqa: E731

    # Stable two-pass sort: bidder ascending inside a primary order
    items.sort(key=_bidder_key)
    items.sort(key=primary, reverse=key.endswith("_desc"))
    return items


@dataclass
class ShipmentReport:
    """Result of scanning the auction folder."""
    shipments: List[ShipmentCandidate]
    files_found: int = 0
    scans: List[SheetScan] = field(default_factory=list)

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "count": len(self.shipments),
            "shipments": [s.to_dict() for s in self.shipments],
        }
        if debug:
            data["sheetsFound"] = self.files_found
            data["debugInfo"] = [s.to_dict() for s in self.scans]
        return data


class ShipmentService:
    """Outstanding shipment listing and per-row shipping toggles."""

    def __init__(
        self,
        workspace: GoogleWorkspace,
        directory: AuctionDirectory,
        invoices: InvoiceService,
        config: AppConfig,
    ):
        self.workspace = workspace
        self.directory = directory
        self.invoices = invoices
        self.config = config

    def _folder_id(self) -> str:
        folder_id = self.config.google.auction_sheets_folder_id
        if not folder_id:
            raise ConfigurationError("Missing AUCTION_SHEETS_FOLDER_ID")
        return folder_id

    def list_outstanding(
        self,
        q: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> ShipmentReport:
        """
        Scan every auction spreadsheet in the folder for outstanding shipments.

        Each spreadsheet contributes rows from its first tab that has all
        required columns; later tabs are skipped to avoid duplicates.
        """
        if sort and sort.strip().lower() not in SORT_KEYS:
            raise InvalidRequestError(f"Unknown sort {sort!r}; expected one of {', '.join(SORT_KEYS)}")

        files = self.workspace.list_spreadsheets(self._folder_id())
        shipments: List[ShipmentCandidate] = []
        scans: List[SheetScan] = []

        for f in files:
            scan = SheetScan(file_name=f.name, spreadsheet_id=f.id)
            scans.append(scan)
            sheet, scan.tabs_scanned = self.directory.first_bidder_tab(
                f.id,
                required=SHIPMENT_REQUIRED_FIELDS,
                auction_name=f.name,
                auction_number=extract_auction_number(f.name),
            )
            if sheet is None:
                scan.skipped_reason = "no tab with bidder, payment, shipping and shipped columns"
                continue

            scan.matched_tab = sheet.location.tab_name
            scan.header_row = sheet.header_index
            scan.headers = sheet.columns.headers
            found = filter_outstanding(
                sheet.rows[sheet.header_index + 1:],
                sheet.columns,
                auction_name=f.name,
                auction_number=sheet.location.auction_number,
                spreadsheet_id=f.id,
                tab_name=sheet.location.tab_name,
                first_row_number=sheet.first_data_row_number,
            )
            scan.matched_rows = len(found)
            shipments.extend(found)

        logger.info(f"Scanned {len(files)} auction sheet(s), {len(shipments)} outstanding shipment(s)")
        shipments = search_shipments(shipments, q)
        shipments = sort_shipments(shipments, sort)
        return ShipmentReport(shipments=shipments, files_found=len(files), scans=scans)

    def _open_item_sheet(self, spreadsheet_id: str, tab: Optional[str]) -> AuctionSheet:
        if not spreadsheet_id:
            raise InvalidRequestError("Missing/invalid sheetId")
        if tab:
            return self.directory.read_tab(spreadsheet_id, tab)
        sheet, scanned = self.directory.first_bidder_tab(spreadsheet_id)
        if sheet is None:
            raise HeaderRowNotFoundError(
                f"No tab has a bidder header row (scanned: {', '.join(scanned) or 'none'})"
            )
        return sheet

    @staticmethod
    def _check_row_number(row_number: int) -> None:
        if not isinstance(row_number, int) or isinstance(row_number, bool) or row_number < 2:
            raise InvalidRequestError("Missing/invalid rowNumber")

    def get_item(
        self,
        spreadsheet_id: str,
        row_number: int,
        tab: Optional[str] = None,
    ) -> ShipmentCandidate:
        """One row as a shipment item, with its invoice link when one exists."""
        self._check_row_number(row_number)
        sheet = self._open_item_sheet(spreadsheet_id, tab)
        item = make_candidate(sheet.columns, sheet.location, row_number, sheet.get_row(row_number))
        item.invoice_url = self.invoices.find_invoice_url(item.bidder_number)
        return item

    def update_item(
        self,
        spreadsheet_id: str,
        row_number: int,
        flags: Dict[str, Any],
        tab: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Write the payment/shipping/shipped toggles for one row.

        Args:
            flags: {"paymentStatus"|"shippingRequired"|"shippedStatus": bool}

        Returns:
            {header: written value}
        """
        self._check_row_number(row_number)
        toggles = {k: v for k, v in (flags or {}).items() if k in FLAG_FIELDS and isinstance(v, bool)}
        if not toggles:
            raise InvalidRequestError("No updates provided")

        sheet = self._open_item_sheet(spreadsheet_id, tab)
        if not sheet.columns.value(sheet.get_row(row_number), BIDDER_NUMBER):
            raise InvalidRequestError(f"Row {row_number} has no bidder number")
        sheet.columns.require(*(FLAG_FIELDS[k] for k in toggles), where=sheet.location.tab_name)

        cells = []
        written = {}
        for key, value in toggles.items():
            index = sheet.columns.get(FLAG_FIELDS[key])
            cells.append((cell_range(sheet.location.tab_name, index, row_number), yes_flag(value)))
            written[sheet.columns.headers[index]] = yes_flag(value)

        self.workspace.batch_update(spreadsheet_id, cells)
        logger.info(f"Updated shipment flags at {sheet.location.tab_name}!{row_number}: {written}")
        return written

    def diagnose(self) -> Dict[str, Any]:
        """Header detection and predicate counts for the first sheet in the folder."""
        folder_id = self._folder_id()
        files = self.workspace.list_spreadsheets(folder_id)
        output: Dict[str, Any] = {
            "folderId": folder_id,
            "sheetsFound": len(files),
            "firstSheet": {"id": files[0].id, "name": files[0].name} if files else None,
        }
        if not files:
            return output

        first = files[0]
        sheet, scanned = self.directory.first_bidder_tab(first.id, auction_name=first.name)
        output["tabsScanned"] = scanned
        if sheet is None:
            output["note"] = "No tab with a bidder header row."
            return output

        columns = sheet.columns
        output["matchedTab"] = sheet.location.tab_name
        output["headerRow"] = sheet.header_index
        output["detectedHeaders"] = columns.headers
        output["indexes"] = columns.as_dict()
        output["sampleRows"] = sheet.rows[sheet.header_index + 1:sheet.header_index + 6]

        counts = {"hasBidder": 0, "shipReqYes": 0, "paidYes": 0, "shippedBlank": 0, "finalMatch": 0}
        for _, row in sheet.data_rows():
            has_bidder = bool(columns.value(row, BIDDER_NUMBER))
            ship_req = is_yes(columns.value(row, SHIPPING_REQUIRED))
            paid = is_yes(columns.value(row, PAYMENT_STATUS))
            shipped_blank = is_blank(columns.value(row, SHIPPED_STATUS))
            counts["hasBidder"] += has_bidder
            counts["shipReqYes"] += ship_req
            counts["paidYes"] += paid
            counts["shippedBlank"] += shipped_blank
            counts["finalMatch"] += has_bidder and ship_req and paid and shipped_blank
        output["counts"] = counts
        return output
