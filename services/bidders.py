"""Bidder lookup and cell updates on an auction sheet."""

import logging
from typing import Any, Dict, List, Tuple

from models.bidder import BidderRecord
from schemas.auction_sheet import (
    BIDDER_NUMBER,
    cell_range,
    get_field_spec,
    resolve_column,
)
from services.auction_directory import AuctionDirectory, AuctionSheet, build_record
from services.errors import BidderNotFoundError, ColumnNotFoundError, InvalidRequestError
from services.google_workspace import GoogleWorkspace
from services.predicates import cell_text, yes_flag

logger = logging.getLogger(__name__)


def _cell_value(value: Any) -> str:
    """Update payload value -> cell text; booleans become Y / blank."""
    if isinstance(value, bool):
        return yes_flag(value)
    return cell_text(value)


class BidderService:
    """Reads and edits one bidder's row in an auction sheet."""

    def __init__(self, workspace: GoogleWorkspace, directory: AuctionDirectory):
        self.workspace = workspace
        self.directory = directory

    def _find_row(self, sheet: AuctionSheet, bidder: str) -> Tuple[int, List[Any]]:
        sheet.columns.require(BIDDER_NUMBER, where=sheet.location.tab_name)
        for row_number, row in sheet.data_rows():
            if sheet.columns.value(row, BIDDER_NUMBER) == bidder:
                return row_number, row
        raise BidderNotFoundError(
            f"Bidder {bidder} not found in {sheet.location.auction_name or sheet.location.tab_name}"
        )

    def lookup_bidder(self, auction: str, bidder: str) -> BidderRecord:
        """
        Find a bidder's row in an auction sheet.

        Raises:
            InvalidRequestError: blank auction or bidder
            ColumnNotFoundError: sheet has no bidder number column
            BidderNotFoundError: no row carries this bidder number
        """
        bidder = cell_text(bidder)
        if not bidder:
            raise InvalidRequestError("Missing bidder number")

        sheet = self.directory.open(auction)
        row_number, row = self._find_row(sheet, bidder)
        record = build_record(sheet.columns, sheet.location, row_number, row)
        logger.info(f"Found bidder {bidder} at {sheet.location.tab_name}!{row_number}")
        return record

    def _column_for(self, sheet: AuctionSheet, name: str):
        """Column index for a logical field or, failing that, a literal header."""
        spec = get_field_spec(name)
        if spec is not None:
            if spec.key == BIDDER_NUMBER:
                raise InvalidRequestError("Bidder Number cannot be updated")
            index = sheet.columns.get(spec.key)
            if index is not None:
                return index
        return resolve_column(sheet.columns.headers, [name], allow_partial=False)

    def update_bidder(self, auction: str, bidder: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write the given field values into the bidder's row.

        All cells go out in one batch request. There is no conflict
        detection: a concurrent edit to the same cell is overwritten.

        Args:
            auction: Auction name or number
            bidder: Bidder number
            updates: {field name or header: value}; booleans are written as Y / ""

        Returns:
            {"rowNumber": int, "updated": {header: value}, "ranges": [A1, ...]}
        """
        if not isinstance(updates, dict) or not updates:
            raise InvalidRequestError("No updates provided")

        bidder = cell_text(bidder)
        if not bidder:
            raise InvalidRequestError("Missing bidder number")

        sheet = self.directory.open(auction)
        row_number, _ = self._find_row(sheet, bidder)

        cells = []
        written = {}
        unknown = []
        for name, value in updates.items():
            index = self._column_for(sheet, name)
            if index is None:
                unknown.append(name)
                continue
            text = _cell_value(value)
            cells.append((cell_range(sheet.location.tab_name, index, row_number), text))
            written[sheet.columns.headers[index] or name] = text

        if unknown:
            raise ColumnNotFoundError(unknown, where=sheet.location.tab_name)

        self.workspace.batch_update(sheet.location.spreadsheet_id, cells)
        logger.info(
            f"Updated bidder {bidder} at {sheet.location.tab_name}!{row_number}: "
            f"{', '.join(written)}"
        )
        return {
            "rowNumber": row_number,
            "updated": written,
            "ranges": [rng for rng, _ in cells],
        }
