"""Tests for the outstanding shipment filter and ShipmentService."""

import pytest

from core.config import ConfigurationError
from models.bidder import BidderRecord, ShipmentCandidate
from schemas.auction_sheet import resolve_columns
from services.auction_directory import AuctionDirectory
from services.errors import ColumnNotFoundError, InvalidRequestError, UpstreamError
from services.invoices import InvoiceService
from services.shipments import (
    ShipmentService,
    filter_outstanding,
    search_shipments,
    sort_shipments,
)


def make_service(workspace, config):
    directory = AuctionDirectory(workspace, config)
    invoices = InvoiceService(workspace, config)
    return ShipmentService(workspace, directory, invoices, config)


def candidate(bidder, auction_number=None, lots="", first="", last=""):
    record = BidderRecord(
        bidder_number=bidder, row_number=2, first_name=first, last_name=last, lots_bought=lots
    )
    return ShipmentCandidate(record=record, auction_number=auction_number)


class TestFilterOutstanding:
    """Tests for filter_outstanding."""

    HEADER = ["Bidder Number", "Payment Status", "Shipping Required", "Shipped status"]
    ROWS = [
        ["1001", "Y", "Y", ""],
        ["1002", "Y", "N", ""],
        ["1003", "", "Y", ""],
        ["1004", "Y", "Y", "Y"],
    ]

    def test_only_paid_requested_unshipped(self):
        result = filter_outstanding(self.ROWS, resolve_columns(self.HEADER), auction_name="Auction 22")
        assert [s.bidder_number for s in result] == ["1001"]

    def test_auction_identity_from_name(self):
        result = filter_outstanding(self.ROWS, resolve_columns(self.HEADER), auction_name="Auction 22")
        assert result[0].auction_number == 22
        assert result[0].auction_name == "Auction 22"

    def test_explicit_auction_number_wins(self):
        result = filter_outstanding(
            self.ROWS, resolve_columns(self.HEADER), auction_name="Auction 22", auction_number=5
        )
        assert result[0].auction_number == 5

    def test_row_numbers_and_flags(self):
        result = filter_outstanding(
            self.ROWS,
            resolve_columns(self.HEADER),
            spreadsheet_id="sheet-22",
            tab_name="Bidders",
            first_row_number=4,
        )
        item = result[0]
        assert item.record.row_number == 4
        assert item.record.spreadsheet_id == "sheet-22"
        assert item.record.tab_name == "Bidders"
        assert item.paid and item.shipping_required and not item.shipped
        assert item.is_outstanding

    def test_blank_bidder_skipped(self):
        rows = [["", "Y", "Y", ""], ["  ", "Y", "Y", ""]]
        assert filter_outstanding(rows, resolve_columns(self.HEADER)) == []

    def test_sparse_row_counts_as_unshipped(self):
        rows = [["1001", "yes", "y - local"]]
        result = filter_outstanding(rows, resolve_columns(self.HEADER))
        assert [s.bidder_number for s in result] == ["1001"]

    def test_preserves_scan_order(self):
        rows = [["3", "Y", "Y", ""], ["1", "Y", "Y", ""], ["2", "Y", "Y", ""]]
        result = filter_outstanding(rows, resolve_columns(self.HEADER))
        assert [s.bidder_number for s in result] == ["3", "1", "2"]

    def test_missing_column(self):
        columns = resolve_columns(["Bidder Number", "Payment Status", "Shipping Required"])
        with pytest.raises(ColumnNotFoundError) as exc_info:
            filter_outstanding(self.ROWS, columns, tab_name="Sheet1")
        assert exc_info.value.fields == ["Shipped Status"]


class TestSearchShipments:
    """Tests for search_shipments."""

    ITEMS = [
        candidate("1001", 22, first="Ada", last="Lovelace"),
        candidate("1005", 22, first="Eve", last="Moss"),
        candidate("2001", 23, first="Finn", last="Hall"),
    ]

    def test_empty_query_keeps_all(self):
        assert len(search_shipments(self.ITEMS, "  ")) == 3
        assert len(search_shipments(self.ITEMS, None)) == 3

    def test_name(self):
        assert [s.bidder_number for s in search_shipments(self.ITEMS, "ada LOVE")] == ["1001"]

    def test_bidder_number(self):
        assert [s.bidder_number for s in search_shipments(self.ITEMS, "100")] == ["1001", "1005"]

    def test_auction_number(self):
        assert [s.bidder_number for s in search_shipments(self.ITEMS, "23")] == ["2001"]


class TestSortShipments:
    """Tests for sort_shipments."""

    ITEMS = [
        candidate("1005", 22, lots="12"),
        candidate("2001", 23, lots="7"),
        candidate("1001", 22, lots="3"),
        candidate("9", None, lots="n/a"),
    ]

    def order(self, sort):
        return [s.bidder_number for s in sort_shipments(self.ITEMS, sort)]

    def test_no_sort_keeps_order(self):
        assert self.order(None) == ["1005", "2001", "1001", "9"]

    def test_auction_asc_ties_by_bidder(self):
        assert self.order("auction_asc") == ["9", "1001", "1005", "2001"]

    def test_auction_desc_ties_by_bidder(self):
        assert self.order("auction_desc") == ["2001", "1001", "1005", "9"]

    def test_lots_asc(self):
        assert self.order("lots_asc") == ["9", "1001", "2001", "1005"]

    def test_lots_desc(self):
        assert self.order("lots_desc") == ["1005", "2001", "1001", "9"]

    def test_unknown_sort(self):
        with pytest.raises(InvalidRequestError):
            sort_shipments(self.ITEMS, "name_asc")

    @pytest.mark.parametrize("lots", ["inf", "Infinity", "-inf", "1e999", "nan"])
    def test_non_finite_lots_count_as_zero(self, lots):
        items = [candidate("2", lots="4"), candidate("1", lots=lots)]
        assert [s.bidder_number for s in sort_shipments(items, "lots_asc")] == ["1", "2"]

    def test_non_decimal_bidder_sorts_after_numbers(self):
        items = [candidate("\u00b2", 22), candidate("10", 22)]
        assert [s.bidder_number for s in sort_shipments(items, "auction_asc")] == ["10", "\u00b2"]


class TestListOutstanding:
    """Tests for ShipmentService.list_outstanding against the sample folder."""

    def test_scans_every_sheet(self, workspace, config):
        report = make_service(workspace, config).list_outstanding()
        assert [s.bidder_number for s in report.shipments] == ["1001", "1005", "2001"]
        assert report.files_found == 3

    def test_auction_identity(self, workspace, config):
        report = make_service(workspace, config).list_outstanding()
        by_bidder = {s.bidder_number: s for s in report.shipments}
        assert by_bidder["1001"].auction_number == 22
        assert by_bidder["1001"].record.tab_name == "Bidders"
        assert by_bidder["1001"].record.row_number == 4
        assert by_bidder["2001"].auction_number == 23
        assert by_bidder["2001"].auction_name == "Mad Bids Auction-23"

    def test_debug_scan_info(self, workspace, config):
        report = make_service(workspace, config).list_outstanding()
        data = report.to_dict(debug=True)
        assert data["sheetsFound"] == 3
        scans = {s["fileName"]: s for s in data["debugInfo"]}
        assert scans["Auction 22"]["tabsScanned"] == ["Notes", "Bidders"]
        assert scans["Auction 22"]["matchedTab"] == "Bidders"
        assert scans["Auction 22"]["matchedHeaderRow"] == 2
        assert scans["Auction 22"]["matchedRows"] == 2
        assert scans["Staff Notes"]["matchedTab"] is None
        assert scans["Staff Notes"]["skippedReason"]

    def test_no_debug_keys_by_default(self, workspace, config):
        data = make_service(workspace, config).list_outstanding().to_dict()
        assert set(data) == {"count", "shipments"}
        assert data["count"] == 3

    def test_search_and_sort(self, workspace, config):
        report = make_service(workspace, config).list_outstanding(q="22", sort="lots_desc")
        assert [s.bidder_number for s in report.shipments] == ["1005", "1001"]

    def test_unknown_sort_rejected_before_scan(self, workspace, config):
        with pytest.raises(InvalidRequestError):
            make_service(workspace, config).list_outstanding(sort="bogus")

    def test_missing_folder(self, workspace, workbook_config):
        with pytest.raises(ConfigurationError):
            make_service(workspace, workbook_config).list_outstanding()


class TestShipmentItem:
    """Tests for get_item / update_item."""

    def test_get_item_with_invoice(self, workspace, config):
        item = make_service(workspace, config).get_item("sheet-22", 4)
        assert item.bidder_number == "1001"
        assert item.record.first_name == "Ada"
        assert item.invoice_url == "https://drive.google.com/file/d/inv-1001/view?usp=drivesdk"

    def test_get_item_without_invoice(self, workspace, config):
        item = make_service(workspace, config).get_item("sheet-22", 5)
        assert item.bidder_number == "1002"
        assert item.invoice_url is None

    def test_get_item_explicit_tab(self, workspace, config):
        item = make_service(workspace, config).get_item("sheet-23", 2, tab="Sheet1")
        assert item.bidder_number == "2001"
        assert item.paid and item.shipping_required and not item.shipped

    @pytest.mark.parametrize("row_number", [0, 1, -4])
    def test_invalid_row_number(self, workspace, config, row_number):
        with pytest.raises(InvalidRequestError):
            make_service(workspace, config).get_item("sheet-22", row_number)

    def test_header_row_is_not_an_item(self, workspace, config):
        with pytest.raises(InvalidRequestError):
            make_service(workspace, config).get_item("sheet-22", 3)

    def test_missing_sheet_id(self, workspace, config):
        with pytest.raises(InvalidRequestError):
            make_service(workspace, config).get_item("", 4)

    def test_get_item_survives_invoice_lookup_failure(self, workspace, config, monkeypatch):
        def rate_limited(folder_id, name):
            raise UpstreamError("Google API error 403: rate limit")

        monkeypatch.setattr(workspace, "find_file", rate_limited)
        item = make_service(workspace, config).get_item("sheet-22", 4)
        assert item.bidder_number == "1001"
        assert item.invoice_url is None

    def test_update_item_writes_y_and_blank(self, workspace, config):
        service = make_service(workspace, config)
        written = service.update_item(
            "sheet-22", 4, {"shippedStatus": True, "paymentStatus": False}
        )
        assert written == {"Shipped status": "Y", "Payment Status": ""}
        assert workspace.writes == [
            ("sheet-22", [("'Bidders'!H4", "Y"), ("'Bidders'!F4", "")]),
        ]
        item = service.get_item("sheet-22", 4)
        assert item.shipped and not item.paid

    def test_update_item_ignores_unknown_and_non_bool(self, workspace, config):
        service = make_service(workspace, config)
        written = service.update_item(
            "sheet-22", 5, {"shippingRequired": True, "notes": "x", "shippedStatus": "Y"}
        )
        assert written == {"Shipping Required": "Y"}

    def test_update_item_no_flags(self, workspace, config):
        with pytest.raises(InvalidRequestError):
            make_service(workspace, config).update_item("sheet-22", 4, {})
        assert workspace.writes == []

    @pytest.mark.parametrize("row_number", [8, 40])
    def test_update_item_rejects_row_without_bidder(self, workspace, config, row_number):
        with pytest.raises(InvalidRequestError):
            make_service(workspace, config).update_item("sheet-22", row_number, {"shippedStatus": True})
        assert workspace.writes == []


class TestDiagnose:
    """Tests for ShipmentService.diagnose."""

    def test_counts_first_sheet(self, workspace, config):
        output = make_service(workspace, config).diagnose()
        assert output["sheetsFound"] == 3
        assert output["firstSheet"] == {"id": "sheet-22", "name": "Auction 22"}
        assert output["matchedTab"] == "Bidders"
        assert output["headerRow"] == 2
        assert output["counts"] == {
            "hasBidder": 5,
            "shipReqYes": 5,
            "paidYes": 5,
            "shippedBlank": 5,
            "finalMatch": 2,
        }
        assert len(output["sampleRows"]) == 5

    def test_empty_folder(self, make_workspace, config):
        output = make_service(make_workspace(), config).diagnose()
        assert output["sheetsFound"] == 0
        assert output["firstSheet"] is None
