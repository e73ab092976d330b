"""Data models for auction bidder records."""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class DriveFile:
    """A file listed from Google Drive."""
    id: str
    name: str
    mime_type: str = ""
    web_view_link: str = ""

    @property
    def view_url(self) -> str:
        return self.web_view_link or f"https://drive.google.com/file/d/{self.id}/view"


@dataclass
class SheetLocation:
    """Where an auction's rows live: one spreadsheet tab."""
    spreadsheet_id: str
    tab_name: str
    auction_name: str = ""
    auction_number: Optional[int] = None


@dataclass
class BidderRecord:
    """One bidder row with its logical fields resolved from the header row."""
    bidder_number: str
    row_number: int  # 1-based sheet row
    spreadsheet_id: str = ""
    tab_name: str = ""

    first_name: str = ""
    last_name: str = ""
    lots_bought: str = ""
    balance: str = ""
    payment_status: str = ""
    shipping_required: str = ""
    shipped_status: str = ""
    refund: str = ""
    notes: str = ""
    pickup_status: str = ""
    buyer_phone: str = ""

    # Every column of the row keyed by its header as written in the sheet
    raw: Dict[str, str] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bidderNumber": self.bidder_number,
            "rowNumber": self.row_number,
            "sheetId": self.spreadsheet_id,
            "tabName": self.tab_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "lotsBought": self.lots_bought,
            "balance": self.balance,
            "paymentStatus": self.payment_status,
            "shippingRequired": self.shipping_required,
            "shippedStatus": self.shipped_status,
            "refund": self.refund,
            "notes": self.notes,
            "pickupStatus": self.pickup_status,
            "buyerPhone": self.buyer_phone,
            "fullName": self.full_name,
            "fields": dict(self.raw),
        }


@dataclass
class ShipmentCandidate:
    """A bidder record with auction identity and computed shipping flags."""
    record: BidderRecord
    auction_name: str = ""
    auction_number: Optional[int] = None
    paid: bool = False
    shipping_required: bool = False
    shipped: bool = False
    invoice_url: Optional[str] = None

    @property
    def bidder_number(self) -> str:
        return self.record.bidder_number

    @property
    def is_outstanding(self) -> bool:
        return self.paid and self.shipping_required and not self.shipped

    def lots_count(self) -> int:
        """Lots bought as an int; non-numeric and non-finite cells count as 0."""
        text = self.record.lots_bought.replace(",", "")
        try:
            value = float(text)
        except ValueError:
            return 0
        return int(value) if math.isfinite(value) else 0

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data.update({
            "auctionNumber": self.auction_number,
            "auctionName": self.auction_name,
            "paid": self.paid,
            "shippingRequiredFlag": self.shipping_required,
            "shipped": self.shipped,
        })
        if self.invoice_url is not None:
            data["invoiceUrl"] = self.invoice_url
        return data


@dataclass
class Invoice:
    """An invoice PDF found in Drive for a bidcard."""
    bidcard: str
    file_id: str
    name: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bidcard": self.bidcard,
            "fileId": self.file_id,
            "name": self.name,
            "invoiceUrl": self.url,
            "link": self.url,
        }


@dataclass
class SheetScan:
    """Per-spreadsheet scan details reported in debug mode."""
    file_name: str
    spreadsheet_id: str
    tabs_scanned: List[str] = field(default_factory=list)
    matched_tab: Optional[str] = None
    header_row: Optional[int] = None
    headers: Optional[List[str]] = None
    matched_rows: int = 0
    skipped_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "spreadsheetId": self.spreadsheet_id,
            "tabsScanned": self.tabs_scanned,
            "matchedTab": self.matched_tab,
            "matchedHeaderRow": self.header_row,
            "headers": self.headers,
            "matchedRows": self.matched_rows,
            "skippedReason": self.skipped_reason,
        }
