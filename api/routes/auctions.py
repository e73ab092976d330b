"""
Auction Sheet API

Bidder lookup and edits on a single auction's sheet:
- GET /api/auctions/bidder - Look up one bidder's row
- GET /api/auctions/invoice - Link to the bidder's invoice PDF
- POST /api/auctions/update - Write field values into the bidder's row
- GET /api/auctions/rows - Raw values of the auction tab
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.auth import require_session
from api.dependencies import get_bidder_service, get_directory, get_invoice_service
from core.logging_config import LogContext
from services.auction_directory import AuctionDirectory
from services.bidders import BidderService
from services.invoices import InvoiceService

router = APIRouter(
    prefix="/api/auctions",
    tags=["Auctions"],
    dependencies=[Depends(require_session)],
)


# =============================================================================
# MODELS
# =============================================================================

class BidderUpdateRequest(BaseModel):
    """Field values to write into one bidder's row."""
    auction: str = ""
    bidder: str = ""
    updates: Dict[str, Any] = Field(
        default_factory=dict,
        description="Field name or column header -> value; booleans are written as Y / blank",
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/bidder")
def get_bidder(
    auction: str = Query("", description="Auction name or number"),
    bidder: Optional[str] = Query(None),
    bidderNumber: Optional[str] = Query(None),
    bidcard: Optional[str] = Query(None),
    service: BidderService = Depends(get_bidder_service),
):
    """Find a bidder's row by bidder number (also accepted as bidderNumber or bidcard)."""
    number = bidder or bidderNumber or bidcard or ""
    with LogContext(auction=auction, bidder=number):
        record = service.lookup_bidder(auction, number)
    return {"success": True, "record": record.to_dict()}


@router.get("/invoice")
def get_invoice(
    bidcard: str = Query(""),
    auction: Optional[str] = Query(None),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Drive link to "{bidcard}.pdf" in the invoices folder."""
    with LogContext(auction=auction, bidder=bidcard):
        invoice = service.find_invoice(bidcard, auction=auction)
    return {"success": True, **invoice.to_dict()}


@router.post("/update")
def update_bidder(
    request: BidderUpdateRequest,
    service: BidderService = Depends(get_bidder_service),
):
    """Write the given values into the bidder's row in one batch."""
    with LogContext(auction=request.auction, bidder=request.bidder):
        result = service.update_bidder(request.auction, request.bidder, request.updates)
    return {"success": True, **result}


@router.get("/rows")
def get_rows(
    auction: str = Query("", description="Auction name or number"),
    directory: AuctionDirectory = Depends(get_directory),
):
    """All values of the auction's tab, header rows included."""
    with LogContext(auction=auction):
        sheet = directory.open(auction)
    return {
        "success": True,
        "auction": sheet.location.auction_name,
        "sheetId": sheet.location.spreadsheet_id,
        "tab": sheet.location.tab_name,
        "headerRow": sheet.header_index + 1,
        "headers": sheet.columns.headers,
        "rows": sheet.rows,
    }
