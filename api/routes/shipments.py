"""
Shipments API

Outstanding shipments across every auction sheet in the auctions folder:
- GET /api/shipments/list - Paid, shipping requested, not yet shipped
- GET /api/shipments/diag - Header detection and filter counts for the first sheet
- GET /api/shipments/item - One row with its invoice link
- POST /api/shipments/item/update - Toggle paid / shipping required / shipped
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.auth import require_session
from api.dependencies import get_shipment_service
from services.shipments import ShipmentService

router = APIRouter(
    prefix="/api/shipments",
    tags=["Shipments"],
    dependencies=[Depends(require_session)],
)


class ItemUpdateRequest(BaseModel):
    """Shipping toggles for one sheet row."""
    sheetId: str = ""
    rowNumber: int = 0
    tab: Optional[str] = None
    updates: Dict[str, Any] = Field(
        default_factory=dict,
        description="paymentStatus / shippingRequired / shippedStatus -> bool",
    )


@router.get("/list")
def list_shipments(
    debug: bool = Query(False, description="Include per-sheet scan details"),
    q: Optional[str] = Query(None, description="Search name, bidder number or auction number"),
    sort: Optional[str] = Query(None, description="auction_asc, auction_desc, lots_asc or lots_desc"),
    service: ShipmentService = Depends(get_shipment_service),
):
    """List outstanding shipments in scan order, optionally searched and sorted."""
    report = service.list_outstanding(q=q, sort=sort)
    return {"success": True, **report.to_dict(debug=debug)}


@router.get("/diag")
def diagnose(service: ShipmentService = Depends(get_shipment_service)):
    """Why a sheet does or does not produce shipments."""
    return {"success": True, **service.diagnose()}


@router.get("/item")
def get_item(
    sheetId: str = Query(""),
    rowNumber: int = Query(0),
    tab: Optional[str] = Query(None),
    service: ShipmentService = Depends(get_shipment_service),
):
    """One sheet row as a shipment item; invoiceUrl is null when no invoice is found."""
    item = service.get_item(sheetId, rowNumber, tab=tab)
    data = item.to_dict()
    data["invoiceUrl"] = item.invoice_url
    return {"success": True, "item": data}


@router.post("/item/update")
def update_item(
    request: ItemUpdateRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    """Write the given toggles as Y / blank."""
    updated = service.update_item(
        request.sheetId, request.rowNumber, request.updates, tab=request.tab
    )
    return {"success": True, "rowNumber": request.rowNumber, "updated": updated}
