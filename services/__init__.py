"""Services for the auction shift tools.

Only the error types are re-exported here: schemas.auction_sheet imports
them, and the service modules import schemas, so eager imports of the
services from this package would be circular.
"""

from services.errors import (
    AuctionToolError,
    InvalidRequestError,
    ColumnNotFoundError,
    HeaderRowNotFoundError,
    NotFoundError,
    AuctionNotFoundError,
    BidderNotFoundError,
    InvoiceNotFoundError,
    UpstreamError,
)

__all__ = [
    "AuctionToolError",
    "InvalidRequestError",
    "ColumnNotFoundError",
    "HeaderRowNotFoundError",
    "NotFoundError",
    "AuctionNotFoundError",
    "BidderNotFoundError",
    "InvoiceNotFoundError",
    "UpstreamError",
]
