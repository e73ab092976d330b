"""Shared service-layer error types.

Every error carries the HTTP status it maps to, so the API layer can render
one JSON envelope for all of them. Centralised here to avoid circular imports
between service modules.
"""

from typing import Iterable, Optional


class AuctionToolError(Exception):
    """Base error for auction sheet operations."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(AuctionToolError):
    """The caller sent missing or malformed parameters."""

    status_code = 400


class ColumnNotFoundError(AuctionToolError):
    """One or more logical fields could not be matched to a header column."""

    status_code = 400

    def __init__(self, fields: Iterable[str], where: str = ""):
        self.fields = list(fields)
        location = f" in {where}" if where else ""
        super().__init__(
            f"Missing column(s){location}: {', '.join(self.fields)}",
            details={"missing": self.fields},
        )


class HeaderRowNotFoundError(AuctionToolError):
    """No row within the scan window looks like a header row."""

    status_code = 400


class NotFoundError(AuctionToolError):
    status_code = 404


class AuctionNotFoundError(NotFoundError):
    pass


class BidderNotFoundError(NotFoundError):
    pass


class InvoiceNotFoundError(NotFoundError):
    pass


class UpstreamError(AuctionToolError):
    """A Google API call failed (network, auth, quota)."""

    status_code = 500
