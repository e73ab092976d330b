"""Invoice PDF lookup in the invoices Drive folder."""

import logging
from typing import Optional

from core.config import AppConfig, ConfigurationError
from models.bidder import Invoice
from services.errors import AuctionToolError, InvalidRequestError, InvoiceNotFoundError
from services.google_workspace import GoogleWorkspace
from services.predicates import cell_text

logger = logging.getLogger(__name__)


def invoice_filename(bidcard: str) -> str:
    """Invoices are stored one per bidder as "{bidcard}.pdf"."""
    return f"{bidcard}.pdf"


class InvoiceService:
    """Finds a bidder's invoice PDF in Drive."""

    def __init__(self, workspace: GoogleWorkspace, config: AppConfig):
        self.workspace = workspace
        self.config = config

    def find_invoice(self, bidcard: str, auction: Optional[str] = None) -> Invoice:
        """
        Look up "{bidcard}.pdf" in INVOICES_FOLDER_ID.

        Invoices share one folder across auctions, so auction only labels the log line.

        Raises:
            ConfigurationError: INVOICES_FOLDER_ID not set
            InvalidRequestError: blank bidcard
            InvoiceNotFoundError: no such file
        """
        folder_id = self.config.google.invoices_folder_id
        if not folder_id:
            raise ConfigurationError("Missing INVOICES_FOLDER_ID")

        bidcard = cell_text(bidcard)
        if not bidcard:
            raise InvalidRequestError("Missing bidcard")

        name = invoice_filename(bidcard)
        found = self.workspace.find_file(folder_id, name)
        if found is None:
            raise InvoiceNotFoundError(f"Invoice not found: {name}")

        where = f" (auction {auction})" if auction else ""
        logger.info(f"Invoice for bidcard {bidcard}{where}: {found.id}")
        return Invoice(bidcard=bidcard, file_id=found.id, name=found.name, url=found.view_url)

    def find_invoice_url(self, bidcard: str) -> Optional[str]:
        """
        Invoice link for decorating other views, or None when it cannot be resolved.

        Drive failures are logged and swallowed; the caller still renders without a link.
        """
        if not self.config.google.invoices_folder_id or not cell_text(bidcard):
            return None
        try:
            return self.find_invoice(bidcard).url
        except InvoiceNotFoundError:
            return None
        except AuctionToolError as e:
            logger.warning(f"Invoice lookup failed for bidcard {bidcard}: {e}")
            return None
