"""FastAPI dependency wiring for config and the Google-backed services.

Each request gets one GoogleWorkspace shared by every service it touches.
Tests replace get_app_config / get_workspace through app.dependency_overrides.
"""
from fastapi import Depends

from core.config import AppConfig, get_config
from services.auction_directory import AuctionDirectory
from services.bidders import BidderService
from services.google_workspace import GoogleWorkspace
from services.invoices import InvoiceService
from services.shipments import ShipmentService


def get_app_config() -> AppConfig:
    return get_config()


def get_workspace(config: AppConfig = Depends(get_app_config)) -> GoogleWorkspace:
    return GoogleWorkspace(config.google)


def get_directory(
    workspace: GoogleWorkspace = Depends(get_workspace),
    config: AppConfig = Depends(get_app_config),
) -> AuctionDirectory:
    return AuctionDirectory(workspace, config)


def get_bidder_service(
    workspace: GoogleWorkspace = Depends(get_workspace),
    directory: AuctionDirectory = Depends(get_directory),
) -> BidderService:
    return BidderService(workspace, directory)


def get_invoice_service(
    workspace: GoogleWorkspace = Depends(get_workspace),
    config: AppConfig = Depends(get_app_config),
) -> InvoiceService:
    return InvoiceService(workspace, config)


def get_shipment_service(
    workspace: GoogleWorkspace = Depends(get_workspace),
    directory: AuctionDirectory = Depends(get_directory),
    invoices: InvoiceService = Depends(get_invoice_service),
    config: AppConfig = Depends(get_app_config),
) -> ShipmentService:
    return ShipmentService(workspace, directory, invoices, config)
