"""Centralized configuration management with validation."""
import os
from dataclasses import dataclass, field
from typing import Optional, List, Dict

from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    status_code = 500


def _mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask a secret value for logging, showing only first few chars."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _parse_overrides(raw: str) -> Dict[str, str]:
    """Parse "Auction 22=Sheet1;Auction 23=Sheet2" into a name -> tab mapping."""
    overrides = {}
    for part in (raw or "").split(";"):
        if "=" not in part:
            continue
        name, tab = part.split("=", 1)
        if name.strip() and tab.strip():
            overrides[name.strip()] = tab.strip()
    return overrides


@dataclass
class GoogleConfig:
    """Google service account and sheet/folder locations."""
    service_account_json: str = ""  # raw JSON or base64 encoded JSON
    service_account_file: str = ""
    spreadsheet_id: str = ""  # workbook mode: one tab per auction
    sheet_tab_name: str = "Sheet1"
    auction_sheets_folder_id: str = ""  # folder mode: one spreadsheet per auction
    invoices_folder_id: str = ""
    tab_overrides: Dict[str, str] = field(default_factory=dict)

    @property
    def has_credentials(self) -> bool:
        return bool(self.service_account_json or self.service_account_file)

    def validate(self) -> List[str]:
        """Validate Google configuration, return list of errors."""
        errors = []
        if not self.has_credentials:
            errors.append("GOOGLE_SERVICE_ACCOUNT_JSON or GOOGLE_SERVICE_ACCOUNT_FILE is required")
        if not self.spreadsheet_id and not self.auction_sheets_folder_id:
            errors.append("GOOGLE_SHEET_ID or AUCTION_SHEETS_FOLDER_ID is required")
        return errors

    def __repr__(self) -> str:
        return (f"GoogleConfig(service_account_json={_mask_secret(self.service_account_json)}, "
                f"service_account_file={self.service_account_file}, "
                f"spreadsheet_id={self.spreadsheet_id}, "
                f"auction_sheets_folder_id={self.auction_sheets_folder_id}, "
                f"invoices_folder_id={self.invoices_folder_id})")


@dataclass
class AuthConfig:
    """Shift password and session signing settings."""
    shift_password: str = ""
    session_secret: str = ""
    session_hours: int = 12
    cookie_name: str = "shift_session"

    def validate(self) -> List[str]:
        """Validate auth configuration, return list of errors."""
        errors = []
        if not self.shift_password:
            errors.append("SHIFT_PASSWORD is required")
        if not self.session_secret:
            errors.append("SESSION_SECRET is required")
        if self.session_hours <= 0:
            errors.append("SESSION_HOURS must be positive")
        return errors

    def __repr__(self) -> str:
        return (f"AuthConfig(shift_password={_mask_secret(self.shift_password)}, "
                f"session_secret={_mask_secret(self.session_secret)}, "
                f"session_hours={self.session_hours})")


@dataclass
class AppConfig:
    """Main application configuration."""
    google: GoogleConfig = field(default_factory=GoogleConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    # Runtime settings
    log_level: str = "INFO"
    log_format: str = "text"  # "json" or "text"
    header_scan_rows: int = 15

    def validate(self, require_google: bool = True, require_auth: bool = True) -> None:
        """Validate all configuration, raise ConfigurationError if invalid."""
        errors = []

        if require_google:
            errors.extend(self.google.validate())
        if require_auth:
            errors.extend(self.auth.validate())
        if self.header_scan_rows <= 0:
            errors.append("HEADER_SCAN_ROWS must be positive")

        if errors:
            raise ConfigurationError("Configuration errors:\n  - " + "\n  - ".join(errors))

    def __repr__(self) -> str:
        return (f"AppConfig(\n  google={self.google},\n  auth={self.auth},\n  "
                f"log_level={self.log_level}, header_scan_rows={self.header_scan_rows}\n)")


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables."""

    # Load .env file if present
    load_dotenv()

    config = AppConfig(
        google=GoogleConfig(
            service_account_json=os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON", ""),
            service_account_file=os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", ""),
            spreadsheet_id=os.getenv("GOOGLE_SHEET_ID", ""),
            sheet_tab_name=os.getenv("SHEET_TAB_NAME", "Sheet1"),
            auction_sheets_folder_id=os.getenv("AUCTION_SHEETS_FOLDER_ID", ""),
            invoices_folder_id=os.getenv("INVOICES_FOLDER_ID", ""),
            tab_overrides=_parse_overrides(os.getenv("AUCTION_TAB_OVERRIDES", "")),
        ),
        auth=AuthConfig(
            shift_password=os.getenv("SHIFT_PASSWORD", ""),
            session_secret=os.getenv("SESSION_SECRET", ""),
            session_hours=int(os.getenv("SESSION_HOURS", "12")),
            cookie_name=os.getenv("SESSION_COOKIE_NAME", "shift_session"),
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "text"),
        header_scan_rows=int(os.getenv("HEADER_SCAN_ROWS", "15")),
    )

    return config


# Singleton config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config_from_env()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
