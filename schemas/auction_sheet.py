"""
Auction Sheet Schema - Header aliases and column resolution

Auction sheets are edited by hand, so the same logical column shows up as
"Shipped status", "Shipped Status" or "Shipping status" depending on who set
up the sheet. This module owns the one alias table every route uses, and
the helpers that turn a raw header row into column indexes and back into
A1 cell references.

Resolution Rule:
- exact (normalized) match, trying aliases in priority order
- then substring containment, trying aliases in priority order
- leftmost column wins when several headers match the same alias
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from services.errors import ColumnNotFoundError, HeaderRowNotFoundError


@dataclass(frozen=True)
class FieldSpec:
    """A logical field and the header spellings accepted for it."""
    key: str
    label: str  # canonical header, used in records and update payloads
    aliases: Tuple[str, ...]


# =============================================================================
# ALIAS TABLE
# =============================================================================

BIDDER_NUMBER = "bidder_number"
FIRST_NAME = "first_name"
LAST_NAME = "last_name"
LOTS_BOUGHT = "lots_bought"
BALANCE = "balance"
PAYMENT_STATUS = "payment_status"
SHIPPING_REQUIRED = "shipping_required"
SHIPPED_STATUS = "shipped_status"
REFUND = "refund"
NOTES = "notes"
PICKUP_STATUS = "pickup_status"
BUYER_PHONE = "buyer_phone"

FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        BIDDER_NUMBER, "Bidder Number",
        ("Bidder Number", "Bidcard", "Bid Card", "Bidcard #", "Bidcard Number",
         "Bid Card #", "Bidder #", "Bidder"),
    ),
    FieldSpec(FIRST_NAME, "Buyer First Name", ("Buyer First Name", "First Name", "Firstname")),
    FieldSpec(LAST_NAME, "Buyer Last Name", ("Buyer Last Name", "Last Name", "Lastname")),
    FieldSpec(
        LOTS_BOUGHT, "Lots Bought",
        ("Lots Bought", "Lots Won", "Lot Count", "Lots Won Count", "Lots"),
    ),
    FieldSpec(BALANCE, "Balance", ("Balance", "Balance Due")),
    FieldSpec(
        PAYMENT_STATUS, "Payment Status",
        ("Payment Status", "Paid", "Payment"),
    ),
    FieldSpec(
        SHIPPING_REQUIRED, "Shipping Required",
        ("Shipping Required", "Ship Required", "Shipping"),
    ),
    FieldSpec(
        SHIPPED_STATUS, "Shipped Status",
        ("Shipped Status", "Shipping Status", "Shipment Status", "Shipped", "Ship Status"),
    ),
    FieldSpec(REFUND, "Refund", ("Refund",)),
    FieldSpec(NOTES, "Notes", ("Notes", "Note")),
    FieldSpec(PICKUP_STATUS, "Pickup Status", ("Pickup Status", "Picked Up", "Pickup")),
    FieldSpec(BUYER_PHONE, "Buyer Phone", ("Buyer Phone", "Phone Number", "Phone")),
)

# Columns the outstanding-shipment filter cannot work without
SHIPMENT_REQUIRED_FIELDS = (BIDDER_NUMBER, PAYMENT_STATUS, SHIPPING_REQUIRED, SHIPPED_STATUS)

# Tokens that identify the real header row below any leading note rows
HEADER_SIGNATURES = ("bidder number", "bidcard", "bid card")

DEFAULT_HEADER_SCAN_ROWS = 15


# =============================================================================
# NORMALIZATION & RESOLUTION
# =============================================================================

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_header(value: Any) -> str:
    """Trim, lowercase and collapse internal whitespace runs."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value).strip().lower())


def resolve_column(
    headers: Sequence[Any],
    candidates: Iterable[str],
    allow_partial: bool = True,
) -> Optional[int]:
    """
    Find the column index for the first matching candidate alias.

    Candidate priority order governs, not document order: every candidate is
    tried for an exact match before any substring match is considered.

    Returns:
        0-based column index, or None if no header matches
    """
    normalized = [normalize_header(h) for h in headers]
    wanted = [c for c in (normalize_header(c) for c in candidates) if c]

    for candidate in wanted:
        for index, header in enumerate(normalized):
            if header == candidate:
                return index

    if allow_partial:
        for candidate in wanted:
            for index, header in enumerate(normalized):
                if candidate in header:
                    return index

    return None


def get_field_spec(name: str) -> Optional[FieldSpec]:
    """Look up a field by key, canonical label or any alias."""
    wanted = normalize_header(name)
    if not wanted:
        return None
    for spec in FIELD_SPECS:
        if wanted == spec.key or wanted == normalize_header(spec.label):
            return spec
    for spec in FIELD_SPECS:
        if wanted in (normalize_header(a) for a in spec.aliases):
            return spec
    return None


@dataclass
class ColumnMap:
    """Column indexes for one header row, resolved once at the boundary."""
    headers: List[str]
    indexes: Dict[str, Optional[int]] = field(default_factory=dict)

    def get(self, key: str) -> Optional[int]:
        return self.indexes.get(key)

    def missing(self, *keys: str) -> List[str]:
        return [k for k in keys if self.indexes.get(k) is None]

    def require(self, *keys: str, where: str = "") -> None:
        """Raise ColumnNotFoundError naming every unresolved field."""
        missing = self.missing(*keys)
        if missing:
            labels = [_LABELS.get(k, k) for k in missing]
            raise ColumnNotFoundError(labels, where=where)

    def value(self, row: Sequence[Any], key: str) -> str:
        """Trimmed cell for a logical field, "" when the column or cell is absent."""
        index = self.indexes.get(key)
        if index is None:
            return ""
        return cell(row, index)

    def as_dict(self) -> Dict[str, Optional[int]]:
        return dict(self.indexes)


_LABELS = {spec.key: spec.label for spec in FIELD_SPECS}


def resolve_columns(
    headers: Sequence[Any],
    specs: Sequence[FieldSpec] = FIELD_SPECS,
) -> ColumnMap:
    """Resolve every field in the alias table against one header row."""
    return ColumnMap(
        headers=[cell(headers, i) for i in range(len(headers))],
        indexes={spec.key: resolve_column(headers, spec.aliases) for spec in specs},
    )


def cell(row: Sequence[Any], index: int) -> str:
    """Trimmed cell value; sparse rows read as empty strings."""
    if index < 0 or index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value).strip()


# =============================================================================
# HEADER ROW
# =============================================================================

def find_header_row(
    rows: Sequence[Sequence[Any]],
    window: int = DEFAULT_HEADER_SCAN_ROWS,
    signatures: Sequence[str] = HEADER_SIGNATURES,
    strict: bool = True,
) -> int:
    """
    Locate the header row within the first `window` rows.

    A row qualifies when any of its normalized cells contains one of the
    signature tokens.

    Args:
        rows: Raw sheet values
        window: Number of leading rows to scan
        signatures: Tokens identifying a header row
        strict: Raise when nothing qualifies; otherwise fall back to row 0

    Returns:
        0-based index of the header row
    """
    tokens = [normalize_header(s) for s in signatures if normalize_header(s)]
    for index, row in enumerate(rows[:window]):
        cells = [normalize_header(c) for c in row]
        if any(token in c for c in cells for token in tokens):
            return index

    if strict:
        raise HeaderRowNotFoundError(
            f"No header row found in the first {window} rows "
            f"(looked for: {', '.join(signatures)})"
        )
    return 0


# =============================================================================
# A1 NOTATION
# =============================================================================

def column_index_to_letter(index: int) -> str:
    """Convert 0-based column index to Excel-style letter (A, B, ..., Z, AA, AB, ...)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative: {index}")
    result = ""
    while index >= 0:
        result = chr(index % 26 + ord('A')) + result
        index = index // 26 - 1
    return result


def column_letter_to_index(letters: str) -> int:
    """Convert Excel-style column letters back to a 0-based index."""
    text = (letters or "").strip().upper()
    if not text or not all("A" <= ch <= "Z" for ch in text):
        raise ValueError(f"Invalid column letters: {letters!r}")
    number = 0
    for ch in text:
        number = number * 26 + (ord(ch) - ord('A') + 1)
    return number - 1


def quote_tab(tab_name: str) -> str:
    """Quote a tab name for A1 ranges ("Auction 22" -> "'Auction 22'")."""
    return "'" + tab_name.replace("'", "''") + "'"


def cell_range(tab_name: str, column_index: int, row_number: int) -> str:
    """A1 reference for one cell, e.g. "'Auction 22'!F14"."""
    return f"{quote_tab(tab_name)}!{column_index_to_letter(column_index)}{row_number}"
