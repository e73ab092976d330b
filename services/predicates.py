"""Canonical cell predicates and auction name helpers.

Every route that interprets a Y/blank cell or an auction name goes through
this module, so the rules below are the only definitions in the codebase.
"""

import re
from typing import Any, Optional

YES_VALUES = frozenset({"y", "yes", "true", "1"})
YES_PREFIXES = ("y ", "y-")

_DIGITS_RE = re.compile(r"[0-9]+")
_AUCTION_RE = re.compile(r"auction\s+([0-9]+)", re.IGNORECASE)


def cell_text(value: Any) -> str:
    """Stringify a cell, treating None as empty, and trim it."""
    if value is None:
        return ""
    return str(value).strip()


def is_yes(value: Any) -> bool:
    """True for Y / yes / true / 1, or an annotated yes such as "y - hibid".

    "paid" is not a synonym and balances are not consulted.
    """
    text = cell_text(value).lower()
    if text in YES_VALUES:
        return True
    return text.startswith(YES_PREFIXES)


def is_blank(value: Any) -> bool:
    """True when the cell is missing or whitespace only."""
    return cell_text(value) == ""


def yes_flag(value: bool) -> str:
    """Encode a boolean the way staff write it in the sheet."""
    return "Y" if value else ""


def extract_auction_number(name: Any) -> Optional[int]:
    """Return the first run of digits in a file/tab name, e.g. "Auction 22" -> 22."""
    match = _DIGITS_RE.search(cell_text(name))
    return int(match.group(0)) if match else None


def normalize_auction_name(value: Any) -> str:
    """Canonicalize "22" and "auction   22" to "Auction 22"; pass anything else through."""
    text = cell_text(value)
    if _DIGITS_RE.fullmatch(text):
        return f"Auction {text}"
    match = _AUCTION_RE.fullmatch(text)
    if match:
        return f"Auction {match.group(1)}"
    return text
