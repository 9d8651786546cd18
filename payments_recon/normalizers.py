"""
Stateless value cleaners shared by both extractors.

None of these raise on malformed input: money degrades to 0.0, dates to
None, labels to "".
"""

from __future__ import annotations

import re
import warnings
from datetime import date
from typing import Any, Optional

import pandas as pd

MONEY_STRIP_RE = re.compile(r"[^0-9.\-]")
LEADING_NUMBER_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")
DIGITS_RE = re.compile(r"[0-9]+")
WHITESPACE_RUN_RE = re.compile(r"\s+")

PAYER_SEPARATOR = " - "
NBSP = "\u00a0"
# pandas resolves these against the clock; a cell holding them names no date
RELATIVE_DATE_WORDS = frozenset({"now", "today"})


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value)


def cell_at(row: list, index: int, *, strip: bool = True) -> str:
    """Text of row[index], trimmed unless strip=False; "" for a missing column or a short row."""
    if index < 0 or index >= len(row):
        return ""
    text = cell_text(row[index])
    return text.strip() if strip else text


def is_all_digits(value: str) -> bool:
    return bool(DIGITS_RE.fullmatch(value))


def normalize_money(value: Any) -> float:
    cleaned = MONEY_STRIP_RE.sub("", cell_text(value))
    match = LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def normalize_date(value: Any) -> Optional[date]:
    raw = cell_text(value).strip()
    if not raw or raw.casefold() in RELATIVE_DATE_WORDS:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(raw, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def normalize_facility(value: Any) -> str:
    text = cell_text(value).replace(NBSP, " ")
    return WHITESPACE_RUN_RE.sub(" ", text).strip().casefold()


def split_payer(value: Any) -> tuple[Optional[str], str]:
    """
    Split a combined "Category - Name" field.

    Only the first separator splits; later ones stay in the payer name.
    Without a separator the category is None and the whole string is the payer.
    """
    text = cell_text(value)
    if PAYER_SEPARATOR not in text:
        return None, text.strip()
    category, _, payer = text.partition(PAYER_SEPARATOR)
    return category.strip(), payer.strip()
