"""
Header location and format detection.

The billing system exports payments in two shapes:

    Format 1  nested ledger: one "Payment ID" row per payment followed by
              inline "Facility / Applied" sub-tables
    Format 2  flat export with camelCase columns (paymentId, payerCategory, ...),
              including re-imports of our own canonical export

detect_layout() resolves the shape once and returns a layout object carrying
the column positions the matching extractor needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from payments_recon.normalizers import cell_text

logger = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 30
HEADER_MARKERS = ("payment id", "paymentid")


@dataclass(frozen=True)
class Format1Layout:
    payment_id: int
    payer_name: int
    payment_type: int
    check_number: int
    date_entered: int
    payment_date: int
    payment: int
    notes: int

    name = "format1"


@dataclass(frozen=True)
class Format2Layout:
    payment_id: int
    payer_category: int
    payer: int
    payment_type: int
    check_number: int
    date_entered: int
    payment_date: int
    payment_amount: int
    notes: int
    facility: int
    applied_amount: int

    name = "format2"


Layout = Union[Format1Layout, Format2Layout]


def locate_header_row(rows: list[list], limit: int = HEADER_SCAN_LIMIT) -> int:
    """Index of the first row mentioning a payment id column, or 0 if none does."""
    for index, row in enumerate(rows[:limit]):
        lowered = [cell_text(cell).lower() for cell in row or []]
        if any(marker in cell for cell in lowered for marker in HEADER_MARKERS):
            return index
    return 0


def is_format2_header(header: list[str]) -> bool:
    lowered = [cell.lower() for cell in header]
    if any("payercategory" in cell for cell in lowered):
        return True
    if any("payer name" in cell for cell in lowered):
        return False
    return any("".join(cell.split()) == "paymentid" for cell in lowered)


def column_index(header: list[str], name: str) -> int:
    target = name.lower()
    for index, cell in enumerate(header):
        if cell.lower() == target:
            return index
    return -1


def detect_layout(header: list[str]) -> Layout:
    """Build the layout for an already trimmed header row."""
    if is_format2_header(header):
        return Format2Layout(
            payment_id=column_index(header, "paymentId"),
            payer_category=column_index(header, "payerCategory"),
            payer=column_index(header, "payer"),
            payment_type=column_index(header, "paymentType"),
            check_number=column_index(header, "checkNumber"),
            date_entered=column_index(header, "dateEntered"),
            payment_date=column_index(header, "paymentDate"),
            payment_amount=column_index(header, "paymentAmount"),
            notes=column_index(header, "notes"),
            facility=column_index(header, "facility"),
            applied_amount=column_index(header, "appliedAmount"),
        )
    return Format1Layout(
        payment_id=column_index(header, "Payment ID"),
        payer_name=column_index(header, "Payer Name"),
        payment_type=column_index(header, "Payment Type"),
        check_number=column_index(header, "Check #"),
        date_entered=column_index(header, "Date Entered"),
        payment_date=column_index(header, "Payment Date"),
        payment=column_index(header, "Payment"),
        notes=column_index(header, "Notes"),
    )


def read_header(rows: list[list]) -> tuple[int, list[str]]:
    header_index = locate_header_row(rows)
    header = [cell_text(cell).strip() for cell in (rows[header_index] if rows else [])]
    logger.debug("Header row located at index %d: %s", header_index, header)
    return header_index, header
