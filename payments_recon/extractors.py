"""
Record extraction for both export formats.

Format 2 is one record per qualifying row. Format 1 needs a forward scan:
each payment row owns the rows up to the next payment row (or an echoed
header), and inside that block an inline sub-header with "Facility" and
"Applied" columns introduces the per-facility value rows.

The block scan runs as a small state machine over a row cursor:

    SEEKING_SUBHEADER --(facility/applied sub-header)--> CONSUMING_VALUES
    SEEKING_SUBHEADER --(block end)--> DONE   (bare record, no facility)
    CONSUMING_VALUES  --(block end)--> DONE   (facility records only)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from payments_recon.detection import Format1Layout, Format2Layout, Layout
from payments_recon.normalizers import (
    cell_at,
    cell_text,
    is_all_digits,
    normalize_date,
    normalize_money,
    split_payer,
)
from payments_recon.records import UNKNOWN_PAYMENT_TYPE, PaymentRecord

logger = logging.getLogger(__name__)

SEEKING_SUBHEADER = "seeking-subheader"
CONSUMING_VALUES = "consuming-values"
DONE = "done"

FORMAT1_HEADER_LABEL = "payment id"
FORMAT2_HEADER_LABEL = "paymentid"
FACILITY_LABEL = "facility"
APPLIED_LABEL = "applied"
FACILITY_TOTAL_LABEL = "facility total:"
GRAND_TOTAL_MARKER = "total"


@dataclass
class BlockScan:
    """Outcome of scanning one payment's block."""

    end: int
    found_subheader: bool = False
    records: list[PaymentRecord] = field(default_factory=list)


def _lowered_cells(row: list) -> list[str]:
    return [cell_text(cell).strip().lower() for cell in row or []]


def _payment_type(value: str) -> str:
    return value or UNKNOWN_PAYMENT_TYPE


def _ends_block(row: list, lowered: list[str], layout: Format1Layout) -> bool:
    return FORMAT1_HEADER_LABEL in lowered or is_all_digits(cell_at(row, layout.payment_id))


def is_format1_payment_row(row: list, layout: Format1Layout) -> bool:
    payment_id = cell_at(row, layout.payment_id)
    if not payment_id or payment_id.lower() == FORMAT1_HEADER_LABEL:
        return False
    if GRAND_TOTAL_MARKER in cell_at(row, layout.payment).lower():
        return False
    return is_all_digits(payment_id)


def build_format1_base(row: list, layout: Format1Layout) -> PaymentRecord:
    category, payer = split_payer(cell_at(row, layout.payer_name, strip=False))
    return PaymentRecord(
        payment_id=cell_at(row, layout.payment_id),
        payer_category=category or "",
        payer=payer,
        payment_type=_payment_type(cell_at(row, layout.payment_type)),
        check_number=cell_at(row, layout.check_number),
        date_entered=normalize_date(cell_at(row, layout.date_entered)),
        payment_date=normalize_date(cell_at(row, layout.payment_date)),
        payment_amount=normalize_money(cell_at(row, layout.payment)),
        notes=cell_at(row, layout.notes),
    )


def scan_facility_block(
    rows: list[list],
    start: int,
    base: PaymentRecord,
    layout: Format1Layout,
) -> BlockScan:
    """Scan rows[start:] for the facility slices of ``base``."""
    state = SEEKING_SUBHEADER
    cursor = start
    facility_col = applied_col = -1
    scan = BlockScan(end=start)

    while state != DONE:
        if cursor >= len(rows):
            state = DONE
            continue
        row = rows[cursor] or []
        lowered = _lowered_cells(row)

        if state == SEEKING_SUBHEADER:
            if _ends_block(row, lowered, layout):
                state = DONE
                continue
            if FACILITY_LABEL in lowered and APPLIED_LABEL in lowered:
                facility_col = lowered.index(FACILITY_LABEL)
                applied_col = lowered.index(APPLIED_LABEL)
                scan.found_subheader = True
                state = CONSUMING_VALUES
            cursor += 1
            continue

        # CONSUMING_VALUES
        if FACILITY_TOTAL_LABEL in lowered or not any(lowered):
            cursor += 1
            continue
        if _ends_block(row, lowered, layout):
            state = DONE
            continue
        facility = cell_at(row, facility_col)
        if facility:
            scan.records.append(
                replace(
                    base,
                    facility=facility,
                    applied_amount=normalize_money(cell_at(row, applied_col)),
                )
            )
        cursor += 1

    scan.end = cursor
    return scan


def extract_format1(rows: list[list], layout: Format1Layout) -> list[PaymentRecord]:
    records: list[PaymentRecord] = []
    index = 0
    while index < len(rows):
        row = rows[index] or []
        if not is_format1_payment_row(row, layout):
            index += 1
            continue

        base = build_format1_base(row, layout)
        scan = scan_facility_block(rows, index + 1, base, layout)
        if scan.found_subheader:
            records.extend(scan.records)
            if not scan.records:
                logger.debug("Payment %s has an empty facility block", base.payment_id)
        else:
            records.append(base)
        index = scan.end
    return records


def extract_format2(rows: list[list], layout: Format2Layout) -> list[PaymentRecord]:
    records: list[PaymentRecord] = []
    skipped = 0
    for row in rows:
        row = row or []
        payment_id = cell_at(row, layout.payment_id)
        if (
            not payment_id
            or payment_id.lower() == FORMAT2_HEADER_LABEL
            or not is_all_digits(payment_id)
        ):
            skipped += 1
            continue
        records.append(
            PaymentRecord(
                payment_id=payment_id,
                payer_category=cell_at(row, layout.payer_category),
                payer=cell_at(row, layout.payer),
                payment_type=_payment_type(cell_at(row, layout.payment_type)),
                check_number=cell_at(row, layout.check_number),
                date_entered=normalize_date(cell_at(row, layout.date_entered)),
                payment_date=normalize_date(cell_at(row, layout.payment_date)),
                payment_amount=normalize_money(cell_at(row, layout.payment_amount)),
                notes=cell_at(row, layout.notes),
                facility=cell_at(row, layout.facility),
                applied_amount=normalize_money(cell_at(row, layout.applied_amount)),
            )
        )
    if skipped:
        logger.debug("Skipped %d format 2 rows without a numeric paymentId", skipped)
    return records


def extract_records(rows: list[list], layout: Layout) -> list[PaymentRecord]:
    """Dispatch the data rows (everything after the header) to the layout's extractor."""
    if isinstance(layout, Format2Layout):
        return extract_format2(rows, layout)
    return extract_format1(rows, layout)
