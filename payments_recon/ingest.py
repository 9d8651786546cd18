"""
Ingestion entry point: tokenized row matrix in, reconciled records out.

ingest() never raises on malformed content. Rows that cannot be a payment
(missing or non-numeric id, echoed headers, grand totals) are dropped
silently; an empty matrix yields an empty list.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Optional

from payments_recon.contracts import INGEST_CONTRACT, build_run_summary, contract_header
from payments_recon.detection import detect_layout, read_header
from payments_recon.extractors import extract_records
from payments_recon.reconcile import reconcile
from payments_recon.records import PaymentRecord

logger = logging.getLogger(__name__)

ASSUMPTIONS = [
    "The header row is the first of the first 30 rows mentioning 'payment id' or 'paymentid'; row 0 otherwise",
    "Rows whose payment id is blank, non-numeric, or an echoed header label are skipped",
    "Format 1 rows whose Payment cell mentions 'total' are grand totals and are skipped",
    "Format 1 payer names are split on the first ' - ' into category and payer",
    "Money keeps only digits, '.' and '-'; anything unparseable becomes 0",
    "Unparseable or blank dates are left empty, never guessed",
    "Unapplied = payment amount minus applied across all facility rows of the same payment, repeated on each row",
]


def ingest_with_format(matrix: list[list]) -> tuple[str, list[PaymentRecord]]:
    if not matrix:
        return "empty", []
    header_index, header = read_header(matrix)
    layout = detect_layout(header)
    records = extract_records(matrix[header_index + 1:], layout)
    logger.info("Detected %s; extracted %d records", layout.name, len(records))
    return layout.name, reconcile(records)


def ingest(matrix: list[list]) -> list[PaymentRecord]:
    return ingest_with_format(matrix)[1]


def build_ingest_summary(
    records: list[PaymentRecord],
    *,
    detected_format: str,
    input_path: Path,
    total_rows: int,
    output_path: Optional[Path] = None,
    warnings: Optional[list[str]] = None,
) -> dict[str, Any]:
    payment_ids = {record.payment_id for record in records}
    facility_rows = sum(1 for record in records if record.facility)
    type_counts = Counter(record.payment_type for record in records)
    metrics = {
        "detected_format": detected_format,
        "total_rows": total_rows,
        "records": len(records),
        "payments": len(payment_ids),
        "facility_rows": facility_rows,
    }
    return {
        **contract_header(INGEST_CONTRACT),
        "detected_format": detected_format,
        "input_file": str(input_path),
        "output_file": str(output_path) if output_path else None,
        "rows": {
            "total": total_rows,
            "records": len(records),
            "payments": len(payment_ids),
            "facility_rows": facility_rows,
            "without_facility": len(records) - facility_rows,
        },
        "payment_types": dict(sorted(type_counts.items())),
        "assumptions": list(ASSUMPTIONS),
        "run_summary": build_run_summary(
            command="ingest",
            input_path=input_path,
            output_path=output_path,
            warnings=warnings,
            metrics=metrics,
        ),
    }
