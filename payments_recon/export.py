"""Canonical export of reconciled records (CSV or XLSX)."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from payments_recon.records import EXPORT_COLUMNS, PaymentRecord

EXPORT_FORMATS = ("csv", "xlsx")
DEFAULT_EXPORT_NAME = "filtered_payments"


def records_to_frame(records: list[PaymentRecord]) -> pd.DataFrame:
    return pd.DataFrame([record.to_export_row() for record in records], columns=EXPORT_COLUMNS)


def write_export(records: list[PaymentRecord], path: Path, fmt: str | None = None) -> Path:
    """
    Write the canonical export; the format follows ``fmt`` or the path suffix.

    A CSV written here re-ingests as the flat format with identical records.
    """
    path = Path(path)
    fmt = (fmt or path.suffix.lstrip(".") or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt!r}. Expected one of {EXPORT_FORMATS}")
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = records_to_frame(records)
    if fmt == "xlsx":
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name="Payments", index=False)
    else:
        frame.to_csv(path, index=False)
    return path


def export_csv_bytes(records: list[PaymentRecord]) -> bytes:
    return records_to_frame(records).to_csv(index=False).encode("utf-8")
