"""
loader.py: turn a payment export file into a tokenized row matrix

Supports: .csv .tsv .txt .xlsx .xlsm

Public API:
    result = load_matrix("path/to/export.csv")
    rows   = result["rows"]

Result dict keys:
    rows             : list of rows, each a list of str cells (always present)
    detected_format  : "csv", "xlsx", ...
    detected_encoding: encoding name for text files; None for workbooks
    delimiter        : delimiter char for text files; None otherwise
    sheet_name       : active sheet for workbooks; None otherwise
    sheet_names      : all sheet names for workbooks; None otherwise
    warnings         : list of warning strings

This is the only layer that raises for unreadable input (FileNotFoundError,
ValueError); everything downstream works on whatever rows it returns.
"""

from __future__ import annotations

import csv
import io
import logging
import tempfile
from collections import Counter
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import chardet
import pandas as pd

logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm"}
ALL_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS

DELIMITER_CANDIDATES = (",", ";", "\t", "|")
FALLBACK_ENCODING = "cp1252"


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw[:200_000])
    return result.get("encoding") or "utf-8"


def _decode_line(raw_line: bytes, encodings: tuple[str, ...]) -> str:
    for encoding in encodings:
        try:
            return raw_line.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    return raw_line.decode(FALLBACK_ENCODING, errors="replace")


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode an export one line at a time.

    Billing exports are often UTF-8 with a few Windows-1252 payer names pasted
    in, so each line gets UTF-8 first, then the chardet guess, then latin-1.
    NUL bytes and a leading BOM are dropped.
    """
    encodings = tuple(dict.fromkeys(enc for enc in ("utf-8", preferred_encoding, "latin-1") if enc))
    text = "\n".join(_decode_line(line, encodings) for line in raw.split(b"\n"))
    return text.replace("\x00", "").lstrip("\ufeff")


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _width_consistency(lines: list[str], delimiter: str) -> tuple[int, float]:
    widths = Counter(len(row) for row in csv.reader(lines, delimiter=delimiter) if row)
    if not widths:
        return 0, 0.0
    width, count = widths.most_common(1)[0]
    return width, count / sum(widths.values())


def _detect_delimiter(text: str) -> str:
    """
    Pick the delimiter for a text export.

    csv.Sniffer decides when it can. Ledger exports defeat it (preamble rows,
    ragged facility blocks), so the fallback prefers the candidate that splits
    most lines into the same, widest column count.
    """
    lines = [line for line in text.splitlines() if line.strip()][:50]
    if not lines:
        return ","

    try:
        return csv.Sniffer().sniff("\n".join(lines[:25]), delimiters="".join(DELIMITER_CANDIDATES)).delimiter
    except csv.Error:
        logger.debug("csv.Sniffer could not decide; scoring candidates")

    def score(delimiter: str) -> float:
        width, share = _width_consistency(lines, delimiter)
        return 0.0 if width < 2 else width * (1.0 + share)

    best = max(DELIMITER_CANDIDATES, key=score)
    return best if score(best) > 0 else ","


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(path: Path, suffix: str) -> dict:
    """Load .csv, .tsv, or .txt into a row matrix, dropping fully empty lines."""
    raw = path.read_bytes()
    encoding = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)

    try:
        rows = [row for row in csv.reader(io.StringIO(text), delimiter=delimiter) if row]
    except csv.Error as exc:
        raise ValueError(f"Could not parse {suffix} file: {exc}") from exc

    return {
        "rows":              rows,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": encoding,
        "delimiter":         delimiter,
        "sheet_name":        None,
        "sheet_names":       None,
        "warnings":          [],
    }


def _excel_cell(value) -> str:
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _load_excel(path: Path, suffix: str, sheet_name: Optional[str] = None) -> dict:
    """Load one sheet of an .xlsx/.xlsm workbook without treating any row as header."""
    warnings: list[str] = []
    try:
        workbook = pd.ExcelFile(path, engine="openpyxl")
    except Exception as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc

    with workbook as xf:
        all_sheets = list(xf.sheet_names)
        if sheet_name is not None and sheet_name not in all_sheets:
            raise ValueError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
        chosen = sheet_name if sheet_name is not None else all_sheets[0]
        df = pd.read_excel(xf, sheet_name=chosen, header=None, dtype=object)

    if sheet_name is None and len(all_sheets) > 1:
        warnings.append(
            f"Workbook has {len(all_sheets)} sheets; using '{chosen}'. Pass a sheet name to choose another."
        )

    rows = [[_excel_cell(value) for value in record] for record in df.itertuples(index=False, name=None)]

    return {
        "rows":              rows,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter":         None,
        "sheet_name":        chosen,
        "sheet_names":       all_sheets,
        "warnings":          warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_matrix(path, sheet_name: Optional[str] = None) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in ALL_FORMATS:
        raise ValueError(
            f"Unsupported file type '{suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(ALL_FORMATS))}"
        )

    if suffix in EXCEL_FORMATS:
        result = _load_excel(path, suffix, sheet_name)
    else:
        result = _load_text(path, suffix)
    logger.info("Loaded %d rows from %s", len(result["rows"]), path.name)
    return result


def load_matrix_from_bytes(data: bytes, suffix: str, sheet_name: Optional[str] = None) -> dict:
    """Same as load_matrix for in-memory uploads (the web dashboard)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / f"upload{suffix.lower()}"
        path.write_bytes(data)
        return load_matrix(path, sheet_name=sheet_name)
