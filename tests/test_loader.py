import tempfile
import unittest
from pathlib import Path

from openpyxl import Workbook

from payments_recon.ingest import ingest_with_format
from payments_recon.loader import load_matrix, load_matrix_from_bytes

REPO_ROOT = Path(__file__).resolve().parents[1]
SAMPLE_DIR = REPO_ROOT / "sample-data"


class TextLoaderTests(unittest.TestCase):
    def test_ledger_sample_keeps_separator_rows(self):
        loaded = load_matrix(SAMPLE_DIR / "collected_payments.csv")

        self.assertEqual(loaded["detected_format"], "csv")
        self.assertEqual(loaded["delimiter"], ",")
        self.assertEqual(loaded["rows"][2][0], "Payment ID")
        self.assertIn([""] * 8, loaded["rows"])

    def test_semicolon_delimited_cp1252_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "payments.csv"
            text = (
                "paymentId;payerCategory;payer;paymentType;checkNumber;dateEntered;paymentDate;paymentAmount;notes\n"
                "1001;Insurance;Café Santé;Check;1;2024-01-05;2024-01-03;150,00;résumé\n"
                "1002;Patient;José;Cash;;2024-01-06;;20;\n"
            )
            path.write_bytes(text.encode("cp1252"))
            loaded = load_matrix(path)

        self.assertEqual(loaded["delimiter"], ";")
        self.assertEqual(loaded["rows"][1][0], "1001")
        self.assertTrue(loaded["rows"][1][2].startswith("Caf"))
        self.assertEqual(len(loaded["rows"]), 3)

    def test_utf8_bom_and_blank_lines_are_dropped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "payments.csv"
            path.write_bytes(b"\xef\xbb\xbfpaymentId,payer\n\n1001,Acme\n")
            loaded = load_matrix(path)

        self.assertEqual(loaded["rows"], [["paymentId", "payer"], ["1001", "Acme"]])

    def test_tsv_uses_tab_delimiter(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "payments.tsv"
            path.write_text("paymentId\tpayer\n1001\tAcme, Inc\n", encoding="utf-8")
            loaded = load_matrix(path)

        self.assertEqual(loaded["rows"][1], ["1001", "Acme, Inc"])

    def test_missing_and_unsupported_files_raise(self):
        with self.assertRaises(FileNotFoundError):
            load_matrix(SAMPLE_DIR / "does-not-exist.csv")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "payments.pdf"
            path.write_bytes(b"%PDF")
            with self.assertRaisesRegex(ValueError, "Unsupported file type"):
                load_matrix(path)

    def test_bytes_upload_matches_file_load(self):
        data = (SAMPLE_DIR / "filtered_payments.csv").read_bytes()
        self.assertEqual(
            load_matrix_from_bytes(data, ".CSV")["rows"],
            load_matrix(SAMPLE_DIR / "filtered_payments.csv")["rows"],
        )


class WorkbookLoaderTests(unittest.TestCase):
    def _write_workbook(self, path: Path, extra_sheet: bool = False) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Collected"
        ws.append(["Payment ID", "Payer Name", "Payment Type", "Check #", "Date Entered", "Payment Date", "Payment", "Notes"])
        ws.append([2001, "Insurance - Acme Co", "Check", 5552, "2024-01-05", "2024-01-03", 150.0, None])
        ws.append(["Facility", "Applied"])
        ws.append(["Clinic A", 100])
        ws.append(["Clinic B", 30.0])
        if extra_sheet:
            wb.create_sheet("Notes").append(["nothing here"])
        wb.save(path)

    def test_workbook_rows_become_text_cells(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "collected.xlsx"
            self._write_workbook(path)
            loaded = load_matrix(path)

        self.assertEqual(loaded["sheet_name"], "Collected")
        self.assertEqual(loaded["rows"][1][0], "2001")
        self.assertEqual(loaded["warnings"], [])

        detected, records = ingest_with_format(loaded["rows"])
        self.assertEqual(detected, "format1")
        self.assertEqual([(r.facility, r.applied_amount) for r in records], [("Clinic A", 100.0), ("Clinic B", 30.0)])
        self.assertEqual({r.unapplied_amount for r in records}, {20.0})

    def test_multiple_sheets_warn_and_named_sheet_is_respected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "collected.xlsx"
            self._write_workbook(path, extra_sheet=True)
            default = load_matrix(path)
            named = load_matrix(path, sheet_name="Notes")
            with self.assertRaisesRegex(ValueError, "not found"):
                load_matrix(path, sheet_name="Missing")

        self.assertEqual(len(default["warnings"]), 1)
        self.assertEqual(named["rows"], [["nothing here"]])

    def test_corrupt_workbook_raises_value_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.xlsx"
            path.write_bytes(b"not a zip archive")
            with self.assertRaises(ValueError):
                load_matrix(path)


if __name__ == "__main__":
    unittest.main()
