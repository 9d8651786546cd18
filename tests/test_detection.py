import unittest
from dataclasses import fields

from payments_recon.detection import (
    Format1Layout,
    Format2Layout,
    detect_layout,
    is_format2_header,
    locate_header_row,
)
from tests.helpers import FORMAT1_HEADER, FORMAT2_HEADER


class HeaderLocatorTests(unittest.TestCase):
    def test_header_after_report_preamble(self):
        rows = [["Collected Payments Report"], ["Run Date: 01/08/2024"], FORMAT1_HEADER]
        self.assertEqual(locate_header_row(rows), 2)

    def test_flat_header_is_found_case_insensitively(self):
        rows = [[], ["PAYMENTID", "payer"]]
        self.assertEqual(locate_header_row(rows), 1)

    def test_missing_header_falls_back_to_first_row(self):
        self.assertEqual(locate_header_row([["a", "b"], ["1", "2"]]), 0)
        self.assertEqual(locate_header_row([]), 0)

    def test_only_first_thirty_rows_are_scanned(self):
        rows = [["filler"]] * 30 + [FORMAT1_HEADER]
        self.assertEqual(locate_header_row(rows), 0)


class FormatDetectorTests(unittest.TestCase):
    def test_payer_category_column_means_flat_format(self):
        self.assertTrue(is_format2_header(FORMAT2_HEADER))
        self.assertTrue(is_format2_header(["Payment ID", "PayerCategory", "Payer Name"]))

    def test_payer_name_column_means_ledger_format(self):
        self.assertFalse(is_format2_header(FORMAT1_HEADER))
        self.assertFalse(is_format2_header(["paymentId", "Payer Name"]))

    def test_payment_id_column_without_payer_name_means_flat_format(self):
        self.assertTrue(is_format2_header(["paymentId", "payer", "paymentAmount"]))
        self.assertTrue(is_format2_header(["Payment ID", "Payer", "Payment"]))
        self.assertFalse(is_format2_header(["Payment", "Payer"]))

    def test_layouts_carry_column_positions(self):
        layout = detect_layout(FORMAT1_HEADER)
        self.assertIsInstance(layout, Format1Layout)
        self.assertEqual(layout.payment, 6)
        self.assertEqual(layout.payment_type, 2)

        flat = detect_layout(FORMAT2_HEADER)
        self.assertIsInstance(flat, Format2Layout)
        self.assertEqual(flat.payment_amount, 7)
        self.assertEqual(flat.facility, -1)
        self.assertEqual(flat.applied_amount, -1)

    def test_flat_layout_ignores_imported_unapplied_column(self):
        header = FORMAT2_HEADER + ["facility", "appliedAmount", "unappliedAmount"]
        flat = detect_layout(header)
        self.assertNotIn("unapplied_amount", {item.name for item in fields(flat)})
        self.assertEqual(flat.applied_amount, len(header) - 2)


if __name__ == "__main__":
    unittest.main()
