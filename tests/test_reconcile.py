import unittest

from payments_recon.reconcile import applied_by_payment, reconcile
from tests.helpers import record


class ReconcileTests(unittest.TestCase):
    def test_unapplied_is_broadcast_to_every_slice_of_a_payment(self):
        records = [
            record("2001", 150.0, facility="Clinic A", applied=100.0),
            record("2001", 150.0, facility="Clinic B", applied=30.0),
            record("2002", 40.0),
        ]
        reconciled = reconcile(records)

        self.assertEqual([r.unapplied_amount for r in reconciled], [20.0, 20.0, 40.0])

    def test_amount_and_unapplied_are_constant_within_each_payment(self):
        records = [
            record("1", 100.0, facility="A", applied=10.0),
            record("2", 50.0, facility="A", applied=50.0),
            record("1", 100.0, facility="B", applied=15.5),
            record("3", 0.0),
            record("1", 100.0, facility="C", applied=0.0),
        ]
        groups = {}
        for item in reconcile(records):
            groups.setdefault(item.payment_id, set()).add((item.payment_amount, item.unapplied_amount))

        for payment_id, values in groups.items():
            with self.subTest(payment_id=payment_id):
                self.assertEqual(len(values), 1)
        self.assertEqual(groups["1"], {(100.0, 74.5)})

    def test_conflicting_flat_rows_resolve_to_first_amount(self):
        records = [record("7", 80.0, facility="A", applied=30.0), record("7", 90.0, facility="B", applied=10.0)]
        reconciled = reconcile(records)

        self.assertEqual([r.payment_amount for r in reconciled], [80.0, 80.0])
        self.assertEqual([r.unapplied_amount for r in reconciled], [40.0, 40.0])

    def test_over_application_goes_negative(self):
        reconciled = reconcile([record("9", 50.0, facility="A", applied=70.0)])
        self.assertEqual(reconciled[0].unapplied_amount, -20.0)

    def test_inputs_are_not_mutated(self):
        original = [record("1", 10.0, facility="A", applied=4.0)]
        reconcile(original)
        self.assertIsNone(original[0].unapplied_amount)

    def test_applied_by_payment(self):
        records = [record("1", 10.0, applied=4.0), record("1", 10.0, applied=5.0), record("2", 3.0)]
        self.assertEqual(applied_by_payment(records), {"1": 9.0, "2": 0.0})

    def test_empty_input(self):
        self.assertEqual(reconcile([]), [])


if __name__ == "__main__":
    unittest.main()
