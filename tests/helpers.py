from __future__ import annotations

from datetime import date

from payments_recon.records import PaymentRecord

FORMAT1_HEADER = ["Payment ID", "Payer Name", "Payment Type", "Check #", "Date Entered", "Payment Date", "Payment", "Notes"]
FORMAT2_HEADER = [
    "paymentId",
    "payerCategory",
    "payer",
    "paymentType",
    "checkNumber",
    "dateEntered",
    "paymentDate",
    "paymentAmount",
    "notes",
]
BLANK = [""] * len(FORMAT1_HEADER)
SUBHEADER = ["Facility", "Applied", "", "", "", "", "", ""]


def payment_row(payment_id: str = "2001", amount: str = "150.00", payer: str = "Insurance - Acme Co") -> list[str]:
    return [payment_id, payer, "Check", "5552", "2024-01-05", "2024-01-03", amount, ""]


def value_row(facility: str, applied: str) -> list[str]:
    return [facility, applied, "", "", "", "", "", ""]


def record(
    payment_id: str,
    amount: float,
    *,
    facility: str = "",
    applied: float = 0.0,
    unapplied: float | None = None,
    payer: str = "Acme Co",
    payment_type: str = "Check",
    entered: date | None = date(2024, 1, 5),
    notes: str = "",
) -> PaymentRecord:
    return PaymentRecord(
        payment_id=payment_id,
        payer=payer,
        payment_type=payment_type,
        date_entered=entered,
        payment_amount=amount,
        facility=facility,
        applied_amount=applied,
        unapplied_amount=unapplied,
        notes=notes,
    )
