from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from payments_recon.normalizers import normalize_facility

EXPORT_COLUMNS = [
    "paymentId",
    "payerCategory",
    "payer",
    "paymentType",
    "checkNumber",
    "dateEntered",
    "paymentDate",
    "paymentAmount",
    "facility",
    "appliedAmount",
    "unappliedAmount",
    "notes",
]

UNKNOWN_PAYMENT_TYPE = "Unknown"


@dataclass(frozen=True)
class PaymentRecord:
    """
    One (payment, facility) slice of a collected payment.

    Several records share a payment_id when a payment is split across
    facilities; payment_amount and unapplied_amount repeat on each of them.
    unapplied_amount stays None until reconciliation has run.
    """

    payment_id: str
    payer_category: str = ""
    payer: str = ""
    payment_type: str = UNKNOWN_PAYMENT_TYPE
    check_number: str = ""
    date_entered: Optional[date] = None
    payment_date: Optional[date] = None
    payment_amount: float = 0.0
    notes: str = ""
    facility: str = ""
    applied_amount: float = 0.0
    unapplied_amount: Optional[float] = None

    @property
    def facility_norm(self) -> str:
        return normalize_facility(self.facility)

    def to_export_row(self) -> dict:
        unapplied = self.unapplied_amount
        if unapplied is None:
            unapplied = self.payment_amount - self.applied_amount
        return {
            "paymentId": self.payment_id,
            "payerCategory": self.payer_category,
            "payer": self.payer,
            "paymentType": self.payment_type,
            "checkNumber": self.check_number,
            "dateEntered": _iso(self.date_entered),
            "paymentDate": _iso(self.payment_date),
            "paymentAmount": self.payment_amount,
            "facility": self.facility,
            "appliedAmount": self.applied_amount,
            "unappliedAmount": unapplied,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class FacilityKey:
    norm: str
    label: str


def _iso(value: Optional[date]) -> str:
    return value.isoformat() if value else ""
