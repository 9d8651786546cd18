"""
Record selection, ordering and option lists for the presentation layer.

All predicates in a FilterCriteria are AND-combined; an unset predicate
selects everything, so FilterCriteria() passes every record through.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from payments_recon.normalizers import normalize_facility
from payments_recon.records import FacilityKey, PaymentRecord

SORT_FIELDS = ("paymentId", "paymentDate", "dateEntered")


@dataclass(frozen=True)
class FilterCriteria:
    payers: tuple[str, ...] = ()
    payment_types: tuple[str, ...] = ()
    facilities: tuple[str, ...] = ()
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    search: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @classmethod
    def build(
        cls,
        *,
        payers: Iterable[str] = (),
        payment_types: Iterable[str] = (),
        facilities: Iterable[str] = (),
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        search: str = "",
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> "FilterCriteria":
        """Normalise loose inputs (any facility spelling, untrimmed search)."""
        return cls(
            payers=tuple(payers),
            payment_types=tuple(payment_types),
            facilities=tuple(normalize_facility(name) for name in facilities),
            min_amount=min_amount,
            max_amount=max_amount,
            search=search.strip().lower(),
            date_from=date_from,
            date_to=date_to,
        )

    def matches(self, record: PaymentRecord) -> bool:
        if self.payers and record.payer not in self.payers:
            return False
        if self.payment_types and record.payment_type not in self.payment_types:
            return False
        if self.facilities and record.facility_norm not in self.facilities:
            return False
        if self.min_amount is not None and record.payment_amount < self.min_amount:
            return False
        if self.max_amount is not None and record.payment_amount > self.max_amount:
            return False
        if self.search:
            haystacks = (record.payer.lower(), record.notes.lower())
            if not any(self.search in text for text in haystacks):
                return False
        if record.date_entered is not None:
            if self.date_from is not None and record.date_entered < self.date_from:
                return False
            if self.date_to is not None and record.date_entered > self.date_to:
                return False
        return True


def apply_filters(records: list[PaymentRecord], criteria: Optional[FilterCriteria] = None) -> list[PaymentRecord]:
    if criteria is None:
        return list(records)
    return [record for record in records if criteria.matches(record)]


def _sort_key(by: str):
    if by == "paymentId":
        return lambda record: int(record.payment_id) if record.payment_id.isdigit() else 0
    if by == "paymentDate":
        return lambda record: record.payment_date or date.min
    if by == "dateEntered":
        return lambda record: record.date_entered or date.min
    raise ValueError(f"Unsupported sort field: {by!r}. Expected one of {SORT_FIELDS}")


def sort_records(
    records: list[PaymentRecord],
    by: Optional[str] = None,
    direction: str = "asc",
) -> list[PaymentRecord]:
    if by is None:
        return list(records)
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unsupported sort direction: {direction!r}")
    return sorted(records, key=_sort_key(by), reverse=direction == "desc")


def unique_payers(records: list[PaymentRecord]) -> list[str]:
    return sorted({record.payer for record in records if record.payer})


def unique_payment_types(records: list[PaymentRecord]) -> list[str]:
    return sorted({record.payment_type for record in records if record.payment_type})


def facility_keys(records: list[PaymentRecord]) -> list[FacilityKey]:
    """One key per distinct normalised facility, labelled by its first spelling."""
    labels: dict[str, str] = {}
    for record in records:
        if not record.facility:
            continue
        norm = record.facility_norm
        if norm and norm not in labels:
            labels[norm] = record.facility.strip()
    return sorted(
        (FacilityKey(norm=norm, label=label) for norm, label in labels.items()),
        key=lambda key: key.label,
    )
