"""
Applied/unapplied reconciliation.

A payment's unapplied balance is its amount minus everything applied across
all of its facility slices. The same balance is written to every slice of
the payment; it is not a per-facility remainder.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace

from payments_recon.records import PaymentRecord

logger = logging.getLogger(__name__)


def applied_by_payment(records: list[PaymentRecord]) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for record in records:
        totals[record.payment_id] += record.applied_amount
    return dict(totals)


def amount_by_payment(records: list[PaymentRecord]) -> dict[str, float]:
    """First-seen payment amount per payment id."""
    amounts: dict[str, float] = {}
    for record in records:
        amounts.setdefault(record.payment_id, record.payment_amount)
    return amounts


def reconcile(records: list[PaymentRecord]) -> list[PaymentRecord]:
    """
    Return new records with unapplied_amount filled in.

    Slices of one payment always carry the same payment_amount; a flat
    export that disagrees with itself is resolved to the first row seen.
    """
    applied = applied_by_payment(records)
    amounts = amount_by_payment(records)
    reconciled = []
    conflicts = 0
    for record in records:
        amount = amounts[record.payment_id]
        if amount != record.payment_amount:
            conflicts += 1
        reconciled.append(
            replace(
                record,
                payment_amount=amount,
                unapplied_amount=amount - applied[record.payment_id],
            )
        )
    if conflicts:
        logger.info("Resolved %d rows whose payment amount disagreed with an earlier row", conflicts)
    logger.debug("Reconciled %d records across %d payments", len(reconciled), len(amounts))
    return reconciled
