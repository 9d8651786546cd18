"""
Summary views over a (usually filtered) record list.

A payment split across facilities appears once per facility, each copy
carrying the full payment amount. Views that sum payment_amount therefore
count each payment id once per group; views over applied_amount count every
row, since applied money is genuinely per facility.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Hashable, Optional

from payments_recon.contracts import SUMMARY_CONTRACT, contract_header
from payments_recon.filters import FilterCriteria, apply_filters
from payments_recon.records import PaymentRecord

TOP_PAYERS_LIMIT = 15
UNAPPLIED_LIMIT = 20
UNAPPLIED_EPSILON = 0.0001
UNSPECIFIED_FACILITY = "Unspecified"


def _dedup_payment_totals(
    records: list[PaymentRecord],
    group_key: Callable[[PaymentRecord], Optional[Hashable]],
) -> dict[Hashable, dict[str, Any]]:
    """Sum payment_amount per group, counting each payment id once per group."""
    groups: dict[Hashable, dict[str, Any]] = {}
    seen: set[tuple[Hashable, str]] = set()
    for record in records:
        key = group_key(record)
        if key is None or (key, record.payment_id) in seen:
            continue
        seen.add((key, record.payment_id))
        group = groups.setdefault(key, {"total": 0.0, "count": 0})
        group["total"] += record.payment_amount
        group["count"] += 1
    return groups


def aggregate_daily(records: list[PaymentRecord]) -> list[dict[str, Any]]:
    groups = _dedup_payment_totals(
        records,
        lambda record: record.date_entered.isoformat() if record.date_entered else None,
    )
    return [
        {"date": day, "total": group["total"], "count": group["count"]}
        for day, group in sorted(groups.items())
    ]


def aggregate_by_type(records: list[PaymentRecord]) -> list[dict[str, Any]]:
    groups = _dedup_payment_totals(records, lambda record: record.payment_type)
    rows = [
        {"type": payment_type, "total": group["total"], "count": group["count"]}
        for payment_type, group in groups.items()
    ]
    return sorted(rows, key=lambda row: row["total"], reverse=True)


def aggregate_top_payers(records: list[PaymentRecord], limit: int = TOP_PAYERS_LIMIT) -> list[dict[str, Any]]:
    groups = _dedup_payment_totals(records, lambda record: record.payer)
    rows = [
        {"payer": payer, "total": group["total"], "count": group["count"]}
        for payer, group in groups.items()
    ]
    return sorted(rows, key=lambda row: row["total"], reverse=True)[:limit]


def aggregate_by_facility_applied(records: list[PaymentRecord]) -> list[dict[str, Any]]:
    """Applied totals per facility; spellings that normalise alike share a row."""
    groups: dict[str, dict[str, Any]] = {}
    for record in records:
        norm = record.facility_norm
        group = groups.get(norm)
        if group is None:
            label = record.facility.strip() or UNSPECIFIED_FACILITY
            group = groups[norm] = {"facility": label, "totalApplied": 0.0, "count": 0}
        group["totalApplied"] += record.applied_amount
        group["count"] += 1
    return sorted(groups.values(), key=lambda row: row["totalApplied"], reverse=True)


def aggregate_unapplied_by_payment(records: list[PaymentRecord], limit: int = UNAPPLIED_LIMIT) -> list[dict[str, Any]]:
    collected: dict[str, float] = {}
    applied: dict[str, float] = defaultdict(float)
    payers: dict[str, str] = {}
    for record in records:
        collected.setdefault(record.payment_id, record.payment_amount)
        payers.setdefault(record.payment_id, record.payer)
        applied[record.payment_id] += record.applied_amount

    rows = []
    for payment_id, amount in collected.items():
        unapplied = amount - applied[payment_id]
        if unapplied > UNAPPLIED_EPSILON:
            rows.append({"paymentId": payment_id, "payer": payers[payment_id], "unapplied": unapplied})
    return sorted(rows, key=lambda row: row["unapplied"], reverse=True)[:limit]


def compute_scalar_kpis(records: list[PaymentRecord]) -> dict[str, Any]:
    total_entered = 0.0
    total_unapplied = 0.0
    seen: set[str] = set()
    for record in records:
        if record.payment_id in seen:
            continue
        seen.add(record.payment_id)
        total_entered += record.payment_amount
        total_unapplied += record.unapplied_amount or 0.0

    amounts = [record.payment_amount for record in records]
    dates = sorted({record.date_entered for record in records if record.date_entered})
    date_range = None
    if dates:
        date_range = {"first": dates[0].isoformat(), "last": dates[-1].isoformat(), "count": len(dates)}

    return {
        "totalPaymentsEntered": total_entered,
        "totalPaymentsApplied": sum(record.applied_amount for record in records),
        "totalUnapplied": total_unapplied,
        "paymentCount": len(seen),
        "payerCount": len({record.payer for record in records if record.payer}),
        "minPayment": min(amounts) if amounts else None,
        "maxPayment": max(amounts) if amounts else None,
        "dateRange": date_range,
    }


def build_dashboard(records: list[PaymentRecord], criteria: Optional[FilterCriteria] = None) -> dict[str, Any]:
    """Every view for one criteria value; a pure function of its inputs."""
    selected = apply_filters(records, criteria)
    return {
        **contract_header(SUMMARY_CONTRACT),
        "records_total": len(records),
        "records_selected": len(selected),
        "kpis": compute_scalar_kpis(selected),
        "daily": aggregate_daily(selected),
        "by_type": aggregate_by_type(selected),
        "top_payers": aggregate_top_payers(selected),
        "by_facility_applied": aggregate_by_facility_applied(selected),
        "unapplied_by_payment": aggregate_unapplied_by_payment(selected),
    }
