#!/usr/bin/env python3
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st

from payments_recon.aggregations import build_dashboard
from payments_recon.export import DEFAULT_EXPORT_NAME, export_csv_bytes
from payments_recon.filters import (
    SORT_FIELDS,
    FilterCriteria,
    apply_filters,
    facility_keys,
    sort_records,
    unique_payers,
    unique_payment_types,
)
from payments_recon.ingest import ingest_with_format
from payments_recon.loader import ALL_FORMATS, load_matrix_from_bytes
from payments_recon.records import PaymentRecord


@st.cache_data(show_spinner=False)
def ingest_upload(data: bytes, suffix: str) -> tuple[str, list[PaymentRecord], list[str]]:
    loaded = load_matrix_from_bytes(data, suffix)
    detected_format, records = ingest_with_format(loaded["rows"])
    return detected_format, records, loaded["warnings"]


@st.cache_data(show_spinner=False)
def dashboard_for(records: list[PaymentRecord], criteria: FilterCriteria) -> dict:
    return build_dashboard(records, criteria)


def new_upload_digest(data: Optional[bytes], previous: Optional[str]) -> Optional[str]:
    """Content hash of an upload that differs from the one already ingested; None otherwise."""
    if data is None:
        return None
    digest = hashlib.sha256(data).hexdigest()
    return None if digest == previous else digest


def ensure_state() -> None:
    st.session_state.setdefault("records", [])
    st.session_state.setdefault("detected_format", None)
    st.session_state.setdefault("file_name", None)
    st.session_state.setdefault("file_digest", None)


def money(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"${value:,.2f}"


def render_filters(records: list[PaymentRecord]) -> FilterCriteria:
    with st.sidebar:
        st.header("Filters")
        search = st.text_input("Search payer or notes")
        payers = st.multiselect("Payer", unique_payers(records))
        payment_types = st.multiselect("Payment type", unique_payment_types(records))
        keys = facility_keys(records)
        labels = {key.norm: key.label for key in keys}
        facilities = st.multiselect("Facility", [key.norm for key in keys], format_func=lambda norm: labels[norm])
        left, right = st.columns(2)
        min_amount = left.number_input("Min amount", value=None, step=10.0)
        max_amount = right.number_input("Max amount", value=None, step=10.0)
        date_from = left.date_input("Entered from", value=None)
        date_to = right.date_input("Entered to", value=None)
    return FilterCriteria.build(
        payers=payers,
        payment_types=payment_types,
        facilities=facilities,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )


def render_kpis(kpis: dict) -> None:
    top = st.columns(4)
    top[0].metric("Payments entered", money(kpis["totalPaymentsEntered"]), f"{kpis['paymentCount']} payments", delta_color="off")
    top[1].metric("Applied", money(kpis["totalPaymentsApplied"]))
    top[2].metric("Unapplied", money(kpis["totalUnapplied"]))
    top[3].metric("Payers", kpis["payerCount"])
    bottom = st.columns(3)
    bottom[0].metric("Smallest payment", money(kpis["minPayment"]))
    bottom[1].metric("Largest payment", money(kpis["maxPayment"]))
    span = kpis["dateRange"]
    bottom[2].metric("Date entered range", f"{span['first']} .. {span['last']}" if span else "-")


def render_views(dashboard: dict) -> None:
    if dashboard["daily"]:
        st.subheader("Daily totals")
        st.line_chart(pd.DataFrame(dashboard["daily"]).set_index("date")["total"])

    left, right = st.columns(2)
    with left:
        st.subheader("By payment type")
        st.dataframe(pd.DataFrame(dashboard["by_type"]), hide_index=True)
        st.subheader("Top payers")
        st.dataframe(pd.DataFrame(dashboard["top_payers"]), hide_index=True)
    with right:
        st.subheader("Applied by facility")
        facility_df = pd.DataFrame(dashboard["by_facility_applied"])
        if not facility_df.empty:
            st.bar_chart(facility_df.set_index("facility")["totalApplied"])
        st.subheader("Outstanding unapplied")
        st.dataframe(pd.DataFrame(dashboard["unapplied_by_payment"]), hide_index=True)


def render_records(records: list[PaymentRecord], criteria: FilterCriteria) -> None:
    st.subheader("Payments")
    sort_cols = st.columns(2)
    sort_by = sort_cols[0].selectbox("Sort by", ["(file order)", *SORT_FIELDS])
    direction = sort_cols[1].radio("Direction", ["asc", "desc"], horizontal=True)
    selected = apply_filters(records, criteria)
    ordered = sort_records(selected, None if sort_by == "(file order)" else sort_by, direction)
    st.dataframe(pd.DataFrame([record.to_export_row() for record in ordered]), hide_index=True)
    st.download_button(
        "Export CSV",
        data=export_csv_bytes(ordered),
        file_name=f"{DEFAULT_EXPORT_NAME}.csv",
        mime="text/csv",
        disabled=not ordered,
    )


def main() -> None:
    st.set_page_config(page_title="Payments Dashboard", layout="wide")
    ensure_state()

    st.title("Payments Dashboard")
    st.caption("Upload a collected-payments export (ledger or flat format) to reconcile applied and unapplied balances.")

    upload = st.file_uploader("Upload export", type=[ext.lstrip(".") for ext in sorted(ALL_FORMATS)])
    data = upload.getvalue() if upload is not None else None
    digest = new_upload_digest(data, st.session_state["file_digest"])
    if digest is not None:
        try:
            detected_format, records, warnings = ingest_upload(data, Path(upload.name).suffix)
        except (ValueError, FileNotFoundError) as exc:
            st.error(f"Could not read {upload.name}: {exc}")
            return
        st.session_state["records"] = records
        st.session_state["detected_format"] = detected_format
        st.session_state["file_name"] = upload.name
        st.session_state["file_digest"] = digest
        for warning in warnings:
            st.warning(warning)

    records = st.session_state["records"]
    if not records:
        st.info("No payments loaded yet.")
        return

    st.caption(f"{st.session_state['file_name']}: {st.session_state['detected_format']}, {len(records)} records")
    criteria = render_filters(records)
    dashboard = dashboard_for(records, criteria)
    render_kpis(dashboard["kpis"])
    render_views(dashboard)
    render_records(records, criteria)


if __name__ == "__main__":
    main()
