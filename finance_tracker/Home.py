"""Streamlit entry point for the monthly tracker.

Run with ``streamlit run finance_tracker/Home.py`` or ``python run_dashboard.py``.
The user id comes from ``FINTRACK_USER_ID`` or the sidebar; authentication
lives outside this app.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from finance_tracker import config
from finance_tracker.allocation import BUCKETS, RULE_TYPES
from finance_tracker.balances import balances_frame
from finance_tracker.exceptions import AllocationValidationError
from finance_tracker.service import get_tracker
from finance_tracker.visualization import (
    BUCKET_LABELS,
    create_allocation_pie_chart,
    create_balance_bar_chart,
)


def render_balances(tracker, user_id: str) -> None:
    tracker.ensure_balances(user_id)
    period = tracker.get_current_period()
    st.subheader(f"Balances for {period.label}")

    frame = balances_frame(user_id, period, db_path=tracker.db_path)
    if frame.empty:
        st.info("No categories yet.")
        if st.button("Create default bucket categories"):
            tracker.seed_categories(user_id)
            st.rerun()
        return

    over = int(frame['Over Budget'].sum())
    col1, col2, col3 = st.columns(3)
    col1.metric("Spent", f"${frame['Spent'].sum():,.2f}")
    col2.metric("Remaining", f"${frame['Remaining'].sum():,.2f}")
    col3.metric("Over budget", over)
    st.dataframe(frame, hide_index=True, use_container_width=True)
    st.plotly_chart(create_balance_bar_chart(frame), use_container_width=True)

    with st.expander("Carryover from last month"):
        st.dataframe(tracker.tracking_summary(user_id), hide_index=True, use_container_width=True)


def rule_from_inputs(rule_type: str, value: float, has_cap: bool, cap: float) -> dict:
    """Allocation rule payload from the form widgets; a cap of 0 is kept when enabled."""
    return {'type': rule_type, 'value': value, 'cap': cap if has_cap else None}


def render_allocation(tracker, user_id: str) -> None:
    st.subheader("Fund allocation")
    allocation = tracker.get_allocation(user_id)
    income = st.number_input("Net income (0 = income recorded this month)", min_value=0.0, value=0.0, step=100.0)
    amounts = tracker.allocation_breakdown(user_id, income=income or None)
    st.plotly_chart(create_allocation_pie_chart(amounts), use_container_width=True)

    with st.form("allocation_form"):
        payload = {}
        for bucket in BUCKETS:
            rule = allocation.rules[bucket]
            st.markdown(f"**{BUCKET_LABELS[bucket]}**")
            c1, c2, c3, c4 = st.columns(4)
            rule_type = c1.selectbox("Type", RULE_TYPES, index=RULE_TYPES.index(rule.type), key=f"{bucket}_type")
            value = c2.number_input("Value", min_value=0.0, value=float(rule.value), key=f"{bucket}_value")
            has_cap = c3.checkbox("Cap", value=rule.cap is not None, key=f"{bucket}_has_cap")
            cap = c4.number_input("Cap amount", min_value=0.0, value=float(rule.cap or 0.0), key=f"{bucket}_cap")
            payload[bucket] = rule_from_inputs(rule_type, value, has_cap, cap)
        if st.form_submit_button("Save allocation"):
            try:
                tracker.update_allocation(user_id, payload)
                st.success("Allocation saved")
            except AllocationValidationError as e:
                st.error(str(e))


def main() -> None:
    st.set_page_config(page_title="Monthly Tracker", page_icon="📋", layout="wide")
    config.configure_logging()
    user_id = st.sidebar.text_input("User id", value=os.getenv("FINTRACK_USER_ID", ""))
    if not user_id:
        st.warning("Enter a user id to continue.")
        return

    tracker = get_tracker()
    st.header("📋 Monthly Tracker")
    render_balances(tracker, user_id)
    st.divider()
    render_allocation(tracker, user_id)


if __name__ == "__main__":
    main()
