"""Plotly figures for the tracker dashboard.

Each function takes the frames or dictionaries produced by the tracking and
allocation modules and returns a ``plotly.graph_objects.Figure`` that
Streamlit renders with ``st.plotly_chart``.
"""

from __future__ import annotations

from typing import Dict

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

BUCKET_LABELS = {
    'fixedCosts': 'Fixed Costs',
    'savings': 'Savings',
    'investment': 'Investment',
    'guiltFreeSpending': 'Guilt-Free Spending',
}


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_balance_bar_chart(frame: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Grouped bars of spent vs limit per category.

    Parameters
    ----------
    frame : pandas.DataFrame
        Output of :func:`finance_tracker.balances.balances_frame`, needing
        ``Category``, ``Spent`` and ``Limit`` columns.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Grouped bar chart.
    """
    if frame is None or frame.empty:
        return _empty_figure()
    df = frame.melt(
        id_vars=['Category'],
        value_vars=['Spent', 'Limit'],
        var_name='Measure',
        value_name='Amount',
    )
    fig = px.bar(df, x='Category', y='Amount', color='Measure', barmode='group')
    fig.update_layout(
        title=title or "Spending vs limit",
        xaxis_title="Category",
        yaxis_title="Amount",
    )
    return fig


def create_allocation_pie_chart(amounts: Dict[str, float], title: str | None = None) -> go.Figure:
    """Pie chart of the bucket amounts from ``compute_allocation``.

    Buckets with non-positive amounts are left out since a pie cannot show
    them; with nothing left the empty figure is returned.
    """
    rows = [
        (BUCKET_LABELS.get(bucket, bucket), float(value))
        for bucket, value in (amounts or {}).items()
        if value and value > 0
    ]
    if not rows:
        return _empty_figure()
    df = pd.DataFrame(rows, columns=['Bucket', 'Amount'])
    fig = px.pie(df, names='Bucket', values='Amount')
    fig.update_layout(title=title or "Income allocation")
    return fig
