"""Plotly figures for the ledger aggregates.

Each function takes the output of one :class:`~budget_ledger.analytics.LedgerAnalytics`
method and returns a ``plotly.graph_objects.Figure``.  When there is
nothing to plot the figure is empty and titled "No data to display", so
callers can always render whatever they get back.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_monthly_breakdown_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Grouped bars of income and expenses per month with the balance as a line.

    Parameters
    ----------
    breakdown : pandas.DataFrame
        Output of ``LedgerAnalytics.monthly_breakdown`` with ``Label``,
        ``Income``, ``Expenses`` and ``Balance`` columns.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Combined bar and line chart.
    """
    if breakdown.empty:
        return _empty_figure()
    fig = go.Figure()
    fig.add_bar(x=breakdown["Label"], y=breakdown["Income"], name="Income", marker_color="#10b981")
    fig.add_bar(x=breakdown["Label"], y=breakdown["Expenses"], name="Expenses", marker_color="#ef4444")
    fig.add_scatter(
        x=breakdown["Label"], y=breakdown["Balance"], name="Balance", mode="lines+markers",
        line=dict(color="#3b82f6"),
    )
    fig.update_layout(
        title=title or "Monthly income and expenses",
        barmode="group",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_category_pie_chart(
    series: pd.Series, colors: Mapping[str, str] | None = None, title: str | None = None
) -> go.Figure:
    """Pie chart of spending per category, coloured with the category colours."""
    if series.empty:
        return _empty_figure()
    df = series.reset_index()
    df.columns = ["Category", "Value"]
    fig = px.pie(
        df, names="Category", values="Value", color="Category",
        color_discrete_map=dict(colors or {}),
    )
    fig.update_layout(title=title or "Spending by category")
    return fig


def create_category_bar_chart(series: pd.Series, title: str | None = None) -> go.Figure:
    if series.empty:
        return _empty_figure()
    df = series.reset_index()
    df.columns = ["Category", "Value"]
    fig = px.bar(df, x="Category", y="Value")
    fig.update_layout(title=title or "Spending by category", xaxis_title="Category", yaxis_title="Amount")
    return fig


def create_budget_chart(status: Dict[str, Dict[str, Any]], title: str | None = None) -> go.Figure:
    """Budget versus actual bars from ``LedgerAnalytics.budget_status``."""
    if not status:
        return _empty_figure()
    df = pd.DataFrame(
        [{"Category": category, **values} for category, values in status.items()]
    )
    fig = go.Figure()
    fig.add_bar(x=df["Category"], y=df["budget"], name="Budget", marker_color="#94a3b8")
    fig.add_bar(x=df["Category"], y=df["spent"], name="Spent", marker_color="#3b82f6")
    fig.update_layout(title=title or "Budget vs actual", barmode="group", yaxis_title="Amount")
    return fig


def create_weekday_heatmap(totals: Mapping[str, float], title: str | None = None) -> go.Figure:
    """Single-row heatmap of spending per weekday, Monday first."""
    if not totals or not any(totals.values()):
        return _empty_figure()
    fig = go.Figure(
        data=go.Heatmap(
            z=[list(totals.values())],
            x=list(totals.keys()),
            y=["Spending"],
            colorscale="Reds",
        )
    )
    fig.update_layout(title=title or "Spending by day of week")
    return fig


def create_year_over_year_chart(comparison: pd.DataFrame, year: int, title: str | None = None) -> go.Figure:
    """Lines for this year's and last year's expenses by month."""
    current, previous = f"{year} Expenses", f"{year - 1} Expenses"
    if comparison.empty or not comparison[[current, previous]].to_numpy().any():
        return _empty_figure()
    df = comparison.melt(id_vars="Month", value_vars=[current, previous], var_name="Series", value_name="Amount")
    fig = px.line(df, x="Month", y="Amount", color="Series", markers=True)
    fig.update_layout(title=title or f"Expenses {year} vs {year - 1}")
    return fig
