"""Chart builders using Plotly for the dashboard."""

from typing import Iterable, Optional

import plotly.graph_objects as go

from core.models import ChartPoint, ChartType

CHART_COLORS = {
    "primary": "#00A9FF",
    "secondary": "#8b5cf6",
    "success": "#10b981",
    "danger": "#ef4444",
    "grid": "#4A5568",
    "axis": "#A0AEC0",
    "text": "#1e293b",
}

CHART_TEMPLATE = "plotly_white"


def _base_layout(title: str = "", height: int = 400) -> dict:
    return dict(
        title=dict(text=title, font=dict(size=14, color=CHART_COLORS["text"])),
        template=CHART_TEMPLATE,
        height=height,
        margin=dict(l=40, r=20, t=50, b=40),
        font=dict(family="Inter, system-ui, sans-serif", size=12, color=CHART_COLORS["text"]),
        plot_bgcolor="white",
        paper_bgcolor="white",
    )


def plot_analysis_chart(
    points: Iterable[ChartPoint],
    chart_type: ChartType,
    title: str = "Visual Analysis",
) -> Optional[go.Figure]:
    """Bar or line chart of the ``{name, value}`` pairs the analysis extracted."""
    points = list(points)
    if not points:
        return None

    names = [p.name for p in points]
    values = [p.value for p in points]

    if ChartType(chart_type) == ChartType.BAR:
        trace = go.Bar(x=names, y=values, name="value", marker_color=CHART_COLORS["primary"])
    else:
        trace = go.Scatter(
            x=names, y=values, name="value", mode="lines+markers",
            line=dict(color=CHART_COLORS["primary"], width=2, shape="spline"),
        )

    fig = go.Figure(trace)
    fig.update_layout(**_base_layout(title), showlegend=True)
    fig.update_xaxes(gridcolor=CHART_COLORS["grid"], griddash="dash")
    fig.update_yaxes(gridcolor=CHART_COLORS["grid"], griddash="dash")
    return fig
