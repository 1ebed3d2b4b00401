"""Tests for the dashboard chart builder."""

from core.models import ChartPoint, ChartType
from dashboard.components.visualizations import plot_analysis_chart

POINTS = [ChartPoint(name="Shirt", value=60), ChartPoint(name="Jeans", value=45)]


class TestPlotAnalysisChart:
    def test_bar_chart(self):
        fig = plot_analysis_chart(POINTS, ChartType.BAR)
        assert fig.data[0].type == "bar"
        assert list(fig.data[0].x) == ["Shirt", "Jeans"]
        assert list(fig.data[0].y) == [60.0, 45.0]

    def test_line_chart(self):
        fig = plot_analysis_chart(POINTS, "line")
        assert fig.data[0].type == "scatter"
        assert "lines" in fig.data[0].mode

    def test_no_points(self):
        assert plot_analysis_chart([], ChartType.BAR) is None
