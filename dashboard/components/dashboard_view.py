"""Dashboard step: insights, chart, recommendations, analyses and chat."""

from html import escape

import streamlit as st

from core.models import AnalysisResult, KeyInsight
from core.wizard import WizardController
from dashboard.components.chat_interface import render_chat
from dashboard.components.visualizations import plot_analysis_chart

TREND_CLASSES = {"up": "trend-up", "down": "trend-down"}


def _insight_card(insight: KeyInsight) -> str:
    trend_class = TREND_CLASSES.get(insight.trend_direction, "trend-neutral")
    return (
        '<div class="metric-card">'
        f'<div class="metric-label">{escape(insight.metric)}</div>'
        f'<div class="metric-value">{escape(insight.value)}</div>'
        f'<div class="metric-trend {trend_class}">{escape(insight.trend)}</div>'
        "</div>"
    )


def _render_insights(result: AnalysisResult) -> None:
    if not result.key_insights:
        return
    cols = st.columns(min(len(result.key_insights), 4))
    for i, insight in enumerate(result.key_insights):
        with cols[i % len(cols)]:
            st.markdown(_insight_card(insight), unsafe_allow_html=True)


def render_dashboard(controller: WizardController, run) -> None:
    state = controller.state

    if state.is_loading:
        st.info("Finalizing Dashboard... The AI is preparing your personalized insights and visualizations.")
        return

    result = state.analysis_result
    if result is None:
        st.markdown(
            '<div class="welcome-container"><h2>Analysis Failed</h2>'
            "<p>Something went wrong while generating the dashboard.</p></div>",
            unsafe_allow_html=True,
        )
        if state.error:
            st.error(state.error)
        if st.button("Go Back"):
            controller.go_back()
            st.rerun()
        return

    st.markdown(f'<p class="main-title">{escape(result.analysis_title)}</p>', unsafe_allow_html=True)
    st.markdown(
        f'<p class="main-subtitle">Analysis for {escape(state.file_name or "")}</p>',
        unsafe_allow_html=True,
    )

    _render_insights(result)

    chart_col, rec_col = st.columns([2, 1])
    with chart_col:
        fig = plot_analysis_chart(result.chart_data, result.chart_type)
        if fig is not None:
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.caption("No chart data was returned.")
    with rec_col:
        st.markdown('<p class="section-header">Recommendations</p>', unsafe_allow_html=True)
        for rec in result.recommendations:
            st.markdown(
                f'<div class="card"><strong>{escape(rec.area)}</strong><br>{escape(rec.recommendation)}</div>',
                unsafe_allow_html=True,
            )

    quant_tab, qual_tab, prep_tab = st.tabs(
        ["Quantitative Analysis", "Qualitative Analysis", "Data Transformation Summary"]
    )
    # both analyses are sanitized HTML by the time they reach the state
    with quant_tab:
        st.markdown(result.quantitative_analysis, unsafe_allow_html=True)
    with qual_tab:
        st.markdown(result.qualitative_analysis, unsafe_allow_html=True)
    with prep_tab:
        st.markdown(result.data_transformation_summary)

    st.markdown("---")
    render_chat(controller, run)
