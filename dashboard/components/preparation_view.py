"""Preparation plan review step."""

from html import escape

import streamlit as st

from config.settings import get_settings
from core.errors import PreconditionError, RequestInProgressError
from core.wizard import WizardController
from utils.csv_loader import preview_frame


def render_preparation(controller: WizardController, run) -> None:
    state = controller.state
    plan = state.preparation_plan

    if plan is None:
        st.markdown(
            '<div class="welcome-container"><h2>Plan Generation Failed</h2>'
            "<p>Could not generate a preparation plan. Please try uploading your data again.</p></div>",
            unsafe_allow_html=True,
        )
        if st.button("Go Back"):
            controller.go_back()
            st.rerun()
        return

    st.markdown('<p class="main-title">Review AI Preparation Plan</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="main-subtitle">The AI has inspected your data and suggests the following plan. '
        "Approve to proceed with dashboard generation.</p>",
        unsafe_allow_html=True,
    )

    col_left, col_right = st.columns(2)
    with col_left:
        st.markdown('<p class="section-header">Data Preview</p>', unsafe_allow_html=True)
        frame = preview_frame(state.csv_data, get_settings().PREVIEW_ROWS)
        if frame.empty and not len(frame.columns):
            st.caption("No data to preview.")
        else:
            st.dataframe(frame, hide_index=True, use_container_width=True)
        if plan.identified_columns:
            st.caption(f"Identified columns: {', '.join(plan.identified_columns)}")

    with col_right:
        st.markdown('<p class="section-header">Analysis Suggestions</p>', unsafe_allow_html=True)
        for suggestion in plan.analysis_suggestions:
            st.markdown(f"- {suggestion}")

    st.markdown('<p class="section-header">Proposed Steps</p>', unsafe_allow_html=True)
    for step in plan.steps:
        st.markdown(
            f'<div class="card"><strong>{escape(step.title)}</strong><br>{escape(step.description)}</div>',
            unsafe_allow_html=True,
        )

    if state.error:
        st.error(state.error)

    back_col, approve_col = st.columns([1, 2])
    with back_col:
        if st.button("Back to Upload", type="secondary", use_container_width=True):
            controller.go_back()
            st.rerun()
    with approve_col:
        if st.button("Approve & Generate Dashboard →", type="primary", use_container_width=True,
                     disabled=state.is_loading):
            with st.spinner("Finalizing Dashboard... The AI is preparing your personalized insights and visualizations."):
                try:
                    run(controller.approve())
                except (PreconditionError, RequestInProgressError) as exc:
                    st.error(str(exc))
                    return
            st.rerun()
