"""Wizard navigation sidebar."""

import streamlit as st

from core.models import AppView
from core.wizard import WizardController

NAV_LABELS = {
    AppView.BUSINESS_PROFILE: "Business Profile",
    AppView.DATA_UPLOAD: "Upload Data",
    AppView.DATA_PREPARATION: "Preparation Plan",
    AppView.DASHBOARD: "Dashboard",
}


def nav_label(controller: WizardController, view: AppView) -> str:
    label = NAV_LABELS[view]
    if controller.is_completed(view):
        label += "  ✓"
    return label


def render_sidebar(controller: WizardController) -> None:
    """Step buttons are disabled until the step before them is complete."""
    with st.sidebar:
        st.markdown("## Decision AI")
        st.markdown("---")

        for view in AppView.ordered():
            is_active = controller.state.current_view == view
            if st.button(
                nav_label(controller, view),
                key=f"nav_{view.value}",
                disabled=not controller.can_navigate(view) or controller.state.is_loading,
                type="primary" if is_active else "secondary",
                use_container_width=True,
            ):
                controller.navigate(view)
                st.rerun()

        st.markdown("---")
        if st.button("Start Over", key="nav_reset", use_container_width=True):
            controller.reset()
            st.rerun()
