from dashboard.components.chat_interface import render_chat
from dashboard.components.dashboard_view import render_dashboard
from dashboard.components.preparation_view import render_preparation
from dashboard.components.profile_form import render_profile_form
from dashboard.components.sidebar import render_sidebar
from dashboard.components.upload_view import render_upload
from dashboard.components.visualizations import plot_analysis_chart

__all__ = [
    "render_chat",
    "render_dashboard",
    "render_preparation",
    "render_profile_form",
    "render_sidebar",
    "render_upload",
    "plot_analysis_chart",
]
