"""Main Streamlit app for Decision AI: profile, upload, plan review, dashboard."""

import asyncio
import os
import sys

import streamlit as st

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import configure_logging, get_settings
from core.models import AppView
from core.wizard import WizardController
from dashboard.components import (
    render_dashboard,
    render_preparation,
    render_profile_form,
    render_sidebar,
    render_upload,
)
from services.analysis_service import AnalysisService

st.set_page_config(
    page_title=get_settings().APP_NAME,
    page_icon="",
    layout="wide",
)

st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap');

    html, body, [class*="css"] {
        font-family: 'Inter', system-ui, -apple-system, sans-serif;
    }

    .block-container {
        padding-top: 1.5rem;
        padding-bottom: 1rem;
        max-width: 1200px;
    }

    [data-testid="stSidebar"] {
        background: #0f172a;
        color: #e2e8f0;
    }
    [data-testid="stSidebar"] * {
        color: #e2e8f0 !important;
    }
    [data-testid="stSidebar"] h2 {
        color: #f1f5f9 !important;
        font-weight: 600;
    }
    [data-testid="stSidebar"] hr {
        border-color: #1e293b !important;
    }

    .main-title {
        font-size: 1.6rem;
        font-weight: 700;
        color: #1e293b;
        margin-bottom: 0.25rem;
        letter-spacing: -0.02em;
    }
    .main-subtitle {
        font-size: 0.85rem;
        color: #64748b;
        margin-bottom: 1.5rem;
    }

    .section-header {
        font-size: 1rem;
        font-weight: 600;
        color: #1e293b;
        border-bottom: 1px solid #e2e8f0;
        padding-bottom: 0.5rem;
        margin-bottom: 1rem;
        margin-top: 1.5rem;
    }

    .card {
        background: white;
        border: 1px solid #e2e8f0;
        border-radius: 8px;
        padding: 16px;
        margin-bottom: 12px;
    }

    .metric-card {
        background: white;
        border: 1px solid #e2e8f0;
        border-radius: 8px;
        padding: 16px;
        margin-bottom: 12px;
    }
    .metric-label {
        font-size: 0.8rem;
        color: #64748b;
        text-transform: uppercase;
        letter-spacing: 0.05em;
    }
    .metric-value {
        font-size: 1.5rem;
        font-weight: 700;
        color: #1e293b;
    }
    .metric-trend { font-size: 0.8rem; font-weight: 500; }
    .trend-up { color: #059669; }
    .trend-down { color: #dc2626; }
    .trend-neutral { color: #64748b; }

    .welcome-container {
        text-align: center;
        padding: 80px 40px;
    }
    .welcome-container h2 {
        font-size: 1.4rem;
        font-weight: 600;
        color: #1e293b;
        margin-bottom: 0.5rem;
    }
    .welcome-container p {
        color: #64748b;
        font-size: 0.95rem;
    }
</style>
""", unsafe_allow_html=True)


# ---------- helpers ----------

def get_event_loop():
    """Get or create an asyncio event loop."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError
        return loop
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop


def run_async(coro):
    """Run an async coroutine from synchronous Streamlit code."""
    loop = get_event_loop()
    return loop.run_until_complete(coro)


def _init_wizard() -> WizardController:
    if "wizard" not in st.session_state:
        configure_logging()
        st.session_state["wizard"] = WizardController(AnalysisService())
    return st.session_state["wizard"]


controller = _init_wizard()

# --- Sidebar ---
render_sidebar(controller)

# --- Main Content ---
view = controller.state.current_view
if view == AppView.BUSINESS_PROFILE:
    render_profile_form(controller)
elif view == AppView.DATA_UPLOAD:
    render_upload(controller, run_async)
elif view == AppView.DATA_PREPARATION:
    render_preparation(controller, run_async)
else:
    render_dashboard(controller, run_async)
