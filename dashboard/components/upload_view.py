"""Data upload step: picker or drag-and-drop, then the plan request."""

from typing import Sequence

import streamlit as st

from config.settings import get_settings
from core.errors import PreconditionError, RequestInProgressError
from core.wizard import WizardController
from utils.csv_loader import CSVLoadError, read_csv_text


def upload_hint(extensions: Sequence[str]) -> str:
    """Subtitle naming exactly the file types the uploader accepts."""
    kinds = ", ".join(ext.lstrip(".").upper() for ext in extensions)
    return f"Supported file types: {kinds}."


def render_upload(controller: WizardController, run) -> None:
    settings = get_settings()

    st.markdown('<p class="main-title">Upload Your Data</p>', unsafe_allow_html=True)
    st.markdown(
        f'<p class="main-subtitle">{upload_hint(settings.ALLOWED_EXTENSIONS)}</p>',
        unsafe_allow_html=True,
    )

    uploaded = st.file_uploader(
        "Click to upload or drag and drop",
        type=[ext.lstrip(".") for ext in settings.ALLOWED_EXTENSIONS],
        key="csv_upload",
    )
    if uploaded is not None:
        st.caption(f"**{uploaded.name}** · {round(uploaded.size / 1024)} KB")

    if controller.state.error:
        st.error(controller.state.error)

    if st.button("Inspect Data", disabled=uploaded is None, use_container_width=True):
        try:
            text = read_csv_text(
                uploaded,
                uploaded.name,
                allowed_extensions=settings.ALLOWED_EXTENSIONS,
                max_bytes=settings.MAX_UPLOAD_MB * 1024 * 1024,
            )
        except CSVLoadError as exc:
            st.error(str(exc))
            if exc.suggestion:
                st.caption(exc.suggestion)
            return

        with st.spinner("AI is inspecting your data... The AI is preparing a data cleaning and analysis plan for your review."):
            try:
                run(controller.upload(text, uploaded.name))
            except (PreconditionError, RequestInProgressError) as exc:
                st.error(str(exc))
                return
        st.rerun()
