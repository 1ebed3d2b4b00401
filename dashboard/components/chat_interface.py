"""Chat interface component, streaming replies from the analysis session."""

import streamlit as st

from core.errors import PreconditionError, RequestInProgressError
from core.models import ChatMessage
from core.wizard import WizardController

ROLE_AVATARS = {"user": "user", "model": "assistant"}


def _render_message(msg: ChatMessage) -> None:
    with st.chat_message(ROLE_AVATARS[msg.role]):
        st.markdown(msg.content)


def render_chat(controller: WizardController, run) -> None:
    """Render history, accept a question and stream the reply into place."""
    st.markdown('<p class="section-header" style="margin-top: 0;">Ask about your data</p>', unsafe_allow_html=True)

    state = controller.state
    chat_container = st.container(height=400)
    with chat_container:
        for msg in state.chat_history:
            _render_message(msg)

    user_input = st.chat_input(
        "e.g., What were the top selling products?",
        disabled=state.is_loading or state.analysis_result is None,
    )
    if not user_input or not user_input.strip():
        return

    with chat_container:
        with st.chat_message("user"):
            st.markdown(user_input)
        with st.chat_message("assistant"):
            placeholder = st.empty()
            placeholder.markdown("_Thinking..._")

            async def consume():
                async for text in controller.ask(user_input):
                    placeholder.markdown(text + "▌")

            try:
                run(consume())
            except (PreconditionError, RequestInProgressError) as exc:
                placeholder.empty()
                st.error(str(exc))
                return
    st.rerun()
