"""Wizard controller: the four-step state machine behind the UI and the API.

PROFILE -> UPLOAD -> PREPARATION -> DASHBOARD, plus reset back to PROFILE.
The controller is the only writer of :class:`WizardState`. Each AI request
captures the session epoch when it starts; a reply that lands after the
epoch has moved on (reset, or new upstream input) is dropped.
"""

import logging
from typing import AsyncIterator, Mapping, Optional, Union

from core.chat import ChatSession, TurnAccumulator
from core.errors import (
    AnalysisServiceError,
    PreconditionError,
    RequestInProgressError,
    UnknownError,
)
from core.models import AppView, BusinessProfile, ChatMessage, WizardState
from llm.prompts import CHAT_ERROR_REPLY, PromptTemplates

logger = logging.getLogger("wizard")

PROFILE_MISSING = "Business profile is not set. Please go back."
DASHBOARD_INPUTS_MISSING = "Missing required information to generate dashboard."


def step_completed(state: WizardState, view: AppView) -> bool:
    """Completion flag shown as a check mark in the sidebar."""
    if view == AppView.BUSINESS_PROFILE:
        return state.profile is not None
    if view == AppView.DATA_UPLOAD:
        return state.csv_data is not None
    if view == AppView.DATA_PREPARATION:
        return state.analysis_result is not None
    return False


def step_enabled(state: WizardState, view: AppView) -> bool:
    """A step is reachable once the step before it is complete."""
    order = AppView.ordered()
    index = order.index(view)
    if index == 0:
        return True
    return step_completed(state, order[index - 1])


def _describe(exc: Exception) -> str:
    return str(exc).rstrip(". ") or type(exc).__name__


class WizardController:
    """Owns one wizard session and every transition on it."""

    def __init__(self, service, state: Optional[WizardState] = None) -> None:
        self.service = service
        self.state = state or WizardState()
        self._chat: Optional[ChatSession] = None

    # ── Guards ───────────────────────────────────────────

    def _require_idle(self) -> None:
        if self.state.is_loading:
            raise RequestInProgressError()

    def _precondition(self, message: str) -> PreconditionError:
        self.state.error = message
        logger.warning("Precondition failed: %s", message)
        return PreconditionError(message, cause="precondition")

    def _is_current(self, epoch: int) -> bool:
        return self.state.epoch == epoch

    def _invalidate_downstream(self) -> None:
        """Drop plan, result and chat; replies still in flight become stale.

        A stale request never settles the session, so the loading flag it
        raised is released here.
        """
        self.state.preparation_plan = None
        self.state.analysis_result = None
        self.state.chat_history = []
        self.state.pending_reply = None
        self.state.is_loading = False
        self._chat = None
        self.state.epoch += 1

    # ── Navigation ───────────────────────────────────────

    def is_completed(self, view: AppView) -> bool:
        return step_completed(self.state, view)

    def can_navigate(self, view: AppView) -> bool:
        return step_enabled(self.state, view)

    def navigate(self, view: Union[AppView, str]) -> bool:
        """Jump to ``view`` when its prerequisite is met; otherwise do nothing."""
        view = AppView(view)
        if not self.can_navigate(view):
            logger.info("Navigation to %s ignored: prerequisite not met", view.value)
            return False
        self.state.current_view = view
        return True

    def go_back(self) -> None:
        """PREPARATION -> UPLOAD."""
        self.state.current_view = AppView.DATA_UPLOAD

    def reset(self) -> None:
        """Start over: every field back to its initial value."""
        self.state = WizardState(epoch=self.state.epoch + 1)
        self._chat = None
        logger.info("Session reset (epoch=%d)", self.state.epoch)

    # ── Transitions ──────────────────────────────────────

    def submit_profile(self, profile: Union[BusinessProfile, Mapping]) -> BusinessProfile:
        """PROFILE -> UPLOAD, storing the exact profile object."""
        if not isinstance(profile, BusinessProfile):
            profile = BusinessProfile.model_validate(profile)
        if self.state.profile is not None and self.state.profile != profile:
            self._invalidate_downstream()
        self.state.profile = profile
        self.state.error = None
        self.state.current_view = AppView.DATA_UPLOAD
        logger.info("Business profile stored (sector=%s)", profile.sector)
        return profile

    async def upload(self, data: str, file_name: str) -> bool:
        """UPLOAD -> PREPARATION via the plan-generation call.

        Returns True when the plan was stored, False when the call failed or
        its reply went stale.
        """
        if self.state.profile is None:
            raise self._precondition(PROFILE_MISSING)
        self._require_idle()

        self._invalidate_downstream()
        epoch = self.state.epoch
        profile = self.state.profile
        self.state.csv_data = data
        self.state.file_name = file_name
        self.state.is_loading = True
        self.state.error = None
        logger.info("Upload received: %s (%d chars)", file_name, len(data))

        try:
            plan = await self.service.generate_preparation_plan(profile, data)
        except AnalysisServiceError as exc:
            if self._is_current(epoch):
                self.state.error = f"An error occurred while preparing your data: {_describe(exc)}."
                self.state.current_view = AppView.DATA_UPLOAD
            logger.warning("Plan generation failed: %s", exc)
            return False
        except Exception as exc:
            logger.error("Unexpected failure during plan generation: %s", exc, exc_info=True)
            if self._is_current(epoch):
                self.state.error = str(UnknownError("An unexpected error occurred during data preparation."))
                self.state.current_view = AppView.DATA_UPLOAD
            return False
        finally:
            if self._is_current(epoch):
                self.state.is_loading = False

        if not self._is_current(epoch):
            logger.warning("Discarding stale preparation plan for %s", file_name)
            return False
        self.state.preparation_plan = plan
        self.state.current_view = AppView.DATA_PREPARATION
        return True

    async def approve(self) -> bool:
        """PREPARATION -> DASHBOARD via the analysis call."""
        state = self.state
        if state.profile is None or state.csv_data is None or state.preparation_plan is None:
            raise self._precondition(DASHBOARD_INPUTS_MISSING)
        self._require_idle()

        epoch = state.epoch
        profile, data, plan = state.profile, state.csv_data, state.preparation_plan
        state.current_view = AppView.DASHBOARD
        state.is_loading = True
        state.error = None
        logger.info("Plan approved, requesting analysis")

        try:
            result = await self.service.analyze_data(profile, data, plan)
        except AnalysisServiceError as exc:
            if self._is_current(epoch):
                self.state.error = (
                    f"An error occurred while analyzing data: {_describe(exc)}. "
                    "Please check your API key and prompt."
                )
                self.state.current_view = AppView.DATA_PREPARATION
            logger.warning("Analysis failed: %s", exc)
            return False
        except Exception as exc:
            logger.error("Unexpected failure during analysis: %s", exc, exc_info=True)
            if self._is_current(epoch):
                self.state.error = str(UnknownError("An unexpected error occurred. Please try again."))
                self.state.current_view = AppView.DATA_PREPARATION
            return False
        finally:
            if self._is_current(epoch):
                self.state.is_loading = False

        if not self._is_current(epoch):
            logger.warning("Discarding stale analysis result")
            return False
        self.state.analysis_result = result
        self.state.chat_history = [
            ChatMessage(role="model", content=PromptTemplates.welcome_message(self.state.file_name))
        ]
        self._chat = None
        self.state.current_view = AppView.DASHBOARD
        return True

    # ── Chat ─────────────────────────────────────────────

    def _chat_session(self) -> ChatSession:
        state = self.state
        if state.profile is None or state.csv_data is None or state.analysis_result is None:
            raise self._precondition("The analysis must finish before you can ask questions.")
        if self._chat is None or not self._chat.belongs_to(state.profile, state.csv_data, state.analysis_result):
            self._chat = self.service.create_chat_session(state.profile, state.csv_data, state.analysis_result)
        return self._chat

    def begin_turn(self, question: str) -> Optional[int]:
        """Claim the session for one chat turn and commit the user message.

        Returns the epoch the turn belongs to, or None for a blank question.
        Raises before anything is committed when the session is busy or has
        no analysis yet.
        """
        question = question.strip()
        if not question:
            return None
        self._require_idle()
        if self.state.analysis_result is None:
            raise self._precondition("The analysis must finish before you can ask questions.")

        self.state.chat_history.append(ChatMessage(role="user", content=question))
        self.state.is_loading = True
        self.state.pending_reply = ""
        return self.state.epoch

    async def ask(self, question: str) -> AsyncIterator[str]:
        """Run one chat turn, yielding the accumulated reply after each increment."""
        epoch = self.begin_turn(question)
        if epoch is None:
            return
        async for text in self.stream_turn(question.strip(), epoch):
            yield text

    async def stream_turn(self, question: str, epoch: int) -> AsyncIterator[str]:
        """Stream the reply for a turn claimed by :meth:`begin_turn`.

        Exactly one model message is committed when the turn settles: the
        full reply on success, an apology on failure.
        """
        accumulator = TurnAccumulator()

        try:
            session = self._chat_session()
            async for chunk in session.stream_reply(question):
                if not self._is_current(epoch):
                    logger.warning("Discarding stale chat reply")
                    return
                self.state.pending_reply = accumulator.add(chunk)
                yield accumulator.text
            if not accumulator.text:
                raise AnalysisServiceError("The AI service returned an empty reply.")
            if self._is_current(epoch):
                self.state.chat_history.append(ChatMessage(role="model", content=accumulator.text))
        except Exception as exc:
            logger.warning("Chat turn failed: %s", exc, exc_info=True)
            if self._is_current(epoch):
                self.state.chat_history.append(ChatMessage(role="model", content=CHAT_ERROR_REPLY))
        finally:
            if self._is_current(epoch):
                self.state.is_loading = False
                self.state.pending_reply = None
