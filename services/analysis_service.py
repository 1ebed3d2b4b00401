"""The three AI collaborator calls: preparation plan, full analysis and chat.

Every call is wrapped here. Provider failures become ``AnalysisServiceError``
with a classified, human-readable message; replies that are not the JSON
shape we asked for become ``MalformedResponseError``.
"""

import logging
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config.settings import get_settings
from core.chat import ChatSession
from core.errors import AnalysisServiceError, MalformedResponseError
from core.models import AnalysisResult, BusinessProfile, PreparationPlan
from llm.client import LLMClient, classify_llm_error, get_llm_client
from llm.prompts import PromptTemplates
from llm.schemas import ANALYSIS_SCHEMA, PREPARATION_PLAN_SCHEMA
from utils.csv_loader import csv_sample, truncate_csv
from utils.markdown import render_markdown

logger = logging.getLogger("analysis_service")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _decode(model: Type[ModelT], data: Dict[str, Any], label: str) -> ModelT:
    """Validate a parsed reply into ``model``, naming every bad field on failure."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise MalformedResponseError(
            f"The AI service returned an incomplete {label}: missing or invalid {', '.join(fields)}",
            fields=fields,
        ) from exc


class AnalysisService:
    """Formats prompts, calls the AI collaborator and decodes its replies."""

    def __init__(self, client: Optional[LLMClient] = None, settings=None) -> None:
        self.settings = settings or get_settings()
        self.client = client if client is not None else get_llm_client(settings=self.settings)

    def _require_client(self) -> LLMClient:
        if self.client is None:
            raise AnalysisServiceError(
                "No AI service is configured.",
                cause="misconfigured",
                suggestion="Set GEMINI_API_KEY (or OPENAI_API_KEY / ANTHROPIC_API_KEY / OLLAMA_MODEL) and try again.",
            )
        return self.client

    async def _request_json(
        self,
        prompt: str,
        schema: Dict[str, Any],
        temperature: float,
        model: str,
        label: str,
    ) -> Dict[str, Any]:
        client = self._require_client()
        try:
            return await client.complete_json(
                [{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=self.settings.MAX_OUTPUT_TOKENS,
                response_schema=schema,
                model=model or None,
            )
        except AnalysisServiceError:
            raise
        except Exception as exc:
            logger.error("%s request failed: %s", label, exc, exc_info=True)
            state, message = classify_llm_error(exc)
            raise AnalysisServiceError(message, cause=state) from exc

    async def generate_preparation_plan(self, profile: BusinessProfile, csv_data: str) -> PreparationPlan:
        """Ask for a preparation plan from a small sample of the data."""
        snippet = csv_sample(
            csv_data,
            max_lines=self.settings.PLAN_SAMPLE_LINES,
            max_chars=self.settings.PLAN_SAMPLE_CHARS,
        )
        logger.info("Requesting preparation plan (sample=%d chars)", len(snippet))
        data = await self._request_json(
            PromptTemplates.preparation_plan(profile, snippet),
            PREPARATION_PLAN_SCHEMA,
            self.settings.PLAN_TEMPERATURE,
            self.settings.PLAN_MODEL,
            "Preparation plan",
        )
        plan = _decode(PreparationPlan, data, "preparation plan")
        logger.info("Preparation plan received (%d steps)", len(plan.steps))
        return plan

    async def analyze_data(
        self,
        profile: BusinessProfile,
        csv_data: str,
        plan: PreparationPlan,
    ) -> AnalysisResult:
        """Run the full analysis following the approved plan.

        The CSV is capped at ``MAX_CSV_CHARS``; when it is cut, the prompt
        tells the model it is looking at a sample. The two Markdown sections
        of the reply are rendered to sanitized HTML before returning.
        """
        body, truncated = truncate_csv(csv_data, self.settings.MAX_CSV_CHARS)
        logger.info("Requesting analysis (csv=%d chars, truncated=%s)", len(body), truncated)
        data = await self._request_json(
            PromptTemplates.analysis(profile, plan, body, truncated),
            ANALYSIS_SCHEMA,
            self.settings.ANALYSIS_TEMPERATURE,
            self.settings.ANALYSIS_MODEL,
            "Analysis",
        )
        result = _decode(AnalysisResult, data, "analysis")
        return result.model_copy(update={
            "quantitative_analysis": render_markdown(result.quantitative_analysis),
            "qualitative_analysis": render_markdown(result.qualitative_analysis),
        })

    def create_chat_session(
        self,
        profile: BusinessProfile,
        csv_data: str,
        result: AnalysisResult,
    ) -> ChatSession:
        """Fresh conversation context seeded with the profile, analysis and data excerpt."""
        return ChatSession(
            self._require_client(),
            profile,
            csv_data,
            result,
            model=self.settings.CHAT_MODEL or None,
            temperature=self.settings.CHAT_TEMPERATURE,
            max_tokens=self.settings.MAX_OUTPUT_TOKENS,
            context_chars=self.settings.CHAT_CONTEXT_CHARS,
        )
