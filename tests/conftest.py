"""Shared test fixtures."""

import json
from typing import Any, Dict, List, Optional

import pytest

from config.settings import reset_settings
from core.models import AnalysisResult, BusinessProfile, PreparationPlan
from llm.client import LLMClient

PROVIDER_ENV = [
    "LLM_PROVIDER",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OLLAMA_MODEL",
]


class ScriptedLLMClient(LLMClient):
    """LLM client that replays canned replies and records every call.

    ``replies`` feeds :meth:`complete`; ``streams`` feeds :meth:`stream`, one
    list of chunks per call. Either may hold an exception instance, which is
    raised instead.
    """

    model = "scripted"

    def __init__(self, replies: Optional[List[Any]] = None, streams: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.streams = list(streams or [])
        self.calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []

    async def complete(self, messages, system=None, temperature=0.3, max_tokens=2048,
                       response_schema=None, model=None):
        self.calls.append({
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_schema": response_schema,
            "model": model,
        })
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def stream(self, messages, system=None, temperature=0.7, max_tokens=2048, model=None):
        self.stream_calls.append({"messages": [dict(m) for m in messages], "temperature": temperature})
        chunks = self.streams.pop(0)
        if isinstance(chunks, Exception):
            raise chunks
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep real provider credentials out of every test."""
    for name in PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def retail_profile():
    return BusinessProfile(
        sector="Retail",
        kpis="Sales, Profit",
        customer_types="Consumers",
        product_mix="Apparel",
    )


@pytest.fixture
def saas_profile():
    return BusinessProfile(
        sector="SaaS",
        kpis="MRR, Churn",
        customer_types="SMBs",
        product_mix="Basic, Pro",
    )


@pytest.fixture
def retail_csv():
    return "date,product,units,revenue\n2024-01-01,Shirt,3,60\n2024-01-02,Jeans,1,45"


@pytest.fixture
def plan_payload() -> Dict[str, Any]:
    return {
        "identifiedColumns": ["date", "product", "units", "revenue"],
        "steps": [
            {"title": "Format Dates", "description": "Parse the 'date' column as ISO dates."},
            {"title": "Compute Unit Price", "description": "Divide revenue by units."},
        ],
        "analysisSuggestions": ["Revenue by product", "Daily sales trend"],
    }


@pytest.fixture
def analysis_payload() -> Dict[str, Any]:
    return {
        "analysisTitle": "Retail Sales Overview",
        "dataTransformationSummary": "Dates parsed; unit price derived.",
        "keyInsights": [
            {"metric": "Total Revenue", "value": "$105", "trend": "+5% vs last period"},
            {"metric": "Units Sold", "value": "4", "trend": "Stable"},
        ],
        "quantitativeAnalysis": "**Shirts** lead revenue.\n\n- Shirt: $60\n- Jeans: $45",
        "qualitativeAnalysis": "No qualitative analysis was possible.",
        "recommendations": [
            {"area": "Sales", "recommendation": "Bundle shirts with jeans."},
            {"area": "Marketing", "recommendation": "Promote denim."},
            {"area": "Product", "recommendation": "Expand apparel range."},
        ],
        "chartData": [{"name": "Shirt", "value": 60}, {"name": "Jeans", "value": 45}],
        "chartType": "bar",
    }


@pytest.fixture
def plan(plan_payload):
    return PreparationPlan.model_validate(plan_payload)


@pytest.fixture
def analysis_result(analysis_payload):
    return AnalysisResult.model_validate(analysis_payload)


@pytest.fixture
def plan_reply(plan_payload):
    return json.dumps(plan_payload)


@pytest.fixture
def analysis_reply(analysis_payload):
    return json.dumps(analysis_payload)


@pytest.fixture
def make_client():
    """Factory for :class:`ScriptedLLMClient` instances."""
    return ScriptedLLMClient
