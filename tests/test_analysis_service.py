"""Tests for the analysis service: plan, analysis and chat-session creation."""

import json

import pytest

from config.settings import Settings
from core.chat import ChatSession
from core.errors import AnalysisServiceError, MalformedResponseError
from llm.schemas import ANALYSIS_SCHEMA, PREPARATION_PLAN_SCHEMA
from services.analysis_service import AnalysisService
from utils.csv_loader import TRUNCATION_NOTE


def _service(client, **overrides):
    return AnalysisService(client=client, settings=Settings(_env_file=None, **overrides))


class TestPreparationPlan:
    @pytest.mark.asyncio
    async def test_plan_is_decoded(self, retail_profile, retail_csv, plan_reply, make_client):
        client = make_client(replies=[plan_reply])
        plan = await _service(client).generate_preparation_plan(retail_profile, retail_csv)
        assert plan.steps[0].title == "Format Dates"
        assert plan.identified_columns == ["date", "product", "units", "revenue"]

    @pytest.mark.asyncio
    async def test_plan_request_uses_sample_and_schema(self, retail_profile, plan_reply, make_client):
        csv_data = "\n".join(f"{i},x" for i in range(100))
        client = make_client(replies=[plan_reply])
        await _service(client).generate_preparation_plan(retail_profile, csv_data)

        call = client.calls[0]
        prompt = call["messages"][0]["content"]
        assert "9,x" in prompt
        assert "10,x" not in prompt
        assert call["response_schema"] is PREPARATION_PLAN_SCHEMA
        assert call["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_missing_field_is_malformed(self, retail_profile, retail_csv, plan_payload, make_client):
        del plan_payload["steps"]
        client = make_client(replies=[json.dumps(plan_payload)])
        with pytest.raises(MalformedResponseError) as exc:
            await _service(client).generate_preparation_plan(retail_profile, retail_csv)
        assert "steps" in exc.value.fields

    @pytest.mark.asyncio
    async def test_non_json_reply_is_malformed(self, retail_profile, retail_csv, make_client):
        client = make_client(replies=["Sure! Here is your plan."])
        with pytest.raises(MalformedResponseError):
            await _service(client).generate_preparation_plan(retail_profile, retail_csv)

    @pytest.mark.asyncio
    async def test_provider_failure_is_classified(self, retail_profile, retail_csv, make_client):
        client = make_client(replies=[RuntimeError("401 Unauthorized")])
        with pytest.raises(AnalysisServiceError) as exc:
            await _service(client).generate_preparation_plan(retail_profile, retail_csv)
        assert exc.value.cause == "auth_failed"
        assert "rejected the API key" in str(exc.value)

    @pytest.mark.asyncio
    async def test_no_client_configured(self, retail_profile, retail_csv):
        service = AnalysisService(settings=Settings(_env_file=None))
        assert service.client is None
        with pytest.raises(AnalysisServiceError) as exc:
            await service.generate_preparation_plan(retail_profile, retail_csv)
        assert exc.value.cause == "misconfigured"


class TestAnalyzeData:
    @pytest.mark.asyncio
    async def test_retail_analysis(self, retail_profile, retail_csv, plan, analysis_reply, make_client):
        client = make_client(replies=[analysis_reply])
        result = await _service(client).analyze_data(retail_profile, retail_csv, plan)

        assert result.analysis_title == "Retail Sales Overview"
        assert len(result.key_insights) == 2
        assert len(result.recommendations) == 3
        assert result.chart_type.value == "bar"
        assert len(result.chart_data) >= 1

        call = client.calls[0]
        prompt = call["messages"][0]["content"]
        assert retail_csv in prompt
        assert TRUNCATION_NOTE not in prompt
        assert call["response_schema"] is ANALYSIS_SCHEMA
        assert call["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_markdown_sections_rendered(self, retail_profile, retail_csv, plan, analysis_reply, make_client):
        client = make_client(replies=[analysis_reply])
        result = await _service(client).analyze_data(retail_profile, retail_csv, plan)
        assert "<strong>Shirts</strong>" in result.quantitative_analysis
        assert "<li>Shirt: $60</li>" in result.quantitative_analysis
        assert result.qualitative_analysis.startswith("<p>")

    @pytest.mark.asyncio
    async def test_large_csv_truncated_with_note(self, retail_profile, plan, analysis_reply, make_client):
        csv_data = "a," + "x" * 150_000
        client = make_client(replies=[analysis_reply])
        await _service(client).analyze_data(retail_profile, csv_data, plan)

        prompt = client.calls[0]["messages"][0]["content"]
        assert csv_data[:100_000] in prompt
        assert csv_data[:100_001] not in prompt
        assert TRUNCATION_NOTE in prompt

    @pytest.mark.asyncio
    async def test_truncation_limit_from_settings(self, retail_profile, plan, analysis_reply, make_client):
        client = make_client(replies=[analysis_reply])
        await _service(client, MAX_CSV_CHARS=10).analyze_data(retail_profile, "0123456789ABC", plan)
        prompt = client.calls[0]["messages"][0]["content"]
        assert "0123456789\n" in prompt
        assert TRUNCATION_NOTE in prompt

    @pytest.mark.asyncio
    async def test_bad_chart_type_is_malformed(self, retail_profile, retail_csv, plan, analysis_payload, make_client):
        analysis_payload["chartType"] = "pie"
        client = make_client(replies=[json.dumps(analysis_payload)])
        with pytest.raises(MalformedResponseError) as exc:
            await _service(client).analyze_data(retail_profile, retail_csv, plan)
        assert "chartType" in exc.value.fields


class TestChatSessionCreation:
    def test_session_uses_chat_settings(self, retail_profile, retail_csv, analysis_result, make_client):
        client = make_client()
        session = _service(client, CHAT_MODEL="chat-model").create_chat_session(
            retail_profile, retail_csv, analysis_result
        )
        assert isinstance(session, ChatSession)
        assert session.model == "chat-model"
        assert session.temperature == 0.7
        assert len(session.context) == 2

    def test_session_requires_client(self, retail_profile, retail_csv, analysis_result):
        service = AnalysisService(settings=Settings(_env_file=None))
        with pytest.raises(AnalysisServiceError):
            service.create_chat_session(retail_profile, retail_csv, analysis_result)
