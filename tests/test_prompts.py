"""Tests for prompt templates."""

import json

from llm.prompts import CHAT_ACKNOWLEDGEMENT, PromptTemplates
from utils.csv_loader import TRUNCATION_NOTE


class TestPromptTemplates:
    def test_plan_prompt_includes_profile_and_snippet(self, saas_profile):
        prompt = PromptTemplates.preparation_plan(saas_profile, "plan,mrr\nPro,99")
        assert "- Sector: SaaS" in prompt
        assert "- KPIs: MRR, Churn" in prompt
        assert "- Customer Types: SMBs" in prompt
        assert "- Product Mix: Basic, Pro" in prompt
        assert "plan,mrr\nPro,99" in prompt
        assert "3-5 essential steps" in prompt

    def test_plan_as_text(self, plan):
        text = PromptTemplates.plan_as_text(plan)
        assert text.startswith("PLAN:\n- Format Dates: Parse the 'date' column as ISO dates.")
        assert text.endswith("SUGGESTED ANALYSIS:\nRevenue by product, Daily sales trend")

    def test_analysis_prompt_embeds_plan(self, retail_profile, plan, retail_csv):
        prompt = PromptTemplates.analysis(retail_profile, plan, retail_csv, truncated=False)
        assert "- Compute Unit Price: Divide revenue by units." in prompt
        assert retail_csv in prompt
        assert TRUNCATION_NOTE not in prompt

    def test_analysis_prompt_notes_truncation(self, retail_profile, plan):
        prompt = PromptTemplates.analysis(retail_profile, plan, "a,b", truncated=True)
        assert TRUNCATION_NOTE in prompt

    def test_chat_context_condenses_analysis(self, retail_profile, analysis_result, retail_csv):
        prompt = PromptTemplates.chat_context(retail_profile, analysis_result, retail_csv)
        assert json.dumps(retail_profile.model_dump(by_alias=True)) in prompt
        assert '"title": "Retail Sales Overview"' in prompt
        assert "Bundle shirts with jeans." in prompt
        # the long-form analysis stays out of the chat context
        assert "Shirts** lead revenue" not in prompt
        assert f"{retail_csv}..." in prompt

    def test_chat_context_caps_csv(self, retail_profile, analysis_result):
        prompt = PromptTemplates.chat_context(retail_profile, analysis_result, "x" * 10_000, max_chars=4000)
        assert "x" * 4000 + "..." in prompt
        assert "x" * 4001 not in prompt

    def test_welcome_message_names_file(self):
        assert "**sales.csv**" in PromptTemplates.welcome_message("sales.csv")

    def test_acknowledgement_text(self):
        assert CHAT_ACKNOWLEDGEMENT.startswith("Understood.")
