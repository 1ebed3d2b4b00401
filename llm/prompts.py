"""
Prompt Templates for the plan, analysis and chat calls
"""

import json
from typing import Any, Dict

from core.models import AnalysisResult, BusinessProfile, PreparationPlan
from utils.csv_loader import TRUNCATION_NOTE

CHAT_ACKNOWLEDGEMENT = "Understood. I'm ready to answer questions about the provided data and analysis."

CHAT_ERROR_REPLY = "Sorry, I encountered an error. Please try again."


class PromptTemplates:
    """All prompt templates sent to the AI collaborator."""

    @staticmethod
    def profile_block(profile: BusinessProfile) -> str:
        return (
            f"- Sector: {profile.sector}\n"
            f"- KPIs: {profile.kpis}\n"
            f"- Customer Types: {profile.customer_types}\n"
            f"- Product Mix: {profile.product_mix}"
        )

    @staticmethod
    def preparation_plan(profile: BusinessProfile, csv_snippet: str) -> str:
        return f"""You are a senior data analyst. Your task is to inspect a data sample from a business and propose a data preparation and analysis plan.

Business Profile:
{PromptTemplates.profile_block(profile)}

Data Sample (first few rows of a CSV file):
\"\"\"
{csv_snippet}
\"\"\"

Based on the business profile and the data sample, please do the following:
1. Identify the most relevant column headers from the data.
2. Propose a clear, step-by-step plan for cleaning and preparing this data for analysis. Steps could include formatting dates, handling missing values, creating new calculated columns (like profit margin), or correcting data types. Each step should have a short title and a clear description. Keep the plan to 3-5 essential steps.
3. Suggest 2-3 specific analyses that would be valuable for this business, given their profile and the available data.

Return your response in the specified JSON format."""

    @staticmethod
    def plan_as_text(plan: PreparationPlan) -> str:
        steps = "\n".join(f"- {s.title}: {s.description}" for s in plan.steps)
        return f"PLAN:\n{steps}\n\nSUGGESTED ANALYSIS:\n{', '.join(plan.analysis_suggestions)}"

    @staticmethod
    def analysis(profile: BusinessProfile, plan: PreparationPlan, csv_data: str, truncated: bool) -> str:
        note = f"\n{TRUNCATION_NOTE}\n" if truncated else ""

        return f"""Analyze the following CSV data for a business with this profile:
{PromptTemplates.profile_block(profile)}

The user has approved the following data preparation and analysis plan. Please follow these steps when conducting your analysis:
---
{PromptTemplates.plan_as_text(plan)}
---

CSV Data:
\"\"\"
{csv_data}
\"\"\"
{note}
Perform the following tasks:
1. Create a concise title for the analysis.
2. Briefly summarize the automated data transformations you performed based on the approved plan.
3. Identify 3-4 key insights or metrics directly from the data that are relevant to the business's KPIs. Provide a metric name, its value, and a trend indicator (e.g., "+5% vs last period" or "Stable").
4. Provide a quantitative analysis summary. Use Markdown for formatting (e.g., bolding, lists).
5. Provide a qualitative analysis summary if there are text columns. If not, state that no qualitative analysis was possible. Use Markdown.
6. Generate 3 actionable recommendations across areas like Sales, Marketing, or Product.
7. Extract data for a relevant chart (bar or line). Choose the chart type that best represents a key aspect of the data. The data should be an array of objects with 'name' and 'value' keys.

Return the entire response in the specified JSON format."""

    @staticmethod
    def analysis_summary(result: AnalysisResult) -> Dict[str, Any]:
        """Condensed view of the analysis the chat assistant keeps in context."""
        return {
            "title": result.analysis_title,
            "insights": [i.model_dump() for i in result.key_insights],
            "recommendations": [r.model_dump() for r in result.recommendations],
        }

    @staticmethod
    def chat_context(
        profile: BusinessProfile,
        result: AnalysisResult,
        csv_data: str,
        max_chars: int = 4000,
    ) -> str:
        return f"""You are a data analysis assistant. The user has provided the following business profile and data.

Business Profile: {json.dumps(profile.model_dump(by_alias=True))}

Initial Analysis Summary: {json.dumps(PromptTemplates.analysis_summary(result))}

The full CSV data is:
---
{csv_data[:max_chars]}...
---

Answer the user's questions based on this context. Be concise and helpful."""

    @staticmethod
    def welcome_message(file_name: str) -> str:
        return (
            f"Welcome! I've analyzed your data from **{file_name}** based on your business profile "
            "and the approved preparation plan. You can now ask me questions about it."
        )
