"""Pydantic schemas and data models for Decision AI.

Defines the wizard's data model: the business profile, the AI-proposed
preparation plan, the analysis result and the chat transcript, plus the
session state the wizard controller owns. JSON uses the camelCase names the
AI collaborator is asked to return; Python code uses snake_case attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class AppView(str, Enum):
    """The four wizard steps, in order."""

    BUSINESS_PROFILE = "business_profile"
    DATA_UPLOAD = "data_upload"
    DATA_PREPARATION = "data_preparation"
    DASHBOARD = "dashboard"

    @classmethod
    def ordered(cls) -> List["AppView"]:
        return [cls.BUSINESS_PROFILE, cls.DATA_UPLOAD, cls.DATA_PREPARATION, cls.DASHBOARD]


class ChartType(str, Enum):
    """Chart kinds the dashboard can draw."""

    BAR = "bar"
    LINE = "line"


class BusinessProfile(BaseModel):
    """Business context used to personalise every prompt."""

    sector: str = Field(description="Industry or sector")
    kpis: str = Field(description="Key performance indicators the business tracks")
    customer_types: str = Field(alias="customerTypes", description="Primary customer types")
    product_mix: str = Field(alias="productMix", description="Product or service mix")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("sector", "kpis", "customer_types", "product_mix")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class PreparationStep(BaseModel):
    """One proposed data cleaning / preparation step."""

    title: str = Field(description="Short title, e.g. 'Handle Missing Values'")
    description: str = Field(description="What the step does and to which columns")

    model_config = {"frozen": True}


class PreparationPlan(BaseModel):
    """AI-proposed plan the user approves before the full analysis runs."""

    identified_columns: List[str] = Field(alias="identifiedColumns", description="Relevant column headers")
    steps: List[PreparationStep] = Field(description="Ordered preparation steps")
    analysis_suggestions: List[str] = Field(alias="analysisSuggestions", description="Suggested analyses")

    model_config = {"frozen": True, "populate_by_name": True}


class KeyInsight(BaseModel):
    """A headline metric shown as a card on the dashboard."""

    metric: str
    value: str
    trend: str

    model_config = {"frozen": True}

    @property
    def trend_direction(self) -> str:
        return "up" if self.trend.strip().startswith("+") else "down"


class Recommendation(BaseModel):
    area: str
    recommendation: str

    model_config = {"frozen": True}


class ChartPoint(BaseModel):
    name: str
    value: float

    model_config = {"frozen": True}


class AnalysisResult(BaseModel):
    """Full analysis produced from an approved plan.

    ``quantitative_analysis`` and ``qualitative_analysis`` hold sanitized HTML
    once the analysis service has rendered the model's Markdown.
    """

    analysis_title: str = Field(alias="analysisTitle")
    data_transformation_summary: str = Field(alias="dataTransformationSummary")
    key_insights: List[KeyInsight] = Field(alias="keyInsights")
    quantitative_analysis: str = Field(alias="quantitativeAnalysis")
    qualitative_analysis: str = Field(alias="qualitativeAnalysis")
    recommendations: List[Recommendation]
    chart_data: List[ChartPoint] = Field(alias="chartData")
    chart_type: ChartType = Field(alias="chartType")

    model_config = {"frozen": True, "populate_by_name": True}


ChatRole = Literal["user", "model"]


class ChatMessage(BaseModel):
    """A single committed message in the chat transcript."""

    role: ChatRole = Field(description="Message role: 'user' or 'model'")
    content: str = Field(description="Message text content")

    model_config = {"frozen": True}


class WizardState(BaseModel):
    """Everything the wizard knows about the current session.

    Only :class:`core.wizard.WizardController` mutates an instance.
    """

    current_view: AppView = AppView.BUSINESS_PROFILE
    profile: Optional[BusinessProfile] = None
    csv_data: Optional[str] = None
    file_name: str = ""
    preparation_plan: Optional[PreparationPlan] = None
    analysis_result: Optional[AnalysisResult] = None
    chat_history: List[ChatMessage] = Field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None
    pending_reply: Optional[str] = None
    epoch: int = 0

    def same_session_as(self, other: "WizardState") -> bool:
        """Compare session fields, ignoring the epoch counter."""
        return self.model_dump(exclude={"epoch"}) == other.model_dump(exclude={"epoch"})
