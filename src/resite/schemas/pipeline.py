"""Pipeline state models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel

from resite.schemas.analysis import AnalysisData, AnalysisResult
from resite.schemas.generation import GeneratedAsset, GeneratedSite
from resite.schemas.preferences import UserPreferences


class Step(str, Enum):
    """Which screen of the pipeline is active."""

    INPUT = "INPUT"
    ANALYZING = "ANALYZING"
    ANALYSIS_RESULT = "ANALYSIS_RESULT"
    PREFERENCES = "PREFERENCES"
    GENERATING = "GENERATING"
    PREVIEW = "PREVIEW"


class ChatMessage(BaseModel):
    role: Literal["user", "model"]
    text: str


GenerationProtocol = Literal["structured", "legacy"]


class PipelineState(BaseModel):
    """Tracks the state of data flowing through the pipeline."""

    step: Step = Step.INPUT
    analysis: AnalysisResult | None = None
    analysis_data: AnalysisData | None = None
    analysis_progress: int = 0
    analysis_status: str = ""
    preferences: UserPreferences | None = None
    protocol: GenerationProtocol | None = None
    generated_html: str = ""
    generated_site: GeneratedSite | None = None
    generated_assets: list[GeneratedAsset] = []
    progress_log: list[str] = []
    messages: list[ChatMessage] = []

    @property
    def business_name(self) -> str:
        """Best available business identifier, used for export naming."""
        if self.analysis_data and self.analysis_data.text_content.headings:
            if self.analysis_data.text_content.headings[0]:
                return self.analysis_data.text_content.headings[0]
        if self.analysis and self.analysis.business_name:
            return self.analysis.business_name
        return "website"
