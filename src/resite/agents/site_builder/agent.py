"""Site Builder Agent — synthesizes the regenerated HTML page."""

from __future__ import annotations

import logging

from resite.agents.base import BaseAgent, extract_html, restore_data_uris, stash_data_uris
from resite.agents.site_builder.prompts import (
    HTML_RETRY_MSG,
    SYSTEM_PROMPT,
    compile_instructions,
    legacy_instructions,
)
from resite.schemas.analysis import AnalysisData, AnalysisResult
from resite.schemas.generation import GeneratedAsset
from resite.schemas.preferences import UserPreferences
from resite.shared.llm_client import LLMClient

logger = logging.getLogger(__name__)


class SiteBuilderAgent(BaseAgent):
    """Produces a complete HTML document. Raw markup output, no JSON mode."""

    json_mode = False

    def __init__(self, client: LLMClient) -> None:
        super().__init__(client)

    @property
    def name(self) -> str:
        return "Site Builder"

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def parse_output(self, raw_text: str) -> str:
        return extract_html(raw_text)

    def retry_message(self) -> str:
        return HTML_RETRY_MSG

    async def _build(self, instructions: str) -> str:
        # Inline images are swapped for tokens on the way out and back in
        short, stash = stash_data_uris(instructions)
        html = await self.run(short)
        return restore_data_uris(html, stash)

    async def generate_html(self, analysis: AnalysisResult, assets: list[GeneratedAsset]) -> str:
        """Legacy protocol: rebuild from ``AnalysisResult`` plus generated assets."""
        return await self._build(legacy_instructions(analysis, assets))

    async def compile_html(
        self, data: AnalysisData, prefs: UserPreferences, hero_image_url: str,
    ) -> str:
        """Structured protocol: compile from ``AnalysisData`` plus preferences."""
        return await self._build(compile_instructions(data, prefs, hero_image_url))
