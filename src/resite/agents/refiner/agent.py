"""Site Refiner Agent — applies one conversational edit to the whole page."""

from __future__ import annotations

import logging

from resite.agents.base import BaseAgent, extract_html, restore_data_uris, stash_data_uris
from resite.agents.refiner.prompts import SYSTEM_PROMPT, legacy_request, structured_request
from resite.agents.site_builder.prompts import HTML_RETRY_MSG
from resite.schemas.analysis import AnalysisData
from resite.shared.llm_client import LLMClient

logger = logging.getLogger(__name__)


class RefinerAgent(BaseAgent):
    """Stateless: every call sends the full current HTML and one instruction."""

    json_mode = False

    def __init__(self, client: LLMClient) -> None:
        super().__init__(client)

    @property
    def name(self) -> str:
        return "Site Refiner"

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def parse_output(self, raw_text: str) -> str:
        return extract_html(raw_text)

    def retry_message(self) -> str:
        return HTML_RETRY_MSG

    async def refine(self, html: str, instruction: str, data: AnalysisData | None = None) -> str:
        short, stash = stash_data_uris(html)
        if data is None:
            request = legacy_request(short, instruction)
        else:
            request = structured_request(short, instruction, data)
        updated = await self.run(request)
        return restore_data_uris(updated, stash)
