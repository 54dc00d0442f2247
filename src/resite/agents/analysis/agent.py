"""Site Analysis Agent — describes an existing site from screenshots or a URL."""

from __future__ import annotations

import logging
from typing import Any

from resite.agents.analysis.prompts import SCREENSHOT_INSTRUCTIONS, SYSTEM_PROMPT, URL_INSTRUCTIONS
from resite.agents.base import BaseAgent, extract_json
from resite.schemas.analysis import AnalysisResult
from resite.shared.llm_client import LLMClient

logger = logging.getLogger(__name__)

# Page text beyond this is dropped before sending to the model
_MAX_PAGE_TEXT = 6_000


def _image_part(image: str, *, mime: str = "image/png") -> dict[str, Any]:
    """Wrap a base64 string or data URI as an OpenAI image content part."""
    url = image if image.startswith("data:") else f"data:{mime};base64,{image}"
    return {"type": "image_url", "image_url": {"url": url, "detail": "low"}}


class SiteAnalysisAgent(BaseAgent):
    """Produces the legacy ``AnalysisResult`` shape.

    No tools — screenshots are sent as image content parts and URL pages
    are pre-scraped by the caller.
    """

    def __init__(self, client: LLMClient) -> None:
        super().__init__(client)

    @property
    def name(self) -> str:
        return "Site Analysis"

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def parse_output(self, raw_text: str) -> AnalysisResult:
        data = extract_json(raw_text)
        return AnalysisResult(**data)

    async def analyze_screenshots(self, images: list[str]) -> AnalysisResult:
        """Analyze one or more screenshots (base64 strings or data URIs)."""
        if not images:
            raise ValueError("At least one screenshot is required")
        content: list[dict[str, Any]] = [_image_part(img) for img in images]
        content.append({"type": "text", "text": SCREENSHOT_INSTRUCTIONS})
        return await self.run_vision(content)

    async def analyze_page(self, url: str, page_text: str, screenshot_b64: str = "") -> AnalysisResult:
        """Analyze a live page from its scraped text and optional screenshot."""
        content: list[dict[str, Any]] = [
            {"type": "text", "text": URL_INSTRUCTIONS.format(url=url)},
            {"type": "text", "text": "## Page text\n" + page_text[:_MAX_PAGE_TEXT]},
        ]
        if screenshot_b64:
            content.append(_image_part(screenshot_b64, mime="image/jpeg"))
        return await self.run_vision(content)
