"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from resite.agents.backend import SiteBackend
from resite.schemas.analysis import (
    AnalysisData,
    AnalysisResult,
    ContactInfo,
    DesignTokens,
    ExtractedContent,
    ScrapedImages,
    TextContent,
)
from resite.schemas.config import PipelineTimings
from resite.schemas.generation import GeneratedAsset, GeneratedSite
from resite.shared.llm_client import LLMClient

COMPILED_HTML = "<!DOCTYPE html><html><body><h1>Compiled</h1></body></html>"
LEGACY_HTML = "<!DOCTYPE html><html><body><h1>Legacy</h1></body></html>"
REFINED_HTML = "<!DOCTYPE html><html><body><h1>Refined</h1></body></html>"


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    cfg = tmp_path / "resite.yml"
    cfg.write_text(
        """\
model: "gpt-4o-mini"
theme: light
output_directory: "{out}"
timings:
  advance_delay: 0
""".format(out=str(tmp_path / "output"))
    )
    return cfg


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Return an LLMClient with a mocked OpenAI SDK underneath."""
    client = LLMClient.__new__(LLMClient)
    client._client = AsyncMock()
    client.model = "test-model"
    client.image_model = "test-image-model"
    return client


@pytest.fixture
def zero_timings() -> PipelineTimings:
    return PipelineTimings(
        advance_delay=0, generation_delay=0, preview_delay=0, failure_delay=0, analysis_tick=0,
    )


@pytest.fixture
def sample_analysis() -> AnalysisResult:
    return AnalysisResult(
        business_name="Example Bakery",
        business_type="Bakery",
        primary_color="#8B4513",
        secondary_color="#F5DEB3",
        accent_color="#D2691E",
        design_issues=["Table layout"],
        extracted_content=ExtractedContent(
            headline="Fresh bread, every morning",
            description="A family bakery.",
            services=["Sourdough", "Wedding cakes"],
            contact_info="555-0100",
        ),
        recommended_style="warm minimal",
    )


@pytest.fixture
def sample_data() -> AnalysisData:
    return AnalysisData(
        scrape_id="scrape-test",
        original_url="https://bakery.example",
        text_content=TextContent(
            headings=["Example Bakery", "Fresh bread"],
            paragraphs=["A family bakery."],
            ctas=["Order now"],
            contact_info=ContactInfo(phone="555-0100", email="hi@bakery.example"),
        ),
        design_tokens=DesignTokens(colors=["#8B4513"], fonts=["Georgia"]),
        scraped_images=ScrapedImages(logo_url="https://bakery.example/logo.png"),
    )


@pytest.fixture
def mock_backend(sample_analysis: AnalysisResult, sample_data: AnalysisData) -> AsyncMock:
    """A SiteBackend double where every collaborator call succeeds."""
    backend = AsyncMock(spec=SiteBackend)

    async def generate_image(prompt: str, kind: str) -> GeneratedAsset:
        return GeneratedAsset(type=kind, url=f"https://img.example/{kind}.png", prompt=prompt)

    backend.generate_image.side_effect = generate_image
    backend.analyze_from_images.return_value = sample_analysis
    backend.analyze_from_url.return_value = sample_analysis
    backend.fetch_structured_analysis.return_value = sample_data
    backend.compile.return_value = GeneratedSite(
        html=COMPILED_HTML, hero_image_url="https://img.example/hero.png",
    )
    backend.generate_html.return_value = LEGACY_HTML
    backend.refine_structured.return_value = REFINED_HTML
    backend.refine_legacy.return_value = REFINED_HTML
    return backend
