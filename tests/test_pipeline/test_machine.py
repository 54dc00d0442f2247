"""Tests for the pipeline state machine."""

from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from resite.agents.backend import SiteBackend
from resite.errors import AnalysisError, GenerationError, PipelineStateError
from resite.pipeline.machine import IMAGE_STATUSES, TRANSITIONS, URL_STATUSES, SitePipeline
from resite.schemas.analysis import AnalysisData
from resite.schemas.config import PipelineTimings
from resite.schemas.pipeline import PipelineState, Step
from resite.shared.llm_client import LLMClient

from conftest import COMPILED_HTML, LEGACY_HTML, REFINED_HTML

CHOICES = [
    ("vibe", "elegant"),
    ("color_palette", "clean-monochrome"),
    ("typography", "classic-serif"),
    ("layout_focus", "hero-centric"),
]


def _pipeline(backend: AsyncMock, timings: PipelineTimings) -> SitePipeline:
    return SitePipeline(backend, timings=timings)


async def _through_wizard(pipeline: SitePipeline) -> None:
    pipeline.begin_preferences()
    for step_id, value in CHOICES:
        await pipeline.select_preference(step_id, value)


class TestTransitions:
    def test_table(self) -> None:
        assert TRANSITIONS[Step.INPUT] == {Step.ANALYZING}
        assert TRANSITIONS[Step.GENERATING] == {Step.PREVIEW, Step.PREFERENCES, Step.ANALYSIS_RESULT}
        assert TRANSITIONS[Step.PREVIEW] == frozenset()

    def test_illegal_transition(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        with pytest.raises(PipelineStateError, match="INPUT to PREFERENCES"):
            pipeline.begin_preferences()
        assert pipeline.step is Step.INPUT

    def test_preview_requires_html(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        pipeline.state.step = Step.GENERATING
        with pytest.raises(PipelineStateError, match="without generated HTML"):
            pipeline._transition(Step.PREVIEW)
        assert pipeline.step is Step.GENERATING

    @pytest.mark.asyncio
    async def test_preview_operations_need_preview(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings, tmp_path: Path,
    ) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        with pytest.raises(PipelineStateError):
            await pipeline.refine("make it blue")
        with pytest.raises(PipelineStateError):
            pipeline.export(tmp_path)

    def test_on_change_called(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        seen: list[Step] = []
        pipeline = SitePipeline(mock_backend, timings=zero_timings, on_change=lambda s: seen.append(s.step))
        pipeline._transition(Step.ANALYZING)
        assert seen == [Step.ANALYZING]


class TestAnalysis:
    @pytest.mark.asyncio
    async def test_images(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)

        result = await pipeline.analyze_images(["aGVsbG8="])

        assert result.business_name == "Example Bakery"
        assert pipeline.step is Step.ANALYSIS_RESULT
        assert pipeline.state.analysis_progress == 100
        data = pipeline.state.analysis_data
        assert data is not None
        assert data.text_content.headings[0] == "Example Bakery"
        assert data.text_content.ctas == ["Get Started", "Contact Us"]
        assert data.original_url == ""
        mock_backend.analyze_from_images.assert_awaited_once_with(["aGVsbG8="])

    @pytest.mark.asyncio
    async def test_url(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings, sample_data: AnalysisData,
    ) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)

        await pipeline.analyze_url("https://bakery.example")

        assert pipeline.step is Step.ANALYSIS_RESULT
        assert pipeline.state.analysis_data == sample_data
        mock_backend.analyze_from_url.assert_awaited_once_with("https://bakery.example")
        mock_backend.fetch_structured_analysis.assert_awaited_once_with("https://bakery.example")

    @pytest.mark.asyncio
    async def test_failure_returns_to_input(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        mock_backend.analyze_from_images.side_effect = AnalysisError("garbled")
        pipeline = _pipeline(mock_backend, zero_timings)

        with pytest.raises(AnalysisError):
            await pipeline.analyze_images(["x"])
        assert pipeline.step is Step.INPUT
        assert pipeline.state.analysis is None
        assert pipeline.state.analysis_data is None

        # A fresh attempt is allowed
        mock_backend.analyze_from_images.side_effect = None
        await pipeline.analyze_images(["x"])
        assert pipeline.step is Step.ANALYSIS_RESULT

    @pytest.mark.asyncio
    async def test_non_object_response_returns_to_input(
        self, mock_llm_client: LLMClient, zero_timings: PipelineTimings,
    ) -> None:
        reply = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="```json\n[1, 2]\n```"))],
            usage=None,
        )
        mock_llm_client._client.chat.completions.create = AsyncMock(return_value=reply)
        pipeline = SitePipeline(SiteBackend(mock_llm_client), timings=zero_timings)

        with pytest.raises(AnalysisError) as exc_info:
            await pipeline.analyze_images(["aGVsbG8="])
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert pipeline.step is Step.INPUT
        assert pipeline.state.analysis is None

    @pytest.mark.asyncio
    async def test_structured_scrape_failure(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        mock_backend.fetch_structured_analysis.side_effect = AnalysisError("no browser")
        pipeline = _pipeline(mock_backend, zero_timings)

        with pytest.raises(AnalysisError):
            await pipeline.analyze_url("https://bakery.example")
        assert pipeline.step is Step.INPUT
        assert pipeline.state.analysis is None

    @pytest.mark.asyncio
    async def test_ticker_progress_capped(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        ticker = asyncio.create_task(pipeline._tick(IMAGE_STATUSES))
        for _ in range(20):
            await asyncio.sleep(0)
        ticker.cancel()
        with pytest.raises(asyncio.CancelledError):
            await ticker

        assert pipeline.state.analysis_progress == 95
        assert pipeline.state.analysis_status == "Generating improvement plan..."

    def test_url_statuses(self) -> None:
        assert URL_STATUSES[0] == "Accessing URL..."
        assert IMAGE_STATUSES[0] == "Capturing screenshots..."
        assert URL_STATUSES[1:] == IMAGE_STATUSES[1:]

    @pytest.mark.asyncio
    async def test_start_over(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])
        pipeline.start_over()
        assert pipeline.state == PipelineState()


class TestStructuredGeneration:
    @pytest.mark.asyncio
    async def test_wizard_completion_generates(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_url("https://bakery.example")
        await _through_wizard(pipeline)

        assert pipeline.step is Step.PREVIEW
        assert pipeline.state.protocol == "structured"
        assert pipeline.state.generated_html == COMPILED_HTML
        assert pipeline.state.generated_site.html == COMPILED_HTML
        assert pipeline.state.preferences.dominant_vibe == "elegant"
        assert pipeline.state.progress_log[-1] == "Design compilation complete!"
        assert len(pipeline.state.messages) == 1
        assert pipeline.state.messages[0].role == "model"
        assert pipeline.state.messages[0].text.startswith("Your new Example Bakery website is ready!")
        mock_backend.generate_html.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_returns_to_preferences(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings,
    ) -> None:
        mock_backend.compile.side_effect = GenerationError("bad output")
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_url("https://bakery.example")

        with pytest.raises(GenerationError):
            await _through_wizard(pipeline)

        assert pipeline.step is Step.PREFERENCES
        assert pipeline.preferences.index == 0
        assert not pipeline.preferences.is_complete
        assert pipeline.state.progress_log[-1] == "Compilation failed. Please try again."

    @pytest.mark.asyncio
    async def test_falls_back_to_legacy_without_structured_data(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings,
    ) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])
        pipeline.state.analysis_data = None

        await _through_wizard(pipeline)

        assert pipeline.step is Step.PREVIEW
        assert pipeline.state.protocol == "legacy"
        assert pipeline.state.generated_html == LEGACY_HTML
        mock_backend.compile.assert_not_awaited()


class TestLegacyGeneration:
    @pytest.mark.asyncio
    async def test_generates_from_analysis(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])

        html = await pipeline.generate_legacy()

        assert html == LEGACY_HTML
        assert pipeline.step is Step.PREVIEW
        assert pipeline.state.protocol == "legacy"
        assert [a.type for a in pipeline.state.generated_assets] == ["hero", "feature"]
        assert pipeline.state.messages[0].text.startswith("Welcome to the new Example Bakery website!")

    @pytest.mark.asyncio
    async def test_failure_returns_to_analysis(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        mock_backend.generate_html.side_effect = GenerationError("boom")
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])

        with pytest.raises(GenerationError):
            await pipeline.generate_legacy()
        assert pipeline.step is Step.ANALYSIS_RESULT
        assert pipeline.state.generated_html == ""

    @pytest.mark.asyncio
    async def test_needs_analysis(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        with pytest.raises(PipelineStateError):
            await _pipeline(mock_backend, zero_timings).generate_legacy()


class TestPreview:
    @pytest.mark.asyncio
    async def test_refine_uses_generation_protocol(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings,
    ) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])
        await pipeline.generate_legacy()

        html = await pipeline.refine("Make the header blue")

        assert html == REFINED_HTML == pipeline.state.generated_html
        mock_backend.refine_legacy.assert_awaited_once_with(LEGACY_HTML, "Make the header blue")
        mock_backend.refine_structured.assert_not_awaited()
        assert len(pipeline.state.messages) == 3

    @pytest.mark.asyncio
    async def test_preview_notified_with_welcome(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings,
    ) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])
        seen: list[tuple[Step, int, bool]] = []
        pipeline.on_change = lambda s: seen.append((s.step, len(s.messages), pipeline.refinement is not None))

        await pipeline.generate_legacy()

        previews = [entry for entry in seen if entry[0] is Step.PREVIEW]
        assert previews == [(Step.PREVIEW, 1, True)]

    @pytest.mark.asyncio
    async def test_user_message_shown_before_reply(
        self, mock_backend: AsyncMock, zero_timings: PipelineTimings,
    ) -> None:
        release = asyncio.Event()

        async def slow_refine(html: str, instruction: str) -> str:
            await release.wait()
            return REFINED_HTML

        mock_backend.refine_legacy.side_effect = slow_refine
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])
        await pipeline.generate_legacy()
        roles: list[list[str]] = []
        pipeline.on_change = lambda s: roles.append([m.role for m in s.messages])

        task = asyncio.create_task(pipeline.refine("Make the header blue"))
        for _ in range(5):
            await asyncio.sleep(0)

        assert roles == [["model", "user"]]
        assert pipeline.refinement.is_processing
        assert pipeline.state.generated_html == LEGACY_HTML

        release.set()
        await task
        assert roles[-1] == ["model", "user", "model"]
        assert pipeline.state.generated_html == REFINED_HTML

    @pytest.mark.asyncio
    async def test_refine_structured_site(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_url("https://bakery.example")
        await _through_wizard(pipeline)

        await pipeline.refine("Bigger logo")

        mock_backend.refine_structured.assert_awaited_once()
        assert pipeline.state.generated_site.html == REFINED_HTML

    @pytest.mark.asyncio
    async def test_export(self, mock_backend: AsyncMock, zero_timings: PipelineTimings, tmp_path: Path) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_url("https://bakery.example")
        await _through_wizard(pipeline)

        path = pipeline.export(tmp_path / "out")

        assert path.name == "example-bakery.html"
        assert path.read_text(encoding="utf-8") == COMPILED_HTML

    @pytest.mark.asyncio
    async def test_render_preview(self, mock_backend: AsyncMock, zero_timings: PipelineTimings) -> None:
        pipeline = _pipeline(mock_backend, zero_timings)
        await pipeline.analyze_images(["x"])
        await pipeline.generate_legacy()

        page = pipeline.render_preview(theme="light")
        assert 'sandbox="allow-scripts allow-modals allow-forms allow-same-origin"' in page
        assert 'data-theme="light"' in page
