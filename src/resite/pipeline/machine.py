"""Pipeline State Machine — owns the session and enforces step order.

    INPUT → ANALYZING → ANALYSIS_RESULT → PREFERENCES → GENERATING → PREVIEW
                                       ↘──────────────↗

Every step change goes through ``_transition``; anything not in
``TRANSITIONS`` raises ``PipelineStateError``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from resite.agents.backend import SiteBackend
from resite.errors import AnalysisError, GenerationError, PipelineStateError
from resite.output.export import export_site
from resite.output.preview import render_preview
from resite.pipeline.generation import GenerationOrchestrator, legacy_welcome, structured_welcome
from resite.pipeline.normalizer import normalize
from resite.pipeline.preferences import PreferenceCompiler
from resite.pipeline.refinement import RefinementLoop
from resite.schemas.analysis import AnalysisResult
from resite.schemas.config import PipelineTimings
from resite.schemas.pipeline import ChatMessage, PipelineState, Step
from resite.schemas.preferences import UserPreferences

logger = logging.getLogger(__name__)

TRANSITIONS: dict[Step, frozenset[Step]] = {
    Step.INPUT: frozenset({Step.ANALYZING}),
    Step.ANALYZING: frozenset({Step.ANALYSIS_RESULT, Step.INPUT}),
    Step.ANALYSIS_RESULT: frozenset({Step.PREFERENCES, Step.GENERATING, Step.INPUT}),
    Step.PREFERENCES: frozenset({Step.GENERATING}),
    Step.GENERATING: frozenset({Step.PREVIEW, Step.PREFERENCES, Step.ANALYSIS_RESULT}),
    Step.PREVIEW: frozenset(),
}

IMAGE_STATUSES = (
    "Capturing screenshots...",
    "Analyzing design and structure...",
    "Identifying brand palette...",
    "Extracting content...",
    "Generating improvement plan...",
)
URL_STATUSES = ("Accessing URL...", *IMAGE_STATUSES[1:])


class SitePipeline:
    """One regeneration session, from input to an exportable page."""

    def __init__(
        self,
        backend: SiteBackend,
        *,
        timings: PipelineTimings | None = None,
        on_change: Callable[[PipelineState], None] | None = None,
        on_log: Callable[[str], None] | None = None,
    ) -> None:
        self.backend = backend
        self.timings = timings or PipelineTimings()
        self.on_change = on_change
        self.on_log = on_log
        self.state = PipelineState()
        self.preferences: PreferenceCompiler | None = None
        self.refinement: RefinementLoop | None = None

    @property
    def step(self) -> Step:
        return self.state.step

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self.state)

    def _transition(self, target: Step, *, notify: bool = True) -> None:
        current = self.state.step
        if target not in TRANSITIONS[current]:
            raise PipelineStateError(f"Cannot move from {current.value} to {target.value}")
        if target is Step.PREVIEW and not self.state.generated_html.strip():
            raise PipelineStateError("Cannot enter PREVIEW without generated HTML")
        logger.debug("Step %s → %s", current.value, target.value)
        self.state.step = target
        if notify:
            self._notify()

    def _require(self, step: Step) -> None:
        if self.state.step is not step:
            raise PipelineStateError(f"Operation requires {step.value}, pipeline is at {self.state.step.value}")

    # ── Analysis ─────────────────────────────────────────────────────

    async def analyze_images(self, images: list[str]) -> AnalysisResult:
        """Analyze uploaded screenshots (base64 JPEG payloads)."""

        async def run() -> None:
            result = await self.backend.analyze_from_images(images)
            self.state.analysis = result
            self.state.analysis_data = normalize(result, "")

        await self._analyze(run, IMAGE_STATUSES)
        assert self.state.analysis is not None
        return self.state.analysis

    async def analyze_url(self, url: str) -> AnalysisResult:
        """Analyze a live URL, then scrape it for structured data."""

        async def run() -> None:
            result = await self.backend.analyze_from_url(url)
            data = await self.backend.fetch_structured_analysis(url)
            self.state.analysis = result
            self.state.analysis_data = data

        await self._analyze(run, URL_STATUSES)
        assert self.state.analysis is not None
        return self.state.analysis

    async def _analyze(self, run: Callable[[], Awaitable[None]], statuses: Sequence[str]) -> None:
        self._transition(Step.ANALYZING)
        self.state.analysis = None
        self.state.analysis_data = None
        self.state.analysis_progress = 0
        self.state.analysis_status = statuses[0]
        self._notify()

        ticker = asyncio.create_task(self._tick(statuses))
        try:
            await run()
        except AnalysisError:
            logger.exception("Analysis failed")
            self.state.analysis = None
            self.state.analysis_data = None
            self.state.analysis_progress = 0
            self.state.analysis_status = ""
            self._transition(Step.INPUT)
            raise
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

        self.state.analysis_progress = 100
        self.state.analysis_status = "Analysis complete"
        self._transition(Step.ANALYSIS_RESULT)

    async def _tick(self, statuses: Sequence[str]) -> None:
        index = 0
        while True:
            await asyncio.sleep(self.timings.analysis_tick)
            index = min(index + 1, len(statuses) - 1)
            self.state.analysis_status = statuses[index]
            self.state.analysis_progress = min(self.state.analysis_progress + 20, 95)
            self._notify()

    def start_over(self) -> None:
        """Discard the current analysis and return to INPUT."""
        self._transition(Step.INPUT)
        self.state = PipelineState()
        self.preferences = None
        self.refinement = None
        self._notify()

    # ── Preferences ──────────────────────────────────────────────────

    def begin_preferences(self) -> PreferenceCompiler:
        """Enter the preference wizard."""
        self._transition(Step.PREFERENCES)
        self.preferences = self._new_compiler()
        return self.preferences

    def _new_compiler(self) -> PreferenceCompiler:
        data = self.state.analysis_data
        return PreferenceCompiler(
            self.backend,
            data.business_context if data else "a local business",
            advance_delay=self.timings.advance_delay,
        )

    async def select_preference(self, step_id: str, value: str) -> UserPreferences:
        """Record a wizard choice; completing the wizard starts generation."""
        self._require(Step.PREFERENCES)
        assert self.preferences is not None
        prefs, _ = await self.preferences.select_option(step_id, value)
        if self.preferences.is_complete:
            self.state.preferences = prefs
            if self.state.analysis_data is None:
                logger.warning("No structured analysis available, using legacy generation")
                await self.generate_legacy()
            else:
                await self.generate_structured(prefs)
        return prefs

    def preference_back(self) -> bool:
        self._require(Step.PREFERENCES)
        assert self.preferences is not None
        return self.preferences.back()

    # ── Generation ───────────────────────────────────────────────────

    def _orchestrator(self) -> GenerationOrchestrator:
        self.state.progress_log = []

        def on_log(message: str) -> None:
            self.state.progress_log.append(message)
            if self.on_log:
                self.on_log(message)
            self._notify()

        return GenerationOrchestrator(
            self.backend, generation_delay=self.timings.generation_delay, on_log=on_log,
        )

    async def generate_structured(self, prefs: UserPreferences) -> str:
        data = self.state.analysis_data
        if data is None:
            raise PipelineStateError("Structured generation needs structured analysis")
        self._transition(Step.GENERATING)
        self.state.preferences = prefs
        try:
            site = await self._orchestrator().run_structured(data, prefs)
        except GenerationError:
            await asyncio.sleep(self.timings.failure_delay)
            self._transition(Step.PREFERENCES)
            self.preferences = self._new_compiler()
            raise

        self.state.generated_site = site
        self.state.generated_html = site.html
        self.state.protocol = "structured"
        await self._enter_preview(structured_welcome(data, prefs))
        return site.html

    async def generate_legacy(self) -> str:
        analysis = self.state.analysis
        if analysis is None:
            raise PipelineStateError("Legacy generation needs an analysis result")
        self._transition(Step.GENERATING)
        try:
            html, assets = await self._orchestrator().run_legacy(analysis)
        except GenerationError:
            self._transition(Step.ANALYSIS_RESULT)
            raise

        self.state.generated_html = html
        self.state.generated_assets = assets
        self.state.generated_site = None
        self.state.protocol = "legacy"
        await self._enter_preview(legacy_welcome(analysis))
        return html

    async def _enter_preview(self, welcome: str) -> None:
        await asyncio.sleep(self.timings.preview_delay)
        messages = [ChatMessage(role="model", text=welcome)]
        refinement = RefinementLoop(
            self.backend,
            self.state.generated_html,
            context=self.state.analysis_data if self.state.protocol == "structured" else None,
            site=self.state.generated_site,
            messages=messages,
            on_submit=self._notify,
        )
        # Observers see PREVIEW only with the welcome message in place
        self._transition(Step.PREVIEW, notify=False)
        self.state.messages = messages
        self.refinement = refinement
        self._notify()

    # ── Preview ──────────────────────────────────────────────────────

    async def refine(self, instruction: str) -> str:
        self._require(Step.PREVIEW)
        assert self.refinement is not None
        html = await self.refinement.refine(instruction)
        self.state.generated_html = html
        self.state.generated_site = self.refinement.site
        self._notify()
        return html

    def export(self, directory: str | Path) -> Path:
        """Write the current page to ``directory`` and return its path."""
        self._require(Step.PREVIEW)
        return export_site(self.state.generated_html, self.state.business_name, directory)

    def render_preview(self, *, theme: str = "dark") -> str:
        self._require(Step.PREVIEW)
        return render_preview(self.state.generated_html, title=self.state.business_name, theme=theme)
