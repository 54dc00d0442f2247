"""Generation Orchestrator — runs one of the two generation protocols.

Both protocols publish an ordered progress log while they run. The log is
what the user watches during the GENERATING step, so the order of lines is
part of the contract.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from resite.agents.imagery.prompts import feature_prompt, hero_prompt
from resite.errors import GenerationError
from resite.schemas.analysis import AnalysisData, AnalysisResult
from resite.schemas.generation import AssetKind, GeneratedAsset, GeneratedSite
from resite.schemas.preferences import UserPreferences

logger = logging.getLogger(__name__)

STRUCTURED_FAILURE = "Compilation failed. Please try again."
LEGACY_FAILURE = "Generation failed. Please try again."


class GenerationBackend(Protocol):
    async def generate_image(self, prompt: str, kind: AssetKind) -> GeneratedAsset: ...

    async def compile(self, data: AnalysisData, prefs: UserPreferences) -> GeneratedSite: ...

    async def generate_html(self, analysis: AnalysisResult, assets: list[GeneratedAsset]) -> str: ...


def structured_welcome(data: AnalysisData, prefs: UserPreferences) -> str:
    headings = data.text_content.headings
    name = headings[0] if headings else ""
    return (
        f"Your new {name} website is ready! I've applied a {prefs.dominant_vibe} vibe "
        f"with {prefs.color_palette} colors and {prefs.typography} typography. "
        "Feel free to ask me to make any adjustments."
    )


def legacy_welcome(analysis: AnalysisResult) -> str:
    return (
        f"Welcome to the new {analysis.business_name} website! "
        f"I've applied a {analysis.recommended_style} style. "
        "You can ask me to make any changes."
    )


class GenerationOrchestrator:
    """Sequences collaborator calls and progress lines for one generation run."""

    def __init__(
        self,
        backend: GenerationBackend,
        *,
        generation_delay: float = 0.5,
        on_log: Callable[[str], None] | None = None,
    ) -> None:
        self.backend = backend
        self.generation_delay = generation_delay
        self.on_log = on_log
        self.progress_log: list[str] = []

    def log(self, message: str) -> None:
        self.progress_log.append(message)
        logger.debug("generation: %s", message)
        if self.on_log:
            self.on_log(message)

    # ── Structured protocol ──────────────────────────────────────────

    async def run_structured(self, data: AnalysisData, prefs: UserPreferences) -> GeneratedSite:
        """Compile a site from structured analysis plus preferences.

        Raises ``GenerationError`` after logging the failure line.
        """
        try:
            self.log("Initializing Design Compiler...")
            self.log(f"Applying {prefs.dominant_vibe} vibe with {prefs.color_palette} palette...")
            self.log("Generating hero imagery...")
            await asyncio.sleep(self.generation_delay)
            self.log("Compiling design tokens...")
            self.log(f"Setting {prefs.typography} typography...")
            self.log(f"Structuring {prefs.layout_focus} layout...")

            site = await self.backend.compile(data, prefs)

            self.log("Validating HTML output...")
            if not site.html.strip():
                raise GenerationError("Compiler returned empty HTML")
            self.log("Design compilation complete!")
            return site
        except GenerationError:
            logger.exception("Structured generation failed")
            self.log(STRUCTURED_FAILURE)
            raise

    # ── Legacy protocol ──────────────────────────────────────────────

    async def run_legacy(self, analysis: AnalysisResult) -> tuple[str, list[GeneratedAsset]]:
        """Generate hero and feature images concurrently, then the page."""
        try:
            hero, feature = await asyncio.gather(
                self._image("hero", hero_prompt(analysis), "Generating hero assets...", "Hero assets ready"),
                self._image(
                    "feature",
                    feature_prompt(analysis),
                    "Creating feature photography...",
                    "Feature photography ready",
                ),
            )
            assets = [hero, feature]
            self.log("Images generated successfully")

            self.log("Architecting modern HTML structure...")
            html = await self.backend.generate_html(analysis, assets)
            if not html.strip():
                raise GenerationError("Site builder returned empty HTML")
            self.log("Finalizing design...")
            return html, assets
        except GenerationError:
            logger.exception("Legacy generation failed")
            self.log(LEGACY_FAILURE)
            raise

    async def _image(self, kind: AssetKind, prompt: str, before: str, after: str) -> GeneratedAsset:
        self.log(before)
        asset = await self.backend.generate_image(prompt, kind)
        self.log(after)
        return asset
