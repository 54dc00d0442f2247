"""SiteBackend — the collaborator facade the pipeline talks to.

Every pipeline-facing method either returns a typed result or raises one
of ``AnalysisError``, ``GenerationError`` or ``RefinementError``. Upstream
exception types (OpenAI, httpx, Playwright, parse errors) never leak past
this module.
"""

from __future__ import annotations

import logging
from typing import Callable

import httpx
from openai import OpenAIError
from playwright.async_api import Error as PlaywrightError

from resite.agents.analysis.agent import SiteAnalysisAgent
from resite.agents.imagery.agent import ImageAgent
from resite.agents.imagery.prompts import compiled_hero_prompt
from resite.agents.refiner.agent import RefinerAgent
from resite.agents.site_builder.agent import SiteBuilderAgent
from resite.errors import AnalysisError, GenerationError, RefinementError
from resite.schemas.analysis import AnalysisData, AnalysisResult, new_scrape_id
from resite.schemas.generation import AssetKind, GeneratedAsset, GeneratedSite
from resite.schemas.preferences import UserPreferences
from resite.shared.browser import BrowserManager
from resite.shared.llm_client import LLMClient

logger = logging.getLogger(__name__)

# Failures that mean "the collaborator gave us nothing usable"
_UPSTREAM_ERRORS = (OpenAIError, ValueError, KeyError, httpx.HTTPError, PlaywrightError)


class SiteBackend:
    """Concrete implementation of every collaborator contract."""

    def __init__(
        self,
        client: LLMClient,
        *,
        browser_factory: Callable[[], BrowserManager] = BrowserManager,
    ) -> None:
        self.client = client
        self._browser_factory = browser_factory
        self._analysis = SiteAnalysisAgent(client)
        self._images = ImageAgent(client)
        self._builder = SiteBuilderAgent(client)
        self._refiner = RefinerAgent(client)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _check_url(self, url: str) -> None:
        """Quick HEAD request to verify a URL is reachable before launching a browser."""
        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=15) as http:
                resp = await http.head(url)
                if resp.status_code == 405:
                    # Some servers refuse HEAD outright
                    resp = await http.get(url)
        except httpx.ConnectError as exc:
            raise AnalysisError(f"cannot connect to {url}") from exc
        except httpx.TimeoutException as exc:
            raise AnalysisError(f"{url} timed out after 15s") from exc
        except httpx.HTTPError as exc:
            raise AnalysisError(f"could not verify {url}: {exc}") from exc
        if resp.status_code >= 400:
            raise AnalysisError(f"{url} returned HTTP {resp.status_code}")
        logger.info("URL reachable: %s (HTTP %d)", url, resp.status_code)

    async def analyze_from_images(self, images: list[str]) -> AnalysisResult:
        if not images:
            raise AnalysisError("No screenshots supplied")
        try:
            return await self._analysis.analyze_screenshots(images)
        except _UPSTREAM_ERRORS as exc:
            logger.exception("Screenshot analysis failed")
            raise AnalysisError(f"Screenshot analysis failed: {exc}") from exc

    async def analyze_from_url(self, url: str) -> AnalysisResult:
        await self._check_url(url)
        try:
            async with self._browser_factory() as browser:
                page_text = await browser.get_page_text(url)
                screenshot = await browser.take_screenshot(url)
            return await self._analysis.analyze_page(url, page_text, screenshot)
        except _UPSTREAM_ERRORS as exc:
            logger.exception("URL analysis failed for %s", url)
            raise AnalysisError(f"URL analysis failed: {exc}") from exc

    async def fetch_structured_analysis(self, url: str) -> AnalysisData:
        try:
            async with self._browser_factory() as browser:
                scraped = await browser.scrape_site(url)
            scraped["original_url"] = url
            return AnalysisData(scrape_id=new_scrape_id(), **scraped)
        except _UPSTREAM_ERRORS as exc:
            logger.exception("Structured scrape failed for %s", url)
            raise AnalysisError(f"Structured analysis failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_image(self, prompt: str, kind: AssetKind) -> GeneratedAsset:
        return await self._images.generate(prompt, kind)

    async def compile(self, data: AnalysisData, prefs: UserPreferences) -> GeneratedSite:
        """Structured protocol: hero image, then the compiled page."""
        business = data.business_context
        hero = await self._images.generate(
            compiled_hero_prompt(business, prefs.dominant_vibe, prefs.color_palette), "hero",
        )
        try:
            html = await self._builder.compile_html(data, prefs, hero.url)
        except _UPSTREAM_ERRORS as exc:
            logger.exception("Site compilation failed")
            raise GenerationError(f"Site compilation failed: {exc}") from exc
        return GeneratedSite(html=html, hero_image_url=hero.url)

    async def generate_html(self, analysis: AnalysisResult, assets: list[GeneratedAsset]) -> str:
        try:
            return await self._builder.generate_html(analysis, assets)
        except _UPSTREAM_ERRORS as exc:
            logger.exception("HTML generation failed")
            raise GenerationError(f"HTML generation failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Refinement
    # ------------------------------------------------------------------

    async def refine_structured(self, html: str, instruction: str, data: AnalysisData) -> str:
        try:
            return await self._refiner.refine(html, instruction, data)
        except _UPSTREAM_ERRORS as exc:
            logger.warning("Refinement failed: %s", exc)
            raise RefinementError(str(exc)) from exc

    async def refine_legacy(self, html: str, instruction: str) -> str:
        try:
            return await self._refiner.refine(html, instruction)
        except _UPSTREAM_ERRORS as exc:
            logger.warning("Refinement failed: %s", exc)
            raise RefinementError(str(exc)) from exc
