"""Playwright browser manager — shared async context manager for URL analysis."""

from __future__ import annotations

import base64
import logging
from types import TracebackType
from typing import Any

from playwright.async_api import async_playwright, Browser, Page, Playwright

logger = logging.getLogger(__name__)

_NAV_TIMEOUT_MS = 30_000
_VIEWPORT = {"width": 1280, "height": 800}


class BrowserManager:
    """Manages a shared Playwright Chromium instance.

    Usage::

        async with BrowserManager() as bm:
            text = await bm.get_page_text("https://example.com")
            scraped = await bm.scrape_site("https://example.com")
    """

    def __init__(self) -> None:
        self._pw: Playwright | None = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> "BrowserManager":
        self._pw = await async_playwright().start()
        self._browser = await self._pw.chromium.launch(headless=True)
        logger.info("Browser launched")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._browser:
            await self._browser.close()
        if self._pw:
            await self._pw.stop()
        logger.info("Browser closed")

    async def _open(self, url: str) -> Page:
        assert self._browser is not None, "BrowserManager not entered"
        page = await self._browser.new_page()
        await page.set_viewport_size(_VIEWPORT)
        await page.goto(url, wait_until="load", timeout=_NAV_TIMEOUT_MS)
        return page

    async def get_page_text(self, url: str) -> str:
        """Navigate to URL and return structured text content (stripped HTML).

        Extracts title, navigation, headings and main content without the
        full DOM — much cheaper for token usage.
        """
        page = await self._open(url)
        try:
            return await page.evaluate(r"""() => {
                const sections = [];

                sections.push('# ' + document.title);
                const desc = document.querySelector('meta[name="description"]');
                if (desc) sections.push('Description: ' + desc.content);

                const navLinks = [...document.querySelectorAll('nav a')]
                    .map(a => a.textContent.trim()).filter(Boolean).slice(0, 20);
                if (navLinks.length) {
                    sections.push('\n## Navigation');
                    sections.push(navLinks.map(t => '  - ' + t).join('\n'));
                }

                const headings = [...document.querySelectorAll('h1,h2,h3')];
                if (headings.length) {
                    sections.push('\n## Content Structure');
                    headings.forEach(h => {
                        const level = parseInt(h.tagName[1]);
                        const indent = '  '.repeat(level - 1);
                        sections.push(`${indent}${h.tagName}: ${h.textContent.trim().slice(0, 120)}`);
                    });
                }

                const main = document.querySelector('main') || document.body;
                sections.push('\n## Main Content (truncated)');
                sections.push(main.innerText.slice(0, 4000));

                return sections.join('\n');
            }""")
        finally:
            await page.close()

    async def take_screenshot(self, url: str) -> str:
        """Return the above-the-fold viewport of ``url`` as a base64 JPEG."""
        page = await self._open(url)
        try:
            raw = await page.screenshot(full_page=False, type="jpeg", quality=70)
            return base64.b64encode(raw).decode()
        finally:
            await page.close()

    async def scrape_site(self, url: str) -> dict[str, Any]:
        """Extract copy, contact details, design tokens and image URLs.

        Returns a dict shaped like ``AnalysisData`` minus ``scrape_id``;
        the caller validates it.
        """
        page = await self._open(url)
        try:
            scraped = await page.evaluate(r"""() => {
                const text = el => (el.textContent || '').replace(/\s+/g, ' ').trim();
                const uniq = arr => [...new Set(arr.filter(Boolean))];

                const headings = uniq([...document.querySelectorAll('h1,h2,h3')].map(text)).slice(0, 20);
                const paragraphs = uniq([...document.querySelectorAll('main p, article p, section p, p')]
                    .map(text).filter(t => t.length > 30)).slice(0, 20);
                const ctas = uniq([...document.querySelectorAll(
                    'button, a.btn, a.button, [role="button"], a[class*="cta"], input[type="submit"]'
                )].map(el => text(el) || el.value || '')).filter(t => t.length <= 40).slice(0, 10);

                const tel = document.querySelector('a[href^="tel:"]');
                const mail = document.querySelector('a[href^="mailto:"]');
                const addr = document.querySelector('address');
                const contact = {
                    phone: tel ? tel.getAttribute('href').slice(4) : null,
                    email: mail ? mail.getAttribute('href').slice(7).split('?')[0] : null,
                    address: addr ? text(addr) : null,
                };

                // Most frequent computed colors and font stacks on visible elements
                const colorCounts = {};
                const fontCounts = {};
                [...document.querySelectorAll('body, header, nav, main, section, footer, h1, h2, a, button')]
                    .slice(0, 400).forEach(el => {
                        const cs = getComputedStyle(el);
                        [cs.color, cs.backgroundColor].forEach(c => {
                            if (c && c !== 'rgba(0, 0, 0, 0)' && c !== 'transparent') {
                                colorCounts[c] = (colorCounts[c] || 0) + 1;
                            }
                        });
                        const f = cs.fontFamily.split(',')[0].replace(/["']/g, '').trim();
                        if (f) fontCounts[f] = (fontCounts[f] || 0) + 1;
                    });
                const top = (counts, n) => Object.entries(counts)
                    .sort((a, b) => b[1] - a[1]).slice(0, n).map(e => e[0]);

                const imgs = [...document.querySelectorAll('img')]
                    .filter(i => i.currentSrc || i.src);
                const src = i => i.currentSrc || i.src;
                const logo = imgs.find(i => /logo/i.test(src(i) + ' ' + (i.alt || '') + ' ' + i.className));
                const big = imgs.filter(i => i !== logo && i.naturalWidth >= 600);

                return {
                    original_url: window.location.href,
                    text_content: { headings, paragraphs, ctas, contact_info: contact },
                    design_tokens: { colors: top(colorCounts, 6), fonts: top(fontCounts, 3) },
                    scraped_images: {
                        logo_url: logo ? src(logo) : null,
                        hero_url: big.length ? src(big[0]) : null,
                        gallery_urls: uniq(big.slice(1).map(src)).slice(0, 12),
                    },
                };
            }""")
            raw = await page.screenshot(full_page=False, type="jpeg", quality=60)
            scraped["screenshot_url"] = "data:image/jpeg;base64," + base64.b64encode(raw).decode()
            return scraped
        finally:
            await page.close()
