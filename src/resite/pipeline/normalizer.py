"""Analysis Normalizer — maps the legacy analysis shape onto the structured one.

The mapping is lossy and one-way: fonts and calls-to-action are defaulted,
and no image URLs exist on this path.
"""

from __future__ import annotations

from typing import Callable

from resite.schemas.analysis import (
    AnalysisData,
    AnalysisResult,
    ContactInfo,
    DesignTokens,
    ScrapedImages,
    TextContent,
    new_scrape_id,
)

# Not derived from the source site. Callers must not treat these as the
# original page's CTAs.
DEFAULT_CTAS: tuple[str, ...] = ("Get Started", "Contact Us")
DEFAULT_FONTS: tuple[str, ...] = ("Arial",)


def normalize(
    result: AnalysisResult,
    original_url: str = "",
    *,
    id_factory: Callable[[], str] = new_scrape_id,
) -> AnalysisData:
    """Synthesize ``AnalysisData`` from an ``AnalysisResult``.

    Pure apart from ``id_factory``; pass a constant factory for fully
    deterministic output.
    """
    content = result.extracted_content
    return AnalysisData(
        scrape_id=id_factory(),
        original_url=original_url,
        text_content=TextContent(
            headings=[result.business_name, content.headline],
            paragraphs=[content.description, *content.services],
            ctas=list(DEFAULT_CTAS),
            contact_info=ContactInfo(phone=content.contact_info),
        ),
        design_tokens=DesignTokens(
            colors=[result.primary_color, result.secondary_color, result.accent_color],
            fonts=list(DEFAULT_FONTS),
        ),
        scraped_images=ScrapedImages(),
        screenshot_url=None,
    )
