"""Pydantic models for the two analysis shapes.

``AnalysisResult`` is the legacy shape produced by screenshot or URL
analysis. ``AnalysisData`` is the structured shape consumed by the design
compiler; see ``resite.pipeline.normalizer`` for the one-way mapping.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field


def new_scrape_id() -> str:
    """Unique identifier for one analysis run."""
    return f"scrape-{uuid.uuid4().hex}"


class ExtractedContent(BaseModel):
    """Copy lifted from the existing site."""

    model_config = ConfigDict(frozen=True)

    headline: str = ""
    description: str = ""
    services: list[str] = []
    contact_info: str = ""


class AnalysisResult(BaseModel):
    """Legacy analysis of an existing site."""

    model_config = ConfigDict(frozen=True)

    business_name: str
    business_type: str = ""
    primary_color: str = ""
    secondary_color: str = ""
    accent_color: str = ""
    design_issues: list[str] = []
    extracted_content: ExtractedContent = ExtractedContent()
    recommended_style: str = ""


class ContactInfo(BaseModel):
    phone: str | None = None
    email: str | None = None
    address: str | None = None


class TextContent(BaseModel):
    headings: list[str] = []
    paragraphs: list[str] = []
    ctas: list[str] = []
    contact_info: ContactInfo = ContactInfo()


class DesignTokens(BaseModel):
    colors: list[str] = []
    fonts: list[str] = []


class ScrapedImages(BaseModel):
    logo_url: str | None = None
    hero_url: str | None = None
    gallery_urls: list[str] = []


class AnalysisData(BaseModel):
    """Structured analysis of an existing site (one per analysis run)."""

    scrape_id: str
    original_url: str = ""
    text_content: TextContent = Field(default_factory=TextContent)
    design_tokens: DesignTokens = Field(default_factory=DesignTokens)
    scraped_images: ScrapedImages = Field(default_factory=ScrapedImages)
    screenshot_url: str | None = None

    @property
    def business_context(self) -> str:
        """Short description of the business used in image prompts."""
        headings = self.text_content.headings
        return headings[0] if headings and headings[0] else "a local business"
