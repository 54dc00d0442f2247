"""System prompts and instruction builders for the Site Builder agent."""

from __future__ import annotations

import json

from resite.schemas.analysis import AnalysisData, AnalysisResult
from resite.schemas.generation import GeneratedAsset
from resite.schemas.preferences import UserPreferences

SYSTEM_PROMPT = """\
You are the Site Builder Agent.

## Role
You are an expert frontend engineer who rebuilds outdated small-business \
websites as a single modern, responsive HTML page.

## Requirements
1. Single HTML file with inline <script>/<style> only.
2. Use Tailwind CSS via CDN (https://cdn.tailwindcss.com).
3. Sections: Navbar, Hero (full width), About, Services (grid), Contact, Footer.
4. Use the brand colors provided, via the Tailwind config or arbitrary \
values (e.g. bg-[#123456]).
5. Use Lucide icons (via unpkg) or inline SVG.
6. Every image URL given in the instructions must be used EXACTLY as \
written, character for character.

## Output Format
Return ONLY the raw HTML document, starting with <!DOCTYPE html>. No \
markdown fences, no explanation.
"""

HTML_RETRY_MSG = (
    "Return ONLY the complete HTML document, starting with <!DOCTYPE html>. "
    "No markdown, no commentary."
)


def legacy_instructions(analysis: AnalysisResult, assets: list[GeneratedAsset]) -> str:
    """Build the HTML synthesis request for the legacy protocol."""
    hero = next((a for a in assets if a.type == "hero"), None)
    features = [a for a in assets if a.type == "feature"]
    content = analysis.extracted_content
    feature_lines = "\n".join(f'Image {i + 1}: "{a.url}"' for i, a in enumerate(features))

    return f"""\
Rebuild this website.

ANALYSIS:
Name: {analysis.business_name}
Type: {analysis.business_type}
Style: {analysis.recommended_style}
Colors: Primary {analysis.primary_color}, Secondary {analysis.secondary_color}, Accent {analysis.accent_color}
Content:
  Headline: "{content.headline}"
  Desc: "{content.description}"
  Services: {", ".join(content.services)}
  Contact: "{content.contact_info}"

ASSETS TO USE (use these EXACT URLs in the <img> tags):
Hero Image: "{hero.url if hero else "https://via.placeholder.com/1200"}"
Feature Images:
{feature_lines}

Font: 'Inter', sans-serif.
"""


def compile_instructions(data: AnalysisData, prefs: UserPreferences, hero_image_url: str) -> str:
    """Build the design-compiler request for the structured protocol.

    The full vibe weight distribution is passed, not just the winner, so the
    model can blend secondary personalities.
    """
    payload = {
        "content": data.text_content.model_dump(),
        "original_design_tokens": data.design_tokens.model_dump(),
        "original_images": {
            "logo_url": data.scraped_images.logo_url,
            "gallery_urls": data.scraped_images.gallery_urls,
        },
        "preferences": {
            "vibe_weights": prefs.vibe,
            "color_palette": prefs.color_palette,
            "typography": prefs.typography,
            "layout_focus": prefs.layout_focus,
        },
    }
    lines = [
        "Compile a new website from this analysis and these design preferences.",
        "The vibe is a weighted blend: lean on the highest weight, use the others as accents.",
        "Keep the original copy and contact details; rewrite nothing factual.",
        "",
        json.dumps(payload, indent=2),
        "",
        "ASSETS TO USE (use these EXACT URLs):",
        f'Hero Image: "{hero_image_url}"',
    ]
    if prefs.mood_image_url:
        lines.append(f'Mood/Background Image: "{prefs.mood_image_url}"')
    if data.scraped_images.logo_url:
        lines.append(f'Logo: "{data.scraped_images.logo_url}"')
    return "\n".join(lines)
