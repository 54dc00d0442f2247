"""Prompt templates for generated imagery."""

from __future__ import annotations

from resite.schemas.analysis import AnalysisResult


def hero_prompt(analysis: AnalysisResult) -> str:
    return (
        f"Professional hero website banner for {analysis.business_name}, "
        f"{analysis.business_type}. {analysis.recommended_style}. "
        "High quality, 4k, cinematic lighting."
    )


def feature_prompt(analysis: AnalysisResult) -> str:
    # Sites without a services list get a photo of the business type itself
    services = analysis.extracted_content.services
    subject = services[0] if services else analysis.business_type
    return (
        f"Detailed photo representing {analysis.business_type} services: {subject}. "
        f"Professional photography, {analysis.recommended_style}."
    )


def mood_prompt(vibe: str, business_context: str) -> str:
    return (
        f"An abstract, high-quality background image representing a '{vibe}' "
        f"design vibe, specifically tailored for {business_context}. "
        "Artistic, modern, professional."
    )


def compiled_hero_prompt(business: str, vibe: str, palette: str) -> str:
    return (
        f"Hero banner photograph for {business}. {vibe} visual style, "
        f"{palette.replace('-', ' ')} color palette. "
        "High quality, wide composition with space for a headline."
    )
