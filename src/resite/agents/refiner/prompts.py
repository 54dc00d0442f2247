"""System prompt and request builders for the Refiner agent."""

from __future__ import annotations

import json

from resite.schemas.analysis import AnalysisData

SYSTEM_PROMPT = """\
You are the Site Refiner Agent.

## Role
You are an expert web developer making one requested change to an existing \
single-file HTML website.

## Rules
1. Modify the current HTML to satisfy the user instruction.
2. Keep the rest of the design intact.
3. If the user asks for new content and provides no text, write \
professional placeholder text.
4. Keep every image URL and inline-image token exactly as written.

## Output Format
Return ONLY the full, valid, updated HTML document. No markdown fences, \
no explanation.
"""


def legacy_request(html: str, instruction: str) -> str:
    return f'USER INSTRUCTION: "{instruction}"\n\nCURRENT HTML:\n{html}'


def structured_request(html: str, instruction: str, data: AnalysisData) -> str:
    """Refinement request with the original site's content for grounding."""
    context = {
        "original_url": data.original_url,
        "content": data.text_content.model_dump(),
        "original_design_tokens": data.design_tokens.model_dump(),
    }
    return (
        f'USER INSTRUCTION: "{instruction}"\n\n'
        "ORIGINAL SITE CONTEXT (use for facts, copy and contact details):\n"
        f"{json.dumps(context, indent=2)}\n\n"
        f"CURRENT HTML:\n{html}"
    )
