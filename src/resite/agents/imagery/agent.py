"""Image Agent — synthesizes hero, feature and mood images."""

from __future__ import annotations

import logging
import random

from openai import OpenAIError

from resite.schemas.generation import AssetKind, GeneratedAsset
from resite.shared.llm_client import LLMClient

logger = logging.getLogger(__name__)

_SIZES: dict[str, str] = {
    "hero": "1536x1024",
    "feature": "1024x1024",
    "mood": "1024x1024",
}


def placeholder_url(kind: AssetKind) -> str:
    """Random stock placeholder sized for the asset kind."""
    dims = "1200/800" if kind == "hero" else "600/400"
    return f"https://picsum.photos/{dims}?random={random.randint(0, 999)}"


class ImageAgent:
    """Wraps image synthesis with a placeholder fallback.

    ``generate`` never raises for upstream failures: callers always get a
    usable URL.
    """

    name = "Image Generation"

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    async def generate(self, prompt: str, kind: AssetKind) -> GeneratedAsset:
        try:
            url = await self.client.generate_image(prompt=prompt, size=_SIZES[kind])
        except (OpenAIError, ValueError) as exc:
            logger.warning("Image generation failed for %s asset, using placeholder: %s", kind, exc)
            url = placeholder_url(kind)
        return GeneratedAsset(type=kind, url=url, prompt=prompt)
