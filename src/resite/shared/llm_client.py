"""Async OpenAI API wrapper used by every agent.

Covers the three request shapes the backend needs: plain text completion,
vision completion (text + screenshots), and image synthesis.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from typing import Any, Awaitable, Callable

from openai import AsyncOpenAI, APIConnectionError, APITimeoutError, RateLimitError

logger = logging.getLogger(__name__)

# Defaults; both can be overridden per client from ResiteConfig
MODEL = "gpt-4o"
IMAGE_MODEL = "gpt-image-1"
MAX_TOKENS = 16_384

# Retry settings for rate-limit (429) and connection errors
_RATE_LIMIT_MAX_RETRIES = 6
_RATE_LIMIT_BASE_DELAY = 5  # seconds, minimum floor for exponential backoff

TokensCallback = Callable[[int, int], None]
"""Called with (input_tokens, output_tokens) when a completion finishes."""


def _parse_retry_after(exc: RateLimitError) -> float | None:
    """Extract the suggested retry delay from an OpenAI rate limit error.

    Checks the ``Retry-After`` header first, then falls back to parsing
    the "Please try again in Xs / Xms" substring from the error message.
    Returns seconds as a float, or None if not found.
    """
    try:
        headers = exc.response.headers  # type: ignore[union-attr]
        if retry_after := headers.get("retry-after"):
            return float(retry_after)
    except (AttributeError, TypeError, ValueError):
        pass

    m = re.search(r"try again in (\d+(?:\.\d+)?)\s*(ms|s)\b", str(exc), re.IGNORECASE)
    if m:
        value = float(m.group(1))
        return value / 1000 if m.group(2).lower() == "ms" else value

    return None


class LLMClient:
    """Thin async wrapper around the OpenAI SDK.

    Provides:
    - ``simple_completion`` — single text request/response
    - ``vision_completion`` — single request with image content parts
    - ``generate_image`` — one image, returned as a URL or ``data:`` URI
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = MODEL,
        image_model: str = IMAGE_MODEL,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.image_model = image_model

    async def _call_with_retry(
        self, create: Callable[..., Awaitable[Any]], **kwargs: Any,
    ) -> Any:
        """Call an SDK coroutine with exponential backoff on 429 and network errors.

        Waits at least as long as OpenAI's suggested retry-after time, uses
        exponential backoff as a floor, and adds ±25% jitter.

        Fails immediately if the error indicates the request itself exceeds
        the token limit.
        """
        for attempt in range(_RATE_LIMIT_MAX_RETRIES):
            try:
                return await create(**kwargs)
            except RateLimitError as exc:
                msg = str(exc).lower()
                if "request too large" in msg or "context_length_exceeded" in msg:
                    logger.error(
                        "Request exceeds token limit (not retryable): %s", exc,
                    )
                    raise
                if attempt == _RATE_LIMIT_MAX_RETRIES - 1:
                    raise

                backoff = _RATE_LIMIT_BASE_DELAY * (2 ** attempt)
                suggested = _parse_retry_after(exc)
                base_delay = max(suggested or 0.0, backoff)
                jitter = random.uniform(-0.25 * base_delay, 0.25 * base_delay)
                delay = max(1.0, base_delay + jitter)

                logger.warning(
                    "Rate limited (429), retrying in %.1fs (attempt %d/%d, "
                    "suggested=%.1fs, backoff=%ds): %s",
                    delay, attempt + 1, _RATE_LIMIT_MAX_RETRIES,
                    suggested or 0.0, backoff, exc,
                )
                await asyncio.sleep(delay)
            except (APIConnectionError, APITimeoutError) as exc:
                if attempt == _RATE_LIMIT_MAX_RETRIES - 1:
                    raise
                # Transient network / TLS errors, capped at ~40 s
                backoff = _RATE_LIMIT_BASE_DELAY * (2 ** min(attempt, 3))
                jitter = random.uniform(-0.25 * backoff, 0.25 * backoff)
                delay = max(2.0, backoff + jitter)
                logger.warning(
                    "Connection error, retrying in %.1fs (attempt %d/%d): %s",
                    delay, attempt + 1, _RATE_LIMIT_MAX_RETRIES, exc,
                )
                await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # Text completion
    # ------------------------------------------------------------------

    async def simple_completion(
        self,
        *,
        system: str,
        user_message: str,
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        """Single request/response with no tools.

        When ``json_mode`` is True (default), the OpenAI API guarantees
        the response is valid JSON.
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user_message},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._call_with_retry(self._client.chat.completions.create, **kwargs)
        usage = getattr(response, "usage", None)
        if on_tokens and usage:
            on_tokens(getattr(usage, "prompt_tokens", 0), getattr(usage, "completion_tokens", 0))
        return response.choices[0].message.content or ""

    # ------------------------------------------------------------------
    # Vision completion (multipart content with images)
    # ------------------------------------------------------------------

    async def vision_completion(
        self,
        *,
        system: str,
        content: list[dict[str, Any]],
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        """Single request/response with multipart content (text + images).

        ``content`` is a list of OpenAI content parts, e.g.:
            [{"type": "text", "text": "..."}, {"type": "image_url", "image_url": {...}}]
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": content},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._call_with_retry(self._client.chat.completions.create, **kwargs)
        usage = getattr(response, "usage", None)
        if on_tokens and usage:
            on_tokens(getattr(usage, "prompt_tokens", 0), getattr(usage, "completion_tokens", 0))
        return response.choices[0].message.content or ""

    # ------------------------------------------------------------------
    # Image synthesis
    # ------------------------------------------------------------------

    async def generate_image(self, *, prompt: str, size: str = "1024x1024") -> str:
        """Generate one image and return it as a URL.

        gpt-image-1 only returns base64 payloads, which are wrapped into a
        ``data:image/png;base64,…`` URI so callers can treat both the same.
        """
        response = await self._call_with_retry(
            self._client.images.generate,
            model=self.image_model,
            prompt=prompt,
            size=size,
            n=1,
        )
        data = response.data[0] if response.data else None
        if data is None:
            raise ValueError("Image response contained no data")
        if getattr(data, "b64_json", None):
            return f"data:image/png;base64,{data.b64_json}"
        if getattr(data, "url", None):
            return data.url
        raise ValueError("Image response contained neither b64_json nor url")


# ======================================================================
# Dry-run mock client, zero API calls
# ======================================================================

_DRY_RUN_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Example Bakery</title>
  <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="font-sans bg-white text-slate-800">
  <nav class="p-6 flex justify-between"><span class="font-bold">Example Bakery</span><a href="#contact">Contact</a></nav>
  <header class="p-12 bg-[#8B4513] text-white"><h1 class="text-5xl font-bold">Fresh bread, every morning</h1></header>
  <section class="p-12"><h2 class="text-3xl">Our Services</h2><ul><li>Sourdough</li><li>Wedding cakes</li></ul></section>
  <footer id="contact" class="p-6 bg-slate-900 text-white">555-0100</footer>
</body>
</html>
"""

_DRY_RUN_JSON: dict[str, str] = {
    "analysis": json.dumps({
        "business_name": "Example Bakery",
        "business_type": "Bakery",
        "primary_color": "#8B4513",
        "secondary_color": "#F5DEB3",
        "accent_color": "#D2691E",
        "design_issues": ["Outdated table layout", "Low-contrast body text"],
        "extracted_content": {
            "headline": "Fresh bread, every morning",
            "description": "A family bakery serving the neighbourhood since 1982.",
            "services": ["Sourdough", "Wedding cakes"],
            "contact_info": "555-0100",
        },
        "recommended_style": "warm minimal",
    }),
}


class DryRunClient:
    """Drop-in replacement for LLMClient that makes zero API calls.

    Returns canned analysis JSON, a small fixed HTML page for every code
    generation or refinement request, and placeholder image URLs.
    """

    model = "dry-run"
    image_model = "dry-run"

    async def simple_completion(
        self,
        *,
        system: str,
        user_message: str,
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        key = self._detect_agent(system)
        if key == "html":
            return _DRY_RUN_HTML
        return _DRY_RUN_JSON.get(key, "{}")

    async def vision_completion(
        self,
        *,
        system: str,
        content: list[dict[str, Any]],
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        return _DRY_RUN_JSON["analysis"]

    async def generate_image(self, *, prompt: str, size: str = "1024x1024") -> str:
        width, height = size.split("x")
        return f"https://picsum.photos/{width}/{height}?random={random.randint(0, 999)}"

    @staticmethod
    def _detect_agent(system: str) -> str:
        """Guess agent key from the system prompt."""
        if "Site Analysis Agent" in system:
            return "analysis"
        return "html"
