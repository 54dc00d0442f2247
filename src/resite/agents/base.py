"""Base agent ABC — defines the pattern every backend agent follows."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from resite.shared.llm_client import LLMClient, TokensCallback

logger = logging.getLogger(__name__)

_JSON_RETRY_MSG = (
    "I need the output as a single JSON object (no markdown, no "
    "explanation — just raw JSON) matching the schema described in your "
    "instructions. Please re-format your response now."
)


class BaseAgent(ABC):
    """Abstract base class for all backend agents.

    Subclasses implement:
    - ``name`` — human-readable agent name used in logs
    - ``get_system_prompt()`` — returns the system prompt string
    - ``parse_output(raw_text)`` — parses the model's text into a result

    ``json_mode`` controls whether completions are forced to JSON. Agents
    that return markup set it to False.
    """

    json_mode: bool = True

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logs."""

    @abstractmethod
    def get_system_prompt(self) -> str:
        """Return the system prompt for this agent."""

    @abstractmethod
    def parse_output(self, raw_text: str) -> Any:
        """Parse the model's final text response."""

    async def run(
        self,
        user_message: str,
        *,
        on_tokens: TokensCallback | None = None,
    ) -> Any:
        """Send one completion and return the parsed output.

        If parsing fails, the model is asked once to re-format; a second
        failure propagates the parse error.
        """
        raw = await self.client.simple_completion(
            system=self.get_system_prompt(),
            user_message=user_message,
            json_mode=self.json_mode,
            on_tokens=on_tokens,
        )
        logger.debug("Agent %s raw output:\n%s", self.name, raw[:500])
        try:
            return self.parse_output(raw)
        except (ValueError, json.JSONDecodeError, KeyError) as err:
            logger.warning(
                "Agent %s output could not be parsed, requesting re-format. Error: %s",
                self.name, err,
            )

        retry_msg = f"{user_message}\n\nYour previous response:\n{raw}\n\n{self.retry_message()}"
        raw_retry = await self.client.simple_completion(
            system=self.get_system_prompt(),
            user_message=retry_msg,
            json_mode=self.json_mode,
            on_tokens=on_tokens,
        )
        logger.debug("Agent %s retry output:\n%s", self.name, raw_retry[:500])
        return self.parse_output(raw_retry)

    async def run_vision(
        self,
        content: list[dict[str, Any]],
        *,
        on_tokens: TokensCallback | None = None,
    ) -> Any:
        """Like ``run`` but with multipart (text + image) content."""
        raw = await self.client.vision_completion(
            system=self.get_system_prompt(),
            content=content,
            json_mode=self.json_mode,
            on_tokens=on_tokens,
        )
        logger.debug("Agent %s raw output:\n%s", self.name, raw[:500])
        try:
            return self.parse_output(raw)
        except (ValueError, json.JSONDecodeError, KeyError) as err:
            logger.warning(
                "Agent %s output could not be parsed, requesting re-format. Error: %s",
                self.name, err,
            )

        retry_content: list[dict[str, Any]] = [
            {"type": "text", "text": raw},
            {"type": "text", "text": self.retry_message()},
        ]
        raw_retry = await self.client.vision_completion(
            system=self.get_system_prompt(),
            content=retry_content,
            json_mode=self.json_mode,
            on_tokens=on_tokens,
        )
        return self.parse_output(raw_retry)

    def retry_message(self) -> str:
        return _JSON_RETRY_MSG


def extract_json(text: str) -> dict[str, Any]:
    """Extract a JSON object from text that may contain markdown fences.

    Raises ``ValueError`` when no object can be found, including when the
    response holds valid JSON of another type (a list or a scalar).
    """
    text = text.strip()

    # 1. Try direct parse (clean JSON response)
    if text.startswith("{"):
        try:
            return _require_object(json.loads(text))
        except json.JSONDecodeError:
            # Might have trailing text; try raw_decode
            try:
                obj, _ = json.JSONDecoder().raw_decode(text)
                return _require_object(obj)
            except json.JSONDecodeError:
                pass

    # 2. Look for ```json ... ``` or ``` ... ``` fenced blocks
    match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if match:
        return _require_object(json.loads(match.group(1).strip()))

    # 3. Find the first { and try to parse a JSON object starting there
    try:
        start = text.index("{")
        obj, _ = json.JSONDecoder().raw_decode(text, idx=start)
        return _require_object(obj)
    except (ValueError, json.JSONDecodeError):
        pass

    raise ValueError(
        f"Could not extract JSON from model response (length={len(text)}). "
        f"First 300 chars: {text[:300]!r}"
    )


def _require_object(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value


_DATA_URI_RE = re.compile(r"data:image/[a-zA-Z+.-]+;base64,[A-Za-z0-9+/=]{256,}")


def stash_data_uris(html: str) -> tuple[str, dict[str, str]]:
    """Swap inline base64 images for short tokens before sending markup to the model.

    Generated images arrive as multi-megabyte data URIs; resending them
    verbatim would exceed the context window. Returns the shortened text
    and the token → URI mapping for ``restore_data_uris``.
    """
    stash: dict[str, str] = {}

    def _swap(m: re.Match[str]) -> str:
        uri = m.group(0)
        for token, existing in stash.items():
            if existing == uri:
                return token
        token = f"resite-inline-{len(stash) + 1}.img"
        stash[token] = uri
        return token

    return _DATA_URI_RE.sub(_swap, html), stash


def restore_data_uris(html: str, stash: dict[str, str]) -> str:
    for token, uri in stash.items():
        html = html.replace(token, uri)
    return html


def extract_html(text: str) -> str:
    """Strip markdown fences from a model response and return the markup.

    Raises ``ValueError`` when the response contains no HTML tags at all.
    """
    code = re.sub(r"```(?:html)?", "", text).strip()
    if not code or "<" not in code:
        raise ValueError(
            f"Model response contained no HTML (length={len(text)}). "
            f"First 300 chars: {text[:300]!r}"
        )
    return code
