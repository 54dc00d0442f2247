"""Refinement Loop — conversational edits over the generated page."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from resite.errors import RefinementError
from resite.schemas.analysis import AnalysisData
from resite.schemas.generation import GeneratedSite
from resite.schemas.pipeline import ChatMessage

logger = logging.getLogger(__name__)

ACKNOWLEDGMENT = "Done! I've updated the website. How does that look?"
APOLOGY = "Sorry, I had trouble making that change. Please try a different request."


class RefinementBackend(Protocol):
    async def refine_structured(self, html: str, instruction: str, data: AnalysisData) -> str: ...

    async def refine_legacy(self, html: str, instruction: str) -> str: ...


class RefinementLoop:
    """Holds the current HTML and the conversation about it.

    ``context`` selects the protocol: with structured analysis the refiner
    sees it alongside each instruction, without it only the HTML is sent.
    ``on_submit`` fires once the user message is recorded, before the
    backend call is awaited.
    """

    def __init__(
        self,
        backend: RefinementBackend,
        html: str,
        *,
        context: AnalysisData | None = None,
        site: GeneratedSite | None = None,
        messages: list[ChatMessage] | None = None,
        on_submit: Callable[[], None] | None = None,
    ) -> None:
        self.backend = backend
        self.html = html
        self.context = context
        self.site = site
        self.messages: list[ChatMessage] = messages if messages is not None else []
        self._pending = False
        self.on_submit = on_submit

    @property
    def is_processing(self) -> bool:
        return self._pending

    async def refine(self, instruction: str) -> str:
        """Apply one instruction and return the (possibly unchanged) HTML.

        A failed refinement is answered with an apology and leaves the HTML
        as it was.
        """
        if not instruction.strip():
            raise ValueError("Refinement instruction must not be blank")
        if self._pending:
            raise RuntimeError("A refinement is already in progress")

        self._pending = True
        self.messages.append(ChatMessage(role="user", text=instruction))
        try:
            if self.on_submit:
                self.on_submit()
            if self.context is not None:
                updated = await self.backend.refine_structured(self.html, instruction, self.context)
            else:
                updated = await self.backend.refine_legacy(self.html, instruction)
        except RefinementError as exc:
            logger.warning("Refinement of %r failed: %s", instruction, exc)
            self.messages.append(ChatMessage(role="model", text=APOLOGY))
            return self.html
        finally:
            self._pending = False

        self.html = updated
        if self.site is not None:
            self.site = self.site.model_copy(update={"html": updated})
        self.messages.append(ChatMessage(role="model", text=ACKNOWLEDGMENT))
        return self.html
