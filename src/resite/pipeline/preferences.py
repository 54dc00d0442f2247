"""Preference Compiler — turns wizard selections into ``UserPreferences``.

Steps run in a fixed order. Selecting a vibe also kicks off a mood image
request in the background; its result is merged only if it is still
relevant when it lands and never holds up step progression.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol, Sequence

from resite.agents.imagery.prompts import mood_prompt
from resite.schemas.generation import AssetKind, GeneratedAsset
from resite.schemas.preferences import PREFERENCE_STEPS, PreferenceStep, UserPreferences

logger = logging.getLogger(__name__)

VIBE_SELECTED_WEIGHT = 0.8
VIBE_OTHER_WEIGHT = 0.1


class ImageGenerator(Protocol):
    async def generate_image(self, prompt: str, kind: AssetKind) -> GeneratedAsset: ...


def compile_vibe(selected: str, candidates: Sequence[str]) -> dict[str, float]:
    """Soft-encode a vibe choice: every candidate keeps a small weight."""
    return {
        c: VIBE_SELECTED_WEIGHT if c == selected else VIBE_OTHER_WEIGHT
        for c in candidates
    }


class PreferenceCompiler:
    """Index into an ordered list of selection steps.

    ``select_option`` records a choice, waits ``advance_delay`` for visual
    feedback, then moves to the next step or completes. ``on_complete``
    receives the final preferences once.
    """

    def __init__(
        self,
        images: ImageGenerator,
        business_context: str = "a local business",
        *,
        steps: Sequence[PreferenceStep] = PREFERENCE_STEPS,
        advance_delay: float = 0.3,
        on_complete: Callable[[UserPreferences], None] | None = None,
    ) -> None:
        self.images = images
        self.business_context = business_context
        self.steps = tuple(steps)
        self.advance_delay = advance_delay
        self.on_complete = on_complete

        self.index = 0
        self.preferences = UserPreferences()
        self.selected: dict[str, str] = {}
        self.final: UserPreferences | None = None
        self.mood_image_url: str | None = None
        self._mood_task: asyncio.Task[None] | None = None

    @property
    def current_step(self) -> PreferenceStep:
        return self.steps[self.index]

    @property
    def is_complete(self) -> bool:
        return self.final is not None

    @property
    def is_generating_mood_image(self) -> bool:
        return self._mood_task is not None and not self._mood_task.done()

    @property
    def percent_complete(self) -> int:
        return round((self.index + 1) / len(self.steps) * 100)

    async def select_option(self, step_id: str, value: str) -> tuple[UserPreferences, bool]:
        """Record ``value`` for the current step.

        Returns the preferences after the selection and whether the wizard
        moved past this step. Raises ``ValueError`` for a step that is not
        current or an option the step does not offer.
        """
        if self.is_complete:
            raise ValueError("Preferences already compiled")
        step = self.current_step
        if step_id != step.id:
            raise ValueError(f"Step {step_id!r} is not the current step ({step.id!r})")
        if value not in step.values:
            raise ValueError(f"{value!r} is not an option for {step.id!r}; expected one of {step.values}")

        self.selected[step.id] = value
        if step.id == "vibe":
            self.preferences = self.preferences.model_copy(
                update={"vibe": compile_vibe(value, step.values)},
            )
            self._start_mood_image(value)
        else:
            self.preferences = self.preferences.model_copy(update={step.id: value})

        index = self.index
        await asyncio.sleep(self.advance_delay)
        if self.index != index or self.is_complete:
            # User navigated away during the feedback delay
            return self.preferences, False
        return self._advance()

    def back(self) -> bool:
        """Step back one screen. Recorded selections are kept."""
        if self.is_complete or self.index == 0:
            return False
        self.index -= 1
        return True

    def _advance(self) -> tuple[UserPreferences, bool]:
        if self.index < len(self.steps) - 1:
            self.index += 1
            return self.preferences, True

        # Whatever mood image is known right now; never wait for it.
        final = self.preferences.model_copy(
            update={"mood_image_url": self.mood_image_url or self.preferences.mood_image_url},
        )
        self.final = final
        if self.on_complete:
            self.on_complete(final)
        return final, True

    # ------------------------------------------------------------------
    # Mood image side channel
    # ------------------------------------------------------------------

    def _start_mood_image(self, vibe: str) -> None:
        if self._mood_task is not None and not self._mood_task.done():
            self._mood_task.cancel()
        self._mood_task = asyncio.create_task(self._generate_mood_image(vibe))

    async def _generate_mood_image(self, vibe: str) -> None:
        prompt = mood_prompt(vibe, self.business_context)
        try:
            asset = await self.images.generate_image(prompt, "mood")
        except Exception:
            logger.exception("Failed to generate mood image for vibe %r", vibe)
            return
        self._merge_mood_image(vibe, asset.url)

    def _merge_mood_image(self, vibe: str, url: str) -> None:
        if self.is_complete or self.selected.get("vibe") != vibe:
            logger.debug("Discarding stale mood image for vibe %r", vibe)
            return
        self.mood_image_url = url
        self.preferences = self.preferences.model_copy(update={"mood_image_url": url})
