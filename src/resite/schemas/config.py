"""Configuration schema — validates resite.yml."""

from typing import Literal

from pydantic import BaseModel, field_validator


class PipelineTimings(BaseModel):
    """Fixed pacing delays, in seconds.

    These are cosmetic: they keep the terminal from jumping between screens
    faster than a user can follow.
    """

    advance_delay: float = 0.3  # after a preference selection
    generation_delay: float = 0.5  # between structured progress lines
    preview_delay: float = 1.0  # before entering the preview
    failure_delay: float = 1.5  # before stepping back after a failed compile
    analysis_tick: float = 0.8  # between analysis status lines

    @field_validator("*")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("timings must be non-negative")
        return v


class ResiteConfig(BaseModel):
    """Top-level configuration loaded from resite.yml. Every field is optional."""

    model: str = "gpt-4o"
    image_model: str = "gpt-image-1"
    output_directory: str = "./output"
    theme: Literal["dark", "light"] = "dark"
    timings: PipelineTimings = PipelineTimings()
