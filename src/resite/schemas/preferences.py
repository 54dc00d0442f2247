"""User design preferences and the selection steps that build them."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StepOption(BaseModel):
    """One selectable card within a preference step."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    description: str = ""


class PreferenceStep(BaseModel):
    """A single screen of the preference wizard."""

    model_config = ConfigDict(frozen=True)

    id: str  # matches a UserPreferences field name
    title: str
    subtitle: str = ""
    options: tuple[StepOption, ...]

    @property
    def values(self) -> list[str]:
        return [o.value for o in self.options]


class UserPreferences(BaseModel):
    """Compiled design preferences.

    ``vibe`` maps every candidate vibe to a weight in [0, 1]. Weights are
    not normalized; the full distribution is passed to the compiler.
    """

    model_config = ConfigDict(frozen=True)

    vibe: dict[str, float] = {}
    color_palette: str = ""
    typography: str = ""
    layout_focus: str = ""
    mood_image_url: str | None = None

    @property
    def dominant_vibe(self) -> str:
        """The highest-weighted vibe, or "" before the vibe step ran."""
        if not self.vibe:
            return ""
        return max(self.vibe, key=lambda k: self.vibe[k])


PREFERENCE_STEPS: tuple[PreferenceStep, ...] = (
    PreferenceStep(
        id="vibe",
        title="Select Your Vibe",
        subtitle="Define the overall personality of your new website",
        options=(
            StepOption(value="minimal", label="Minimal", description="Clean lines, whitespace, understated elegance"),
            StepOption(value="bold", label="Bold", description="Strong contrasts, large typography, impactful presence"),
            StepOption(value="playful", label="Playful", description="Rounded shapes, vibrant colors, friendly feel"),
            StepOption(value="elegant", label="Elegant", description="Sophisticated aesthetics, refined details, luxurious"),
        ),
    ),
    PreferenceStep(
        id="color_palette",
        title="Choose Color Palette",
        subtitle="Set the color mood for your brand",
        options=(
            StepOption(value="soft-pastels", label="Soft Pastels", description="Gentle, calming, approachable tones"),
            StepOption(value="vibrant-high-contrast", label="Vibrant High-Contrast", description="Eye-catching, energetic, memorable"),
            StepOption(value="dark-mode-neon", label="Dark Mode & Neon", description="Modern, tech-forward, dramatic"),
            StepOption(value="clean-monochrome", label="Clean Monochrome", description="Timeless, professional, focused"),
        ),
    ),
    PreferenceStep(
        id="typography",
        title="Pick Typography Style",
        subtitle="Choose fonts that speak your brand voice",
        options=(
            StepOption(value="modern-sans-serif", label="Modern Sans-Serif", description="Clean, contemporary, universal appeal"),
            StepOption(value="classic-serif", label="Classic Serif", description="Traditional, trustworthy, authoritative"),
            StepOption(value="tech-monospace", label="Tech/Monospace", description="Technical, precise, developer-friendly"),
            StepOption(value="friendly-rounded", label="Friendly Rounded", description="Approachable, warm, inviting"),
        ),
    ),
    PreferenceStep(
        id="layout_focus",
        title="Define Layout Focus",
        subtitle="Choose how content is prioritized",
        options=(
            StepOption(value="hero-centric", label="Hero-Centric", description="Big impactful hero image, visual-first approach"),
            StepOption(value="content-first", label="Content-First", description="Text-focused, readable, informative"),
            StepOption(value="split-screen", label="Split Screen", description="Balanced visual and text, modern feel"),
            StepOption(value="visual-grid", label="Visual Grid", description="Gallery-style, portfolio-ready, dynamic"),
        ),
    ),
)
