"""YAML config loader — reads resite.yml into ResiteConfig."""

from pathlib import Path

import yaml

from resite.schemas.config import ResiteConfig


def load_config(path: str | Path | None) -> ResiteConfig:
    """Load and validate a config file.

    ``None`` returns the defaults. Raises ``FileNotFoundError`` if the path
    doesn't exist and ``pydantic.ValidationError`` if the YAML content is
    invalid.
    """
    if path is None:
        return ResiteConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = yaml.safe_load(path.read_text())
    if raw is None:
        # Empty file: all defaults
        return ResiteConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    # A ``timings:`` key with every entry commented out loads as None.
    if "timings" in raw and raw["timings"] is None:
        raw.pop("timings")

    return ResiteConfig(**raw)
