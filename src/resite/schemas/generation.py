"""Generated artifacts: images and the final site."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

AssetKind = Literal["hero", "feature", "mood"]


class GeneratedAsset(BaseModel):
    """An image produced for the new site.

    ``url`` is either a remote URL or a ``data:`` URI with inline base64.
    """

    type: AssetKind
    url: str
    prompt: str = ""


class GeneratedSite(BaseModel):
    """Output of the structured design compiler."""

    html: str
    hero_image_url: str = ""
