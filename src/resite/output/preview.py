"""Preview page generator — wraps a generated site in a sandboxed iframe."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

_TEMPLATE_DIR = Path(__file__).parent / "templates"

SANDBOX = "allow-scripts allow-modals allow-forms allow-same-origin"


def render_preview(html: str, *, title: str = "website", theme: str = "dark") -> str:
    """Render a self-contained preview page.

    The generated HTML is passed through ``srcdoc``; autoescaping turns it
    into a valid attribute value.
    """
    env = Environment(loader=FileSystemLoader(str(_TEMPLATE_DIR)), autoescape=True)
    template = env.get_template("preview.html")
    return template.render(html=html, title=title, theme=theme, sandbox=SANDBOX)
