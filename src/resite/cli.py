"""Typer CLI — ``resite regenerate``, ``resite preview`` and ``resite validate``."""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from typing import Awaitable

import typer
from dotenv import load_dotenv
from rich.panel import Panel
from rich.table import Table

from resite.config import load_config
from resite.errors import AnalysisError, GenerationError
from resite.schemas.config import ResiteConfig
from resite.schemas.pipeline import Step
from resite.shared.progress import PipelineProgress, ask_user, console, is_interactive

# Load .env file from project root (if it exists)
load_dotenv()

app = typer.Typer(
    name="resite",
    help="resite — analyze an existing website and regenerate it with a modern design.",
    no_args_is_help=True,
)

BACK = "back"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load(config: Path | None) -> ResiteConfig:
    try:
        return load_config(config)
    except Exception as exc:
        console.print(f"[red]Config validation failed:[/] {exc}")
        raise typer.Exit(code=1)


def _read_image(path: Path) -> str:
    """Read a screenshot file as a data URI."""
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    return f"data:{mime};base64,{base64.b64encode(path.read_bytes()).decode('ascii')}"


@app.command()
def validate(
    config: Path = typer.Option(..., "--config", "-c", help="Path to resite.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Validate a configuration file without running anything."""
    _setup_logging(verbose)
    cfg = _load(config)

    console.print("[green]Config is valid![/]\n")
    console.print(f"  Model:       {cfg.model}")
    console.print(f"  Image model: {cfg.image_model}")
    console.print(f"  Theme:       {cfg.theme}")
    console.print(f"  Output dir:  {cfg.output_directory}")
    t = cfg.timings
    console.print(
        f"  Timings:     advance {t.advance_delay}s, generation {t.generation_delay}s, "
        f"preview {t.preview_delay}s, failure {t.failure_delay}s, tick {t.analysis_tick}s"
    )


@app.command()
def regenerate(
    url: str = typer.Option(None, "--url", "-u", help="Live site to analyze."),
    image: list[Path] = typer.Option(None, "--image", "-i", help="Screenshot of the site (repeatable)."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to resite.yml"),
    legacy: bool = typer.Option(False, "--legacy", help="Skip the preference wizard and generate from the analysis alone."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Run the pipeline with canned model output (no API calls)."),
) -> None:
    """Analyze a site and regenerate it.

    Examples:

        resite regenerate --url https://example.com

        resite regenerate --image home.png --image about.png --legacy
    """
    _setup_logging(verbose)
    cfg = _load(config)

    if bool(url) == bool(image):
        console.print("[red]Error:[/] pass either --url or at least one --image.")
        raise typer.Exit(code=1)
    for path in image or []:
        if not path.is_file():
            console.print(f"[red]Error:[/] screenshot not found: {path}")
            raise typer.Exit(code=1)

    if dry_run:
        console.print("[yellow]DRY-RUN mode — no API calls will be made.[/]\n")

    exit_code = asyncio.run(
        _run_session(cfg, url=url, images=list(image or []), legacy=legacy, dry_run=dry_run)
    )
    if exit_code:
        raise typer.Exit(code=exit_code)


@app.command()
def preview(
    html: Path = typer.Option(..., "--html", help="Exported site to wrap."),
    output: Path = typer.Option(None, "--output", "-o", help="Where to write the preview page."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to resite.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Wrap an exported site in a sandboxed preview page."""
    from resite.output.preview import render_preview

    _setup_logging(verbose)
    cfg = _load(config)

    if not html.is_file():
        console.print(f"[red]No such file:[/] {html}")
        raise typer.Exit(code=1)

    out_path = output or html.with_name(f"{html.stem}.preview.html")
    out_path.write_text(
        render_preview(html.read_text(encoding="utf-8"), title=html.stem, theme=cfg.theme),
        encoding="utf-8",
    )
    console.print(f"[green]Preview written to:[/] {out_path}")


async def _run_session(
    cfg: ResiteConfig,
    *,
    url: str | None,
    images: list[Path],
    legacy: bool,
    dry_run: bool = False,
) -> int:
    """Drive one pipeline session through the terminal. Returns an exit code."""
    from resite.agents.backend import SiteBackend
    from resite.pipeline.machine import SitePipeline

    if dry_run:
        from resite.shared.llm_client import DryRunClient
        client = DryRunClient()
    else:
        from resite.shared.llm_client import LLMClient
        client = LLMClient(model=cfg.model, image_model=cfg.image_model)

    pipeline = SitePipeline(SiteBackend(client), timings=cfg.timings)

    # ── Analysis ──────────────────────────────────────────────────────
    with PipelineProgress() as progress:
        progress.print_phase("Analyzing")
        progress.start_stage("Analysis", total=100)
        pipeline.on_change = lambda s: progress.update_stage(
            "Analysis", s.analysis_status, completed=s.analysis_progress,
        )
        try:
            if url:
                await pipeline.analyze_url(url)
            else:
                await pipeline.analyze_images([_read_image(p) for p in images])
            progress.finish_stage("Analysis")
        except AnalysisError as exc:
            progress.fail_stage("Analysis", str(exc))
            console.print(f"[red]Analysis failed:[/] {exc}")
            return 1
        finally:
            pipeline.on_change = None

    _print_analysis(pipeline)

    # ── Preferences / generation ──────────────────────────────────────
    try:
        if legacy:
            await _generate(pipeline, "Generating", pipeline.generate_legacy())
        else:
            await _run_wizard(pipeline)
    except GenerationError as exc:
        console.print(f"[red]Generation failed:[/] {exc}")
        return 1

    # ── Preview and refinement ────────────────────────────────────────
    for message in pipeline.state.messages:
        console.print(Panel(message.text, title="resite", style="green"))

    if not is_interactive():
        path = pipeline.export(cfg.output_directory)
        console.print(f"[green]Site written to:[/] {path}")
        return 0

    await _chat(pipeline, cfg)
    return 0


def _print_analysis(pipeline: "SitePipeline") -> None:  # noqa: F821
    analysis = pipeline.state.analysis
    if analysis is None:
        return
    table = Table(title=analysis.business_name or "Analysis", show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Type", analysis.business_type)
    table.add_row("Colors", ", ".join(c for c in (analysis.primary_color, analysis.secondary_color, analysis.accent_color) if c))
    table.add_row("Headline", analysis.extracted_content.headline)
    table.add_row("Services", ", ".join(analysis.extracted_content.services))
    table.add_row("Recommended style", analysis.recommended_style)
    for issue in analysis.design_issues:
        table.add_row("Issue", issue)
    console.print(table)


async def _generate(pipeline: "SitePipeline", label: str, run: Awaitable[object]) -> None:  # noqa: F821
    """Await a generation coroutine while echoing its progress log."""
    with PipelineProgress() as progress:
        progress.print_phase(label)
        progress.start_stage(label)
        pipeline.on_log = progress.stage_log(label)
        try:
            await run
            progress.finish_stage(label)
        except GenerationError as exc:
            progress.fail_stage(label, str(exc))
            raise
        finally:
            pipeline.on_log = None


async def _run_wizard(pipeline: "SitePipeline") -> None:  # noqa: F821
    compiler = pipeline.begin_preferences()
    while pipeline.step is Step.PREFERENCES:
        step = compiler.current_step
        console.print(Panel(
            "\n".join(f"[bold]{o.value}[/] — {o.description}" for o in step.options),
            title=f"Step {compiler.index + 1} of {len(compiler.steps)} · {step.title}",
            subtitle=f"{compiler.percent_complete}%",
        ))
        choices = step.values + ([BACK] if compiler.index > 0 else [])
        answer = await ask_user(step.subtitle, choices=choices, default=step.values[0])
        if answer == BACK:
            compiler.back()
            continue

        if compiler.index < len(compiler.steps) - 1:
            await pipeline.select_preference(step.id, answer)
            continue

        # The last selection starts generation
        try:
            await _generate(pipeline, "Compiling", pipeline.select_preference(step.id, answer))
        except GenerationError as exc:
            if pipeline.step is not Step.PREFERENCES or not is_interactive():
                raise
            console.print(f"[red]{exc}[/] Pick your preferences again to retry.")
            assert pipeline.preferences is not None
            compiler = pipeline.preferences


async def _chat(pipeline: "SitePipeline", cfg: ResiteConfig) -> None:  # noqa: F821
    console.print("[dim]Describe a change, or use /export, /preview, /quit. An empty line also quits.[/]")
    while True:
        # "" on an empty line or a closed stdin
        text = (await ask_user("You")).strip()
        if not text or text in ("/quit", "/exit"):
            path = pipeline.export(cfg.output_directory)
            console.print(f"[green]Site written to:[/] {path}")
            break
        if text == "/export":
            path = pipeline.export(cfg.output_directory)
            console.print(f"[green]Site written to:[/] {path}")
            continue
        if text == "/preview":
            path = pipeline.export(cfg.output_directory)
            preview_path = path.with_name(f"{path.stem}.preview.html")
            preview_path.write_text(pipeline.render_preview(theme=cfg.theme), encoding="utf-8")
            console.print(f"[green]Preview written to:[/] {preview_path}")
            continue

        with console.status("Updating the site..."):
            await pipeline.refine(text)
        console.print(Panel(pipeline.state.messages[-1].text, title="resite", style="green"))
