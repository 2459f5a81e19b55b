"""Command-line entry points for the review assistant."""

import asyncio
import dataclasses
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, NoReturn, Optional, Tuple

import typer
from pydantic import BaseModel
from rich import print as rprint
from rich.table import Table

from .business import BusinessInfo, deep_links
from .clipboard import CommandClipboard, TkCopySurface, copy_to_clipboard
from .config import Settings, get_settings
from .console import ConsoleManualCopyPrompt, RichNotificationSink, navigator_for_user_agent
from .errors import ReviewAssistError
from .generation import DirectGenerator, GenerationServiceClient
from .models import Platform
from .prompt import analyze_existing_reviews
from .review_source import (
    DirectReviewSource,
    ReviewSourceClient,
    extract_keywords,
    format_reviews_for_display,
    positive_reviews,
)
from .trigger import ReviewGenerator, ReviewSource, ReviewTrigger, generate_for_place

app = typer.Typer(
    help="Generate platform-tailored reviews from a business's existing reviews."
)

MODES = {"api", "direct"}


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _to_plain(value: Any) -> Any:
    """
    Convert dataclasses, pydantic models, Paths, and date-like objects into
    JSON-serializable primitives.
    """
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_plain(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_plain(item) for item in value]
    return value


def _write_output(out_path: Path, text: str, json_payload: dict) -> None:
    suffix = out_path.suffix.lower()
    if suffix == ".json":
        out_path.write_text(
            json.dumps(json_payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
    else:
        out_path.write_text(text, encoding="utf-8")


def _normalize_mode(mode: str) -> str:
    mode_normalized = mode.lower()
    if mode_normalized not in MODES:
        raise typer.BadParameter("mode must be 'api' or 'direct'.")
    return mode_normalized


def _parse_platform(value: str) -> Platform:
    platform = Platform.parse(value)
    if platform is None:
        choices = ", ".join(p.value for p in Platform)
        raise typer.BadParameter(f"platform must be one of: {choices}.")
    return platform


def _build_pipeline(
    mode: str, settings: Settings
) -> Tuple[ReviewSource, ReviewGenerator]:
    """'api' talks to a running service; 'direct' calls Google in-process."""
    if mode == "api":
        return (
            ReviewSourceClient(
                settings.api_base_url, timeout=settings.http_timeout_seconds
            ),
            GenerationServiceClient(
                settings.api_base_url, timeout=settings.http_timeout_seconds
            ),
        )
    return DirectReviewSource(settings), DirectGenerator(settings)


def _resolve_place_id(place_id: Optional[str], settings: Settings) -> str:
    resolved = place_id or settings.default_place_id
    if not resolved:
        raise typer.BadParameter(
            "Provide a place id or set GOOGLE_PLACE_ID in the environment."
        )
    return resolved


def _fail(exc: ReviewAssistError) -> NoReturn:
    rprint(f"[red]{exc}[/red]")
    raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
):
    """Run the review API with uvicorn."""
    import uvicorn

    _configure_logging(get_settings())
    uvicorn.run("review_assist.server:app", host=host, port=port, reload=reload)


@app.command("reviews")
def reviews_command(
    place_id: Optional[str] = typer.Argument(
        None, help="Place id to fetch. Defaults to GOOGLE_PLACE_ID."
    ),
    mode: str = typer.Option(
        "api",
        "--mode",
        "-m",
        help="'api' (running service) or 'direct' (Google Places in-process).",
        case_sensitive=False,
    ),
):
    """Fetch and print the normalized reviews for a place."""
    settings = get_settings()
    _configure_logging(settings)
    source, _ = _build_pipeline(_normalize_mode(mode), settings)
    try:
        reviews = asyncio.run(source.fetch(_resolve_place_id(place_id, settings)))
    except ReviewAssistError as exc:
        _fail(exc)

    if not reviews:
        rprint("[yellow]No reviews found for this place.[/yellow]")
        return

    table = Table(title=f"{len(reviews)} reviews")
    table.add_column("Review")
    for line in format_reviews_for_display(reviews):
        table.add_row(line)
    rprint(table)
    rprint(f"[cyan]Positive reviews: {len(positive_reviews(reviews))}[/cyan]")
    keywords = extract_keywords(reviews)
    if keywords:
        rprint(f"[cyan]Keywords: {', '.join(keywords)}[/cyan]")
    analysis = analyze_existing_reviews([review.text for review in reviews if review.text])
    if analysis.positive_aspects:
        rprint(f"[cyan]Praised: {', '.join(analysis.positive_aspects)}[/cyan]")
    rprint(f"[cyan]Average length: {analysis.avg_length} characters[/cyan]")


@app.command("generate")
def generate_command(
    platform: str = typer.Argument(..., help="google-maps, yelp, tripadvisor or opentable."),
    place_id: Optional[str] = typer.Option(
        None, "--place-id", help="Place id to learn from. Defaults to GOOGLE_PLACE_ID."
    ),
    business_name: Optional[str] = typer.Option(
        None, "--business-name", help="Business name used in the prompt."
    ),
    business_type: Optional[str] = typer.Option(
        None, "--business-type", help="Business type used in the prompt."
    ),
    mode: str = typer.Option(
        "api",
        "--mode",
        "-m",
        help="'api' (running service) or 'direct' (Google in-process).",
        case_sensitive=False,
    ),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Optional path to write output (.txt or .json). Defaults to stdout.",
    ),
):
    """Generate one review for a platform and print it."""
    settings = get_settings()
    _configure_logging(settings)
    target_platform = _parse_platform(platform)
    source, generator = _build_pipeline(_normalize_mode(mode), settings)
    try:
        result = asyncio.run(
            generate_for_place(
                source,
                generator,
                platform=target_platform.value,
                place_id=_resolve_place_id(place_id, settings),
                business_name=business_name or settings.default_business_name,
                business_type=business_type or settings.default_business_type,
            )
        )
    except ReviewAssistError as exc:
        _fail(exc)

    if out:
        _write_output(out, result.generated_text, _to_plain(result))
        rprint(f"[cyan]Wrote output to {out}[/cyan]")
    else:
        rprint(result.generated_text)
        rprint(f"[dim]model: {result.model_used}[/dim]")


@app.command("open")
def open_command(
    platform: str = typer.Argument(..., help="google-maps, yelp, tripadvisor or opentable."),
    href: Optional[str] = typer.Option(
        None, "--href", help="Link to open afterward. Defaults to the business page."
    ),
    place_id: Optional[str] = typer.Option(
        None, "--place-id", help="Place id to learn from. Defaults to GOOGLE_PLACE_ID."
    ),
    mode: str = typer.Option(
        "api",
        "--mode",
        "-m",
        help="'api' (running service) or 'direct' (Google in-process).",
        case_sensitive=False,
    ),
    user_agent: Optional[str] = typer.Option(
        None,
        "--user-agent",
        help="Visitor user agent; mobile agents navigate in place instead of a new tab.",
    ),
    clipboard: bool = typer.Option(
        True,
        "--clipboard/--no-clipboard",
        help="Disable to skip straight to the manual copy prompt.",
    ),
):
    """
    Run the landing-page flow for one platform link:
    generate a review, copy it, then open the platform.
    """
    settings = get_settings()
    _configure_logging(settings)
    target_platform = _parse_platform(platform)
    source, generator = _build_pipeline(_normalize_mode(mode), settings)

    target = BusinessInfo.from_settings(settings).link_target(target_platform)
    if href:
        target.href = href
    if place_id:
        target.place_id = place_id

    async def _copy(text: str) -> None:
        if not clipboard:
            await copy_to_clipboard(text)
            return
        await copy_to_clipboard(text, fast_path=CommandClipboard(), fallback=TkCopySurface())

    trigger = ReviewTrigger(
        target,
        source=source,
        generator=generator,
        copy=_copy,
        notifier=RichNotificationSink(),
        manual_copy=ConsoleManualCopyPrompt(),
        navigator=navigator_for_user_agent(user_agent),
        default_place_id=settings.default_place_id,
        business_type=settings.default_business_type,
        success_delay=settings.success_redirect_delay,
        error_delay=settings.error_redirect_delay,
    )
    outcome = asyncio.run(trigger.activate())
    if outcome is not None and outcome.error:
        raise typer.Exit(code=1)


@app.command("links")
def links_command():
    """Print the business's platform links (app scheme and web)."""
    settings = get_settings()
    info = BusinessInfo.from_settings(settings)
    rprint(f"[bold]{info.name}[/bold] ({info.address})")
    for platform, links in deep_links(info).items():
        rprint(f"[cyan]{platform}[/cyan]")
        for kind in ("ios", "android", "web"):
            rprint(f"  {kind}: {links[kind]}")


def main():
    app()


if __name__ == "__main__":
    main()
