import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wishlens.config import PERSIST_KEYS, Config, get_config, load_user_settings, save_user_settings
from wishlens.constants import AUTH_REQUIRED, MAX_GRID_SIZE
from wishlens.logging import configure_logging
from wishlens.vision.confidence import confidence_color, confidence_label
from wishlens.vision.models import AggregatedResult, TileStatus
from wishlens.vision.pipeline import identify_product_from_image_tiles

console = Console()


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """wishlens - find wishlist products in a photo"""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = get_config()
    except ValueError as e:
        ctx.obj["config_error"] = str(e)

    if ctx.invoked_subcommand is None:
        console.print("[bold]wishlens[/bold] - find wishlist products in a photo\n")
        console.print("Run [cyan]wishlens identify PHOTO[/cyan] to identify products.")
        console.print("\nUse [cyan]wishlens --help[/cyan] for all commands.")


def _require_config(ctx):
    if "config_error" in ctx.obj:
        console.print(f"[red]Error:[/red] {escape(ctx.obj['config_error'])}")
        raise SystemExit(1)
    return ctx.obj["config"]


@main.command()
@click.pass_context
def status(ctx):
    """Show the effective configuration."""
    config = _require_config(ctx)

    console.print("[bold]wishlens status[/bold]")
    console.print()
    if config.is_backend_configured:
        console.print(f"Backend: [cyan]{config.backend_url}[/cyan]")
    else:
        console.print("Backend: [red]not configured[/red] (set SUPABASE_URL and SUPABASE_ANON_KEY)")
    console.print(f"Access token: {'set' if config.access_token else '[yellow]missing[/yellow]'}")
    console.print(f"Grid: {config.grid_size}x{config.grid_size}, {config.max_concurrent} concurrent")
    console.print(
        f"Retries: {config.max_retries} "
        f"(backoff {config.retry_base_delay}s-{config.retry_max_delay}s, timeout {config.request_timeout}s)"
    )


@main.command("set")
@click.argument("key", type=click.Choice(sorted(PERSIST_KEYS)))
@click.argument("value")
def set_setting(key: str, value: str):
    """Persist KEY=VALUE to ~/.wishlens/settings.json."""
    settings = load_user_settings()
    settings[key] = value
    try:
        config = Config(**{k: settings[k] for k in PERSIST_KEYS if k in settings})
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    settings[key] = getattr(config, key)
    save_user_settings(settings)
    console.print(f"Saved [cyan]{key}[/cyan] = {settings[key]}")


def _render(result: AggregatedResult) -> None:
    if result.status != TileStatus.OK:
        style = "yellow" if result.status == TileStatus.NO_RESULTS else "red"
        console.print(f"[{style}]{result.message}[/{style}]")
        if result.error == AUTH_REQUIRED:
            console.print("Set [cyan]WISHLENS_ACCESS_TOKEN[/cyan] to a fresh session token and try again.")
        return

    color = confidence_color(result.confidence)
    console.print(f"Query: [bold]{result.query or '-'}[/bold]")
    console.print(f"Confidence: [{color}]{confidence_label(result.confidence)}[/{color}] ({result.confidence:.2f})")

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Store")
    table.add_column("Score", justify="right")
    table.add_column("Reason", style="dim")
    for i, item in enumerate(result.aggregated_items, 1):
        table.add_row(str(i), item.title, item.store_url or "-", str(item.score), item.reason or "")
    console.print(table)


@main.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--grid", type=click.IntRange(1, MAX_GRID_SIZE), default=None, help="Grid size (NxN tiles)")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def identify(ctx, image: Path, grid: int | None, as_json: bool):
    """Identify products in IMAGE tile by tile."""
    config = _require_config(ctx)
    if not config.is_backend_configured:
        console.print("[red]Error:[/red] backend not configured (set SUPABASE_URL and SUPABASE_ANON_KEY)")
        raise SystemExit(1)
    configure_logging(config.log_level)

    def _progress(message: str) -> None:
        if not as_json:
            console.print(f"[dim]{message}[/dim]")

    result = asyncio.run(
        identify_product_from_image_tiles(
            image,
            grid or config.grid_size,
            _progress,
            config=config,
        )
    )

    if as_json:
        click.echo(json.dumps(result.to_payload(), indent=2))
    else:
        _render(result)

    if result.status == TileStatus.ERROR:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
