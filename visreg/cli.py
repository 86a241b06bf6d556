"""CLI entry point for visreg."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from visreg.models.config import Viewport, VisregConfig
from visreg.orchestrator import Orchestrator

console = Console()

_STATUS_STYLE = {
    "passed": "green",
    "warning": "yellow",
    "failed": "red",
    "error": "red",
    "pending": "blue",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> VisregConfig:
    if not Path(path).exists():
        # Running without a config file is fine; defaults apply
        return VisregConfig()
    return VisregConfig.load(path)


def _parse_viewport(value: str) -> Viewport:
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError:
        raise click.BadParameter(f"expected WIDTHxHEIGHT, got {value!r}")
    return Viewport(width=width, height=height)


def _status(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression toolkit: capture screenshots and diff them."""
    setup_logging(verbose)


@cli.command()
@click.option("--output-dir", "-o", default="./visreg-output", help="Where artefacts are written")
def init(output_dir: str) -> None:
    """Create a default configuration file."""
    config_path = Path("visreg-config.json")
    if config_path.exists():
        if not click.confirm("visreg-config.json already exists. Overwrite?"):
            return

    cfg = VisregConfig(output_dir=output_dir)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nCapture a baseline with:")
    console.print("  [blue]visreg capture https://example.com[/blue]")


@cli.command()
@click.argument("url")
@click.option("--selector", "-s", default=None, help="Capture a single element")
@click.option("--viewport", "viewport_", default=None, help="Viewport as WIDTHxHEIGHT")
@click.option("--full-page", is_flag=True, help="Capture the full scrollable page")
@click.option("--name", default="", help="Screenshot name")
@click.option("--config", "-c", default="visreg-config.json", help="Config file path")
def capture(url: str, selector: str | None, viewport_: str | None, full_page: bool,
            name: str, config: str) -> None:
    """Capture one screenshot of URL."""
    cfg = _load_config(config)
    viewport = _parse_viewport(viewport_) if viewport_ else None
    result, path = Orchestrator(cfg).run_capture(url, selector, viewport, full_page, name)
    if not result.success:
        console.print(f"[red]Capture failed ({result.error.code.value}):[/red] {result.error.message}")
        sys.exit(1)

    shot = result.screenshot
    console.print(
        f"[green]Captured[/green] {shot.name} "
        f"({shot.metadata.dimensions.width}x{shot.metadata.dimensions.height}, "
        f"{result.attempts} attempt(s))"
    )
    console.print(f"  Saved: [blue]{path}[/blue]")


@cli.command()
@click.argument("url")
@click.option("--viewport", "viewports", multiple=True, help="Viewport as WIDTHxHEIGHT (repeatable)")
@click.option("--concurrency", default=1, show_default=True, help="Captures run at once")
@click.option("--config", "-c", default="visreg-config.json", help="Config file path")
def responsive(url: str, viewports: tuple[str, ...], concurrency: int, config: str) -> None:
    """Capture URL at each configured viewport."""
    cfg = _load_config(config)
    chosen = [_parse_viewport(v) for v in viewports] or cfg.viewports
    results = Orchestrator(cfg).run_responsive(url, chosen, concurrency=concurrency)

    table = Table(title=f"Responsive capture: {url}")
    table.add_column("Viewport", style="bold")
    table.add_column("Result")
    table.add_column("File / Error")
    for viewport, (result, path) in zip(chosen, results):
        if result.success:
            table.add_row(viewport.label, "[green]ok[/green]", str(path))
        else:
            table.add_row(
                viewport.label,
                f"[red]{result.error.code.value}[/red]",
                result.error.message,
            )
    console.print(table)
    if not all(r.success for r, _ in results):
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.argument("selector")
@click.option("--duration", default=1000, show_default=True, help="Sampling window in ms")
@click.option("--fps", default=30, show_default=True, help="Frames per second")
@click.option("--config", "-c", default="visreg-config.json", help="Config file path")
def animate(url: str, selector: str, duration: int, fps: int, config: str) -> None:
    """Sample frames of an animated element."""
    cfg = _load_config(config)
    paths = Orchestrator(cfg).run_animation(url, selector, duration, fps)
    if not paths:
        console.print("[red]No frames captured[/red]")
        sys.exit(1)
    console.print(f"[green]Captured {len(paths)} frame(s)[/green] into [blue]{paths[0].parent}[/blue]")


def _diff_row(table: Table, label: str, outcome: dict) -> None:
    result = outcome["result"]
    if not result.success:
        table.add_row(label, _status("error"), "-", "-", result.error.message)
        return
    metrics = result.diff.metrics
    table.add_row(
        label,
        _status(result.status),
        f"{metrics.percentage_changed:.4f}%",
        str(metrics.regions),
        str(outcome["image"] or outcome["report"]),
    )


def _diff_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("Comparison", style="bold")
    table.add_column("Status")
    table.add_column("Changed")
    table.add_column("Regions")
    table.add_column("Output")
    return table


@cli.command()
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False))
@click.argument("comparison", type=click.Path(exists=True, dir_okay=False))
@click.option("--threshold", "-t", type=float, default=None, help="Allowed changed-pixel percentage")
@click.option("--config", "-c", default="visreg-config.json", help="Config file path")
def compare(baseline: str, comparison: str, threshold: float | None, config: str) -> None:
    """Diff COMPARISON against BASELINE (screenshot JSON or PNG/JPEG)."""
    cfg = _load_config(config)
    outcome = Orchestrator(cfg).run_compare(Path(baseline), Path(comparison), threshold)

    table = _diff_table("Visual diff")
    _diff_row(table, Path(comparison).name, outcome)
    console.print(table)
    console.print(f"  JSON report: [blue]{outcome['report']}[/blue]")
    if outcome["result"].status in ("failed", "error"):
        sys.exit(1)


@cli.command()
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False))
@click.argument("comparisons", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--threshold", "-t", type=float, default=None, help="Allowed changed-pixel percentage")
@click.option("--config", "-c", default="visreg-config.json", help="Config file path")
def batch(baseline: str, comparisons: tuple[str, ...], threshold: float | None, config: str) -> None:
    """Diff each of COMPARISONS against one BASELINE."""
    cfg = _load_config(config)
    outcomes = Orchestrator(cfg).run_batch(Path(baseline), [Path(c) for c in comparisons], threshold)

    table = _diff_table(f"Batch diff against {Path(baseline).name}")
    for path, outcome in zip(comparisons, outcomes):
        _diff_row(table, Path(path).name, outcome)
    console.print(table)
    if any(o["result"].status in ("failed", "error") for o in outcomes):
        sys.exit(1)


if __name__ == "__main__":
    cli()
