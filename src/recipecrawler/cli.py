"""Command-line interface for the recipe crawler."""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from recipecrawler import __version__
from recipecrawler.config import Config, load_config
from recipecrawler.container import RecipeCrawlerService
from recipecrawler.crawler import RECIPE_SOURCES, FetchSuccess
from recipecrawler.crawler.results import describe
from recipecrawler.extractor import ExtractedRecipe
from recipecrawler.observability import configure_logging, start_metrics_server
from recipecrawler.orchestrator import CrawlJob

console = Console()
logger = structlog.get_logger(__name__)


def _load(ctx: click.Context) -> Config:
    config = load_config(ctx.obj["config_path"])
    config.monitoring.log_level = ctx.obj["log_level"] or config.monitoring.log_level
    configure_logging(config.monitoring)
    return config


def _job_table(job: CrawlJob) -> Table:
    table = Table(title=f"Crawl job {job.id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    for key, value in job.to_dict().items():
        table.add_row(key, "" if value is None else str(value))
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """recipecrawler - discover, fetch and extract recipes from the web."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None
    ctx.obj["log_level"] = log_level


@cli.command()
@click.argument("source", default="popular")
@click.option("--wait", is_flag=True, help="Show live progress until the job finishes")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the job summary and stored recipes as JSON")
@click.pass_context
def crawl(ctx: click.Context, source: str, wait: bool, output: Optional[str]) -> None:
    """Run one crawl job over SOURCE (a source name, or "popular")."""
    config = _load(ctx)

    async def run_job() -> CrawlJob:
        async with RecipeCrawlerService(config) as service:
            start_metrics_server(config.monitoring)
            job_id = await service.start_crawling(source)
            job = service.get_crawl_status(job_id)
            assert job is not None

            if wait:
                progress = Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TextColumn("{task.completed}/{task.total}"),
                    TimeElapsedColumn(),
                    console=console,
                )
                with progress:
                    task = progress.add_task(f"Crawling {source}", total=None)
                    while not job.is_finished:
                        progress.update(task, completed=job.processed, total=job.total or None)
                        await asyncio.sleep(0.5)
                    progress.update(task, completed=job.processed, total=job.total)
            else:
                console.print(f"[blue]Started crawl job {job_id}[/blue]")

            await service.orchestrator.wait_for_job(job_id)

            if output:
                recipes = await service.storage.get_all_recipes()
                payload: Dict[str, Any] = {
                    "job": job.to_dict(),
                    "recipes": [asdict(r) for r in recipes],
                }
                Path(output).write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
                console.print(f"[green]Wrote {len(recipes)} recipes to {output}[/green]")
            return job

    job = asyncio.run(run_job())
    console.print(_job_table(job))
    if job.error:
        console.print(f"[red]Job failed: {job.error}[/red]")
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.pass_context
def extract(ctx: click.Context, url: str) -> None:
    """Fetch URL through the strategy ladder and print the extracted recipe as JSON."""
    config = _load(ctx)

    async def run_extract() -> Optional[Dict[str, Any]]:
        async with RecipeCrawlerService(config) as service:
            verdict = await service.orchestrator.fetch_and_extract(url)
            result = verdict.result
            if not isinstance(result, FetchSuccess):
                console.print(f"[red]Fetch failed: {describe(result) if result else 'no result'}[/red]")
                return None
            if verdict.is_collection:
                links = service.orchestrator.detector.extract_links_from_collection(result.html, result.final_url)
                return {"collection": True, "links": links}
            if isinstance(verdict.outcome, ExtractedRecipe):
                return asdict(verdict.outcome)
            reason = verdict.outcome.reason if verdict.outcome else "nothing extracted"
            console.print(f"[red]Extraction failed: {reason}[/red]")
            return None

    data = asyncio.run(run_extract())
    if data is None:
        sys.exit(1)
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@cli.command()
def sources() -> None:
    """List the discovery sources in priority order."""
    table = Table(title="Recipe sources")
    table.add_column("Priority", style="cyan", justify="right")
    table.add_column("Name", style="magenta")
    table.add_column("Listing URL")
    table.add_column("Link selector", style="dim")
    for source in sorted(RECIPE_SOURCES, key=lambda s: s.priority):
        table.add_row(str(source.priority), source.name, source.listing_url, source.link_selector)
    console.print(table)


@cli.command()
@click.pass_context
def auto(ctx: click.Context) -> None:
    """Run the recurring auto-crawl scheduler until interrupted."""
    config = _load(ctx)

    async def run_auto() -> None:
        async with RecipeCrawlerService(config) as service:
            start_metrics_server(config.monitoring)
            await service.start_auto_crawling()
            console.print(
                Panel.fit(
                    f"[bold blue]Auto-crawl running[/bold blue]\n"
                    f"Interval: {config.scheduler.crawl_interval_ms / 1000:.0f}s\n"
                    f"Source: {config.scheduler.default_source_label}",
                    title="recipecrawler",
                )
            )
            while service.is_auto_crawl_running():
                await asyncio.sleep(1)

    try:
        asyncio.run(run_auto())
    except KeyboardInterrupt:
        console.print("\n[yellow]Auto-crawl stopped[/yellow]")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
