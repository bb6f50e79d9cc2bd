# ABOUTME: Main CLI application entry point using asyncclick for native async support
# ABOUTME: Provides commands for registry synchronization, lore processing and image downloads

import json as json_lib
from pathlib import Path

import asyncclick as click
from pydantic import BaseModel
from rich.console import Console

from lore_scribe.config import get_config
from lore_scribe.core.models import ItemResult
from lore_scribe.errors import LoreScribeError
from lore_scribe.utils.logging import (
    LoggingMode,
    configure_logging,
    get_logging_status,
    run_with_status,
    with_pipeline_context,
)
from lore_scribe.utils.rich_tables import (
    create_download_report_table,
    create_error_table,
    create_generation_report_table,
    create_logging_status_table,
    create_registry_status_table,
    create_sync_report_table,
    print_rich_table,
)

console = Console()


def _emit_json(report: BaseModel) -> None:
    click.echo(report.model_dump_json(indent=2))


def _print_errors(title: str, errors: list[ItemResult]) -> None:
    if errors:
        print_rich_table(console, create_error_table(title, errors))


async def _run_sync(registry: str, source: Path | None, json_output: bool) -> None:
    """Run one registry synchronization and display its report."""
    from lore_scribe.core.service import RegistrySyncService

    config = get_config()
    service = RegistrySyncService(config)
    operations = {
        "categories": service.sync_categories,
        "lore": service.sync_lore,
        "images": service.sync_images,
    }

    with with_pipeline_context(f"sync_{registry}") as logger:
        try:
            report = await run_with_status(
                console, operations[registry](source), f"📚 Synchronizing {registry} registry...", json_output
            )
        except LoreScribeError as e:
            logger.error("Registry sync aborted", error=str(e), error_kind=e.kind.value)
            raise click.ClickException(str(e)) from e

    if json_output:
        _emit_json(report)
        return
    print_rich_table(console, create_sync_report_table(report))
    _print_errors("⚠️ Skipped Records", report.ingest.errors)


@click.command(name="sync-categories")
@click.option("--source", type=click.Path(path_type=Path), help="Folder of exported category records")
@click.pass_context
async def sync_categories(ctx, source: Path | None):
    """
    🗂️ Synchronize the category registry and mirror the category tree on disk.
    """
    await _run_sync("categories", source, ctx.obj["json_output"])


@click.command(name="sync-lore")
@click.option("--source", type=click.Path(path_type=Path), help="Folder of exported article records")
@click.pass_context
async def sync_lore(ctx, source: Path | None):
    """
    📜 Synchronize the lore registry from exported articles.
    """
    await _run_sync("lore", source, ctx.obj["json_output"])


@click.command(name="sync-images")
@click.option("--source", type=click.Path(path_type=Path), help="Folder of exported image records")
@click.pass_context
async def sync_images(ctx, source: Path | None):
    """
    🖼️ Synchronize the image registry from exported image records.
    """
    await _run_sync("images", source, ctx.obj["json_output"])


@click.command(name="process-lore")
@click.pass_context
async def process_lore(ctx):
    """
    ✍️ Generate Markdown articles and category index pages.

    Requires the category, lore and image registries to be synchronized first.
    """
    from lore_scribe.core.generator import DocumentGenerator

    json_output = ctx.obj["json_output"]
    generator = DocumentGenerator(get_config())

    with with_pipeline_context("process_lore") as logger:
        try:
            report = await run_with_status(console, generator.run(), "✍️ Writing the archives...", json_output)
        except LoreScribeError as e:
            logger.error("Lore processing aborted", error=str(e), error_kind=e.kind.value)
            raise click.ClickException(str(e)) from e

    if json_output:
        _emit_json(report)
        return
    print_rich_table(console, create_generation_report_table(report))
    _print_errors("❌ Failed Pages", report.indexes.errors + report.articles.errors)


@click.command(name="get-img")
@click.option(
    "--source",
    type=click.Path(path_type=Path),
    help="Download straight from a folder of image records instead of the image registry",
)
@click.option("--prop", default="filename", show_default=True, help="Record property used as the file name")
@click.pass_context
async def get_img(ctx, source: Path | None, prop: str):
    """
    🖼️ Download images into the image folder.
    """
    from lore_scribe.core.downloads import DownloadManager

    json_output = ctx.obj["json_output"]

    with with_pipeline_context("get_img", source=str(source) if source else None) as logger:
        async with DownloadManager(get_config()) as manager:
            operation = manager.download_from_source(source, prop) if source else manager.download_from_registry()
            try:
                report = await run_with_status(console, operation, "🖼️ Fetching images...", json_output)
            except LoreScribeError as e:
                logger.error("Image download aborted", error=str(e), error_kind=e.kind.value)
                raise click.ClickException(str(e)) from e

    if json_output:
        _emit_json(report)
        return
    print_rich_table(console, create_download_report_table(report))


@click.command(name="registry-status")
@click.pass_context
async def registry_status(ctx):
    """
    🗃️ Show entry and extracted counts for each registry.
    """
    from lore_scribe.core.service import RegistrySyncService

    try:
        status = await RegistrySyncService(get_config()).registry_status()
    except LoreScribeError as e:
        raise click.ClickException(str(e)) from e

    if ctx.obj["json_output"]:
        click.echo(json_lib.dumps(status, indent=2))
        return
    print_rich_table(console, create_registry_status_table(status))


def _initialize_logging(json_output: bool, log_level: str | None = None, log_file: str | None = None) -> None:
    """Initialize logging configuration."""
    try:
        config = get_config()
        mode = LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE

        # Use config defaults when CLI parameters are not provided
        final_log_level = log_level or config.log_level
        final_log_file = log_file or (str(config.log_file) if config.log_file else None)

        configure_logging(mode=mode, log_level=final_log_level, log_file=final_log_file)
    except OSError:
        # Log directory not writable: fall back to stdout-only logging
        configure_logging(mode=LoggingMode.PRODUCTION, log_level=log_level or "INFO", log_file=None)


@click.command(name="logging-status")
def logging_status():
    """
    📊 Show current logging configuration and status.
    """
    status = get_logging_status()
    logging_table = create_logging_status_table(status)
    print_rich_table(console, logging_table)


@click.group(invoke_without_command=True)
@click.option("--json", is_flag=True, help="Output structured JSON logs and reports instead of rich tables")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", help="Custom log file path")
@click.pass_context
def app(ctx, json: bool, log_level: str | None, log_file: str | None):
    """
    📜 Lore Scribe - World export to Markdown documentation

    Synchronize category, lore and image registries from exported JSON records,
    then generate a Markdown document tree and download the images it references.
    """
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json

    # Initialize logging once here instead of in each command
    _initialize_logging(json, log_level, log_file)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


app.add_command(sync_categories)
app.add_command(sync_lore)
app.add_command(sync_images)
app.add_command(process_lore)
app.add_command(get_img)
app.add_command(registry_status)
app.add_command(logging_status)


if __name__ == "__main__":
    app()
