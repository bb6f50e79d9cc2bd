# ABOUTME: Rich table builders for CLI run summaries and registry status
# ABOUTME: Every table shares one look: left-aligned styled title, cyan border, magenta headers

from typing import Any

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.table import Table

from lore_scribe.core.models import DownloadReport, GenerationReport, ItemResult, PhaseReport, SyncReport

MAX_ERROR_ROWS = 20


def _styled_table(title: str, title_style: str, box_style, **options) -> Table:
    return Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        border_style="cyan",
        title_justify="left",
        **options,
    )


def create_key_value_table(
    title: str,
    data: dict[str, str],
    title_style: str = "bold cyan",
    key_style: str = "bold blue",
    value_style: str = "green",
    box_style=ROUNDED,
) -> Table:
    """Two-column Field/Value table, rows in the order of ``data``."""
    table = _styled_table(title, title_style, box_style, header_style="bold magenta", expand=False)
    table.add_column("Field", style=key_style)
    table.add_column("Value", style=value_style)
    for key, value in data.items():
        table.add_row(key, str(value))
    return table


def create_multi_column_table(
    title: str,
    columns: list[tuple[str, str]],
    rows: list[list[str]],
    title_style: str = "bold cyan",
    box_style=ROUNDED,
) -> Table:
    """Zebra-striped table; ``columns`` holds ``(name, style)`` pairs."""
    table = _styled_table(
        title, title_style, box_style, header_style="bold magenta", row_styles=["", "dim"], expand=True
    )
    for name, style in columns:
        table.add_column(name, style=style)
    for row in rows:
        table.add_row(*row)
    return table


def _phase_counts(phase: PhaseReport) -> str:
    return ", ".join(f"{status} {count}" for status, count in phase.summary().items() if count) or "nothing to do"


def create_sync_report_table(report: SyncReport) -> Table:
    data = {
        "📚 Registry": report.registry,
        "📄 Source Files": str(report.source_files),
        "➕ Added": str(report.added),
        "🗂️ Total Entries": str(report.total_entries),
        "🧭 Paths Assigned": str(report.paths_assigned),
        "📁 Directories Created": str(report.directories_created),
        "💾 Saved": "✅ Yes" if report.saved else "No changes",
        "⚠️ Skipped Records": str(len(report.ingest.errors)),
    }
    if report.cycle_breaks:
        data["🔁 Cycle Breaks"] = ", ".join(report.cycle_breaks)

    return create_key_value_table(
        title="🔄 Registry Sync", data=data, title_style="bold green", key_style="cyan", value_style="white"
    )


def create_generation_report_table(report: GenerationReport) -> Table:
    data = {
        "🧭 Lore Paths Assigned": str(report.lore_paths_assigned),
        "📑 Index Pages": _phase_counts(report.indexes),
        "📝 Articles": _phase_counts(report.articles),
        "✅ Newly Extracted": str(report.extracted),
        "🗒️ Run Log": str(report.log_path) if report.log_path else "N/A",
    }
    return create_key_value_table(
        title="📜 Lore Processing", data=data, title_style="bold green", key_style="cyan", value_style="white"
    )


def create_download_report_table(report: DownloadReport) -> Table:
    data = {state.replace("_", " ").title(): str(count) for state, count in report.summary().items()}
    data["Registry Entries Synced"] = str(report.registry_synced)
    data["Run Log"] = str(report.log_path) if report.log_path else "N/A"
    return create_key_value_table(
        title="🖼️ Image Downloads",
        data=data,
        title_style="bold magenta",
        key_style="blue",
        value_style="white",
        box_style=SIMPLE,
    )


def create_error_table(title: str, results: list[ItemResult]) -> Table:
    """First failures of a phase, one row each."""
    rows = [
        [result.item_id, result.label or "-", result.error_kind.value if result.error_kind else "-", result.detail]
        for result in results[:MAX_ERROR_ROWS]
    ]
    return create_multi_column_table(
        title=title,
        columns=[("ID", "cyan"), ("Label", "white"), ("Kind", "yellow"), ("Detail", "red")],
        rows=rows,
        title_style="bold red",
    )


def create_registry_status_table(status: dict[str, dict[str, Any]]) -> Table:
    rows = [
        [
            name,
            "✅" if info["exists"] else "❌",
            str(info["entries"]),
            str(info["extracted"]),
            info["path"],
        ]
        for name, info in status.items()
    ]
    return create_multi_column_table(
        title="🗃️ Registries",
        columns=[
            ("Registry", "cyan"),
            ("Exists", "white"),
            ("Entries", "green"),
            ("Extracted", "blue"),
            ("Path", "dim white"),
        ],
        rows=rows,
    )


def create_logging_status_table(status: dict[str, Any]) -> Table:
    """Create a logging configuration status table.

    Args:
        status: Logging status dictionary

    Returns:
        Styled logging configuration table
    """
    logging_data = {
        "🔧 Mode": status["mode"].title(),
        "📁 Log Directory": status["log_directory"] or "N/A (production mode)",
        "🔇 Suppressed Libraries": ", ".join(status["third_party_suppressed"]),
    }

    for key, label in (("main", "📝 Main Log"), ("json", "📊 JSON Log"), ("errors", "🚨 Error Log")):
        if status["log_files"][key]:
            logging_data[label] = status["log_files"][key]

    return create_key_value_table(
        title="🔍 Logging Configuration",
        data=logging_data,
        title_style="bold green",
        key_style="blue",
        value_style="white",
    )


def print_rich_table(console: Console, table: Table) -> None:
    """Print a rich table with consistent spacing."""
    console.print()
    console.print(table)
    console.print()
