# ABOUTME: Business logic and orchestration layer
# ABOUTME: Pipeline Stage 3: Registries → category tree, Markdown documents and downloaded images

"""
Core Layer: Business logic and workflow orchestration

This layer handles:
- Category tree resolution and the mirrored directory layout
- Markup transformation and document generation
- Image downloads with retry and temporary-file safety
- Per-item results and run reports

Data Flow: persistence/ registries → Processing phases → Files under the output root
"""

from .models import (
    DownloadReport,
    DownloadState,
    DownloadTask,
    GenerationReport,
    ItemResult,
    PhaseReport,
    ResultStatus,
    SyncReport,
)

# Import services on-demand to avoid circular imports
# Use: from lore_scribe.core.service import RegistrySyncService

__all__ = [
    "DownloadReport",
    "DownloadState",
    "DownloadTask",
    "GenerationReport",
    "ItemResult",
    "PhaseReport",
    "ResultStatus",
    "SyncReport",
]
