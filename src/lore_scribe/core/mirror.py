# ABOUTME: Mirrors resolved reference paths as directories under the output root
# ABOUTME: Idempotent: creates what is missing and never removes anything

from collections.abc import Iterable
from pathlib import Path

from lore_scribe.errors import StorageError
from lore_scribe.utils.logging import get_logger

logger = get_logger(__name__)


def sync_file_system(output_root: Path, reference_paths: Iterable[str | None]) -> int:
    """Ensure ``output_root/<path>`` exists for every reference path.

    Returns:
        Number of directories that did not exist before the call
    """
    created = 0
    for reference_path in sorted({p for p in reference_paths if p}):
        target = Path(output_root) / reference_path
        if target.is_dir():
            continue
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory {target}: {e}") from e
        created += 1

    logger.info("File system mirrored", output_root=str(output_root), directories_created=created)
    return created
