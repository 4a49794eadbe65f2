"""File helpers for reading, writing and discovering TypeScript sources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .config import IGNORED_DIRS, SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)


def read_text(file_path: Path) -> str:
    return Path(file_path).read_text(encoding="utf-8")


def write_text(file_path: Path, content: str, overwrite: bool = False) -> bool:
    """Write *content*, creating parent directories as needed.

    Returns:
        True if the file was written, False if it already existed and
        *overwrite* was not set.
    """
    path = Path(file_path)
    if path.exists() and not overwrite:
        logger.info("Skipping existing file %s", path)
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


def list_typescript_files(root: Path) -> List[Path]:
    """Recursively list TypeScript sources under *root*, sorted by path.

    Files inside dependency, build and VCS directories are skipped. Type
    declaration files (``.d.ts``) are included.
    """
    root = Path(root)
    if root.is_file():
        return [root] if root.suffix in SUPPORTED_EXTENSIONS else []
    if not root.exists():
        return []

    files: List[Path] = []
    for ext in sorted(SUPPORTED_EXTENSIONS):
        for file_path in root.rglob(f"*{ext}"):
            if any(part in IGNORED_DIRS for part in file_path.relative_to(root).parts):
                continue
            if file_path.is_file():
                files.append(file_path)
    logger.debug("Found %d TypeScript files under %s", len(files), root)
    return sorted(files)
