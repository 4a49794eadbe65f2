"""DiffEngine for previewing edits and rewriting files with backups."""

from __future__ import annotations

import difflib
import json
import logging
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from . import config

logger = logging.getLogger(__name__)


def create_diff(original: str, modified: str, filename: str = "file") -> str:
    """Create unified diff between two versions.

    Args:
        original: Original content
        modified: Modified content
        filename: Name of file for diff header

    Returns:
        Unified diff string (empty when the versions are identical)
    """
    diff = difflib.unified_diff(
        original.splitlines(),
        modified.splitlines(),
        fromfile=f"a/{filename}",
        tofile=f"b/{filename}",
        lineterm="",
    )
    return "\n".join(diff)


class DiffEngine:
    """Rewrites source files in place, keeping a restorable copy of each."""

    def __init__(self, backup_dir: Optional[Path] = None):
        """Initialize DiffEngine.

        Args:
            backup_dir: Directory to store backups. Defaults to ``$TSGEN_HOME/backups``.
        """
        self.backup_dir = backup_dir or config.BASE_DIR / "backups"

    def rewrite(self, file_path: Path, new_content: str, description: str = "", backup: bool = True) -> Optional[str]:
        """Replace the contents of *file_path*.

        Returns:
            Backup ID for :meth:`rollback`, or None when no backup was taken.
        """
        file_path = Path(file_path)
        backup_id = self._create_backup([file_path], description) if backup else None
        file_path.write_text(new_content, encoding="utf-8")
        logger.debug("Rewrote %s (backup %s)", file_path, backup_id)
        return backup_id

    def _create_backup(self, files: List[Path], description: str = "") -> str:
        """Copy *files* into a fresh backup directory and record metadata."""
        backup_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        backup_path = self.backup_dir / backup_id
        backup_path.mkdir(parents=True, exist_ok=True)

        metadata = {
            "description": description,
            "timestamp": datetime.now().isoformat(),
            "files": [],
        }
        for index, file_path in enumerate(files):
            if not file_path.exists():
                continue
            backup_file = backup_path / f"{index}_{file_path.name}"
            shutil.copy2(file_path, backup_file)
            metadata["files"].append({
                "original": str(file_path.resolve()),
                "backup": str(backup_file),
            })

        (backup_path / "metadata.json").write_text(json.dumps(metadata, indent=2))
        return backup_id

    def rollback(self, backup_id: str) -> bool:
        """Restore every file recorded in a backup.

        Returns:
            True if successful, False if the backup is missing or unreadable
        """
        backup_path = self.backup_dir / backup_id
        metadata_file = backup_path / "metadata.json"
        if not metadata_file.exists():
            return False

        try:
            metadata = json.loads(metadata_file.read_text())
            for file_info in metadata["files"]:
                backup_file = Path(file_info["backup"])
                if backup_file.exists():
                    shutil.copy2(backup_file, Path(file_info["original"]))
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Rollback of %s failed: %s", backup_id, e)
            return False
        return True

    def list_backups(self) -> List[dict]:
        """List all available backups, newest first."""
        if not self.backup_dir.exists():
            return []

        backups = []
        for backup_dir in self.backup_dir.iterdir():
            metadata_file = backup_dir / "metadata.json"
            if backup_dir.is_dir() and metadata_file.exists():
                metadata = json.loads(metadata_file.read_text())
                metadata["backup_id"] = backup_dir.name
                backups.append(metadata)

        return sorted(backups, key=lambda x: x["timestamp"], reverse=True)
