"""Configuration paths and file-type settings for tsgen."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("TSGEN_HOME", str(Path.home() / ".tsgen"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
SUPPORTED_EXTENSIONS = {".ts", ".tsx", ".mts", ".cts"}
IGNORED_DIRS = {"node_modules", "dist", "build", "coverage", ".git", ".next", ".turbo"}
