"""Pipeline configuration constants."""

from __future__ import annotations

from pathlib import Path

# Pipeline identifiers double as library file names: letters, digits, "_" and "-"
PIPELINE_ID_PATTERN: str = r"^[A-Za-z0-9][A-Za-z0-9_\-]*$"

# Maximum length for pipeline identifiers
MAX_ID_LENGTH: int = 64

# Default directory for user pipelines
DEFAULT_PIPELINES_DIR: Path = Path.home() / ".nodeflow" / "pipelines"

# File suffixes accepted when loading pipeline definitions
PIPELINE_FILE_SUFFIXES: tuple[str, ...] = (".yaml", ".yml", ".json")

# Built-in generic node types
BUILTIN_NODE_TYPES: tuple[str, ...] = (
    "constant",
    "passthrough",
    "pick",
    "callable",
    "store",
    "load",
)
