"""Configuration schema for nodeflow."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from nodeflow.exceptions import ConfigError
from nodeflow.pipeline.constants import DEFAULT_PIPELINES_DIR

DEFAULT_STORAGE_DIR: Path = Path.home() / ".nodeflow" / "storage"


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Minimum log level.
        format: "console" for human-readable output, "json" for one JSON
            object per line.
    """

    level: Literal["debug", "info", "warning", "error"] = "info"
    format: Literal["console", "json"] = "console"


class StorageConfig(BaseModel):
    """Storage backend configuration.

    Attributes:
        backend: "memory" (discarded after the run) or "file" (JSON files).
        path: Directory for the file backend.
    """

    backend: Literal["memory", "file"] = "memory"
    path: Path | None = None

    def get_path(self) -> Path:
        """Get the file backend directory."""
        return self.path or DEFAULT_STORAGE_DIR


class NodeflowConfig(BaseModel):
    """Complete nodeflow configuration.

    Attributes:
        version: Config schema version.
        logging: Logging configuration.
        storage: Storage backend configuration.
        plugins: Import paths of node plugins, ``module`` or
            ``module:function``.
        pipelines_dir: Directory of stored pipelines.

    Example:
        >>> config = NodeflowConfig(plugins=["myproject.nodes"])
        >>> config.storage.backend
        'memory'
    """

    version: str = "1.0"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    plugins: list[str] = Field(default_factory=list)
    pipelines_dir: Path | None = None

    @field_validator("plugins")
    @classmethod
    def validate_plugins(cls, v: list[str]) -> list[str]:
        """Ensure plugin paths are non-empty and unique."""
        if any(not p.strip() for p in v):
            msg = "Plugin paths must not be empty"
            raise ValueError(msg)
        if len(v) != len(set(v)):
            msg = "Plugin paths must be unique"
            raise ValueError(msg)
        return v

    def get_pipelines_dir(self) -> Path:
        """Get the stored pipelines directory."""
        return self.pipelines_dir or DEFAULT_PIPELINES_DIR

    def to_yaml(self) -> str:
        """Serialize the config to YAML."""
        data = self.model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    def save(self, path: Path) -> None:
        """Save the config to a YAML file."""
        path.write_text(self.to_yaml())

    @classmethod
    def from_yaml(cls, yaml_content: str, *, config_path: Path | None = None) -> NodeflowConfig:
        """Parse config from YAML content.

        Args:
            yaml_content: YAML string to parse.
            config_path: File the content came from, for error reporting.

        Returns:
            Parsed NodeflowConfig instance.

        Raises:
            ConfigError: If the YAML or the config values are invalid.
        """
        try:
            data: Any = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML: {e}"
            raise ConfigError(msg, config_path=config_path) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            msg = "Config YAML must be a mapping"
            raise ConfigError(msg, config_path=config_path)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            field = ".".join(str(p) for p in e.errors()[0]["loc"]) if e.errors() else ""
            msg = f"Invalid config: {e}"
            raise ConfigError(msg, config_path=config_path, field=field) from e

    @classmethod
    def load(cls, path: Path) -> NodeflowConfig:
        """Load config from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigError: If the content is invalid.
        """
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        return cls.from_yaml(path.read_text(), config_path=path)

    @classmethod
    def default(cls) -> NodeflowConfig:
        """Create a default configuration."""
        return cls()
