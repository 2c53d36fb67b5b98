"""Custom exceptions for nodeflow."""

from pathlib import Path


class NodeflowError(Exception):
    """Base exception for all nodeflow errors."""

    pass


class PipelineCycleError(NodeflowError):
    """Raised when pipeline edges contain a cycle.

    Raised before any node executes, so a run that fails with this error
    has no side effects.
    """

    def __init__(
        self,
        message: str,
        *,
        remaining: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.remaining = remaining or []


class UnknownNodeTypeError(NodeflowError):
    """Raised when a node type has no registered factory."""

    def __init__(
        self,
        message: str,
        *,
        node_type: str = "",
        available: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.node_type = node_type
        self.available = available or []


class PipelineNotFoundError(NodeflowError):
    """Raised when a pipeline is not found in the library."""

    def __init__(
        self,
        message: str,
        *,
        pipeline_id: str = "",
    ) -> None:
        super().__init__(message)
        self.pipeline_id = pipeline_id


class PluginError(NodeflowError):
    """Raised when a node plugin cannot be imported or called."""

    def __init__(
        self,
        message: str,
        *,
        plugin: str = "",
    ) -> None:
        super().__init__(message)
        self.plugin = plugin


class StorageError(NodeflowError):
    """Raised when a storage backend operation fails."""

    def __init__(
        self,
        message: str,
        *,
        key: str = "",
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.path = path


class ConfigError(NodeflowError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_path: Path | None = None,
        field: str = "",
    ) -> None:
        super().__init__(message)
        self.config_path = config_path
        self.field = field
