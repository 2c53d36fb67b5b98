"""Node contract implemented by every pipeline step."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from nodeflow.pipeline.context import PipelineContext


@runtime_checkable
class NodeDefinition(Protocol):
    """Protocol for pipeline nodes.

    A node exposes a stable ``type`` tag and an async ``execute``. The
    registry builds a fresh instance for every execution, so any state a
    node keeps on ``self`` is scoped to a single run.
    """

    type: str

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        """Execute the node.

        Args:
            input: Merged outputs of upstream nodes.
            config: Per-node configuration from the pipeline definition.
            context: Shared run context (results and storage).

        Returns:
            The node output. Mappings are merged field by field into
            downstream inputs; any other value is passed under this
            node's id.
        """
        ...


class BaseNode(ABC):
    """Convenience base class for nodes.

    Subclasses set ``type`` and implement ``execute``.
    """

    type: str = ""

    @abstractmethod
    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        """Execute the node."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.type!r})"
