"""Run-scoped context shared by all nodes of one pipeline execution."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class ResultMeta:
    """Metadata for a recorded node output."""

    node_id: str
    recorded_at: datetime
    node_type: str | None = None


class ResultStore(Mapping[str, Any]):
    """Append-only store of node outputs indexed by node id.

    Iteration order is recording order, which is execution order when the
    store is filled by the executor. A node id can be recorded only once;
    reads go through the ``Mapping`` interface.
    """

    def __init__(self) -> None:
        self._results: dict[str, Any] = {}
        self._metadata: dict[str, ResultMeta] = {}

    def __getitem__(self, node_id: str) -> Any:
        return self._results[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"ResultStore({list(self._results)!r})"

    def record(self, node_id: str, value: Any, *, node_type: str | None = None) -> None:
        """Record the output of a node.

        Args:
            node_id: Node that produced the output.
            value: Output value. ``None`` is a valid output.
            node_type: Type of the producing node.

        Raises:
            ValueError: If an output was already recorded for the node.
        """
        if node_id in self._results:
            msg = f"Output for node '{node_id}' already recorded"
            raise ValueError(msg)

        self._results[node_id] = value
        self._metadata[node_id] = ResultMeta(
            node_id=node_id,
            recorded_at=datetime.now(UTC),
            node_type=node_type,
        )

    def get_metadata(self, node_id: str) -> ResultMeta | None:
        """Get metadata for a recorded output."""
        return self._metadata.get(node_id)

    def order(self) -> list[str]:
        """Get node ids in recording order."""
        return list(self._results)

    def view(self) -> Mapping[str, Any]:
        """Get a live read-only view over the recorded outputs."""
        return MappingProxyType(self._results)


@dataclass
class PipelineContext:
    """Shared state for one pipeline run.

    Created fresh by the caller for every run and discarded afterwards.
    Running two pipelines against one context concurrently is unsupported.

    Attributes:
        storage: Opaque storage handle passed through to nodes unmodified.
        results: Outputs of the nodes executed so far.
    """

    storage: Any = None
    results: ResultStore = field(default_factory=ResultStore)

    def output_of(self, node_id: str, default: Any = None) -> Any:
        """Get the output of an already executed node."""
        return self.results.get(node_id, default)
