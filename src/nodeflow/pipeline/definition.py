"""Pipeline, node and edge definition models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from nodeflow.pipeline.constants import MAX_ID_LENGTH, PIPELINE_ID_PATTERN


class PipelineNode(BaseModel):
    """A node instance in a pipeline graph.

    Attributes:
        id: Unique identifier for the node within its pipeline.
        type: Registry key of the node implementation. Resolved at
            execution time, so it may name a type registered later.
        config: Opaque per-node settings passed to ``execute``.
        description: Human-readable description.
    """

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)
    description: str = ""


class Edge(BaseModel):
    """A data dependency between two nodes.

    Serialized as ``{from, to, mapping?}``. Without ``mapping`` the whole
    parent output is merged into the child's input; with it, only the listed
    fields are copied, renamed from source key to target key.
    """

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., alias="from", min_length=1)
    target: str = Field(..., alias="to", min_length=1)
    mapping: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Pipeline(BaseModel):
    """A complete pipeline graph.

    Node ids must be unique and every edge must reference existing nodes;
    both are checked on construction. Acyclicity is checked by the executor
    before anything runs.

    Attributes:
        id: Optional identifier, required when stored in a library.
        name: Human-readable name.
        description: Description of the pipeline purpose.
        nodes: Nodes of the graph. List order is the tie-break for
            execution order among simultaneously ready nodes.
        edges: Data-dependency edges.
    """

    id: str | None = Field(
        default=None, min_length=1, max_length=MAX_ID_LENGTH, pattern=PIPELINE_ID_PATTERN
    )
    name: str = ""
    description: str = ""
    nodes: list[PipelineNode] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_graph(self) -> Pipeline:
        """Validate node ids are unique and edges reference existing nodes."""
        ids = [n.id for n in self.nodes]
        if len(ids) != len(set(ids)):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            msg = f"Duplicate node IDs found: {', '.join(duplicates)}"
            raise ValueError(msg)

        known = set(ids)
        for edge in self.edges:
            for end in (edge.source, edge.target):
                if end not in known:
                    msg = f"Edge {edge.source} -> {edge.target} references unknown node: {end}"
                    raise ValueError(msg)
        return self

    def get_node(self, node_id: str) -> PipelineNode | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def incoming(self, node_id: str) -> list[Edge]:
        """Get edges terminating at a node, in edge-list order."""
        return [e for e in self.edges if e.target == node_id]

    def node_types(self) -> list[str]:
        """Get distinct node types in first-use order."""
        return list(dict.fromkeys(n.type for n in self.nodes))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        if self.name:
            data["name"] = self.name
        if self.description:
            data["description"] = self.description
        data["nodes"] = [n.model_dump(exclude_defaults=True) for n in self.nodes]
        data["edges"] = [e.to_dict() for e in self.edges]
        return data

    def to_yaml(self) -> str:
        """Serialize to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, content: str) -> Pipeline:
        """Parse a pipeline from YAML (or JSON) content.

        Args:
            content: YAML string to parse.

        Returns:
            Parsed Pipeline.

        Raises:
            ValueError: If the content is not a valid pipeline mapping.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML: {e}"
            raise ValueError(msg) from e

        if not isinstance(data, dict):
            msg = "Pipeline YAML must be a mapping"
            raise ValueError(msg)

        return cls.model_validate(data)

    @classmethod
    def load(cls, path: Path) -> Pipeline:
        """Load a pipeline from a YAML or JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the content is invalid.
        """
        if not path.exists():
            msg = f"Pipeline file not found: {path}"
            raise FileNotFoundError(msg)
        return cls.from_yaml(path.read_text())
