"""Generic nodes shipped with nodeflow."""

from __future__ import annotations

from nodeflow.nodes.builtin import (
    BUILTIN_NODES,
    CallableNode,
    ConstantNode,
    LoadNode,
    PassthroughNode,
    PickNode,
    StoreNode,
)
from nodeflow.pipeline.registry import NodeRegistry, default_registry


def register_builtin_nodes(registry: NodeRegistry | None = None) -> None:
    """Register the built-in node types.

    Args:
        registry: Registry to populate; the default registry when omitted.
    """
    if registry is None:
        registry = default_registry
    for node_cls in BUILTIN_NODES:
        registry.register(node_cls.type, node_cls)


__all__ = [
    "CallableNode",
    "ConstantNode",
    "LoadNode",
    "PassthroughNode",
    "PickNode",
    "StoreNode",
    "register_builtin_nodes",
]
