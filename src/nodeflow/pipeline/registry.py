"""Node registry mapping node type names to factories."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Iterable

import structlog

from nodeflow.exceptions import PluginError, UnknownNodeTypeError
from nodeflow.pipeline.node import NodeDefinition

logger = structlog.get_logger()

NodeFactory = Callable[[], NodeDefinition]

# Function looked up on plugin modules imported without an explicit callable
PLUGIN_HOOK = "register_nodes"


class NodeRegistry:
    """Registry of node factories keyed by node type.

    Factories rather than instances are stored so each execution gets an
    isolated node. Types are resolved only when a pipeline runs, so they
    may be registered after the pipeline is built.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._factories: dict[str, NodeFactory] = {}

    def register(self, node_type: str, factory: NodeFactory) -> None:
        """Register a factory for a node type.

        Re-registering a type replaces the previous factory.

        Args:
            node_type: Node type name.
            factory: Zero-argument callable returning a new node.
        """
        if node_type in self._factories:
            logger.debug("Replacing node factory", node_type=node_type)
        self._factories[node_type] = factory

    def node(self, node_type: str) -> Callable[[type], type]:
        """Class decorator registering a node class under ``node_type``.

        The class must be constructible without arguments.
        """

        def decorator(cls: type) -> type:
            self.register(node_type, cls)
            return cls

        return decorator

    def unregister(self, node_type: str) -> None:
        """Remove a node type. Unknown types are ignored."""
        self._factories.pop(node_type, None)

    def create(self, node_type: str) -> NodeDefinition:
        """Create a fresh node instance.

        Args:
            node_type: Node type name.

        Returns:
            New node instance from the registered factory.

        Raises:
            UnknownNodeTypeError: If no factory is registered for the type.
        """
        factory = self._factories.get(node_type)
        if factory is None:
            available = self.types()
            msg = f"Unknown node type: '{node_type}'. Available: {', '.join(available) or '(none)'}"
            raise UnknownNodeTypeError(msg, node_type=node_type, available=available)
        return factory()

    def has(self, node_type: str) -> bool:
        """Check if a node type is registered."""
        return node_type in self._factories

    def types(self) -> list[str]:
        """Get registered node types in registration order."""
        return list(self._factories)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def import_callable(path: str) -> Callable:
    """Import a callable from a path like 'package.module:function'."""
    if ":" in path:
        module_path, func_name = path.rsplit(":", 1)
    else:
        module_path, func_name = path.rsplit(".", 1)

    module = importlib.import_module(module_path)
    return getattr(module, func_name)


def load_plugins(registry: NodeRegistry, plugins: Iterable[str]) -> list[str]:
    """Import node plugins and let them register their node types.

    Each entry is either ``module:function``, in which case
    ``function(registry)`` is called, or a plain module path. A plain module
    is imported and, if it defines ``register_nodes``, that hook is called
    with the registry.

    Args:
        registry: Registry to populate.
        plugins: Plugin paths.

    Returns:
        Node types added by the plugins.

    Raises:
        PluginError: If a plugin cannot be imported or its hook fails.
    """
    before = set(registry.types())

    for plugin in plugins:
        log = logger.bind(plugin=plugin)
        try:
            if ":" in plugin:
                hook = import_callable(plugin)
            else:
                module = importlib.import_module(plugin)
                hook = getattr(module, PLUGIN_HOOK, None)
            if hook is not None:
                hook(registry)
        except Exception as e:
            log.error("Failed to load node plugin", error=str(e))
            msg = f"Failed to load plugin '{plugin}': {e}"
            raise PluginError(msg, plugin=plugin) from e
        log.debug("Loaded node plugin")

    return [t for t in registry.types() if t not in before]


# Process-wide default registry
default_registry = NodeRegistry()
