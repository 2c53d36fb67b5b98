"""Built-in generic nodes."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

import structlog

from nodeflow.exceptions import PluginError, StorageError
from nodeflow.pipeline.context import PipelineContext
from nodeflow.pipeline.node import BaseNode
from nodeflow.pipeline.registry import import_callable

logger = structlog.get_logger()


def _require(config: Mapping[str, Any], name: str, node_type: str) -> Any:
    if name not in config:
        msg = f"Node type '{node_type}' requires config field '{name}'"
        raise ValueError(msg)
    return config[name]


class ConstantNode(BaseNode):
    """Emits a fixed value.

    Returns ``config["output"]`` when set, otherwise the config itself, so
    ``{value: 5}`` produces ``{value: 5}``.
    """

    type = "constant"

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        if "output" in config:
            return config["output"]
        return dict(config)


class PassthroughNode(BaseNode):
    """Returns its merged input unchanged."""

    type = "passthrough"

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        return dict(input)


class PickNode(BaseNode):
    """Keeps only ``config["fields"]`` from its input."""

    type = "pick"

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        fields = _require(config, "fields", self.type)
        return {name: input[name] for name in fields if name in input}


class CallableNode(BaseNode):
    """Calls a Python function named by ``config["callable"]``.

    The function receives ``(input, config, context)`` and may be a
    coroutine function.
    """

    type = "callable"

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        path = _require(config, "callable", self.type)
        try:
            func = import_callable(path)
        except (ImportError, AttributeError, ValueError) as e:
            msg = f"Cannot import callable '{path}': {e}"
            raise PluginError(msg, plugin=path) from e

        logger.debug("Calling node function", callable=path)
        result = func(input, config, context)
        if inspect.isawaitable(result):
            result = await result
        return result


class StoreNode(BaseNode):
    """Writes input data to the context storage.

    Stores ``input[config["field"]]`` when a field is given, otherwise the
    whole input, under ``config["key"]``.
    """

    type = "store"

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        key = _require(config, "key", self.type)
        if context.storage is None:
            msg = "No storage configured for this run"
            raise StorageError(msg, key=key)

        field = config.get("field")
        value = input.get(field) if field else dict(input)
        await context.storage.set(key, value)
        return {"key": key, "stored": True}


class LoadNode(BaseNode):
    """Reads ``config["key"]`` from the context storage.

    Output is ``{field: value}`` with ``field`` defaulting to "value";
    ``config["default"]`` is used when the key is missing.
    """

    type = "load"

    async def execute(
        self,
        input: dict[str, Any],
        config: Mapping[str, Any],
        context: PipelineContext,
    ) -> Any:
        key = _require(config, "key", self.type)
        if context.storage is None:
            msg = "No storage configured for this run"
            raise StorageError(msg, key=key)

        value = await context.storage.get(key, config.get("default"))
        return {config.get("field", "value"): value}


BUILTIN_NODES: tuple[type[BaseNode], ...] = (
    ConstantNode,
    PassthroughNode,
    PickNode,
    CallableNode,
    StoreNode,
    LoadNode,
)
