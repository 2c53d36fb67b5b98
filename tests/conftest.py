"""Pytest fixtures for nodeflow tests."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
TESTS_DIR = PROJECT_ROOT / "tests"
for _path in (SRC_DIR, TESTS_DIR):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

import pytest

from nodeflow.pipeline import NodeRegistry, PipelineContext, PipelineExecutor
from nodeflow.pipeline.node import BaseNode
from nodeflow.storage import MemoryStorage


class SourceNode(BaseNode):
    """Emits ``{value: config.value}``."""

    type = "source"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        return {"value": config.get("value", 0)}


class DoubleNode(BaseNode):
    """Doubles ``input.value``."""

    type = "double"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        return {"value": input["value"] * 2}


class AddNode(BaseNode):
    """Sums ``input.a`` and ``input.b``."""

    type = "add"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        return {"value": input.get("a", 0) + input.get("b", 0)}


class EchoNode(BaseNode):
    """Returns the input it received, for inspecting merges."""

    type = "echo"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        return dict(input)


class ScalarNode(BaseNode):
    """Returns ``config.output`` as-is, whatever its shape."""

    type = "scalar"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        return config.get("output")


class SleepNode(BaseNode):
    """Sleeps ``config.seconds`` before returning."""

    type = "sleep"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        await asyncio.sleep(config.get("seconds", 0.01))
        return {"slept": config.get("seconds", 0.01)}


class FailNode(BaseNode):
    """Raises ``RuntimeError(config.message)``."""

    type = "fail"

    async def execute(self, input: dict[str, Any], config: Mapping[str, Any], context: Any) -> Any:
        raise RuntimeError(config.get("message", "node failed"))


TEST_NODES: tuple[type[BaseNode], ...] = (
    SourceNode,
    DoubleNode,
    AddNode,
    EchoNode,
    ScalarNode,
    SleepNode,
    FailNode,
)


@pytest.fixture
def registry() -> NodeRegistry:
    """Create a registry with the test node types."""
    reg = NodeRegistry()
    for node_cls in TEST_NODES:
        reg.register(node_cls.type, node_cls)
    return reg


@pytest.fixture
def executor(registry: NodeRegistry) -> PipelineExecutor:
    """Create an executor over the test registry."""
    return PipelineExecutor(registry)


@pytest.fixture
def storage() -> MemoryStorage:
    """Create an empty in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def context(storage: MemoryStorage) -> PipelineContext:
    """Create a fresh run context."""
    return PipelineContext(storage=storage)


@pytest.fixture
def plugin_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an importable directory for throwaway plugin modules."""
    directory = tmp_path / "plugins"
    directory.mkdir()
    monkeypatch.syspath_prepend(str(directory))
    return directory
