"""End-to-end runs of YAML pipelines with built-in nodes and plugins."""

from __future__ import annotations

from pathlib import Path

import pytest

from nodeflow.config import NodeflowConfig
from nodeflow.nodes import register_builtin_nodes
from nodeflow.pipeline import (
    NodeRegistry,
    Pipeline,
    PipelineContext,
    PipelineExecutor,
    PipelineLibrary,
    load_plugins,
)
from nodeflow.storage import FileStorage, MemoryStorage, create_storage

pytestmark = pytest.mark.integration

ANALYZE_YAML = """
id: analyze
name: Analyze page
nodes:
  - id: report
    type: report
  - id: fetch
    type: fetch
    config:
      url: https://shop.example/item
  - id: price
    type: extract-price
  - id: title
    type: extract-title
  - id: save
    type: store
    config:
      key: report
edges:
  - from: fetch
    to: price
    mapping:
      html: html
  - from: fetch
    to: title
  - from: price
    to: report
  - from: title
    to: report
  - from: fetch
    to: report
    mapping:
      url: source
  - from: report
    to: save
"""

PLUGIN_SOURCE = '''
from nodeflow.pipeline.node import BaseNode


class FetchNode(BaseNode):
    type = "fetch"

    async def execute(self, input, config, context):
        return {"url": config["url"], "html": "<h1>Lamp</h1><b>$25</b>"}


class ExtractPriceNode(BaseNode):
    type = "extract-price"

    async def execute(self, input, config, context):
        return {"price": int(input["html"].split("$")[1].split("<")[0])}


class ExtractTitleNode(BaseNode):
    type = "extract-title"

    async def execute(self, input, config, context):
        return input["html"].split("<h1>")[1].split("</h1>")[0]


class ReportNode(BaseNode):
    type = "report"

    async def execute(self, input, config, context):
        return {
            "title": input["title"],
            "price": input["price"],
            "source": input["source"],
        }


def register_nodes(registry):
    for node_cls in (FetchNode, ExtractPriceNode, ExtractTitleNode, ReportNode):
        registry.register(node_cls.type, node_cls)
'''


@pytest.fixture
def analyze_registry(plugin_dir: Path) -> NodeRegistry:
    (plugin_dir / "shop_nodes_mod.py").write_text(PLUGIN_SOURCE)
    registry = NodeRegistry()
    register_builtin_nodes(registry)
    load_plugins(registry, ["shop_nodes_mod"])
    return registry


@pytest.mark.asyncio
async def test_analyze_pipeline_with_file_storage(analyze_registry: NodeRegistry, tmp_path: Path):
    """Test a fan-out/fan-in pipeline loaded from a library and persisted to disk."""
    library_dir = tmp_path / "pipelines"
    library_dir.mkdir()
    (library_dir / "analyze.yaml").write_text(ANALYZE_YAML)

    config = NodeflowConfig.from_yaml(
        f"storage:\n  backend: file\n  path: {tmp_path / 'data'}\n"
        f"pipelines_dir: {library_dir}\n"
    )
    pipeline = PipelineLibrary.load(config.get_pipelines_dir()).get("analyze")
    storage = create_storage(config.storage)
    assert isinstance(storage, FileStorage)

    result = await PipelineExecutor(analyze_registry).execute(
        pipeline, PipelineContext(storage=storage)
    )

    assert result.execution_order == ["fetch", "price", "title", "report", "save"]
    assert result.outputs["title"] == "Lamp"
    assert result.outputs["report"] == {
        "title": "Lamp",
        "price": 25,
        "source": "https://shop.example/item",
    }
    assert await FileStorage(tmp_path / "data").get("report") == result.outputs["report"]
    assert [m.node_id for m in result.node_metrics] == result.execution_order


@pytest.mark.asyncio
async def test_same_definition_runs_twice_identically(analyze_registry: NodeRegistry):
    """Test a definition is reusable across runs with fresh contexts."""
    pipeline = Pipeline.from_yaml(ANALYZE_YAML)
    executor = PipelineExecutor(analyze_registry)

    first = await executor.execute(pipeline, PipelineContext(storage=MemoryStorage()))
    second = await executor.execute(pipeline, PipelineContext(storage=MemoryStorage()))

    assert first.execution_order == second.execution_order
    assert dict(first.outputs) == dict(second.outputs)
