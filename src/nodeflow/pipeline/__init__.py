"""Pipeline engine for DAG-based node execution."""

from nodeflow.pipeline.context import PipelineContext, ResultStore
from nodeflow.pipeline.definition import Edge, Pipeline, PipelineNode
from nodeflow.pipeline.executor import (
    NodeMetrics,
    PipelineExecutor,
    PipelineResult,
    merge_inputs,
    run_pipeline,
    topological_sort,
)
from nodeflow.pipeline.library import PipelineLibrary
from nodeflow.pipeline.node import BaseNode, NodeDefinition
from nodeflow.pipeline.registry import NodeRegistry, default_registry, load_plugins

__all__ = [
    "BaseNode",
    "Edge",
    "NodeDefinition",
    "NodeMetrics",
    "NodeRegistry",
    "Pipeline",
    "PipelineContext",
    "PipelineExecutor",
    "PipelineLibrary",
    "PipelineNode",
    "PipelineResult",
    "ResultStore",
    "default_registry",
    "load_plugins",
    "merge_inputs",
    "run_pipeline",
    "topological_sort",
]
