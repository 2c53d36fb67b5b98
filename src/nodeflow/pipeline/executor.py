"""Pipeline executor - main execution engine."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from nodeflow.exceptions import PipelineCycleError
from nodeflow.pipeline.context import PipelineContext
from nodeflow.pipeline.definition import Edge, Pipeline, PipelineNode
from nodeflow.pipeline.registry import NodeRegistry, default_registry

logger = structlog.get_logger()


@dataclass(frozen=True)
class NodeMetrics:
    """Timing for a single node execution."""

    node_id: str
    node_type: str
    duration_ms: float


@dataclass(frozen=True)
class PipelineResult:
    """Result of a successful pipeline execution.

    Attributes:
        outputs: Read-only view over the context results, keyed by node id
            in execution order.
        execution_order: Node ids in the order they ran.
        duration_ms: Wall-clock duration of the whole run.
        node_metrics: Per-node timings in execution order.
    """

    outputs: Mapping[str, Any]
    execution_order: list[str]
    duration_ms: float
    node_metrics: list[NodeMetrics] = field(default_factory=list)

    def output(self, node_id: str, default: Any = None) -> Any:
        """Get the output of a node."""
        return self.outputs.get(node_id, default)


def topological_sort(nodes: Sequence[PipelineNode], edges: Sequence[Edge]) -> list[str]:
    """Order node ids so every edge points from an earlier to a later node.

    Kahn's algorithm. Nodes that become ready at the same time run in the
    order they were enqueued: initial sources in node-list order, then
    successors in edge-list order. The result is deterministic for a fixed
    definition.

    Args:
        nodes: Pipeline nodes.
        edges: Pipeline edges.

    Returns:
        Node ids in execution order.

    Raises:
        PipelineCycleError: If the edges contain a cycle.
    """
    in_degree: dict[str, int] = {node.id: 0 for node in nodes}
    successors: dict[str, list[str]] = {node.id: [] for node in nodes}

    for edge in edges:
        in_degree[edge.target] = in_degree.get(edge.target, 0) + 1
        successors.setdefault(edge.source, []).append(edge.target)

    queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    order: list[str] = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for successor in successors.get(current, []):
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(order) != len(nodes):
        ordered = set(order)
        remaining = [node.id for node in nodes if node.id not in ordered]
        msg = f"Pipeline contains a cycle; cannot execute: {', '.join(remaining)}"
        raise PipelineCycleError(msg, remaining=remaining)

    return order


def merge_inputs(
    node_id: str,
    edges: Sequence[Edge],
    results: Mapping[str, Any],
) -> dict[str, Any]:
    """Build the input of a node from the outputs of its parents.

    Incoming edges are applied in edge-list order:

    - parent output is a mapping and the edge has ``mapping``: only the
      mapped fields present in the output are copied, under their target
      names;
    - parent output is a mapping without edge ``mapping``: all fields are
      merged shallowly, later edges overriding earlier ones;
    - parent output is anything else (scalar, list, ``None``): it is stored
      as-is under the parent's node id.

    Parents without a recorded output are skipped.

    Args:
        node_id: Node to build input for.
        edges: All pipeline edges.
        results: Outputs recorded so far.

    Returns:
        Merged input; empty for nodes without incoming edges.
    """
    merged: dict[str, Any] = {}

    for edge in edges:
        if edge.target != node_id or edge.source not in results:
            continue

        parent_output = results[edge.source]
        if isinstance(parent_output, Mapping):
            if edge.mapping is not None:
                for source_field, target_field in edge.mapping.items():
                    if source_field in parent_output:
                        merged[target_field] = parent_output[source_field]
            else:
                merged.update(parent_output)
        else:
            # Non-record output keyed by producer id so fan-in cannot collide
            merged[edge.source] = parent_output

    return merged


class PipelineExecutor:
    """Runs pipelines node by node in dependency order.

    Nodes run strictly one at a time, even on independent branches, since
    the results store and storage handle in the context are shared and
    unsynchronized. The executor keeps no per-run state, so one executor
    can serve concurrent runs against separate contexts.
    """

    def __init__(self, registry: NodeRegistry | None = None):
        """Initialize the executor.

        Args:
            registry: Node registry; the default registry when omitted.
        """
        self.registry = registry if registry is not None else default_registry

    async def execute(
        self,
        pipeline: Pipeline | Mapping[str, Any],
        context: PipelineContext,
    ) -> PipelineResult:
        """Run a pipeline to completion.

        Args:
            pipeline: Pipeline model or its plain-data form.
            context: Fresh run context; results are recorded into it.

        Returns:
            PipelineResult with outputs, execution order and timing.

        Raises:
            PipelineCycleError: If the edges contain a cycle. Nothing runs.
            UnknownNodeTypeError: If a node type is not registered.
            ValueError: If the context already holds an output for a node,
                raised before that node executes.
            Exception: Whatever a node raises, unchanged. Outputs of nodes
                that completed before the failure stay in the context.
        """
        if not isinstance(pipeline, Pipeline):
            pipeline = Pipeline.model_validate(pipeline)

        log = logger.bind(pipeline_id=pipeline.id, node_count=len(pipeline.nodes))
        log.info("Starting pipeline execution")

        start_time = time.perf_counter()
        order = topological_sort(pipeline.nodes, pipeline.edges)
        node_map = {node.id: node for node in pipeline.nodes}
        node_metrics: list[NodeMetrics] = []

        for node_id in order:
            node = node_map[node_id]
            node_log = log.bind(node_id=node.id, node_type=node.type)
            node_log.debug("Executing node")

            if node.id in context.results:
                msg = f"Output for node '{node.id}' already recorded"
                node_log.error("Node failed", error=msg, completed=len(context.results))
                raise ValueError(msg)

            node_start = time.perf_counter()
            try:
                definition = self.registry.create(node.type)
                node_input = merge_inputs(node.id, pipeline.edges, context.results)
                output = await definition.execute(node_input, node.config, context)
            except Exception as e:
                node_log.error(
                    "Node failed",
                    error=str(e),
                    completed=len(context.results),
                )
                raise

            context.results.record(node.id, output, node_type=node.type)

            node_duration_ms = (time.perf_counter() - node_start) * 1000
            node_metrics.append(
                NodeMetrics(node_id=node.id, node_type=node.type, duration_ms=node_duration_ms)
            )
            node_log.debug("Node completed", duration_ms=round(node_duration_ms, 3))

        duration_ms = (time.perf_counter() - start_time) * 1000

        log.info(
            "Pipeline execution completed",
            completed=len(order),
            duration_ms=round(duration_ms, 3),
        )

        return PipelineResult(
            outputs=context.results.view(),
            execution_order=order,
            duration_ms=duration_ms,
            node_metrics=node_metrics,
        )

    def order(self, pipeline: Pipeline) -> list[str]:
        """Compute the execution order without running anything."""
        return topological_sort(pipeline.nodes, pipeline.edges)

    def validate(self, pipeline: Pipeline) -> list[str]:
        """Check a pipeline without running it.

        Returns:
            Problems found: a cycle, and node types missing from the
            registry. Empty when the pipeline can run.
        """
        problems: list[str] = []

        try:
            topological_sort(pipeline.nodes, pipeline.edges)
        except PipelineCycleError as e:
            problems.append(str(e))

        for node in pipeline.nodes:
            if not self.registry.has(node.type):
                problems.append(f"Node '{node.id}' has unknown node type: '{node.type}'")

        return problems


def run_pipeline(
    pipeline: Pipeline | Mapping[str, Any],
    context: PipelineContext | None = None,
    registry: NodeRegistry | None = None,
) -> PipelineResult:
    """Run a pipeline from synchronous code.

    Args:
        pipeline: Pipeline model or its plain-data form.
        context: Run context; a fresh one without storage when omitted.
        registry: Node registry; the default registry when omitted.

    Returns:
        PipelineResult.
    """
    if context is None:
        context = PipelineContext()
    executor = PipelineExecutor(registry)
    return asyncio.run(executor.execute(pipeline, context))
