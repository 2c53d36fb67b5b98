"""nodeflow - async DAG pipeline engine."""

from nodeflow.exceptions import (
    NodeflowError,
    PipelineCycleError,
    UnknownNodeTypeError,
)
from nodeflow.pipeline import (
    BaseNode,
    Edge,
    NodeRegistry,
    Pipeline,
    PipelineContext,
    PipelineExecutor,
    PipelineNode,
    PipelineResult,
    default_registry,
)

__version__ = "0.1.0"

__all__ = [
    "BaseNode",
    "Edge",
    "NodeRegistry",
    "NodeflowError",
    "Pipeline",
    "PipelineContext",
    "PipelineCycleError",
    "PipelineExecutor",
    "PipelineNode",
    "PipelineResult",
    "UnknownNodeTypeError",
    "__version__",
    "default_registry",
]
