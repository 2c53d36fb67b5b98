"""CLI interface for nodeflow."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

import structlog
import typer

from nodeflow import __version__
from nodeflow.config import LoggingConfig, NodeflowConfig
from nodeflow.exceptions import (
    ConfigError,
    PipelineCycleError,
    PipelineNotFoundError,
    PluginError,
)
from nodeflow.nodes import register_builtin_nodes
from nodeflow.pipeline import (
    NodeRegistry,
    Pipeline,
    PipelineContext,
    PipelineExecutor,
    PipelineLibrary,
    load_plugins,
)
from nodeflow.pipeline.library import is_valid_pipeline_id
from nodeflow.storage import FileStorage, create_storage


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Resolve sys.stderr per logger so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog for CLI output.

    Logs go to stderr so stdout carries only command output.
    """
    renderer: Any
    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, config.level.upper())),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


configure_logging(LoggingConfig())

app = typer.Typer(
    name="nodeflow",
    help="Run DAG pipelines of pluggable async nodes",
    no_args_is_help=True,
)

pipelines_app = typer.Typer(
    name="pipelines",
    help="Manage stored pipelines",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to nodeflow.yaml config file",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
]

PluginOption = Annotated[
    list[str] | None,
    typer.Option(
        "--plugin",
        "-p",
        help="Node plugin to load (module or module:function), repeatable",
    ),
]

PipelinesDirOption = Annotated[
    Path | None,
    typer.Option(
        "--dir",
        "-d",
        help="Directory of stored pipelines (overrides config)",
        file_okay=False,
        resolve_path=True,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"nodeflow version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """nodeflow - async DAG pipeline engine."""
    pass


def _load_config(config_path: Path | None) -> NodeflowConfig:
    """Load config (default config when no path) and apply logging settings."""
    try:
        config = NodeflowConfig.load(config_path) if config_path else NodeflowConfig.default()
    except (ConfigError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    configure_logging(config.logging)
    return config


def _build_registry(config: NodeflowConfig, plugins: list[str] | None) -> NodeRegistry:
    """Create a registry with built-in nodes and configured plugins."""
    registry = NodeRegistry()
    register_builtin_nodes(registry)

    try:
        load_plugins(registry, [*config.plugins, *(plugins or [])])
    except PluginError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    return registry


def _get_pipeline(
    pipeline_ref: str,
    config: NodeflowConfig,
    pipelines_dir: Path | None = None,
) -> Pipeline:
    """Resolve a pipeline ID or file path."""
    library = PipelineLibrary(pipelines_dir or config.get_pipelines_dir())
    try:
        return library.get(pipeline_ref)
    except PipelineNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


@app.command()
def run(
    pipeline_ref: Annotated[
        str,
        typer.Argument(help="Pipeline ID or path to a pipeline YAML/JSON file"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    plugin: PluginOption = None,
    storage_dir: Annotated[
        Path | None,
        typer.Option(
            "--storage-dir",
            "-s",
            help="Use file storage in this directory (overrides config)",
            file_okay=False,
            resolve_path=True,
        ),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option(
            "--output",
            "-o",
            help="Print only the output of this node",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print outputs, execution order and timing as one JSON object",
        ),
    ] = False,
) -> None:
    """Run a pipeline and print its outputs."""
    cfg = _load_config(config)
    registry = _build_registry(cfg, plugin)
    pipeline = _get_pipeline(pipeline_ref, cfg, pipelines_dir)

    if output is not None and pipeline.get_node(output) is None:
        typer.echo(f"Unknown output node: {output}", err=True)
        raise typer.Exit(1)

    storage = FileStorage(storage_dir) if storage_dir else create_storage(cfg.storage)
    context = PipelineContext(storage=storage)
    executor = PipelineExecutor(registry)

    try:
        result = asyncio.run(executor.execute(pipeline, context))
    except Exception as e:
        typer.echo(f"Pipeline failed: {e}", err=True)
        completed = context.results.order()
        if completed:
            typer.echo(f"Completed before failure: {', '.join(completed)}", err=True)
        raise typer.Exit(1) from None

    if output is not None:
        typer.echo(_to_json(result.output(output)))
    elif json_output:
        typer.echo(
            _to_json({
                "outputs": dict(result.outputs),
                "execution_order": result.execution_order,
                "duration_ms": result.duration_ms,
            })
        )
    else:
        typer.echo(_to_json(dict(result.outputs)))

    if not json_output:
        typer.echo(
            f"Completed in {result.duration_ms:.1f}ms ({len(result.execution_order)} nodes)",
            err=True,
        )


@app.command()
def validate(
    pipeline_ref: Annotated[
        str,
        typer.Argument(help="Pipeline ID or path to a pipeline YAML/JSON file"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    plugin: PluginOption = None,
) -> None:
    """Check a pipeline for cycles and unregistered node types."""
    cfg = _load_config(config)
    registry = _build_registry(cfg, plugin)
    pipeline = _get_pipeline(pipeline_ref, cfg, pipelines_dir)

    problems = PipelineExecutor(registry).validate(pipeline)
    if problems:
        typer.echo("Pipeline is invalid:", err=True)
        for problem in problems:
            typer.echo(f"  - {problem}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Pipeline is valid ({len(pipeline.nodes)} nodes)")


@app.command()
def order(
    pipeline_ref: Annotated[
        str,
        typer.Argument(help="Pipeline ID or path to a pipeline YAML/JSON file"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
) -> None:
    """Print the execution order of a pipeline."""
    cfg = _load_config(config)
    pipeline = _get_pipeline(pipeline_ref, cfg, pipelines_dir)

    try:
        node_ids = PipelineExecutor(NodeRegistry()).order(pipeline)
    except PipelineCycleError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    for i, node_id in enumerate(node_ids, 1):
        node = pipeline.get_node(node_id)
        typer.echo(f"  {i}. {node_id} ({node.type if node else '?'})")


@app.command()
def nodes(
    config: ConfigOption = None,
    plugin: PluginOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON",
        ),
    ] = False,
) -> None:
    """List registered node types."""
    cfg = _load_config(config)
    registry = _build_registry(cfg, plugin)

    if json_output:
        typer.echo(_to_json(registry.types()))
        return

    typer.echo("Available node types:")
    for node_type in registry.types():
        typer.echo(f"  {node_type}")


app.add_typer(pipelines_app, name="pipelines")


# ============================================================================
# Pipelines subcommands
# ============================================================================


@pipelines_app.command("list")
def pipelines_list(
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON",
        ),
    ] = False,
) -> None:
    """List stored pipelines."""
    cfg = _load_config(config)
    library = PipelineLibrary.load(pipelines_dir or cfg.get_pipelines_dir())
    pipelines = library.pipelines

    if json_output:
        output = []
        for p in pipelines:
            output.append({
                "id": p.id,
                "name": p.name,
                "description": p.description,
                "node_count": len(p.nodes),
                "edge_count": len(p.edges),
            })
        typer.echo(_to_json(output))
        return

    if not pipelines:
        typer.echo(f"No pipelines in {library.directory}")
        return

    typer.echo("Stored pipelines:")
    typer.echo("")
    for p in pipelines:
        typer.echo(f"  {p.id:20} {p.name}")
        if p.description:
            typer.echo(f"    {p.description}")
        typer.echo(f"    Nodes: {len(p.nodes)}, edges: {len(p.edges)}")
        typer.echo("")


@pipelines_app.command("show")
def pipelines_show(
    pipeline_ref: Annotated[
        str,
        typer.Argument(help="Pipeline ID or file path to show"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON",
        ),
    ] = False,
) -> None:
    """Show details of a pipeline."""
    cfg = _load_config(config)
    pipeline = _get_pipeline(pipeline_ref, cfg, pipelines_dir)

    if json_output:
        typer.echo(_to_json(pipeline.to_dict()))
        return

    typer.echo(f"Pipeline: {pipeline.id or pipeline_ref}")
    if pipeline.name:
        typer.echo(f"Name: {pipeline.name}")
    if pipeline.description:
        typer.echo(f"Description: {pipeline.description}")
    typer.echo("")
    typer.echo("Nodes:")
    for i, node in enumerate(pipeline.nodes, 1):
        typer.echo(f"  {i}. {node.id} ({node.type})")
        if node.config:
            typer.echo(f"     Config: {json.dumps(node.config, default=str)}")
    typer.echo("")
    typer.echo("Edges:")
    for edge in pipeline.edges:
        mapping = ""
        if edge.mapping:
            mapping = " [" + ", ".join(f"{k}->{v}" for k, v in edge.mapping.items()) + "]"
        typer.echo(f"  {edge.source} -> {edge.target}{mapping}")


@pipelines_app.command("import")
def pipelines_import(
    file: Annotated[
        Path,
        typer.Argument(help="YAML or JSON file to import"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing pipeline",
        ),
    ] = False,
) -> None:
    """Import a pipeline file into the library."""
    cfg = _load_config(config)

    if not file.exists():
        typer.echo(f"File not found: {file}", err=True)
        raise typer.Exit(1)

    try:
        pipeline = Pipeline.load(file)
    except ValueError as e:
        typer.echo(f"Invalid pipeline file: {e}", err=True)
        raise typer.Exit(1) from None

    if pipeline.id is None:
        if not is_valid_pipeline_id(file.stem):
            typer.echo(
                f"Cannot use file name as pipeline id: {file.stem!r}. Set 'id' in the file.",
                err=True,
            )
            raise typer.Exit(1)
        pipeline = pipeline.model_copy(update={"id": file.stem})

    library = PipelineLibrary(pipelines_dir or cfg.get_pipelines_dir())
    if library.exists(pipeline.id) and not force:
        typer.echo(f"Pipeline already exists: {pipeline.id}. Use --force to overwrite.", err=True)
        raise typer.Exit(1)

    library.add(pipeline)
    library.save()

    typer.echo(f"Imported pipeline: {pipeline.id}")


@pipelines_app.command("export")
def pipelines_export(
    pipeline_id: Annotated[
        str,
        typer.Argument(help="Pipeline ID to export"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output file path (default: stdout)",
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """Export a pipeline to a YAML file."""
    cfg = _load_config(config)
    pipeline = _get_pipeline(pipeline_id, cfg, pipelines_dir)

    yaml_content = pipeline.to_yaml()
    if output:
        output.write_text(yaml_content)
        typer.echo(f"Exported to: {output}")
    else:
        typer.echo(yaml_content)


@pipelines_app.command("delete")
def pipelines_delete(
    pipeline_id: Annotated[
        str,
        typer.Argument(help="Pipeline ID to delete"),
    ],
    config: ConfigOption = None,
    pipelines_dir: PipelinesDirOption = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Don't prompt for confirmation",
        ),
    ] = False,
) -> None:
    """Delete a stored pipeline."""
    cfg = _load_config(config)
    library = PipelineLibrary(pipelines_dir or cfg.get_pipelines_dir())

    if not library.exists(pipeline_id):
        typer.echo(f"Pipeline not found: {pipeline_id}", err=True)
        raise typer.Exit(1)

    if not force:
        confirm = typer.confirm(f"Delete pipeline '{pipeline_id}'?")
        if not confirm:
            raise typer.Abort()

    library.delete(pipeline_id)
    typer.echo(f"Deleted pipeline: {pipeline_id}")


if __name__ == "__main__":
    app()
