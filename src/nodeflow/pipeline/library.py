"""Pipeline library for managing stored pipeline definitions."""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from nodeflow.exceptions import PipelineNotFoundError
from nodeflow.pipeline.constants import (
    DEFAULT_PIPELINES_DIR,
    MAX_ID_LENGTH,
    PIPELINE_FILE_SUFFIXES,
    PIPELINE_ID_PATTERN,
)
from nodeflow.pipeline.definition import Pipeline

logger = structlog.get_logger()

_PIPELINE_ID_RE = re.compile(PIPELINE_ID_PATTERN)


class PipelineLibrary:
    """Library of named pipeline definitions.

    Pipelines are kept in memory and persisted as ``<id>.yaml`` files in the
    library directory. Lookups also accept a path to a pipeline file.

    Attributes:
        pipelines: List of all loaded pipelines.
    """

    def __init__(self, pipelines_dir: Path | None = None):
        """Initialize the library.

        Args:
            pipelines_dir: Directory for stored pipelines (~/.nodeflow/pipelines/).
        """
        self._dir = pipelines_dir or DEFAULT_PIPELINES_DIR
        self._pipelines: dict[str, Pipeline] = {}

    @property
    def directory(self) -> Path:
        """Get the library directory."""
        return self._dir

    @property
    def pipelines(self) -> list[Pipeline]:
        """Get all loaded pipelines."""
        return list(self._pipelines.values())

    def get(self, pipeline_id: str) -> Pipeline:
        """Get a pipeline by ID or load it from a file path.

        Args:
            pipeline_id: Pipeline identifier or file path.

        Returns:
            Pipeline.

        Raises:
            PipelineNotFoundError: If the pipeline is not found or the file
                is not a valid pipeline.
        """
        path = Path(pipeline_id)
        if path.suffix in PIPELINE_FILE_SUFFIXES and path.is_file():
            try:
                return Pipeline.load(path)
            except (OSError, ValueError) as e:
                msg = f"Failed to load pipeline from file '{pipeline_id}': {e}"
                raise PipelineNotFoundError(msg, pipeline_id=pipeline_id) from e

        if pipeline_id not in self._pipelines:
            self._try_load(pipeline_id)

        if pipeline_id not in self._pipelines:
            msg = f"Pipeline '{pipeline_id}' not found"
            raise PipelineNotFoundError(msg, pipeline_id=pipeline_id)

        return self._pipelines[pipeline_id]

    def exists(self, pipeline_id: str) -> bool:
        """Check if a pipeline exists in memory or on disk."""
        if pipeline_id in self._pipelines:
            return True
        return self._find_file(pipeline_id) is not None

    def add(self, pipeline: Pipeline) -> None:
        """Add or replace a pipeline.

        Raises:
            ValueError: If the pipeline has no ID.
        """
        if pipeline.id is None:
            msg = "Pipeline must have an id to be stored"
            raise ValueError(msg)
        if not is_valid_pipeline_id(pipeline.id):
            msg = f"Invalid pipeline id: {pipeline.id!r}"
            raise ValueError(msg)
        self._pipelines[pipeline.id] = pipeline

    def delete(self, pipeline_id: str) -> None:
        """Delete a pipeline from memory and disk.

        Removes the stored file whatever its suffix.

        Raises:
            PipelineNotFoundError: If the pipeline is not found.
        """
        if not self.exists(pipeline_id):
            msg = f"Pipeline '{pipeline_id}' not found"
            raise PipelineNotFoundError(msg, pipeline_id=pipeline_id)

        self._pipelines.pop(pipeline_id, None)

        path = self._find_file(pipeline_id)
        if path is not None:
            path.unlink()
            logger.debug("Deleted pipeline file", id=pipeline_id, path=str(path))

    def save(self) -> None:
        """Write all loaded pipelines to the library directory.

        A pipeline already stored as ``.yml`` or ``.json`` is rewritten in
        place; new pipelines are written as ``<id>.yaml``.
        """
        self._dir.mkdir(parents=True, exist_ok=True)

        for pipeline_id, pipeline in self._pipelines.items():
            path = self._find_file(pipeline_id) or self._dir / f"{pipeline_id}.yaml"
            path.write_text(pipeline.to_yaml())
            logger.debug("Saved pipeline", id=pipeline_id, path=str(path))

    def load_all(self) -> None:
        """Load every pipeline file in the library directory.

        Pipelines are keyed by file stem, the same name ``get``, ``exists``
        and ``delete`` resolve. Invalid files and stems that are not valid
        pipeline ids are logged and skipped.
        """
        if not self._dir.exists():
            return

        for path in sorted(self._dir.iterdir()):
            if path.suffix not in PIPELINE_FILE_SUFFIXES:
                continue
            if not is_valid_pipeline_id(path.stem):
                logger.warning("Skipping pipeline file with invalid name", path=str(path))
                continue
            if path.stem in self._pipelines:
                logger.warning("Duplicate pipeline file ignored", path=str(path))
                continue
            try:
                pipeline = Pipeline.load(path)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load pipeline", path=str(path), error=str(e))
                continue
            if pipeline.id != path.stem:
                pipeline = pipeline.model_copy(update={"id": path.stem})
            self._pipelines[path.stem] = pipeline
            logger.debug("Loaded pipeline", id=path.stem)

    def _find_file(self, pipeline_id: str) -> Path | None:
        """Find the stored file for an id, trying every pipeline suffix.

        Ids that are not valid pipeline ids never resolve, so a lookup
        cannot address a file outside the library directory.
        """
        if not is_valid_pipeline_id(pipeline_id):
            return None
        for suffix in PIPELINE_FILE_SUFFIXES:
            path = self._dir / f"{pipeline_id}{suffix}"
            if path.is_file():
                return path
        return None

    def _try_load(self, pipeline_id: str) -> None:
        """Try to load a single pipeline from the library directory."""
        path = self._find_file(pipeline_id)
        if path is None:
            return

        try:
            pipeline = Pipeline.load(path)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load pipeline", id=pipeline_id, error=str(e))
            return
        if pipeline.id != pipeline_id:
            pipeline = pipeline.model_copy(update={"id": pipeline_id})
        self._pipelines[pipeline_id] = pipeline

    @classmethod
    def load(cls, pipelines_dir: Path | None = None) -> PipelineLibrary:
        """Create a library and load its stored pipelines.

        Args:
            pipelines_dir: Optional library directory.

        Returns:
            Loaded PipelineLibrary.
        """
        library = cls(pipelines_dir)
        library.load_all()
        return library


def is_valid_pipeline_id(pipeline_id: str) -> bool:
    """Check that an id is usable as a library file name."""
    return len(pipeline_id) <= MAX_ID_LENGTH and _PIPELINE_ID_RE.match(pipeline_id) is not None
