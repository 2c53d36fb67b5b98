"""Unit tests for the pipeline library."""

from __future__ import annotations

from pathlib import Path

import pytest

from nodeflow.exceptions import PipelineNotFoundError
from nodeflow.pipeline import Pipeline, PipelineLibrary, PipelineNode

PIPELINE_YAML = """
id: doubled
name: Doubled
nodes:
  - id: src
    type: constant
    config:
      value: 3
  - id: out
    type: passthrough
edges:
  - from: src
    to: out
"""


def _pipeline(pipeline_id: str | None = "simple") -> Pipeline:
    return Pipeline(id=pipeline_id, nodes=[PipelineNode(id="a", type="constant")])


class TestPipelineLibrary:
    """Tests for PipelineLibrary."""

    def test_add_save_and_get(self, tmp_path: Path):
        """Test stored pipelines are written as <id>.yaml."""
        library = PipelineLibrary(tmp_path)
        library.add(_pipeline())
        library.save()

        assert (tmp_path / "simple.yaml").exists()
        assert PipelineLibrary(tmp_path).get("simple") == _pipeline()

    def test_add_requires_id(self, tmp_path: Path):
        """Test anonymous pipelines cannot be stored."""
        with pytest.raises(ValueError, match="must have an id"):
            PipelineLibrary(tmp_path).add(_pipeline(None))

    def test_get_missing(self, tmp_path: Path):
        """Test unknown ids raise PipelineNotFoundError."""
        with pytest.raises(PipelineNotFoundError, match="'ghost' not found") as exc:
            PipelineLibrary(tmp_path).get("ghost")
        assert exc.value.pipeline_id == "ghost"

    def test_get_by_file_path(self, tmp_path: Path):
        """Test lookups accept pipeline file paths."""
        path = tmp_path / "elsewhere.yml"
        path.write_text(PIPELINE_YAML)
        library = PipelineLibrary(tmp_path / "library")
        assert library.get(str(path)).id == "doubled"

    def test_get_invalid_file(self, tmp_path: Path):
        """Test broken pipeline files raise PipelineNotFoundError."""
        path = tmp_path / "broken.yaml"
        path.write_text("nodes: [unclosed")
        with pytest.raises(PipelineNotFoundError, match="Failed to load pipeline"):
            PipelineLibrary(tmp_path / "library").get(str(path))

    def test_load_all_skips_invalid(self, tmp_path: Path):
        """Test invalid files are skipped; missing ids fall back to the stem."""
        (tmp_path / "doubled.yaml").write_text(PIPELINE_YAML)
        (tmp_path / "anon.yaml").write_text("nodes:\n  - id: a\n    type: constant\n")
        (tmp_path / "broken.yaml").write_text("nodes: [unclosed")
        (tmp_path / "notes.txt").write_text("ignored")

        library = PipelineLibrary.load(tmp_path)
        ids = sorted(p.id or "" for p in library.pipelines)

        assert len(library.pipelines) == 2
        assert "doubled" in ids
        assert library.get("anon").nodes[0].id == "a"

    def test_load_all_missing_dir(self, tmp_path: Path):
        """Test a missing library directory loads nothing."""
        assert PipelineLibrary.load(tmp_path / "missing").pipelines == []

    def test_exists_and_delete(self, tmp_path: Path):
        """Test deleting removes the pipeline from memory and disk."""
        library = PipelineLibrary(tmp_path)
        library.add(_pipeline())
        library.save()
        assert library.exists("simple")

        library.delete("simple")

        assert not library.exists("simple")
        assert not (tmp_path / "simple.yaml").exists()

    def test_delete_missing(self, tmp_path: Path):
        """Test deleting an unknown pipeline raises."""
        with pytest.raises(PipelineNotFoundError):
            PipelineLibrary(tmp_path).delete("ghost")

    @pytest.mark.parametrize("pipeline_id", ["../victim", "../lib2/victim", "a/b", ".victim"])
    def test_ids_cannot_escape_directory(self, tmp_path: Path, pipeline_id: str):
        """Test path-like ids never resolve to files outside the library."""
        library_dir = tmp_path / "lib"
        library_dir.mkdir()
        (tmp_path / "lib2").mkdir()
        for victim in (tmp_path / "victim.yaml", tmp_path / "lib2" / "victim.yaml"):
            victim.write_text(PIPELINE_YAML)
        library = PipelineLibrary(library_dir)

        assert not library.exists(pipeline_id)
        with pytest.raises(PipelineNotFoundError):
            library.get(pipeline_id)
        with pytest.raises(PipelineNotFoundError):
            library.delete(pipeline_id)

        assert (tmp_path / "victim.yaml").exists()
        assert (tmp_path / "lib2" / "victim.yaml").exists()

    def test_add_rejects_unsafe_id(self, tmp_path: Path):
        """Test ids set without validation are still checked on add."""
        pipeline = _pipeline().model_copy(update={"id": "../escape"})
        with pytest.raises(ValueError, match="Invalid pipeline id"):
            PipelineLibrary(tmp_path).add(pipeline)

    @pytest.mark.parametrize("suffix", [".yml", ".json"])
    def test_other_suffixes_resolve_like_listing(self, tmp_path: Path, suffix: str):
        """Test ids listed from .yml/.json files can be fetched and deleted."""
        (tmp_path / f"alt{suffix}").write_text(
            '{"nodes": [{"id": "a", "type": "constant"}], "edges": []}'
        )

        listed = PipelineLibrary.load(tmp_path)
        assert [p.id for p in listed.pipelines] == ["alt"]

        library = PipelineLibrary(tmp_path)
        assert library.exists("alt")
        assert library.get("alt").id == "alt"

        library.delete("alt")
        assert not (tmp_path / f"alt{suffix}").exists()
        assert not library.exists("alt")

    def test_save_rewrites_existing_suffix(self, tmp_path: Path):
        """Test saving keeps a pipeline in its existing file."""
        (tmp_path / "doubled.yml").write_text(PIPELINE_YAML)
        library = PipelineLibrary.load(tmp_path)
        library.add(library.get("doubled").model_copy(update={"name": "Renamed"}))
        library.save()

        assert not (tmp_path / "doubled.yaml").exists()
        assert PipelineLibrary(tmp_path).get("doubled").name == "Renamed"

    def test_directory(self, tmp_path: Path):
        """Test the library directory is exposed."""
        assert PipelineLibrary(tmp_path).directory == tmp_path
