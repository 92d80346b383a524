"""Tests for specnav.indexing.project -- crawling and change notifications."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Optional

import pytest

import specnav.indexing.project as project_module
from specnav.indexing.project import ProjectIndexer
from specnav.indexing.store import IndexStore
from specnav.models import IndexConfig, IndexKind


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return path


TAG_SPEC = "openapi: 3.0.0\ntags:\n  - name: {name}\n"


class TestRebuild:
    def test_indexes_specs_and_sources(self, petstore_project: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        summary = indexer.rebuild()

        assert summary.spec_files == 1
        assert summary.source_files == 1
        assert indexer.spec_index.files() == ["api/petstore.yaml"]
        assert indexer.symbol_index.files() == ["app/pets.py"]
        (record,) = indexer.spec_index.lookup(IndexKind.OPERATION, "getInventory")
        assert record.file_path == "api/petstore.yaml"

    def test_skips_dependency_directories(self, petstore_project: Path) -> None:
        _write(petstore_project / "node_modules" / "pkg" / "openapi.yaml", TAG_SPEC.format(name="vendored"))
        _write(petstore_project / ".venv" / "lib" / "site-packages" / "x" / "api.yaml", TAG_SPEC.format(name="lib"))

        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()

        assert indexer.spec_index.lookup(IndexKind.TAG, "vendored") == []
        assert indexer.spec_index.lookup(IndexKind.TAG, "lib") == []

    def test_respects_gitignore_and_excludes(self, petstore_project: Path) -> None:
        _write(petstore_project / ".gitignore", "generated/\n")
        _write(petstore_project / "generated" / "api.yaml", TAG_SPEC.format(name="ignored"))
        _write(petstore_project / "drafts" / "api.yaml", TAG_SPEC.format(name="draft"))

        indexer = ProjectIndexer(petstore_project, config=IndexConfig(exclude=["drafts/"]))
        indexer.rebuild()

        assert indexer.spec_index.lookup(IndexKind.TAG, "ignored") == []
        assert indexer.spec_index.lookup(IndexKind.TAG, "draft") == []

    def test_gitignore_can_be_disabled(self, petstore_project: Path) -> None:
        _write(petstore_project / ".gitignore", "generated/\n")
        _write(petstore_project / "generated" / "api.yaml", TAG_SPEC.format(name="ignored"))

        indexer = ProjectIndexer(petstore_project, config=IndexConfig(respect_gitignore=False))
        indexer.rebuild()

        assert len(indexer.spec_index.lookup(IndexKind.TAG, "ignored")) == 1

    def test_rebuild_reuses_store(self, petstore_project: Path, tmp_path: Path) -> None:
        store = IndexStore(tmp_path / "store")
        try:
            first = ProjectIndexer(petstore_project, store=store).rebuild()
            second_indexer = ProjectIndexer(petstore_project, store=store)
            second = second_indexer.rebuild()

            assert first.reused == 0
            assert second.reused == 2
            assert second.records == first.records
            assert second_indexer.spec_index.lookup(IndexKind.OPERATION, "getPetById")
        finally:
            store.close()

    def test_rebuild_prunes_stale_store_entries(self, petstore_project: Path, tmp_path: Path) -> None:
        store = IndexStore(tmp_path / "store")
        try:
            store.put("deleted.yaml", "x", [])
            ProjectIndexer(petstore_project, store=store).rebuild()
            assert "deleted.yaml" not in store.files()
            assert "api/petstore.yaml" in store.files()
        finally:
            store.close()


class TestChangeNotifications:
    def test_refresh_picks_up_edits(self, petstore_project: Path, petstore_file: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()

        petstore_file.write_text(petstore_file.read_text().replace("getPetById", "fetchPet"))
        indexer.refresh_file(petstore_file)

        assert indexer.spec_index.lookup(IndexKind.OPERATION, "getPetById") == []
        assert len(indexer.spec_index.lookup(IndexKind.OPERATION, "fetchPet")) == 1

    def test_refresh_new_source_file(self, petstore_project: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()

        _write(petstore_project / "app" / "extra.py", "def helper():\n    pass\n")
        indexer.refresh_file("app/extra.py")

        assert [s.simple_name for s in indexer.symbol_index.symbols("app/extra.py")] == ["helper"]

    def test_refresh_deleted_file_removes_it(self, petstore_project: Path, petstore_file: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()

        petstore_file.unlink()
        indexer.refresh_file(petstore_file)

        assert indexer.spec_index.files() == []

    def test_remove_file(self, petstore_project: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()

        indexer.remove_file("app/pets.py")

        assert indexer.symbol_index.files() == []

    def test_paths_outside_root_are_ignored(self, petstore_project: Path, tmp_path: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()
        outside = _write(tmp_path / "elsewhere.yaml", TAG_SPEC.format(name="outside"))

        indexer.refresh_file(outside)

        assert indexer.spec_index.lookup(IndexKind.TAG, "outside") == []

    def test_refresh_invalidates_document_cache(self, petstore_project: Path, petstore_file: Path) -> None:
        indexer = ProjectIndexer(petstore_project)
        indexer.rebuild()
        indexer.documents.get(petstore_file)
        assert petstore_file in indexer.documents

        indexer.refresh_file(petstore_file)

        assert petstore_file not in indexer.documents


SPLIT_ROOT = """
openapi: 3.0.0
info:
  title: Split
  version: "1"
paths:
  /inventory:
    $ref: './paths/inventory.yaml#/Inventory'
"""

INVENTORY_FRAGMENT = "Inventory:\n  get:\n    operationId: {operation_id}\n"


@pytest.fixture
def split_project(tmp_path: Path) -> Path:
    root = tmp_path / "split"
    _write(root / "api.yaml", SPLIT_ROOT)
    _write(root / "paths" / "inventory.yaml", INVENTORY_FRAGMENT.format(operation_id="oldId"))
    return root


def _operation_files(indexer: ProjectIndexer, operation_id: str) -> list[str]:
    return [record.file_path for record in indexer.spec_index.lookup(IndexKind.OPERATION, operation_id)]


class TestSplitSpecs:
    def test_fragment_edit_reindexes_root(self, split_project: Path) -> None:
        indexer = ProjectIndexer(split_project)
        indexer.rebuild()
        assert indexer.dependents("paths/inventory.yaml") == ["api.yaml"]

        _write(split_project / "paths" / "inventory.yaml", INVENTORY_FRAGMENT.format(operation_id="newId"))
        indexer.refresh_file("paths/inventory.yaml")

        assert _operation_files(indexer, "oldId") == []
        assert _operation_files(indexer, "newId") == ["api.yaml"]

    def test_fragment_edit_invalidates_stored_root(self, split_project: Path, tmp_path: Path) -> None:
        store = IndexStore(tmp_path / "store")
        try:
            ProjectIndexer(split_project, store=store).rebuild()
            _write(split_project / "paths" / "inventory.yaml", INVENTORY_FRAGMENT.format(operation_id="newId"))

            indexer = ProjectIndexer(split_project, store=store)
            summary = indexer.rebuild()

            assert summary.reused == 0
            assert _operation_files(indexer, "oldId") == []
            assert _operation_files(indexer, "newId") == ["api.yaml"]
        finally:
            store.close()

    def test_unchanged_fragment_keeps_root_reusable(self, split_project: Path, tmp_path: Path) -> None:
        store = IndexStore(tmp_path / "store")
        try:
            ProjectIndexer(split_project, store=store).rebuild()
            indexer = ProjectIndexer(split_project, store=store)

            assert indexer.rebuild().reused == 2
            assert indexer.dependents("paths/inventory.yaml") == ["api.yaml"]
        finally:
            store.close()

    def test_deleting_fragment_drops_its_operations(self, split_project: Path) -> None:
        indexer = ProjectIndexer(split_project)
        indexer.rebuild()

        (split_project / "paths" / "inventory.yaml").unlink()
        indexer.refresh_file("paths/inventory.yaml")

        assert _operation_files(indexer, "oldId") == []
        assert indexer.dependents("paths/inventory.yaml") == ["api.yaml"]


class TestRebuildRobustness:
    def test_malformed_spec_does_not_stop_rebuild(self, tmp_path: Path) -> None:
        _write(tmp_path / "bad.yaml", "openapi: 3.0.0\ncomponents: oops\n")
        _write(tmp_path / "good.yaml", TAG_SPEC.format(name="good"))

        indexer = ProjectIndexer(tmp_path)
        indexer.rebuild()

        assert len(indexer.spec_index.lookup(IndexKind.TAG, "good")) == 1

    def test_unexpected_failure_skips_only_that_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        _write(tmp_path / "a.yaml", TAG_SPEC.format(name="a"))
        _write(tmp_path / "b.yaml", TAG_SPEC.format(name="b"))
        parse = project_module.parse_spec_file

        def failing_for_a(path: Path, dependencies: Optional[set[Path]] = None):
            if Path(path).name == "a.yaml":
                raise RuntimeError("unexpected shape")
            return parse(path, dependencies)

        monkeypatch.setattr(project_module, "parse_spec_file", failing_for_a)
        indexer = ProjectIndexer(tmp_path)
        indexer.rebuild()

        assert indexer.spec_index.files() == ["b.yaml"]
        assert "Failed to index a.yaml" in caplog.text
