"""Tests for specnav.parser.resolver."""

from __future__ import annotations

from pathlib import Path

import pytest

from specnav.exceptions import ReferenceError_, SpecParseError
from specnav.parser.resolver import parse_ref, resolve_pointer, resolve_refs


# ---------------------------------------------------------------------------
# parse_ref
# ---------------------------------------------------------------------------


class TestParseRef:
    def test_local_ref(self) -> None:
        pointer = parse_ref("#/components/schemas/Pet")
        assert pointer is not None
        assert pointer.is_local
        assert pointer.fragment == ("components", "schemas", "Pet")

    def test_external_ref_with_fragment(self) -> None:
        pointer = parse_ref("./paths/pets.yaml#/PetById")
        assert pointer is not None
        assert pointer.file_path == "./paths/pets.yaml"
        assert pointer.fragment == ("PetById",)

    def test_bare_file_ref(self) -> None:
        pointer = parse_ref("schemas/pet.yaml")
        assert pointer is not None
        assert pointer.file_path == "schemas/pet.yaml"
        assert pointer.fragment == ()

    def test_unescapes_json_pointer(self) -> None:
        pointer = parse_ref("#/paths/~1pets~1{id}/get/a~0b")
        assert pointer is not None
        assert pointer.fragment == ("paths", "/pets/{id}", "get", "a~b")

    @pytest.mark.parametrize("ref", ["", "   ", "#notapointer"])
    def test_malformed_refs(self, ref: str) -> None:
        assert parse_ref(ref) is None


class TestResolvePointer:
    def test_navigates_lists(self) -> None:
        assert resolve_pointer({"a": [{"b": 1}]}, ("a", "0", "b")) == 1

    def test_missing_key_raises(self) -> None:
        with pytest.raises(ReferenceError_, match="not found"):
            resolve_pointer({"a": {}}, ("a", "b"), "#/a/b")


# ---------------------------------------------------------------------------
# resolve_refs
# ---------------------------------------------------------------------------


class TestResolveRefs:
    def test_resolves_local_ref(self) -> None:
        spec = {
            "paths": {"/pets": {"get": {"schema": {"$ref": "#/components/schemas/Pet"}}}},
            "components": {"schemas": {"Pet": {"type": "object"}}},
        }
        resolved = resolve_refs(spec)
        assert resolved["paths"]["/pets"]["get"]["schema"] == {"type": "object"}

    def test_does_not_mutate_original(self) -> None:
        spec = {"a": {"$ref": "#/b"}, "b": {"x": 1}}
        resolve_refs(spec)
        assert spec["a"] == {"$ref": "#/b"}

    def test_resolves_external_file_relative_to_referrer(self, tmp_path: Path) -> None:
        (tmp_path / "paths").mkdir()
        (tmp_path / "paths" / "pets.yaml").write_text(
            "PetById:\n  get:\n    operationId: getPet\n    schema:\n      $ref: '#/Pet'\nPet:\n  type: object\n"
        )
        root = tmp_path / "api.yaml"
        spec = {"openapi": "3.0.0", "paths": {"/pets/{id}": {"$ref": "./paths/pets.yaml#/PetById"}}}

        resolved = resolve_refs(spec, root)

        operation = resolved["paths"]["/pets/{id}"]["get"]
        assert operation["operationId"] == "getPet"
        # The nested local ref is resolved against pets.yaml, not api.yaml
        assert operation["schema"] == {"type": "object"}

    def test_self_cycle_terminates(self) -> None:
        spec = {"components": {"schemas": {"Node": {"properties": {"next": {"$ref": "#/components/schemas/Node"}}}}}}
        resolved = resolve_refs(spec)
        node = resolved["components"]["schemas"]["Node"]
        assert node["properties"]["next"]["properties"]["next"] == {"$ref": "#/components/schemas/Node"}

    def test_cross_file_cycle_terminates(self, tmp_path: Path) -> None:
        (tmp_path / "a.yaml").write_text("A:\n  $ref: 'b.yaml#/B'\n")
        (tmp_path / "b.yaml").write_text("B:\n  $ref: 'a.yaml#/A'\n")
        spec = {"x": {"$ref": "a.yaml#/A"}}

        resolved = resolve_refs(spec, tmp_path / "root.yaml")

        assert "$ref" in resolved["x"]

    def test_broken_ref_left_unresolved(self) -> None:
        spec = {"a": {"$ref": "#/missing"}}
        assert resolve_refs(spec) == {"a": {"$ref": "#/missing"}}

    def test_missing_file_left_unresolved(self, tmp_path: Path) -> None:
        spec = {"a": {"$ref": "nope.yaml#/X"}}
        assert resolve_refs(spec, tmp_path / "api.yaml") == spec

    def test_strict_mode_raises_on_broken_ref(self) -> None:
        with pytest.raises(ReferenceError_):
            resolve_refs({"a": {"$ref": "#/missing"}}, strict=True)

    def test_strict_mode_raises_on_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ReferenceError_, match="nope.yaml") as excinfo:
            resolve_refs({"a": {"$ref": "nope.yaml#/X"}}, tmp_path / "api.yaml", strict=True)
        assert isinstance(excinfo.value, SpecParseError)
        assert excinfo.value.exit_code == 8

    def test_custom_loader_is_used(self, tmp_path: Path) -> None:
        calls: list[Path] = []

        def loader(path: Path) -> dict:
            calls.append(path)
            return {"Thing": {"type": "string"}}

        resolved = resolve_refs({"a": {"$ref": "other.yaml#/Thing"}}, tmp_path / "api.yaml", loader=loader)

        assert resolved["a"] == {"type": "string"}
        assert calls == [(tmp_path / "other.yaml").resolve()]

    def test_reports_transitive_and_missing_dependencies(self, tmp_path: Path) -> None:
        (tmp_path / "a.yaml").write_text("A:\n  $ref: 'b.yaml#/B'\n")
        (tmp_path / "b.yaml").write_text("B:\n  type: string\n")
        spec = {"x": {"$ref": "a.yaml#/A"}, "y": {"$ref": "gone.yaml#/Y"}}
        dependencies: set[Path] = set()

        resolve_refs(spec, tmp_path / "root.yaml", dependencies=dependencies)

        assert dependencies == {(tmp_path / name).resolve() for name in ("a.yaml", "b.yaml", "gone.yaml")}
