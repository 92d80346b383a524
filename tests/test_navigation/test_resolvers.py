"""Tests for the individual spec and implementation resolvers."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from specnav.indexing.project import ProjectIndexer
from specnav.models import CandidateSymbol, SpecOperation, SymbolKind
from specnav.navigation import (
    DelegatePatternResolver,
    Navigator,
    OperationSpecResolver,
    RawFunctionResolver,
    ResolutionContext,
    TagSpecResolver,
    TypedClientResolver,
)

GET_PET = SpecOperation(path="/pets/{petId}", method="GET", operation_id="getPetById", tags=["pet"])

SPEC = """
openapi: 3.0.0
tags:
  - name: pet
paths:
  /pets/{petId}:
    get:
      operationId: getPetById
      tags: [pet]
"""

GENERATED_CLIENT = '''
class PetApi:
    def get_pet_by_id(self, pet_id):
        return self.get_pet_by_id_with_http_info(pet_id)

    def get_pet_by_id_with_http_info(self, pet_id):
        return self.api_client.call_api(*self._get_pet_by_id_serialize(pet_id))

    def _get_pet_by_id_serialize(self, pet_id):
        return self.api_client.param_serialize(
            method='GET',
            resource_path='/pets/{petId}',
            path_params={'petId': pet_id},
        )
'''

RAW_ONLY = '''
def getPetByIdRaw(pet_id):
    return request(method="GET", path="/pets/{petId}")
'''

TYPED_CLIENT = '''
class PetApi:
    @GetMapping("/pets/{petId}")
    def getPetById(self, pet_id):
        ...


@FeignClient(name="pets")
class PetApiClient(PetApi):
    pass


class StoreApi:
    @GetMapping("/pets/{petId}")
    def getPetById(self, pet_id):
        ...


class StoreApiClient(StoreApi):
    pass
'''


def _context(root: Path, sources: dict[str, str]) -> ResolutionContext:
    for name, content in {"api.yaml": SPEC, **sources}.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    indexer = ProjectIndexer(root)
    indexer.rebuild()
    return Navigator.for_project(indexer).context


# ---------------------------------------------------------------------------
# Implementation resolvers
# ---------------------------------------------------------------------------


class TestRawFunctionResolver:
    def test_generated_python_client_returns_public_method(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"client/pet_api.py": GENERATED_CLIENT})

        (symbol,) = RawFunctionResolver().resolve_implementation(GET_PET, context)

        assert symbol.display_name == "PetApi.get_pet_by_id"

    def test_raw_function_without_public_sibling(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"client.py": RAW_ONLY})

        (symbol,) = RawFunctionResolver().resolve_implementation(GET_PET, context)

        assert symbol.simple_name == "getPetByIdRaw"
        assert symbol.kind == SymbolKind.FUNCTION

    def test_literals_must_match(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"client.py": RAW_ONLY.replace('"GET"', '"POST"')})
        assert RawFunctionResolver().resolve_implementation(GET_PET, context) == []

    def test_relative_operation_path_skips_path_literal(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"client.py": RAW_ONLY})
        operation = GET_PET.model_copy(update={"path": "pets"})
        assert len(RawFunctionResolver().resolve_implementation(operation, context)) == 1


class TestTypedClientResolver:
    def test_requires_marker_on_client_class(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"clients.py": TYPED_CLIENT})

        results = TypedClientResolver().resolve_implementation(GET_PET, context)

        assert [s.display_name for s in results] == ["PetApi.getPetById"]


class TestDelegatePatternResolver:
    def test_unannotated_generated_client_is_not_a_handler(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"client/pet_api.py": GENERATED_CLIENT})
        assert DelegatePatternResolver().resolve_implementation(GET_PET, context) == []

    def test_candidate_files_shortlist(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {"clients.py": TYPED_CLIENT, "other.py": "def unrelated():\n    pass\n"})
        assert DelegatePatternResolver().candidate_files(GET_PET, context) == ["clients.py"]


# ---------------------------------------------------------------------------
# Spec resolvers
# ---------------------------------------------------------------------------


class TestOperationSpecResolverIdentifiers:
    def test_annotation_and_convention_are_both_kept(self) -> None:
        symbol = CandidateSymbol(
            simple_name="fetch_pet",
            kind=SymbolKind.METHOD,
            annotations={"Operation": {"operationId": "getPetById"}},
        )
        assert OperationSpecResolver().identifiers(symbol) == ["getPetById", "fetch_pet", "fetchPet"]

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("getPetByIdRaw", ["getPetById"]),
            ("_get_pet_by_id_serialize", ["get_pet_by_id", "getPetById"]),
            ("_delete", ["delete"]),
        ],
    )
    def test_generator_affixes_are_stripped(self, name: str, expected: list[str]) -> None:
        symbol = CandidateSymbol(simple_name=name, kind=SymbolKind.FUNCTION)
        assert OperationSpecResolver().identifiers(symbol) == expected

    def test_classes_have_no_operation_identifiers(self) -> None:
        assert OperationSpecResolver().identifiers(CandidateSymbol(simple_name="X", kind=SymbolKind.CLASS)) == []


class TestTagSpecResolverIdentifiers:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("PetApiController", ["Pet", "pet"]),
            ("StoreApiDelegate", ["Store", "store"]),
            ("UserWsClient", ["UserWs", "User", "userWs", "user"]),
        ],
    )
    def test_suffixes_are_stripped(self, name: str, expected: list[str]) -> None:
        symbol = CandidateSymbol(simple_name=name, kind=SymbolKind.CLASS)
        assert TagSpecResolver().identifiers(symbol) == expected

    def test_tag_annotation_comes_first(self) -> None:
        symbol = CandidateSymbol(
            simple_name="PetApi", kind=SymbolKind.CLASS, annotations={"Tag": {"name": "animals"}}
        )
        assert TagSpecResolver().identifiers(symbol)[0] == "animals"

    def test_resolves_tag_node(self, tmp_path: Path) -> None:
        context = _context(tmp_path, {})
        symbol = CandidateSymbol(simple_name="PetApi", kind=SymbolKind.CLASS)

        (node,) = TagSpecResolver().resolve_spec_element(symbol, context)

        assert node.path == ("tags", "0", "name")
