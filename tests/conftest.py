"""Shared test fixtures for specnav.

Provides a small petstore project written into ``tmp_path`` (a root spec,
a split path file, and Python sources), config isolation, output state
management, and a CLI runner. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from specnav.output import OutputFormat, OutputManager, reset_output, set_output


def write(path: Path, content: str) -> Path:
    """Write dedented *content* to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return path


PETSTORE_YAML = """
openapi: 3.0.3
info:
  title: Petstore
  version: 1.0.0
tags:
  - name: pet
  - name: store
paths:
  /pets:
    get:
      operationId: listPets
      tags: [pet]
      summary: List all pets
    post:
      operationId: createPet
      tags: [pet]
  /pets/{petId}:
    get:
      operationId: getPetById
      tags: [pet]
      summary: Find pet by ID
    delete:
      operationId: deletePet
      tags: [pet]
  /store/inventory:
    $ref: './paths/store.yaml#/Inventory'
components:
  schemas:
    Pet:
      type: object
      properties:
        id:
          type: integer
    Error:
      type: object
"""

STORE_PATHS_YAML = """
Inventory:
  get:
    operationId: getInventory
    tags: [store]
"""

CONTROLLER_PY = '''
from fastapi import APIRouter

router = APIRouter(prefix="/pets")


class PetApiController:
    @router.get("/{petId}", operation_id="getPetById", tags=["pet"])
    def get_pet_by_id(self, pet_id):
        return self.get_delegate().get_pet_by_id(pet_id)

    @router.get("", operation_id="listPets")
    def list_pets(self):
        ...

    def get_delegate(self):
        return PetApiControllerDelegate()


class PetApiControllerDelegate:
    def get_pet_by_id(self, pet_id):
        raise NotImplementedError

    def list_pets(self):
        raise NotImplementedError


class PetApiControllerDelegateImpl(PetApiControllerDelegate):
    def get_pet_by_id(self, pet_id):
        return {"id": pet_id}


class Pet:
    id: int
'''


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test, the cached references go stale once the test finishes.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Project fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_project(tmp_path: Path) -> Path:
    """A project with a split petstore spec and a FastAPI-style controller."""
    root = tmp_path / "project"
    write(root / "api" / "petstore.yaml", PETSTORE_YAML)
    write(root / "api" / "paths" / "store.yaml", STORE_PATHS_YAML)
    write(root / "app" / "pets.py", CONTROLLER_PY)
    return root


@pytest.fixture
def petstore_file(petstore_project: Path) -> Path:
    return petstore_project / "api" / "petstore.yaml"


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, and clears all SPECNAV_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("specnav.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["SPECNAV_ROOT", "SPECNAV_NO_STORE"]:
        monkeypatch.delenv(var, raising=False)

    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
