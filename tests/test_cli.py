"""End-to-end tests for the specnav command line.

Every test runs against the petstore project fixture with configuration,
cache and data directories isolated under ``tmp_path``. JSON output is
requested together with ``--quiet`` so that stdout carries only the
result document.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from specnav import __version__
from specnav.app import app
from specnav.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND


def _run(cli_runner, project: Path, *args: str):
    return cli_runner.invoke(app, ["--root", str(project), "--json", "--quiet", *args])


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"specnav {__version__}" in result.output

    def test_missing_root_is_usage_error(self, cli_runner, isolated_config: Path) -> None:
        result = _run(cli_runner, isolated_config / "nowhere", "index")
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# index
# ---------------------------------------------------------------------------


class TestIndexCommand:
    def test_reports_counts(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "index")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        # listPets, createPet, getPetById, deletePet, getInventory + 2 schemas + 2 tags
        assert data["records"] == 9
        assert data["spec_files"] == 1
        assert data["source_files"] == 1
        assert data["store"]["enabled"] is True

    def test_second_run_reuses_store(
        self, cli_runner, isolated_config: Path, petstore_project: Path
    ) -> None:
        _run(cli_runner, petstore_project, "index")
        data = json.loads(_run(cli_runner, petstore_project, "index").stdout)
        assert data["reused"] == 2

    def test_clear_discards_store(
        self, cli_runner, isolated_config: Path, petstore_project: Path
    ) -> None:
        _run(cli_runner, petstore_project, "index")
        data = json.loads(_run(cli_runner, petstore_project, "index", "--clear").stdout)
        assert data["reused"] == 0

    def test_no_store(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "--no-store", "index")

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["store"] == {"enabled": False}


# ---------------------------------------------------------------------------
# lookup
# ---------------------------------------------------------------------------


class TestLookupCommand:
    def test_operation(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "lookup", "operation", "getPetById")

        assert result.exit_code == 0, result.output
        (row,) = json.loads(result.stdout)
        assert row["Identifier"] == "getPetById"
        assert row["File"] == "api/petstore.yaml"

    def test_kind_alias(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "lookup", "schema", "Pet")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)[0]["Kind"] == "component"

    def test_split_operation_recorded_under_root_file(
        self, cli_runner, isolated_config: Path, petstore_project: Path
    ) -> None:
        result = _run(cli_runner, petstore_project, "lookup", "op", "getInventory")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)[0]["File"] == "api/petstore.yaml"

    def test_unknown_identifier(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "lookup", "operation", "noSuchOp")
        assert result.exit_code == EXIT_NOT_FOUND

    def test_unknown_kind(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "lookup", "widget", "Pet")
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# impl / spec
# ---------------------------------------------------------------------------


def _line_of(path: Path, needle: str) -> int:
    for number, text in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if needle in text:
            return number
    raise AssertionError(f"{needle!r} not in {path}")


class TestNavigationCommands:
    def test_impl_from_operation_id_line(
        self, cli_runner, isolated_config: Path, petstore_project: Path, petstore_file: Path
    ) -> None:
        line = _line_of(petstore_file, "operationId: getPetById")

        result = _run(cli_runner, petstore_project, "impl", "api/petstore.yaml", str(line))

        assert result.exit_code == 0, result.output
        targets = json.loads(result.stdout)
        assert [target["name"] for target in targets] == ["PetApiControllerDelegateImpl.get_pet_by_id"]
        assert targets[0]["file"].endswith("app/pets.py")
        assert targets[0]["detail"] == "method"
        assert isinstance(targets[0]["line"], int)

    def test_impl_on_non_operation_line(
        self, cli_runner, isolated_config: Path, petstore_project: Path
    ) -> None:
        result = _run(cli_runner, petstore_project, "impl", "api/petstore.yaml", "1")
        assert result.exit_code == EXIT_NOT_FOUND

    def test_impl_rejects_line_zero(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "impl", "api/petstore.yaml", "0")
        assert result.exit_code == EXIT_INVALID_USAGE

    def test_spec_from_annotated_method(
        self, cli_runner, isolated_config: Path, petstore_project: Path, petstore_file: Path
    ) -> None:
        result = _run(
            cli_runner, petstore_project, "spec", "app/pets.py", "PetApiController.get_pet_by_id"
        )

        assert result.exit_code == 0, result.output
        (target,) = json.loads(result.stdout)
        assert target == {
            "file": "api/petstore.yaml",
            "line": _line_of(petstore_file, "operationId: getPetById"),
            "name": "paths//pets/{petId}/get/operationId",
            "detail": "PetApiController.get_pet_by_id",
        }

    def test_spec_unknown_symbol(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "spec", "app/pets.py", "Nope")
        assert result.exit_code == EXIT_NOT_FOUND

    def test_spec_outside_root(
        self, cli_runner, isolated_config: Path, petstore_project: Path, tmp_path: Path
    ) -> None:
        outside = tmp_path / "elsewhere.py"
        outside.write_text("def f():\n    pass\n", encoding="utf-8")
        result = _run(cli_runner, petstore_project, "spec", str(outside), "f")
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_show_merges_project_file(
        self, cli_runner, isolated_config: Path, petstore_project: Path
    ) -> None:
        (petstore_project / "specnav.json").write_text(
            json.dumps({"index": {"exclude": ["generated/"]}}), encoding="utf-8"
        )

        result = _run(cli_runner, petstore_project, "config", "show")

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["index"]["exclude"] == ["generated/"]

    def test_set_then_reset(self, cli_runner, isolated_config: Path, petstore_project: Path) -> None:
        result = _run(cli_runner, petstore_project, "config", "set", "store.enabled", "false")
        assert result.exit_code == 0, result.output

        shown = json.loads(_run(cli_runner, petstore_project, "config", "show").stdout)
        assert shown["store"]["enabled"] is False

        result = _run(cli_runner, petstore_project, "config", "reset", "--force")
        assert result.exit_code == 0, result.output
        shown = json.loads(_run(cli_runner, petstore_project, "config", "show").stdout)
        assert shown["store"]["enabled"] is True

    @pytest.mark.parametrize("key", ["store.missing", "nothing.enabled"])
    def test_set_unknown_key(self, cli_runner, isolated_config: Path, key: str) -> None:
        result = cli_runner.invoke(app, ["-q", "config", "set", key, "x"])
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# Entry point error mapping
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specnav.app._setup_signal_handlers", lambda: None)

    def test_specnav_error_exits_with_its_code(self, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
        from specnav import app as app_module
        from specnav.exceptions import ReferenceError_

        def broken(**kwargs) -> None:
            raise ReferenceError_("Malformed $ref: 'x'")

        monkeypatch.setattr(app_module, "app", broken)

        with pytest.raises(SystemExit) as excinfo:
            app_module.main()

        assert excinfo.value.code == 8
        assert "Malformed $ref" in capsys.readouterr().err

    def test_unexpected_error_writes_crash_log(
        self, monkeypatch: pytest.MonkeyPatch, isolated_config: Path
    ) -> None:
        from specnav import app as app_module

        def broken(**kwargs) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(app_module, "app", broken)

        with pytest.raises(SystemExit) as excinfo:
            app_module.main()

        assert excinfo.value.code == 1
        logs = list((isolated_config / "data" / "specnav" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: boom" in logs[0].read_text()
