from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from stockmerge.adapters.sqlalchemy import SqlAlchemyImportUnitOfWork, startup
from stockmerge.domain.importing import (
    ErrorCode,
    ImportOptions,
    PayloadDecodeError,
    ValidationIssue,
    ValidationResult,
)
from stockmerge.domain.model import ResolutionAction
from stockmerge.ui import cli as cli_module
from tests.helpers.payloads import customer, product, snapshot

if TYPE_CHECKING:
    from pathlib import Path


def _write_snapshot(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "export.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_import_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("STOCKMERGE_BATCH_SIZE", raising=False)
    monkeypatch.delenv("STOCKMERGE_CREATE_MISSING_REFERENCES", raising=False)
    captured: dict[str, object] = {}

    def fake_import(path: Path, **kwargs: object) -> object:
        captured["path"] = path
        captured.update(kwargs)
        raise PayloadDecodeError("stop here")

    monkeypatch.setattr(cli_module, "import_snapshot", fake_import)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", str(tmp_path / "export.json")])

    assert excinfo.value.code == cli_module.EXIT_REJECTED
    assert captured["path"] == tmp_path / "export.json"
    assert captured["options"] == ImportOptions()


def test_import_with_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_import(path: Path, **kwargs: object) -> object:
        captured.update(kwargs)
        raise PayloadDecodeError("stop here")

    monkeypatch.setattr(cli_module, "import_snapshot", fake_import)

    with pytest.raises(SystemExit):
        cli_module.main(
            [
                "--log-level",
                "warning",
                "import",
                str(tmp_path / "export.json"),
                "--scope",
                "products",
                "--resolution",
                "apply_incoming",
                "--batch-size",
                "5",
                "--create-missing-references",
                "--no-validate-references",
            ]
        )

    assert captured["options"] == ImportOptions(
        batch_size=5,
        default_resolution=ResolutionAction.APPLY_INCOMING,
        validate_references=False,
        create_missing_references=True,
        scope="products",
    )


def test_validate_exits_with_rejection_code_for_invalid_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    invalid = ValidationResult(
        errors=[
            ValidationIssue(
                path="customers[0].name",
                message="missing required field 'name'",
                code=ErrorCode.MISSING_REQUIRED_FIELD,
            )
        ]
    )
    monkeypatch.setattr(cli_module, "validate_snapshot", lambda _path: invalid)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["validate", str(tmp_path / "export.json")])

    assert excinfo.value.code == cli_module.EXIT_REJECTED


def test_validate_accepts_well_formed_file(tmp_path: Path) -> None:
    path = _write_snapshot(tmp_path, snapshot(customers=[customer("Mya")]))

    cli_module.main(["validate", str(path)])


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["validate", str(tmp_path / "absent.json")])

    assert excinfo.value.code == cli_module.EXIT_REJECTED


def test_unknown_log_level_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["--log-level", "chatty", "validate", str(tmp_path / "export.json")])

    assert excinfo.value.code == cli_module.EXIT_REJECTED


def test_unexpected_error_is_fatal(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def broken_preview(_path: Path, **_kwargs: object) -> object:
        raise RuntimeError("database exploded")

    monkeypatch.setattr(cli_module, "preview_snapshot", broken_preview)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["preview", str(tmp_path / "export.json")])

    assert excinfo.value.code == cli_module.EXIT_FATAL


def test_import_writes_to_configured_database(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    database_uri = f"sqlite+pysqlite:///{tmp_path}/shop.db"
    monkeypatch.setenv("DATABASE_URI", database_uri)
    path = _write_snapshot(
        tmp_path,
        snapshot(customers=[customer("Mya", phone="09-1")], products=[product("Rice")]),
    )
    caplog.set_level(logging.INFO)

    cli_module.main(["import", str(path)])
    cli_module.main(["preview", str(path)])

    with SqlAlchemyImportUnitOfWork(startup(database_uri=database_uri)) as uow:
        customers = uow.repositories.customers.list_all()
    assert [record["name"] for record in customers] == ["Mya"]
    assert "Import completed." in caplog.messages
    assert any("customer: 1 conflict(s)" in message for message in caplog.messages)
