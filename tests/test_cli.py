"""CLI integration tests for the import commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import pytest
import yaml
from typer.testing import CliRunner

from wfimport import cli
from wfimport.services.bps.models import BpsAuthError, BpsRequestError
from wfimport_persist.stores.ledger_store import LedgerStatus, load_ledger

PROFILES: dict[str, Any] = {
    "bps": {
        "test": {
            "base_url": "https://bps.example",
            "client_id": "client",
            "client_secret": "secret",
            "database_id": "7",
            "retries": {"max_retries": 0, "base_delay_seconds": 1},
        }
    },
    "imports": {
        "orders": {
            "connection": "test",
            "workflow_guid": "wf-guid",
            "form_type_guid": "ft-guid",
            "workbook": {"data_sheet": "Data", "detail_sheet": "Details"},
            "item_list": {"guid": "il-guid", "name": "Items"},
            "detail": True,
        }
    },
}


class FakeBpsClient:
    """Stands in for the HTTP client; fails rows whose Title is listed in ``failures``."""

    failures: dict[str, Exception] = {}
    auth_error: Exception | None = None
    instances: list["FakeBpsClient"] = []

    def __init__(self, config: Any, *, logger: Any = None) -> None:
        self.config = config
        self.bodies: list[dict[str, Any]] = []
        self.closed = False
        FakeBpsClient.instances.append(self)

    def authenticate(self) -> None:
        if FakeBpsClient.auth_error is not None:
            raise FakeBpsClient.auth_error

    def create_element(self, body: Mapping[str, Any]) -> dict[str, Any]:
        self.bodies.append(dict(body))
        title = next(field["value"] for field in body["formFields"] if field["guid"] == "g-title")
        failure = FakeBpsClient.failures.get(title)
        if failure is not None:
            raise failure
        return {"id": len(self.bodies)}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> type[FakeBpsClient]:
    monkeypatch.setattr(FakeBpsClient, "failures", {})
    monkeypatch.setattr(FakeBpsClient, "auth_error", None)
    monkeypatch.setattr(FakeBpsClient, "instances", [])
    monkeypatch.setattr(cli, "BpsClient", FakeBpsClient)
    return FakeBpsClient


@pytest.fixture
def profiles_file(tmp_path: Path) -> Path:
    path = tmp_path / "profiles.yaml"
    path.write_text(yaml.safe_dump(PROFILES), encoding="utf-8")
    return path


def _run_args(source: Path, profiles_file: Path, *extra: str) -> list[str]:
    return ["run", str(source), "--profile", "orders", "--config", str(profiles_file), "--no-progress", *extra]


def test_run_records_failures_and_resume_skips_imported_rows(
    cli_runner: CliRunner,
    fake_client: type[FakeBpsClient],
    source_workbook: Path,
    profiles_file: Path,
) -> None:
    fake_client.failures = {"Second": BpsRequestError("HTTP 404 Not Found: no such workflow", status_code=404)}

    first = cli_runner.invoke(cli.app, _run_args(source_workbook, profiles_file))

    assert first.exit_code == cli.EXIT_ROW_ERRORS, first.stdout
    assert "SUMMARY rows=3/3 success=2 error=1 skipped=0 cancelled=no" in first.stdout
    assert "  A-2: HTTP 404 Not Found: no such workflow" in first.stdout
    ledger_path = source_workbook.resolve().with_name("orders_status.xlsx")
    assert f"ledger: {ledger_path}" in first.stdout

    client = fake_client.instances[0]
    assert client.closed
    assert client.config.database_id == "7"
    first_body = client.bodies[0]
    assert first_body["workflow"] == {"guid": "wf-guid"}
    assert [row["cells"][0]["value"] for row in first_body["itemLists"][0]["rows"]] == ["Widget", "Gadget"]
    assert client.bodies[1]["itemLists"][0]["rows"] == []

    entries = load_ledger(ledger_path)
    assert entries["A-1"].status is LedgerStatus.SUCCESS
    assert entries["A-2"].status is LedgerStatus.ERROR

    fake_client.failures = {}
    second = cli_runner.invoke(cli.app, _run_args(source_workbook, profiles_file))

    assert second.exit_code == cli.EXIT_OK, second.stdout
    assert "SUMMARY rows=3/3 success=1 error=0 skipped=2 cancelled=no" in second.stdout
    assert len(fake_client.instances[1].bodies) == 1
    assert load_ledger(ledger_path)["A-2"].status is LedgerStatus.SUCCESS


def test_run_without_detail_omits_item_lists(
    cli_runner: CliRunner,
    fake_client: type[FakeBpsClient],
    source_workbook: Path,
    profiles_file: Path,
    tmp_path: Path,
) -> None:
    ledger_path = tmp_path / "custom_ledger.xlsx"
    result = cli_runner.invoke(
        cli.app, _run_args(source_workbook, profiles_file, "--no-detail", "--ledger", str(ledger_path))
    )

    assert result.exit_code == cli.EXIT_OK, result.stdout
    assert all("itemLists" not in body for body in fake_client.instances[0].bodies)
    assert sorted(load_ledger(ledger_path)) == ["A-1", "A-2", "A-3"]


def test_run_auth_failure_exits_without_rows(
    cli_runner: CliRunner,
    fake_client: type[FakeBpsClient],
    source_workbook: Path,
    profiles_file: Path,
) -> None:
    fake_client.auth_error = BpsAuthError("Token request failed with status 401")

    result = cli_runner.invoke(cli.app, _run_args(source_workbook, profiles_file))

    assert result.exit_code == cli.EXIT_FAILURE
    assert fake_client.instances[0].bodies == []
    assert fake_client.instances[0].closed


def test_run_unknown_job_is_a_config_error(
    cli_runner: CliRunner,
    fake_client: type[FakeBpsClient],
    source_workbook: Path,
    profiles_file: Path,
) -> None:
    result = cli_runner.invoke(
        cli.app, ["run", str(source_workbook), "--profile", "missing", "--config", str(profiles_file)]
    )

    assert result.exit_code == cli.EXIT_CONFIG
    assert fake_client.instances == []


def test_run_missing_sheet_is_a_failure(
    cli_runner: CliRunner,
    fake_client: type[FakeBpsClient],
    workbook_factory,
    profiles_file: Path,
) -> None:
    source = workbook_factory({"Other": [["a"], ["b"]]})

    result = cli_runner.invoke(cli.app, _run_args(source, profiles_file))

    assert result.exit_code == cli.EXIT_FAILURE
    assert fake_client.instances == []


def test_status_reports_counts_and_failures(
    cli_runner: CliRunner,
    fake_client: type[FakeBpsClient],
    source_workbook: Path,
    profiles_file: Path,
) -> None:
    fake_client.failures = {"Third": BpsRequestError("HTTP 400 Bad Request")}
    cli_runner.invoke(cli.app, _run_args(source_workbook, profiles_file))

    result = cli_runner.invoke(cli.app, ["status", str(source_workbook.with_name("orders_status.xlsx"))])

    assert result.exit_code == 0, result.stdout
    assert "NotStarted=0 Success=2 Error=1" in result.stdout
    assert "  A-3: HTTP 400 Bad Request" in result.stdout


def test_inspect_lists_classified_columns(cli_runner: CliRunner, source_workbook: Path, profiles_file: Path) -> None:
    result = cli_runner.invoke(
        cli.app,
        ["inspect", str(source_workbook), "--profile", "orders", "--config", str(profiles_file), "--detail"],
    )

    assert result.exit_code == 0, result.stdout
    lines = result.stdout.splitlines()
    assert "id_column:  " in lines
    assert "rows: 3" in lines
    assert "  Amount -> WFD_AttDecimal1 [Decimal]" in lines
    assert "  Approved -> WFD_AttBool1 [Boolean]" in lines
    assert "  Customer -> WFD_AttChoose1 [ChoicePicker]" in lines
    assert "  Qty -> DET_Int1 [Integer]" in lines
