from __future__ import annotations

from typer.testing import CliRunner

from conftest import StubGitLabClient, make_project

from notion2gitlab import cli, pipeline
from notion2gitlab.services.gitlab_client import AUTH_FAILED_MESSAGE, GitLabApiError
from notion2gitlab.state import load_state

runner = CliRunner()

HEX_ID = "0123456789abcdef0123456789abcdef"


def _export(tmp_path):
    export = tmp_path / "export"
    export.mkdir()
    (export / "Tasks.csv").write_text(
        f"Name,Notion ID,Status\nFirst,{HEX_ID},Open\nSecond,{'f' * 32},Done\n",
        encoding="utf-8",
    )
    return export


class UnauthorizedClient(StubGitLabClient):
    def validate_connection(self):
        raise GitLabApiError(401, {"message": "401 Unauthorized"})


def test_inspect_reports_detected_column(tmp_path) -> None:
    result = runner.invoke(cli.app, ["inspect", str(_export(tmp_path))])

    assert result.exit_code == 0
    assert "Selected CSV: Tasks.csv (2 rows)" in result.output
    assert "Detected Notion ID column: Notion ID" in result.output


def test_inspect_missing_export_fails(tmp_path) -> None:
    result = runner.invoke(cli.app, ["inspect", str(tmp_path / "missing")])

    assert result.exit_code == 1


def test_check_reports_auth_failure(monkeypatch) -> None:
    monkeypatch.setattr(cli, "create_client", lambda *args, **kwargs: UnauthorizedClient())

    result = runner.invoke(cli.app, ["check", "--domain", "gitlab.example.com", "--token", "bad"])

    assert result.exit_code == 1
    assert AUTH_FAILED_MESSAGE in result.output


def test_check_lists_projects(monkeypatch) -> None:
    client = StubGitLabClient([make_project(1, "team/api")])
    monkeypatch.setattr(cli, "create_client", lambda *args, **kwargs: client)

    result = runner.invoke(cli.app, ["check", "--domain", "gitlab.example.com", "--token", "t"])

    assert result.exit_code == 0
    assert "Connected as importer" in result.output
    assert "Found 1 accessible projects" in result.output


def test_run_requires_credentials(tmp_path) -> None:
    result = runner.invoke(cli.app, ["run", str(_export(tmp_path)), "--title-column", "Name"])

    assert result.exit_code != 0


def test_run_dry_run_with_filter(monkeypatch, tmp_path) -> None:
    client = StubGitLabClient([make_project(1, "team/api")])
    monkeypatch.setattr(pipeline, "create_client", lambda *args, **kwargs: client)
    state_file = tmp_path / "state.json"

    result = runner.invoke(
        cli.app,
        [
            "run",
            str(_export(tmp_path)),
            "--domain",
            "gitlab.example.com",
            "--token",
            "t",
            "--title-column",
            "Name",
            "--default-repository",
            "team/api",
            "--filter",
            "Status:equals:Open",
            "--state-file",
            str(state_file),
            "--dry-run",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Rows after filters: 1" in result.output
    assert "Valid rows: 1" in result.output
    assert client.created == []

    saved = load_state(state_file)
    assert [rule.value for rule in saved.filters] == ["Open"]


def test_run_creates_issues(monkeypatch, tmp_path) -> None:
    client = StubGitLabClient([make_project(1, "team/api")])
    monkeypatch.setattr(pipeline, "create_client", lambda *args, **kwargs: client)

    result = runner.invoke(
        cli.app,
        [
            "run",
            str(_export(tmp_path)),
            "--domain",
            "gitlab.example.com",
            "--token",
            "t",
            "--title-column",
            "Name",
            "--default-repository",
            "team/api",
            "--label",
            "imported",
            "--rate-limit",
            "0",
            "--output-dir",
            str(tmp_path / "results"),
            "--state-file",
            str(tmp_path / "state.json"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Import complete" in result.output
    assert [payload.labels for _, payload in client.created] == ["imported", "imported"]
    assert list((tmp_path / "results").glob("export-results-*.csv"))


def test_run_rejects_malformed_filter(tmp_path) -> None:
    result = runner.invoke(
        cli.app,
        [
            "run",
            str(_export(tmp_path)),
            "--domain",
            "gitlab.example.com",
            "--token",
            "t",
            "--title-column",
            "Name",
            "--filter",
            "Status:between:1",
            "--state-file",
            str(tmp_path / "state.json"),
        ],
    )

    assert result.exit_code == 2


def test_rerun_with_same_filter_does_not_duplicate_rules(monkeypatch, tmp_path) -> None:
    client = StubGitLabClient([make_project(1, "team/api")])
    monkeypatch.setattr(pipeline, "create_client", lambda *args, **kwargs: client)
    export = _export(tmp_path)
    state_file = tmp_path / "state.json"
    args = [
        "run",
        str(export),
        "--domain",
        "gitlab.example.com",
        "--token",
        "t",
        "--title-column",
        "Name",
        "--default-repository",
        "team/api",
        "--filter",
        "Status:equals:Open",
        "--state-file",
        str(state_file),
        "--dry-run",
    ]

    for _ in range(2):
        result = runner.invoke(cli.app, args)
        assert result.exit_code == 0, result.output

    assert [rule.value for rule in load_state(state_file).filters] == ["Open"]

    restored = runner.invoke(cli.app, [arg for arg in args if arg not in ("--filter", "Status:equals:Open")])

    assert restored.exit_code == 0, restored.output
    assert "Rows after filters: 1" in restored.output
    assert [rule.value for rule in load_state(state_file).filters] == ["Open"]
