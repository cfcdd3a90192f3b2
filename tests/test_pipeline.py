from __future__ import annotations

from pathlib import Path

import pytest

from conftest import StubGitLabClient, make_project

from notion2gitlab.files import ExportFile, categorize_files, collect_files
from notion2gitlab.filters import create_filter_rule
from notion2gitlab.models.wizard import IssueMappingConfig
from notion2gitlab.pipeline import ImportPipeline, PipelineConfig, select_csv_file
from notion2gitlab.state import load_state

IDS = [f"{index:032x}" for index in range(1, 5)]


def _write_export(root: Path) -> Path:
    export = root / "export"
    (export / "Tasks").mkdir(parents=True)
    (export / "Tasks.csv").write_text(
        "\ufeffName,Notion ID,Status,Repo,Tags\n"
        f"Fix login,{IDS[0]},Open,team/api,bug\n"
        f"Write docs,{IDS[1]},Open,,docs\n"
        f"Ghost,{IDS[2]},Open,team/missing,\n"
        f"Old task,{IDS[3]},Done,team/api,\n",
        encoding="utf-8",
    )
    (export / "Tasks" / f"Fix login {IDS[0]}.md").write_text(
        "# Fix login\n\nStatus: Open\n\nCannot log in.\n",
        encoding="utf-8",
    )
    (export / "Tasks" / "diagram.png").write_bytes(b"\x89PNG")
    return export


def _config(tmp_path: Path, client: StubGitLabClient, **changes) -> PipelineConfig:
    config = PipelineConfig(
        export_path=_write_export(tmp_path),
        output_dir=tmp_path / "results",
        gitlab_domain="gitlab.example.com",
        issue_mapping=IssueMappingConfig(
            title_column="Name",
            repository_column="Repo",
            default_repository="team/web",
            label_columns=["Tags"],
        ),
        filters=[create_filter_rule("Status", "not_equals", "Done")],
        rate_limit_seconds=0,
        state_path=tmp_path / "state.json",
        client_factory=lambda: client,
    )
    for key, value in changes.items():
        setattr(config, key, value)
    return config


def _client() -> StubGitLabClient:
    return StubGitLabClient(
        [make_project(1, "team/api")],
        extra_projects={"team/web": make_project(2, "team/web")},
    )


def test_collect_and_categorize_export_files(tmp_path) -> None:
    export = _write_export(tmp_path)

    csv_files, markdown_files, other_files = categorize_files(collect_files(export))

    assert [file.path for file in csv_files] == ["Tasks.csv"]
    assert [file.path for file in markdown_files] == [f"Tasks/Fix login {IDS[0]}.md"]
    assert [file.name for file in other_files] == ["diagram.png"]


def test_collect_files_rejects_missing_directory(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        collect_files(tmp_path / "nope")


def test_select_csv_file() -> None:
    first = ExportFile(name="a.csv", path="a.csv", kind="csv", source=Path("a.csv"))
    second = ExportFile(name="b.csv", path="sub/b.csv", kind="csv", source=Path("sub/b.csv"))

    assert select_csv_file([first], None) is first
    assert select_csv_file([first, second], "sub/b.csv") is second
    assert select_csv_file([first, second], "b.csv") is second
    with pytest.raises(ValueError):
        select_csv_file([first, second], None)
    with pytest.raises(ValueError):
        select_csv_file([first], "c.csv")
    with pytest.raises(ValueError):
        select_csv_file([], None)


def test_dry_run_previews_without_creating_issues(tmp_path) -> None:
    client = _client()

    result = ImportPipeline(_config(tmp_path, client, dry_run=True)).run()

    assert result.status == "previewed"
    assert result.notion_id_column == "Notion ID"
    assert (result.rows_total, result.rows_filtered, result.rows_valid, result.rows_submitted) == (4, 3, 2, 2)
    assert result.documents_indexed == 1
    assert result.results_path is None
    assert client.created == []
    assert client.path_lookups == ["team/web"]

    preview = result.preview_rows
    assert preview[0].description == "Cannot log in."
    assert preview[0].labels == ["bug"]
    assert preview[1].repository.path == "team/web"
    assert preview[2].validation_errors == ['Repository "team/missing" not found in your GitLab projects']

    saved = load_state(tmp_path / "state.json")
    assert saved is not None
    assert saved.gitlab.username == "importer"
    assert saved.notion_id_column == "Notion ID"
    assert len(saved.preview_rows) == 3
    assert saved.processing.status == "idle"


def test_full_run_creates_issues_and_writes_results(tmp_path) -> None:
    client = _client()

    result = ImportPipeline(_config(tmp_path, client)).run()

    assert result.status == "completed"
    assert (result.succeeded, result.failed, result.skipped) == (2, 0, 0)
    assert [project_id for project_id, _ in client.created] == [1, 2]

    first, second = (payload for _, payload in client.created)
    assert first.description == "Cannot log in."
    assert first.labels == "bug"
    assert "**Tags:** docs" in second.description
    assert "**Name:**" not in second.description

    assert result.results_path is not None
    lines = result.results_path.read_text(encoding="utf-8").split("\n")
    assert lines[0] == "Notion ID,Title,Status,Issue URL,Error,Timestamp"
    assert len(lines) == 3
    assert lines[1].startswith(f"{IDS[0]},Fix login,success,https://gitlab.example.com/issues/1,")

    saved = load_state(tmp_path / "state.json")
    assert saved.processing.status == "completed"
    assert saved.processing.success_count == 2


def test_failed_rows_do_not_stop_the_import(tmp_path) -> None:
    client = _client()
    client.fail_titles = {"Fix login"}

    result = ImportPipeline(_config(tmp_path, client)).run()

    assert result.status == "completed"
    assert (result.succeeded, result.failed) == (1, 1)


def test_explicit_id_column_and_disabled_markdown(tmp_path) -> None:
    client = _client()
    config = _config(tmp_path, client, dry_run=True, notion_id_column="Name")
    config.issue_mapping = config.issue_mapping.model_copy(update={"use_markdown_description": False})

    result = ImportPipeline(config).run()

    assert result.notion_id_column == "Name"
    assert result.documents_indexed == 0
    assert result.preview_rows[0].notion_id == "Fix login"
    assert result.preview_rows[0].markdown_file is None


def test_bracketed_text_is_printed_literally(tmp_path) -> None:
    export = tmp_path / "brackets"
    export.mkdir()
    (export / "Tasks.csv").write_text(
        "Name,Notion ID,Repo\n"
        f"Fix [/] parser,{IDS[0]},team/api\n"
        f"Third [/red] item,{IDS[1]},team/api\n"
        f"[bold]Unknown repo,{IDS[2]},[team/x]\n",
        encoding="utf-8",
    )
    client = StubGitLabClient([make_project(1, "team/api")], fail_titles={"Fix [/] parser"})
    config = PipelineConfig(
        export_path=export,
        output_dir=tmp_path / "results",
        issue_mapping=IssueMappingConfig(title_column="Name", repository_column="Repo"),
        rate_limit_seconds=0,
        client_factory=lambda: client,
    )

    result = ImportPipeline(config).run()

    assert result.status == "completed"
    assert result.preview_rows[2].validation_errors == ['Repository "[team/x]" not found in your GitLab projects']
    assert (result.succeeded, result.failed) == (1, 1)
    assert [payload.title for _, payload in client.created] == ["Third [/red] item"]
