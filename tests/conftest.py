from __future__ import annotations

from dataclasses import dataclass

import pytest

from notion2gitlab.core.config import get_settings
from notion2gitlab.models.gitlab import CreateIssuePayload, GitLabIssue, GitLabProject, GitLabUser


@dataclass
class StubMarkdown:
    """In-memory stand-in for an exported Markdown file."""

    path: str
    content: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def read_text(self) -> str:
        return self.content


class StubGitLabClient:
    """Records issue submissions and fails for titles listed in ``fail_titles``."""

    def __init__(
        self,
        projects: list[GitLabProject] | None = None,
        *,
        fail_titles: set[str] | None = None,
        extra_projects: dict[str, GitLabProject] | None = None,
    ) -> None:
        self.projects = projects or []
        self.fail_titles = fail_titles or set()
        self.extra_projects = extra_projects or {}
        self.created: list[tuple[int, CreateIssuePayload]] = []
        self.path_lookups: list[str] = []

    def validate_connection(self) -> GitLabUser:
        return GitLabUser(id=1, username="importer")

    def list_projects(self, per_page=100, page=None, search=None, archived=None) -> list[GitLabProject]:
        start = ((page or 1) - 1) * per_page
        return self.projects[start : start + per_page]

    def search_projects(self, search: str) -> list[GitLabProject]:
        return [project for project in self.projects if search.lower() in project.name.lower()]

    def get_project_by_path(self, path_with_namespace: str) -> GitLabProject | None:
        self.path_lookups.append(path_with_namespace)
        return self.extra_projects.get(path_with_namespace)

    def create_issue(self, project_id: int, payload: CreateIssuePayload) -> GitLabIssue:
        if payload.title in self.fail_titles:
            raise RuntimeError(f"cannot create {payload.title}")
        self.created.append((project_id, payload))
        iid = len(self.created)
        return GitLabIssue(
            id=1000 + iid,
            iid=iid,
            project_id=project_id,
            title=payload.title,
            web_url=f"https://gitlab.example.com/issues/{iid}",
        )


def make_project(project_id: int, path_with_namespace: str, name: str | None = None) -> GitLabProject:
    path = path_with_namespace.rsplit("/", 1)[-1]
    return GitLabProject(
        id=project_id,
        name=name or path.title(),
        path=path,
        path_with_namespace=path_with_namespace,
    )


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    for variable in ("NOTION2GITLAB_GITLAB_DOMAIN", "NOTION2GITLAB_GITLAB_TOKEN"):
        monkeypatch.delenv(variable, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
