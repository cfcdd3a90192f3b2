"""GitLab REST v4 clients used to list projects and create issues."""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote, urlencode

import requests

from ..core.logging import get_logger
from ..models.gitlab import CreateIssuePayload, GitLabIssue, GitLabProject, GitLabUser

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

AUTH_FAILED_MESSAGE = "Invalid token or insufficient permissions"
UNREACHABLE_MESSAGE = "Could not reach GitLab server. Check the domain and try again."


class GitLabApiError(Exception):
    """Non-2xx response from GitLab (or the proxy) with the decoded error body."""

    def __init__(self, status_code: int, error_body: dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.error_body = error_body or {}
        message = self.error_body.get("message") or self.error_body.get("error") or "Unknown GitLab API error"
        if not isinstance(message, str):
            message = str(message)
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class IssueTrackerClient(Protocol):
    def validate_connection(self) -> GitLabUser: ...

    def list_projects(
        self,
        per_page: int = 100,
        page: int | None = None,
        search: str | None = None,
        archived: bool | None = None,
    ) -> list[GitLabProject]: ...

    def search_projects(self, search: str) -> list[GitLabProject]: ...

    def get_project_by_path(self, path_with_namespace: str) -> GitLabProject | None: ...

    def create_issue(self, project_id: int, payload: CreateIssuePayload) -> GitLabIssue: ...


def normalize_base_url(domain: str) -> str:
    domain = domain.strip().rstrip("/")
    if not domain:
        raise ValueError("GitLab domain must not be empty.")
    return domain if domain.startswith("http") else f"https://{domain}"


def _decode_error(response: requests.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.reason or f"HTTP {response.status_code}"}
    if isinstance(body, dict):
        return body
    return {"message": str(body)}


def _project_query(per_page: int, page: int | None, search: str | None, archived: bool | None) -> dict[str, str]:
    params = {"membership": "true", "per_page": str(per_page)}
    if page:
        params["page"] = str(page)
    if search:
        params["search"] = search
    if archived is not None:
        params["archived"] = str(archived).lower()
    return params


class _BaseGitLabClient:
    """Shared endpoint logic; subclasses provide ``_request``."""

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        raise NotImplementedError

    def validate_connection(self) -> GitLabUser:
        return GitLabUser.model_validate(self._request("GET", "/user"))

    def list_projects(
        self,
        per_page: int = 100,
        page: int | None = None,
        search: str | None = None,
        archived: bool | None = None,
    ) -> list[GitLabProject]:
        data = self._request("GET", "/projects", params=_project_query(per_page, page, search, archived))
        return [GitLabProject.model_validate(item) for item in data or []]

    def search_projects(self, search: str) -> list[GitLabProject]:
        return self.list_projects(per_page=20, search=search)

    def get_project_by_path(self, path_with_namespace: str) -> GitLabProject | None:
        try:
            data = self._request("GET", f"/projects/{quote(path_with_namespace, safe='')}")
        except GitLabApiError as exc:
            if exc.is_not_found:
                return None
            raise
        return GitLabProject.model_validate(data)

    def create_issue(self, project_id: int, payload: CreateIssuePayload) -> GitLabIssue:
        data = self._request("POST", f"/projects/{project_id}/issues", body=payload.to_request_body())
        return GitLabIssue.model_validate(data)


class GitLabClient(_BaseGitLabClient):
    """Talks to ``<domain>/api/v4`` directly with a personal access token."""

    def __init__(
        self,
        domain: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitLab token must not be empty.")
        self.api_url = f"{normalize_base_url(domain)}/api/v4"
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"PRIVATE-TOKEN": token, "Content-Type": "application/json"})

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.api_url}{path}"
        logger.debug("gitlab.request", method=method, path=path)
        response = self._session.request(method, url, params=params, json=body, timeout=self.timeout)
        if not response.ok:
            raise GitLabApiError(response.status_code, _decode_error(response))
        return response.json()

    def close(self) -> None:
        self._session.close()


class ProxiedGitLabClient(_BaseGitLabClient):
    """Routes every call through the ``/v1/gitlab-proxy`` endpoint."""

    def __init__(
        self,
        proxy_url: str,
        domain: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitLab token must not be empty.")
        self.proxy_url = proxy_url
        self.domain = domain
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        if params:
            path = f"{path}?{urlencode(params)}"
        envelope = {"domain": self.domain, "token": self.token, "method": method, "path": path, "body": body}
        response = self._session.post(self.proxy_url, json=envelope, timeout=self.timeout)
        if not response.ok:
            raise GitLabApiError(response.status_code, _decode_error(response))
        return response.json()

    def close(self) -> None:
        self._session.close()


def create_client(
    domain: str,
    token: str,
    *,
    proxy_url: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> GitLabClient | ProxiedGitLabClient:
    if proxy_url:
        return ProxiedGitLabClient(proxy_url, domain, token, timeout=timeout)
    return GitLabClient(domain, token, timeout=timeout)


def list_all_projects(
    client: IssueTrackerClient,
    *,
    per_page: int = 100,
    max_pages: int = 10,
) -> list[GitLabProject]:
    """Walk project pages until a short page or ``max_pages``."""

    projects: list[GitLabProject] = []
    for page in range(1, max_pages + 1):
        batch = client.list_projects(per_page=per_page, page=page)
        projects.extend(batch)
        if len(batch) < per_page:
            break
    else:
        logger.warning("gitlab.projects.truncated", max_pages=max_pages, fetched=len(projects))
    return projects


def describe_client_error(exc: BaseException) -> str:
    """Human-readable message separating auth, connectivity and API failures."""

    if isinstance(exc, GitLabApiError):
        if exc.is_unauthorized:
            return AUTH_FAILED_MESSAGE
        return exc.message
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return UNREACHABLE_MESSAGE
    return str(exc) or exc.__class__.__name__
