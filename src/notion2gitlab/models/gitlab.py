"""Pydantic schemas for the subset of the GitLab REST API we consume."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class GitLabUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    name: str = ""
    email: str | None = None
    avatar_url: str | None = None
    web_url: str | None = None


class GitLabProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    path: str
    path_with_namespace: str
    name_with_namespace: str | None = None
    web_url: str | None = None
    description: str | None = None
    visibility: Literal["private", "internal", "public"] | None = None
    archived: bool = False


class GitLabIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    iid: int
    project_id: int
    title: str
    web_url: str
    description: str | None = None
    state: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    labels: list[str] = Field(default_factory=list)


class CreateIssuePayload(BaseModel):
    title: str
    description: str | None = None
    labels: str | None = Field(default=None, description="Comma separated label names.")

    def to_request_body(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)
