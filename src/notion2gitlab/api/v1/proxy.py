"""Server-side relay for GitLab calls made on behalf of a client."""

from __future__ import annotations

from typing import Any, Literal

import requests
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...core.config import AppSettings, get_settings
from ...core.logging import get_logger
from ...services.gitlab_client import normalize_base_url

logger = get_logger(__name__)

router = APIRouter()


class ProxyRequest(BaseModel):
    domain: str = Field(..., min_length=1, description="GitLab host, with or without scheme.")
    token: str = Field(..., min_length=1, description="Personal access token forwarded as PRIVATE-TOKEN.")
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    path: str = Field(..., description="API path below /api/v4, including any query string.")
    body: dict[str, Any] | None = None


def get_app_settings() -> AppSettings:
    return get_settings()


@router.post(
    "/gitlab-proxy",
    status_code=status.HTTP_200_OK,
    summary="Forward a request to the GitLab REST API.",
)
def proxy_gitlab(
    request: ProxyRequest,
    settings: AppSettings = Depends(get_app_settings),
) -> JSONResponse:
    """Relay the call and return GitLab's JSON and status code unchanged."""

    if not request.path.startswith("/"):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Path must start with '/'."},
        )

    try:
        url = f"{normalize_base_url(request.domain)}/api/v4{request.path}"
    except ValueError as exc:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})

    try:
        upstream = requests.request(
            request.method,
            url,
            json=request.body,
            headers={"PRIVATE-TOKEN": request.token, "Content-Type": "application/json"},
            timeout=settings.request_timeout_seconds,
        )
    except requests.RequestException as exc:
        logger.warning("proxy.upstream_unreachable", domain=request.domain, error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"message": "Could not reach GitLab server.", "error": str(exc)},
        )

    try:
        payload = upstream.json()
    except ValueError:
        payload = {"message": upstream.reason or f"HTTP {upstream.status_code}"}

    logger.info("proxy.forwarded", method=request.method, path=request.path, status_code=upstream.status_code)
    return JSONResponse(status_code=upstream.status_code, content=payload)
