"""Service exports."""

from . import gitlab_client

__all__ = ["gitlab_client"]
