"""Helpers for gh_burndown components."""

from .dotenv_loader import ensure_env_loaded
from .github_client import GitHubClient

__all__ = [
    "ensure_env_loaded",
    "GitHubClient",
]
