"""Asynchronous GitHub REST API client."""

from .auth import TokenSession, get_token
from .client import GitHubClient
from .errors import GitHubAPIError, GitHubContentError, UnauthenticatedError
from .models import FileContent, Page
from .storage import FileStore, KeyringStore, MemoryStore, StoragePlan

__all__ = [
    "GitHubClient",
    "TokenSession",
    "StoragePlan",
    "MemoryStore",
    "KeyringStore",
    "FileStore",
    "FileContent",
    "Page",
    "GitHubAPIError",
    "UnauthenticatedError",
    "GitHubContentError",
    "get_token",
]
