"""GitHub API client errors."""


class GitHubAPIError(Exception):
    """Base error for the GitHub API client."""


class UnauthenticatedError(GitHubAPIError):
    """Raised when no access token can be found in memory or storage."""

    def __init__(self, message: str = "Unable to find GitHub API access token"):
        super().__init__(message)


class GitHubContentError(GitHubAPIError, ValueError):
    """Raised when a contents payload cannot be decoded as a file."""
