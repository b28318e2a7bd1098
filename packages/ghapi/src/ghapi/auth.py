"""Access token handling."""

import logging
import os
import subprocess

from .errors import UnauthenticatedError
from .storage import (
    TOKEN_STORAGE_KEY,
    KeyValueStore,
    MemoryStore,
    StoragePlan,
    default_local_store,
)

logger = logging.getLogger(__name__)


def get_token_from_gh_cli() -> str | None:
    """
    Get GitHub token from gh cli.

    Returns:
        Token string or None if gh cli not available/authenticated
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            logger.info("Using token from gh cli")
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug("gh cli not available: %s", e)
    return None


def get_token(token: str | None = None, use_gh_cli: bool = False) -> str | None:
    """
    Discover a GitHub token.

    Priority:
    1. Explicitly provided token
    2. Environment variable GH_TOKEN / GITHUB_TOKEN
    3. gh cli (`gh auth token`) - only if use_gh_cli=True
    """
    if token:
        logger.debug("Using explicitly provided token")
        return token

    env_token = os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN")
    if env_token:
        logger.info("Using token from environment variable")
        return env_token

    if use_gh_cli:
        return get_token_from_gh_cli()

    return None


class TokenSession:
    """
    Holds the access token for one client.

    The token lives in memory and may additionally be written to a local
    (durable) or session store. When nothing is in memory the local store is
    consulted first, then the session store, and the value found is cached.
    Either store may be None, in which case it is skipped.
    """

    def __init__(
        self,
        token: str | None = None,
        local_store: KeyValueStore | None = None,
        session_store: KeyValueStore | None = None,
    ):
        self._token = token or None
        self.local_store = local_store
        self.session_store = session_store

    @classmethod
    def with_default_stores(cls, token: str | None = None) -> "TokenSession":
        """Session backed by the keyring (or a file store) and a process store."""
        return cls(token=token, local_store=default_local_store(), session_store=MemoryStore())

    @property
    def access_token(self) -> str | None:
        """The current token, loading it from storage if necessary."""
        if not self._token and self.local_store is not None:
            self._token = self.local_store.get(TOKEN_STORAGE_KEY) or None
            if self._token:
                logger.debug("Loaded token from local store")

        if not self._token and self.session_store is not None:
            self._token = self.session_store.get(TOKEN_STORAGE_KEY) or None
            if self._token:
                logger.debug("Loaded token from session store")

        return self._token

    def has_access_token(self) -> bool:
        return bool(self.access_token)

    def set_access_token(
        self, token: str | None, plan: StoragePlan | str | None = StoragePlan.NONE
    ) -> None:
        """
        Set the token to use. Pass a falsy value to clear it.

        Args:
            token: New token, or a falsy value to clear
            plan: Also write to the local or session store ('local' /
                'session'); None means memory only. A falsy token removes
                the stored key instead
        """
        plan = StoragePlan(plan or StoragePlan.NONE)
        self._token = token or None

        if plan is StoragePlan.LOCAL:
            store = self.local_store
        elif plan is StoragePlan.SESSION:
            store = self.session_store
        else:
            store = None

        if store is None:
            return
        if token:
            store.set(TOKEN_STORAGE_KEY, token)
            logger.info("Token saved to %s store", plan.value)
        else:
            store.remove(TOKEN_STORAGE_KEY)
            logger.info("Token removed from %s store", plan.value)

    def require_token(self) -> str:
        """Return the token or raise UnauthenticatedError."""
        token = self.access_token
        if not token:
            raise UnauthenticatedError()
        return token
