"""GitHub API client."""

import asyncio
import binascii
import logging
from collections.abc import AsyncIterator, Awaitable, Mapping, Sequence
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from .auth import TokenSession
from .errors import GitHubContentError
from .models import FileContent, Page
from .storage import StoragePlan
from .urls import API_ROOT, build_api_url, parse_link_header, redact_token

logger = logging.getLogger(__name__)

# Retry configuration; one attempt means failures propagate immediately
DEFAULT_MAX_RETRIES = 1
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 10  # seconds

# Retryable exceptions
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.NetworkError,
)

Route = str | Sequence[Any]


def is_retryable(exc: BaseException) -> bool:
    """Network errors and 5xx responses are worth another attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


def create_retry_decorator(
    max_retries: int = DEFAULT_MAX_RETRIES,
    min_wait: float = DEFAULT_MIN_WAIT,
    max_wait: float = DEFAULT_MAX_WAIT,
):
    """Create a retry decorator with specified max attempts."""
    return retry(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(max(max_retries, 1)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


class GitHubClient:
    """
    Asynchronous GitHub REST API client.

    Request methods build their URL when called, so a missing token raises
    UnauthenticatedError right away; the returned awaitable performs the GET
    and resolves with the parsed JSON body.
    """

    BASE_URL = API_ROOT

    def __init__(
        self,
        token: str | None = None,
        session: TokenSession | None = None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_wait: float = DEFAULT_MIN_WAIT,
        max_wait: float = DEFAULT_MAX_WAIT,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub access token (optional, may be set later)
            session: Token session; defaults to one backed by the keyring
                and a process store
            http_client: Shared httpx.AsyncClient; when omitted a client is
                opened per request
            base_url: Custom base URL (defaults to GitHub API)
            timeout: Request timeout in seconds for per-request clients
            max_retries: Maximum attempts per request (default: 1, no retry)
            min_wait: Minimum backoff between attempts in seconds
            max_wait: Maximum backoff between attempts in seconds
        """
        if session is None:
            session = TokenSession.with_default_stores(token)
        elif token:
            session.set_access_token(token)
        self.session = session
        self.http_client = http_client
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.max_retries = max_retries
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "ghapi",
        }
        logger.info("GitHub client ready, base_url=%s, max_retries=%d", self.base_url, max_retries)

    # ============ Token ============

    def has_access_token(self) -> bool:
        """True if a token is in memory or can be loaded from storage."""
        return self.session.has_access_token()

    def set_access_token(
        self, token: str | None, plan: StoragePlan | str | None = StoragePlan.NONE
    ) -> None:
        """Set (or clear, with a falsy token) the token; see TokenSession."""
        self.session.set_access_token(token, plan)

    # ============ Requests ============

    def build_api_url(self, route: Route, query_args: Mapping[str, Any] | None = None) -> str:
        """
        Build the URL for an API route.

        Args:
            route: Path as a string or a list of segments
            query_args: Query arguments; access_token is added unless given

        Raises:
            UnauthenticatedError: If no token can be found
        """
        token = self.session.require_token()
        return build_api_url(route, query_args, token, base_url=self.base_url)

    async def _send(self, url: str, **options: Any) -> httpx.Response:
        """Issue a GET, with retry when enabled."""

        @create_retry_decorator(self.max_retries, self.min_wait, self.max_wait)
        async def do_request() -> httpx.Response:
            logger.debug("Request: GET %s", redact_token(url))
            if self.http_client is not None:
                headers = {**self.headers, **(options.get("headers") or {})}
                extra = {k: v for k, v in options.items() if k != "headers"}
                response = await self.http_client.get(url, headers=headers, **extra)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
                    response = await client.get(url, **options)
            logger.debug("Response: GET %s (status=%d)", redact_token(url), response.status_code)
            response.raise_for_status()
            return response

        return await do_request()

    async def _get_json(self, url: str, **options: Any) -> Any:
        response = await self._send(url, **options)
        return response.json()

    def get(
        self,
        route: Route,
        query_args: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> Awaitable[Any]:
        """
        GET an API route and resolve with the parsed JSON body.

        Extra keyword options are passed to httpx (headers, timeout, ...).
        HTTP errors propagate as httpx exceptions.
        """
        url = self.build_api_url(route, query_args)
        return self._get_json(url, **options)

    # ============ Listings ============

    def list_repo_users(self, owner: str, repo: str) -> Awaitable[list[dict]]:
        """List collaborators of a repository."""
        return self.get(["repos", owner, repo, "collaborators"])

    def list_repo_issues(
        self, owner: str, repo: str, args: Mapping[str, Any] | None = None
    ) -> Awaitable[list[dict]]:
        """
        List issues of a repository (first page only; see paginate).

        Args:
            owner: Repository owner
            repo: Repository name
            args: Extra query args, e.g. {"labels": ["bug", "ui"]}
        """
        return self.get(["repos", owner, repo, "issues"], args)

    def list_repos(self) -> Awaitable[list[dict]]:
        return self.get(["user", "repos"])

    def list_orgs(self) -> Awaitable[list[dict]]:
        return self.get(["user", "orgs"])

    def list_org_repos(self, org: str) -> Awaitable[list[dict]]:
        return self.get(["orgs", org, "repos"])

    # ============ Contents ============

    def get_file(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> Awaitable[str]:
        """
        Download a file and resolve with its text.

        Files too large for the contents endpoint (empty content with
        encoding "none") are fetched from their download_url instead.

        Args:
            owner: Repository owner
            repo: Repository name
            path: File path in repository, '/' separated
            ref: Branch/tag/commit (default: repository default branch)
        """
        logger.info("Fetching file content: %s/%s path=%s", owner, repo, path)
        segments = [segment for segment in path.split("/") if segment]
        pending = self.get(["repos", owner, repo, "contents", *segments], {"ref": ref})
        return self._decode_file(pending, path)

    async def _decode_file(self, pending: Awaitable[Any], path: str) -> str:
        data = await pending
        if not isinstance(data, dict) or "content" not in data:
            logger.error("Path is not a file: %s", path)
            raise GitHubContentError(f"Path is not a file: {path}")
        try:
            file = FileContent.model_validate(data)
        except ValidationError as e:
            raise GitHubContentError(f"Unexpected contents payload: {path}") from e

        if file.encoding == "none":
            if not file.download_url:
                logger.error("File has no content: %s", path)
                raise GitHubContentError(f"File has no content: {path}")
            logger.debug("Downloading from URL: %s", file.download_url)
            response = await self._send(file.download_url)
            decoded = response.text
        else:
            try:
                decoded = file.decoded()
            except (binascii.Error, UnicodeDecodeError) as e:
                logger.error("Failed to decode %s: %s", path, e)
                raise GitHubContentError(f"Cannot decode file content: {path}") from e
        logger.debug("File content fetched: %s (%d chars)", path, len(decoded))
        return decoded

    # ============ Aggregates ============

    def list_all_org_repos(self) -> Awaitable[list[dict]]:
        """
        List the repositories of every organization the user belongs to.

        Per-org requests run concurrently. Any failure fails the whole call.
        """
        return self._gather_org_repos(self.list_orgs())

    async def _gather_org_repos(self, pending_orgs: Awaitable[list[dict]]) -> list[dict]:
        orgs = await pending_orgs
        logger.info("Fetching repos for %d organizations", len(orgs))
        per_org = await asyncio.gather(*(self.list_org_repos(org["login"]) for org in orgs))
        return [repo for repos in per_org for repo in repos]

    def list_all_repos(self) -> Awaitable[list[dict]]:
        """List the user's repositories followed by all organization repositories."""
        pending = [self.list_repos(), self.list_all_org_repos()]
        return self._merge_repos(pending)

    async def _merge_repos(self, pending: list[Awaitable[list[dict]]]) -> list[dict]:
        try:
            results = await asyncio.gather(*pending)
        except Exception as e:
            logger.error("Failed to list all repos: %s", e)
            raise
        repos = [repo for batch in results for repo in batch]
        logger.info("Listed %d repos", len(repos))
        return repos

    # ============ Pagination ============

    def get_page(
        self, route: Route, query_args: Mapping[str, Any] | None = None
    ) -> Awaitable[Page]:
        """
        Fetch one page of a listing.

        `route` may also be a continuation URL taken from a previous
        Page.next_url, which is fetched as-is.
        """
        if isinstance(route, str) and route.startswith(("http://", "https://")):
            self.session.require_token()
            url = route
        else:
            url = self.build_api_url(route, query_args)
        return self._fetch_page(url)

    async def _fetch_page(self, url: str) -> Page:
        response = await self._send(url)
        links = parse_link_header(response.headers.get("link"))
        return Page(items=response.json(), next_url=links.get("next"))

    def paginate(
        self,
        route: Route,
        query_args: Mapping[str, Any] | None = None,
        per_page: int | None = None,
    ) -> AsyncIterator[Any]:
        """
        Iterate over every item of a listing, following Link headers.

        Example:
            async for issue in client.paginate(["repos", "o", "r", "issues"]):
                ...
        """
        query = dict(query_args or {})
        if per_page:
            query["per_page"] = per_page
        first = self.get_page(route, query)
        return self._iter_items(first)

    async def _iter_items(self, first: Awaitable[Page]) -> AsyncIterator[Any]:
        page = await first
        count = 1
        while True:
            for item in page.items:
                yield item
            if not page.next_url:
                break
            count += 1
            logger.debug("Fetching page %d", count)
            page = await self.get_page(page.next_url)
        logger.debug("Pagination finished after %d pages", count)
