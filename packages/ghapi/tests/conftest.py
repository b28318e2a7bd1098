import httpx
import pytest

from ghapi import GitHubClient, MemoryStore, TokenSession


class FakeGitHub:
    """Serves canned responses keyed by URL path and records requests."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, path, json=None, status=200, headers=None):
        """Serve `json`, or raw bytes when `json` is bytes."""
        self.routes[path] = [(status, json, headers or {})]

    def add_sequence(self, path, *responses):
        """Each response is (status, json) or an exception to raise; the last one repeats."""
        self.routes[path] = [
            r if isinstance(r, Exception) else (r[0], r[1], {}) for r in responses
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get(request.url.path)
        if not responses:
            return httpx.Response(404, json={"message": "Not Found"})
        entry = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(entry, Exception):
            raise entry
        status, body, headers = entry
        if isinstance(body, bytes):
            return httpx.Response(status, content=body, headers=headers)
        return httpx.Response(status, json=body, headers=headers)

    @property
    def urls(self):
        return [str(r.url) for r in self.requests]


@pytest.fixture
def local_store():
    return MemoryStore()


@pytest.fixture
def session_store():
    return MemoryStore()


@pytest.fixture
def session(local_store, session_store):
    return TokenSession(local_store=local_store, session_store=session_store)


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def make_client(session, github):
    def make(**kwargs):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(github.handler))
        kwargs.setdefault("min_wait", 0)
        kwargs.setdefault("max_wait", 0)
        return GitHubClient(session=session, http_client=http_client, **kwargs)

    return make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def authed_client(client):
    client.set_access_token("sometoken")
    return client
