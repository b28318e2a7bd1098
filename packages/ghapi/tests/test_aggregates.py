import asyncio
import logging

import httpx
import pytest


def test_list_all_org_repos(authed_client, github):
    github.add("/user/orgs", json=[{"login": "A"}, {"login": "B"}])
    github.add("/orgs/A/repos", json=[{"name": "a1"}, {"name": "a2"}])
    github.add("/orgs/B/repos", json=[{"name": "b1"}])

    repos = asyncio.run(authed_client.list_all_org_repos())

    assert sorted(r["name"] for r in repos) == ["a1", "a2", "b1"]


def test_list_all_org_repos_without_orgs(authed_client, github):
    github.add("/user/orgs", json=[])

    assert asyncio.run(authed_client.list_all_org_repos()) == []
    assert len(github.requests) == 1


def test_list_all_org_repos_fails_when_one_org_fails(authed_client, github):
    github.add("/user/orgs", json=[{"login": "A"}, {"login": "B"}])
    github.add("/orgs/A/repos", json=[{"name": "a1"}])
    github.add("/orgs/B/repos", json={"message": "boom"}, status=500)

    with pytest.raises(httpx.HTTPStatusError) as exc_info:
        asyncio.run(authed_client.list_all_org_repos())

    assert exc_info.value.request.url.path == "/orgs/B/repos"


def test_list_all_org_repos_fails_when_org_listing_fails(authed_client, github):
    github.add("/user/orgs", json={"message": "Forbidden"}, status=403)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(authed_client.list_all_org_repos())
    assert len(github.requests) == 1


def test_list_all_repos(authed_client, github):
    github.add("/user/repos", json=[{"name": "mine"}])
    github.add("/user/orgs", json=[{"login": "A"}])
    github.add("/orgs/A/repos", json=[{"name": "a1"}])

    repos = asyncio.run(authed_client.list_all_repos())

    assert repos == [{"name": "mine"}, {"name": "a1"}]


def test_list_all_repos_logs_and_propagates(authed_client, github, caplog):
    github.add("/user/repos", json=[{"name": "mine"}])
    github.add("/user/orgs", json={"message": "boom"}, status=500)

    with caplog.at_level(logging.ERROR, logger="ghapi.client"):
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(authed_client.list_all_repos())

    assert "Failed to list all repos" in caplog.text
