import json

import pytest
from click.testing import CliRunner
from keyring.errors import NoKeyringError

from ghapi.cli import cli

NO_ENV_TOKEN = {"GITHUB_TOKEN": None, "GH_TOKEN": None}


@pytest.fixture
def invoke(client):
    runner = CliRunner()

    def run(*args):
        return runner.invoke(cli, list(args), obj={"client": client}, env=NO_ENV_TOKEN)

    return run


def test_status(invoke, client):
    assert "missing" in invoke("status").output
    client.set_access_token("abc")
    assert "available" in invoke("status").output


def test_missing_token_is_an_error(invoke, github):
    result = invoke("repos", "--mine")

    assert result.exit_code == 1
    assert "Unable to find GitHub API access token" in result.output
    assert github.requests == []


def test_token_option_with_session_store(invoke, session_store, local_store):
    result = invoke("--token", "abc", "--store", "session", "status")

    assert result.exit_code == 0
    assert session_store.get("gh-token") == "abc"
    assert local_store.get("gh-token") is None


def test_login_and_logout(invoke, local_store):
    assert invoke("login", "abc").exit_code == 0
    assert local_store.get("gh-token") == "abc"

    assert invoke("logout").exit_code == 0
    assert local_store.get("gh-token") is None


def test_issues(invoke, authed_client, github):
    github.add("/repos/dude/where/issues", json=[{"number": 7}])

    result = invoke("issues", "dude", "where", "-l", "bug", "-l", "ui")

    assert result.exit_code == 0
    assert json.loads(result.output) == [{"number": 7}]
    assert github.requests[0].url.params["labels"] == "bug,ui"


def test_repos(invoke, authed_client, github):
    github.add("/user/repos", json=[{"name": "mine"}])
    github.add("/user/orgs", json=[{"login": "A"}])
    github.add("/orgs/A/repos", json=[{"name": "a1"}])

    result = invoke("repos")

    assert result.exit_code == 0
    assert [r["name"] for r in json.loads(result.output)] == ["mine", "a1"]


def test_cat(invoke, authed_client, github):
    github.add("/repos/dude/where/contents/file.txt", json={"content": "aGVsbG8gd29ybGQ="})

    result = invoke("cat", "dude", "where", "file.txt")

    assert result.exit_code == 0
    assert result.output == "hello world"


def test_http_error_exit_code(invoke, authed_client, github):
    github.add("/user/orgs", json={"message": "Bad credentials"}, status=401)

    result = invoke("orgs")

    assert result.exit_code == 1
    assert "401" in result.output


def test_login_without_keyring_backend(invoke, session):
    class NoBackend:
        def get(self, key):
            return None

        def set(self, key, value):
            raise NoKeyringError("No recommended backend was available")

        def remove(self, key):
            pass

    session.local_store = NoBackend()

    result = invoke("login", "abc")

    assert result.exit_code == 1
    assert "Cannot save token to the keyring" in result.output
