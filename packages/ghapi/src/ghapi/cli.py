"""CLI for the GitHub API client."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import click
import httpx
from dotenv import load_dotenv
from keyring.errors import KeyringError

from .auth import get_token
from .client import DEFAULT_MAX_RETRIES, GitHubClient
from .errors import GitHubAPIError, UnauthenticatedError
from .storage import StoragePlan
from .urls import redact_token

logger = logging.getLogger(__name__)


def setup_logging(verbose: int) -> None:
    """Setup logging."""
    level = logging.DEBUG if verbose >= 2 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


def run(request: Callable[[], Awaitable[Any]]) -> Any:
    """Run a client request to completion, turning failures into CLI errors."""

    async def resolve() -> Any:
        return await request()

    try:
        return asyncio.run(resolve())
    except UnauthenticatedError as e:
        raise click.ClickException(
            f"{e}. Pass --token, set GITHUB_TOKEN or run `ghapi login TOKEN`."
        ) from e
    except (httpx.HTTPError, GitHubAPIError) as e:
        logger.debug("Request failed", exc_info=True)
        raise click.ClickException(redact_token(str(e))) from e


# ============ CLI Group ============

@click.group()
@click.option("--token", envvar="GITHUB_TOKEN", help="GitHub token")
@click.option("--use-gh-cli", is_flag=True, help="Use gh cli credentials")
@click.option(
    "--store",
    type=click.Choice([plan.value for plan in StoragePlan]),
    default=StoragePlan.NONE.value,
    show_default=True,
    help="Where to keep a token given by --token",
)
@click.option("--retries", "-r", type=int, default=DEFAULT_MAX_RETRIES, help="Attempts per request")
@click.option("-v", "--verbose", count=True, help="Verbosity (-v, -vv)")
@click.pass_context
def cli(
    ctx: click.Context,
    token: str | None,
    use_gh_cli: bool,
    store: str,
    retries: int,
    verbose: int,
) -> None:
    """GitHub API client CLI."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    client = ctx.obj.get("client") or GitHubClient(max_retries=retries)
    resolved = get_token(token, use_gh_cli=use_gh_cli)
    if resolved:
        client.set_access_token(resolved, store)
    ctx.obj["client"] = client


# ============ Token Commands ============

@cli.command()
@click.argument("token")
@click.pass_context
def login(ctx, token):
    """Save TOKEN to the local store."""
    try:
        ctx.obj["client"].set_access_token(token, StoragePlan.LOCAL)
    except KeyringError as e:
        raise click.ClickException(f"Cannot save token to the keyring: {e}") from e
    click.echo("Token saved.")


@cli.command()
@click.pass_context
def logout(ctx):
    """Remove the stored token."""
    client = ctx.obj["client"]
    client.set_access_token(None, StoragePlan.LOCAL)
    client.set_access_token(None, StoragePlan.SESSION)
    click.echo("Token removed.")


@cli.command()
@click.pass_context
def status(ctx):
    """Show whether a token is available."""
    if ctx.obj["client"].has_access_token():
        click.echo("Access token: available")
    else:
        click.echo("Access token: missing")


# ============ Listing Commands ============

@cli.command()
@click.option("--mine", is_flag=True, help="Only the user's own repositories")
@click.pass_context
def repos(ctx, mine):
    """List repositories, including those of the user's organizations."""
    client = ctx.obj["client"]
    echo_json(run(client.list_repos if mine else client.list_all_repos))


@cli.command()
@click.pass_context
def orgs(ctx):
    """List the user's organizations."""
    echo_json(run(ctx.obj["client"].list_orgs))


@cli.command("org-repos")
@click.argument("org")
@click.pass_context
def org_repos(ctx, org):
    """List the repositories of ORG."""
    client = ctx.obj["client"]
    echo_json(run(lambda: client.list_org_repos(org)))


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.option("-l", "--label", "labels", multiple=True, help="Label filter (repeatable)")
@click.option("-a", "--all", "all_pages", is_flag=True, help="Follow pagination")
@click.pass_context
def issues(ctx, owner, repo, labels, all_pages):
    """List issues of OWNER/REPO."""
    client = ctx.obj["client"]
    args = {"labels": list(labels)} if labels else None

    async def collect():
        return [issue async for issue in client.paginate(["repos", owner, repo, "issues"], args)]

    if all_pages:
        echo_json(run(collect))
    else:
        echo_json(run(lambda: client.list_repo_issues(owner, repo, args)))


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.pass_context
def collaborators(ctx, owner, repo):
    """List collaborators of OWNER/REPO."""
    client = ctx.obj["client"]
    echo_json(run(lambda: client.list_repo_users(owner, repo)))


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.argument("path")
@click.option("--ref", help="Branch/tag/commit")
@click.pass_context
def cat(ctx, owner, repo, path, ref):
    """Print the contents of PATH in OWNER/REPO."""
    client = ctx.obj["client"]
    click.echo(run(lambda: client.get_file(owner, repo, path, ref=ref)), nl=False)


def main() -> None:
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
