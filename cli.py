# Copyright (C) 2025 Fabian Valle-simmons
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Terminal client for a running Explainify server.

GitHub is called directly; explanations and summaries go through the
server's relay endpoints, so the LLM key never leaves the server.
"""

import asyncio
import logging
import click
from config import Settings
from services import GitHubFetcher, RelayClient, Role
from browser import RepositoryBrowser
from workspace import RepoSession


def _fetcher(settings: Settings) -> GitHubFetcher:
    return GitHubFetcher(settings.github_token, api_url=settings.github_api_url, raw_url=settings.github_raw_url)


@click.group()
@click.option("--server", default="http://localhost:8000", show_default=True, help="Base URL of the Explainify server")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, server: str, verbose: bool):
    settings = Settings.from_env()
    logging.basicConfig(level="DEBUG" if verbose else settings.log_level)
    ctx.obj = {"settings": settings, "relay": RelayClient(server)}


@cli.command()
@click.argument("username")
@click.option("--page", default=1, show_default=True, help="Page of repositories to show")
@click.pass_context
def profile(ctx: click.Context, username: str, page: int):
    """Show a user's repositories and the summary of their profile README."""
    settings: Settings = ctx.obj["settings"]
    browser = RepositoryBrowser(_fetcher(settings), ctx.obj["relay"], page_size=settings.page_size)
    asyncio.run(browser.load_profile(username))

    if not browser.repos:
        click.echo(f"⚠️ No repositories found for {username}.")
        return

    click.echo(f"\n👤 {username}")
    if browser.summary:
        click.echo(f"   📝 {browser.summary}")
    click.echo("-" * 60)

    for repo in browser.paginate(page):
        description = f" - {repo.description}" if repo.description else ""
        click.echo(f"  {repo.name}{description}")

    click.echo("-" * 60)
    click.echo(f"Page {page} of {browser.total_pages} ({len(browser.repos)} repositories)")


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.pass_context
def tree(ctx: click.Context, owner: str, repo: str):
    """Print the file tree of a repository, fully expanded."""
    settings: Settings = ctx.obj["settings"]
    session = RepoSession(_fetcher(settings), None, owner, repo)
    asyncio.run(session.open())

    navigator = session.navigator
    # Expanding reveals new folders, so repeat until nothing changes
    while True:
        collapsed = [row.path for row in navigator.render() if row.is_dir and not row.expanded]
        if not collapsed:
            break
        for path in collapsed:
            navigator.toggle(path)

    for row in navigator.render():
        icon = "📂" if row.is_dir else "📄"
        click.echo(f"{'  ' * row.depth}{icon} {row.name}")


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.argument("path")
@click.option("--role", type=click.Choice([role.value for role in Role]), default=Role.INTERN.value, show_default=True)
@click.pass_context
def chat(ctx: click.Context, owner: str, repo: str, path: str, role: str):
    """Ask questions about one file. An empty question ends the chat."""
    settings: Settings = ctx.obj["settings"]
    asyncio.run(_chat(RepoSession(_fetcher(settings), ctx.obj["relay"], owner, repo), path, Role(role)))


async def _chat(session: RepoSession, path: str, role: Role):
    workspace = session.workspace
    workspace.set_role(role)
    await workspace.select_file(path)

    if workspace.file_content is None:
        click.echo(f"❌ Could not load {path}")
        return

    click.echo(f"📄 {path} ({len(workspace.file_content.splitlines())} lines), explaining as {role.value}")
    while True:
        question = click.prompt("❓", default="", show_default=False)
        if not question.strip():
            break
        reply = await workspace.ask(question)
        click.echo(f"\n💡 {reply.text}\n")


if __name__ == "__main__":
    cli()
