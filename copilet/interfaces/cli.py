"""Copilet CLI - browse and download Copilot customization content."""

import asyncio
from pathlib import Path
from typing import Optional, Sequence

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from ..models import ContentCategory, DownloadStatus, ServiceConfig
from ..infrastructure.error_handler import ContentError
from .api import CopilotContentBrowser

from copilet.infrastructure.logger import logger

console = Console()

CATEGORY_CHOICE = click.Choice([category.value for category in ContentCategory], case_sensitive=False)


class ClickPrompter:
    """Prompter backed by the terminal."""

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    async def choose(self, message: str, options: Sequence[str]) -> Optional[str]:
        console.print(message)
        choice = click.prompt(
            "Choose",
            type=click.Choice(list(options) + ["Cancel"], case_sensitive=False),
            default=options[-1],
        )
        return None if choice == "Cancel" else choice

    async def confirm(self, message: str, action: str) -> bool:
        if self.assume_yes:
            return True
        return click.confirm(f"{message} [{action}]", default=False)

    async def ask_name(self, prompt: str, default: str) -> Optional[str]:
        if self.assume_yes:
            return default
        return click.prompt(prompt, default=default)

    async def ask_secret(self, prompt: str) -> Optional[str]:
        value = click.prompt(prompt, hide_input=True, default="", show_default=False)
        return value or None

    def info(self, message: str) -> None:
        console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        console.print(f"[red]{message}[/red]")


def _build_browser(ctx: click.Context, assume_yes: bool = False) -> CopilotContentBrowser:
    options = ctx.obj
    config = ServiceConfig.load(options["config_path"])
    return CopilotContentBrowser(
        config=config,
        workspace=options["workspace"],
        prompter=ClickPrompter(assume_yes=assume_yes),
        verbose=options["verbose"],
    )


async def _with_browser(browser: CopilotContentBrowser, action):
    try:
        return await action(browser)
    finally:
        await browser.close()


@click.group()
@click.version_option(version="0.1.0", prog_name="copilet")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a config.json (defaults to the user config dir)",
)
@click.option(
    "--workspace", "-w",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root that receives .github/ (defaults to the cwd)",
)
@click.pass_context
def cli(ctx, verbose, config_path, workspace):
    """Copilet - browse and download Copilot customization content

    Lists instructions, prompts, agents, skills and plugins from GitHub
    repositories and saves them under the workspace's .github folder.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(verbose=verbose, config_path=config_path, workspace=workspace)


@cli.command("list")
@click.argument("category", type=CATEGORY_CHOICE)
@click.option("--refresh", is_flag=True, help="Bypass the listing cache")
@click.pass_context
def list_content(ctx, category, refresh):
    """List available content of CATEGORY across all sources."""
    browser = _build_browser(ctx)

    try:
        entries = asyncio.run(_with_browser(browser, lambda b: b.get_files(category, force_refresh=refresh)))
    except ContentError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if not entries:
        console.print(f"No {category} found.")
        return

    table = Table(title=ContentCategory(category.lower()).label)
    table.add_column("Name", style="cyan")
    table.add_column("Repository")
    table.add_column("Type")
    table.add_column("Path")

    for entry in entries:
        table.add_row(
            entry.display_name or entry.name,
            entry.repo.display_name if entry.repo else "",
            entry.type,
            entry.path,
        )

    console.print(table)


@cli.command()
@click.argument("category", type=CATEGORY_CHOICE)
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Accept default names and confirm overwrites")
@click.pass_context
def download(ctx, category, name, yes):
    """Download the entry NAME of CATEGORY into the workspace."""
    browser = _build_browser(ctx, assume_yes=yes)

    async def _download(b: CopilotContentBrowser):
        entry = await b.find_entry(category, name)
        if entry is None:
            return None
        return await b.download(entry, category)

    try:
        result = asyncio.run(_with_browser(browser, _download))
    except ContentError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if result is None:
        console.print(f"[red]No {category} entry named '{name}'[/red]")
        raise SystemExit(1)

    if result.status == DownloadStatus.CANCELLED:
        console.print("Download cancelled.")
        return
    if result.status == DownloadStatus.FAILED:
        console.print(f"[red]Download failed: {result.error_message}[/red]")
        raise SystemExit(1)

    console.print(result.summary())
    for path in result.failed_paths:
        console.print(f"  [red]failed:[/red] {path}")
    if result.target:
        logger.debug(f"Saved to {result.target}")


@cli.command()
@click.argument("category", type=CATEGORY_CHOICE)
@click.argument("name")
@click.pass_context
def preview(ctx, category, name):
    """Print the entry NAME of CATEGORY without downloading it."""
    browser = _build_browser(ctx)

    async def _preview(b: CopilotContentBrowser):
        entry = await b.find_entry(category, name)
        if entry is None:
            return None
        return await b.preview(entry, category)

    try:
        text = asyncio.run(_with_browser(browser, _preview))
    except ContentError as e:
        console.print(f"[red]Failed to preview {name}: {e}[/red]")
        raise SystemExit(1)

    if text is None:
        console.print(f"[red]No {category} entry named '{name}'[/red]")
        raise SystemExit(1)

    console.print(Markdown(text))


@cli.command("refresh-repo")
@click.argument("repository")
@click.pass_context
def refresh_repo(ctx, repository):
    """Reload every category of one configured REPOSITORY (owner/repo)."""
    browser = _build_browser(ctx)
    repo = browser.find_source(repository)
    if repo is None:
        asyncio.run(browser.close())
        console.print(f"[red]'{repository}' is not a configured source[/red]")
        raise SystemExit(1)

    async def _refresh(b: CopilotContentBrowser):
        b.refresh_repo(repo)
        counts = {}
        for category in ContentCategory:
            counts[category] = len(await b.get_files_by_repo(repo, category))
        return counts

    try:
        counts = asyncio.run(_with_browser(browser, _refresh))
    except ContentError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    table = Table(title=repo.display_name)
    table.add_column("Category", style="cyan")
    table.add_column("Entries", justify="right")
    for category, count in counts.items():
        table.add_row(category.label, str(count))
    console.print(table)


@cli.command()
@click.argument("category", type=CATEGORY_CHOICE)
@click.pass_context
def updates(ctx, category):
    """Show downloaded entries of CATEGORY that changed upstream."""
    browser = _build_browser(ctx)

    try:
        changed = asyncio.run(_with_browser(browser, lambda b: b.check_updates(category)))
    except ContentError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if not changed:
        console.print("Everything is up to date.")
        return

    console.print(f"{len(changed)} update(s) available:")
    for entry in changed:
        console.print(f"  [cyan]{entry.display_name or entry.name}[/cyan] ({entry.path})")


@cli.group()
def cache():
    """Inspect or clear the listing cache."""


@cache.command("status")
@click.pass_context
def cache_status(ctx):
    """Show cached listings and their age."""
    browser = _build_browser(ctx)
    console.print(browser.get_cache_status())
    asyncio.run(browser.close())


@cache.command("clear")
@click.pass_context
def cache_clear(ctx):
    """Drop every cached listing."""
    browser = _build_browser(ctx)
    browser.clear_cache()
    asyncio.run(browser.close())
    console.print("[green]Cache cleared[/green]")


def main():
    cli(obj={})


__all__ = ["cli", "main", "ClickPrompter"]
