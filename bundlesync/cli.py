"""bundlesync CLI — the main entry point.

Every command accepts raw option tokens after its own flags, using the same
``[-[-]]key[=value]`` grammar as the config file::

    bundlesync update --submodule --dotfiles=~/dotfiles/vim
    bundlesync plan --no-updates
"""

import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bundlesync import __version__
from bundlesync.config.options import Settings, load_settings
from bundlesync.errors import BundleSyncError, ConfigError, ParseError, PostCommandFailure

console = Console()

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_POST_COMMAND = 3

TOKEN_COMMAND = {"ignore_unknown_options": True}

_STATE_STYLES = {
    "created": "green",
    "refreshed": "cyan",
    "reoriginated": "yellow",
    "left alone": "dim",
    "removed": "magenta",
    "aborted": "bold red",
}


def _fail(error: Exception, code: int):
    console.print(f"[red]Error:[/] {escape(str(error))}")
    sys.exit(code)


def _settings(tokens: tuple, config: str | None) -> Settings:
    from bundlesync.log import configure_logging

    try:
        settings = load_settings(tokens, config)
    except ConfigError as e:
        _fail(e, EXIT_USAGE)
    configure_logging(settings.verbose)
    return settings


def _directives(settings: Settings) -> list:
    from bundlesync.directives.parser import load_directives

    try:
        return load_directives(settings.vimrc)
    except (ConfigError, ParseError) as e:
        _fail(e, EXIT_USAGE)


def _print_outcomes(report) -> None:
    if not report.outcomes:
        return
    table = Table(title=f"Bundles ({len(report.outcomes)})")
    table.add_column("Bundle", style="cyan")
    table.add_column("Result")
    table.add_column("Detail", style="dim")

    for outcome in report.outcomes:
        style = _STATE_STYLES.get(outcome.state.value, "")
        table.add_row(outcome.name, f"[{style}]{outcome.state.value}[/]", escape(outcome.detail))

    console.print(table)


@click.group()
@click.version_option(version=__version__)
def main():
    """bundlesync — keep vim bundles in step with the directives in your vimrc.

    Declare bundles as comments in the vimrc (" Bundle: <url> [ref],
    " Bundle-Command: <cmd>, " Static: <dir>) and run 'bundlesync update'.
    """


# ── Update ───────────────────────────────────────────────────────────


@main.command(context_settings=TOKEN_COMMAND)
@click.option("--config", "-c", default=None, help="Option file (default: ~/.bundlesync.conf)")
@click.argument("tokens", nargs=-1, type=click.UNPROCESSED)
def update(config: str | None, tokens: tuple):
    """Clone, update and trash bundles to match the vimrc."""
    from bundlesync.engine.reconciler import BundleReconciler
    from bundlesync.vcs.git_backend import GitBackend

    settings = _settings(tokens, config)
    directives = _directives(settings)

    console.print(f"\n[bold blue]bundlesync[/] — Updating bundles in {settings.bundle_dir}\n")

    reconciler = BundleReconciler(settings, GitBackend(settings.dotfiles))
    try:
        report = reconciler.update(directives)
    except PostCommandFailure as e:
        _print_outcomes(reconciler.report)
        _fail(e, EXIT_POST_COMMAND)
    except (BundleSyncError, OSError) as e:
        _print_outcomes(reconciler.report)
        _fail(e, EXIT_FAILURE)

    _print_outcomes(report)
    console.print(f"\n[green]Done:[/] {report.summary()}")
    console.print(f"[dim]Inventory written to {settings.inventory_path}[/]")


# ── Plan ─────────────────────────────────────────────────────────────


@main.command(context_settings=TOKEN_COMMAND)
@click.option("--config", "-c", default=None, help="Option file (default: ~/.bundlesync.conf)")
@click.option("--yaml", "as_yaml", is_flag=True, help="Print the plan as YAML")
@click.argument("tokens", nargs=-1, type=click.UNPROCESSED)
def plan(config: str | None, as_yaml: bool, tokens: tuple):
    """Show what 'update' would do, without changing anything."""
    from bundlesync.engine.reconciler import BundleReconciler
    from bundlesync.vcs.git_backend import GitBackend

    settings = _settings(tokens, config)
    directives = _directives(settings)
    actions = BundleReconciler(settings, GitBackend(settings.dotfiles)).plan(directives)

    if as_yaml:
        import yaml

        click.echo(yaml.safe_dump([a.to_dict() for a in actions], sort_keys=False), nl=False)
        return

    if not actions:
        console.print("[yellow]No bundles declared and none installed.[/]")
        return

    table = Table(title=f"Plan ({len(actions)} bundles)")
    table.add_column("Bundle", style="cyan")
    table.add_column("Decision")
    table.add_column("Source")
    table.add_column("Ref", style="dim")

    for action in actions:
        directive = action.directive
        table.add_row(
            action.name,
            action.decision.value,
            directive.source_url if directive else "",
            (directive.ref or "") if directive else "",
        )

    console.print(table)


# ── Inventory ────────────────────────────────────────────────────────


@main.command(context_settings=TOKEN_COMMAND)
@click.option("--config", "-c", default=None, help="Option file (default: ~/.bundlesync.conf)")
@click.option("--write", is_flag=True, help="Also rewrite the inventory help file")
@click.argument("tokens", nargs=-1, type=click.UNPROCESSED)
def inventory(config: str | None, write: bool, tokens: tuple):
    """List installed bundles with their version and release date."""
    from bundlesync.inventory.reporter import NOT_AVAILABLE, collect_inventory, write_inventory
    from bundlesync.vcs.git_backend import GitBackend

    settings = _settings(tokens, config)
    directives = _directives(settings)
    records = collect_inventory(directives, settings.bundle_dir, GitBackend(settings.dotfiles))

    if write:
        try:
            write_inventory(settings.inventory_path, records)
        except OSError as e:
            _fail(e, EXIT_FAILURE)

    if not records:
        console.print("[yellow]No declared bundles are installed.[/]")
        return

    table = Table(title=f"Installed bundles ({len(records)})")
    table.add_column("Plugin", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Release date")

    for record in records:
        table.add_row(
            record.name,
            record.version_label or NOT_AVAILABLE,
            record.iso_date or NOT_AVAILABLE,
        )

    console.print(table)


# ── Directives ───────────────────────────────────────────────────────


@main.command(context_settings=TOKEN_COMMAND)
@click.option("--config", "-c", default=None, help="Option file (default: ~/.bundlesync.conf)")
@click.argument("tokens", nargs=-1, type=click.UNPROCESSED)
def directives(config: str | None, tokens: tuple):
    """Print the bundle directives found in the vimrc."""
    settings = _settings(tokens, config)
    found = _directives(settings)

    if not found:
        console.print(f"[yellow]No directives found in {settings.vimrc}.[/]")
        return

    table = Table(title=f"Directives in {settings.vimrc}")
    table.add_column("Line", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    table.add_column("Ref")
    table.add_column("Command", style="dim")

    for directive in found:
        table.add_row(
            str(directive.line_number or ""),
            directive.name,
            "(static)" if directive.is_static else directive.source_url,
            directive.ref or "",
            escape(directive.post_command or ""),
        )

    console.print(table)


if __name__ == "__main__":
    main()
