"""scopereg CLI — inspect a scopes directory from the command line."""

import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from scopereg import __version__

console = Console()

EXIT_SCOPE_ERROR = 1
EXIT_CONFIG_ERROR = 2


@click.group()
@click.version_option(version=__version__)
@click.option("--path", "-p", default=None, help="Base directory (default: current directory)")
@click.option("--dir", "-d", "dir_", default=None, help="Scopes directory name (default: ./scopes/)")
@click.option("--config", "-c", "config_file", default=None, help="YAML file with registry options")
@click.option("--preload/--lazy", default=None, help="Load every scope up front")
@click.option("--verbose", "-v", count=True, help="Show registry log output (-vv for debug)")
@click.pass_context
def main(ctx, path, dir_, config_file, preload, verbose):
    """scopereg — a registry of callables discovered from a scopes directory.

    Every subdirectory of the scopes directory is a namespace and every
    file a scope holding marked functions, classes and lambdas.
    """
    from scopereg.reporting import configure_logging

    if verbose:
        configure_logging("DEBUG" if verbose > 1 else "INFO")
    else:
        configure_logging()

    ctx.obj = {"path": path, "dir": dir_, "config": config_file, "preload": preload}


def _open_registry(ctx):
    from scopereg import ScopeConfigError, ScopeRegistry
    from scopereg.config import RegistryOptions, load_options

    settings = ctx.obj
    try:
        options = load_options(settings["config"]) if settings["config"] else RegistryOptions()
        return ScopeRegistry(
            options, path=settings["path"], dir=settings["dir"], preload=settings["preload"]
        )
    except ScopeConfigError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CONFIG_ERROR)


def _exit_on_error(value):
    from scopereg import is_error

    if is_error(value):
        console.print(f"[yellow]{value}[/]")
        sys.exit(EXIT_SCOPE_ERROR)


def _units_table(title, units):
    table = Table(title=title)
    table.add_column("Scope", style="dim")
    table.add_column("Kind")
    table.add_column("Name", style="cyan")
    table.add_column("Arguments")
    for unit in units:
        table.add_row(unit.scope, unit.kind.value, unit.name, unit.arg_signature)
    return table


# ── Tree ─────────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def tree(ctx):
    """Show the namespace tree of the scopes directory."""
    reg = _open_registry(ctx)

    root = Tree(f"[bold blue]{reg.meta.root_path}[/]")
    _add_branch(root, reg.tree)
    console.print(root)


def _add_branch(branch, directory):
    from scopereg.registry.tree import Directory, FailedLeaf, MaterializedLeaf

    for key, node in directory.items():
        if isinstance(node, Directory):
            _add_branch(branch.add(f"[bold]{key}/[/]"), node)
        elif isinstance(node, MaterializedLeaf):
            branch.add(f"[cyan]{key}[/] [dim]({len(node.record.units)} units)[/]")
        elif isinstance(node, FailedLeaf):
            branch.add(f"[red]{key}[/] [dim]({node.error.message})[/]")
        else:
            branch.add(f"{key} [dim](not loaded)[/]")


# ── Meta ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("keys", nargs=-1)
@click.pass_context
def meta(ctx, keys):
    """Show registry settings, or the units of a scope.

    KEYS is a scope name, or a parent namespace and a scope name.
    """
    reg = _open_registry(ctx)

    if not keys:
        m = reg.get_meta()
        lines = [f"{k}: {v}" for k, v in m.to_dict().items()]
        console.print(Panel("\n".join(lines), title=f"{m.name} {m.version}"))
        return

    # the CLI process is fresh, so load the scope before asking for its meta
    _exit_on_error(reg.get(*keys))
    units = reg.get_meta(*keys)
    _exit_on_error(units)
    console.print(_units_table(" > ".join(keys), units))


# ── Get ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("keys", nargs=-1, required=True)
@click.pass_context
def get(ctx, keys):
    """Load a scope and list its callables."""
    from scopereg.registry.tree import Directory

    reg = _open_registry(ctx)
    value = reg.get(*keys)
    _exit_on_error(value)

    if isinstance(value, Directory):
        branch = Tree(f"[bold]{' > '.join(keys)}/[/]")
        _add_branch(branch, value)
        console.print(branch)
        return

    console.print(f"\n[bold blue]{value.scope_name}[/] — {value.file_path}\n")
    if not value.units:
        console.print("[yellow]No units found.[/]")
        return
    console.print(_units_table(f"{len(value.units)} unit(s)", value.units))


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def check(file_path):
    """Check a scope file for marked definitions.

    Lists every definition the extractor recognises and whether it is
    valid, so a scope file can be fixed before the registry loads it.
    """
    from pathlib import Path

    from scopereg.extract.extractor import extract

    console.print(f"\n[bold blue]scopereg[/] — Checking: {file_path}\n")

    candidates = extract(Path(file_path).read_text(encoding="utf-8-sig", errors="replace"))
    if not candidates:
        console.print("[yellow]No marked definitions found.[/]")
        return

    invalid = 0
    for c in candidates:
        if c.valid:
            console.print(f"  [green]v[/] line {c.line}: {c.kind.value} {c.name}({c.arg_signature})")
        else:
            invalid += 1
            console.print(f"  [red]x[/] line {c.line}: {c.kind.value} {c.name} — {c.reason}")

    names = [c.name for c in candidates if c.valid]
    for name in sorted({n for n in names if names.count(n) > 1}):
        console.print(f"  [yellow]![/] {name} is defined more than once; only the first is kept")

    if invalid:
        console.print(f"\n[red]{invalid} invalid definition(s)[/]")
        sys.exit(EXIT_SCOPE_ERROR)

    console.print("\n[green]Valid![/]")


if __name__ == "__main__":
    main()
