"""symdoc CLI — decode, merge and inspect symbol metadata containers."""

import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from symdoc import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """symdoc — symbol metadata container toolkit.

    Decode per-unit metadata containers, merge them into one canonical
    entity per symbol, and inspect the result.
    """


def _load_config(config_path: str | None, **overrides):
    from symdoc.config import CorpusConfig, find_config, load_config
    from symdoc.logs import configure_logging

    path = config_path or find_config()
    config = load_config(path) if path else CorpusConfig()
    config = config.override(**overrides)
    configure_logging(config.log_level, config.log_format.value)
    return config


def _location(loc) -> str:
    return f"{loc.filename}:{loc.line_number}" if loc else "-"


def _describe(info) -> Table:
    """Key/value table for one entity."""
    from symdoc.meta.symbols import EnumInfo, FunctionInfo, NamespaceInfo, RecordInfo, TypedefInfo

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("kind", info.info_type.name.lower())
    table.add_row("usr", str(info.usr))
    table.add_row("path", escape(info.path) or "-")
    table.add_row("defined", _location(info.def_loc))
    if info.loc:
        table.add_row("declared", ", ".join(_location(loc) for loc in info.loc))
    if info.javadoc.brief_text:
        table.add_row("brief", escape(info.javadoc.brief_text))

    if isinstance(info, RecordInfo):
        table.add_row("tag", info.tag_type.name.lower())
        if info.parents or info.virtual_parents:
            table.add_row("bases", ", ".join(escape(r.name) for r in (*info.parents, *info.virtual_parents)))
        for member in info.members:
            table.add_row("member", escape(f"{member.type.name} {member.name}"))
    elif isinstance(info, FunctionInfo):
        table.add_row("returns", escape(info.return_type.type.name) or "-")
        params = ", ".join(f"{p.type.name} {p.name}".strip() for p in info.params)
        table.add_row("params", escape(params) or "-")
    elif isinstance(info, EnumInfo):
        table.add_row("scoped", "yes" if info.scoped else "no")
        for value in info.members:
            table.add_row("value", escape(f"{value.name} = {value.value}"))
    elif isinstance(info, TypedefInfo):
        table.add_row("underlying", escape(info.underlying.type.name) or "-")

    if isinstance(info, (NamespaceInfo, RecordInfo)):
        children = [*info.children.namespaces, *info.children.records, *info.children.functions]
        if children:
            table.add_row("children", ", ".join(escape(r.name) for r in children))
    return table


def _entity_table(infos, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Kind", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Defined")
    table.add_column("Brief")

    for info in infos:
        table.add_row(
            info.info_type.name.lower(),
            escape(info.qualified_name),
            _location(info.def_loc),
            escape(info.javadoc.brief_text[:60]),
        )
    return table


def _build(containers, config):
    from symdoc.corpus import Corpus
    from symdoc.errors import DecodeError

    try:
        return Corpus.build(containers, config)
    except DecodeError as e:
        console.print(f"[red]Decode failed:[/] [{e.kind}] {escape(str(e))}")
        sys.exit(1)


# ── Dump ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("container", type=click.Path(exists=True, dir_okay=False))
@click.option("--expected-version", type=int, default=None, help="Schema version to accept")
def dump(container: str, expected_version: int | None):
    """Decode one container and print its partial entities."""
    from symdoc.bitcode.reader import read_container_file
    from symdoc.errors import DecodeError

    config = _load_config(None, expected_version=expected_version)
    console.print(f"\n[bold blue]symdoc[/] — Decoding: {container}\n")

    try:
        unit = read_container_file(container, config.expected_version)
    except DecodeError as e:
        console.print(f"[red]Decode failed:[/] [{e.kind}] {escape(str(e))}")
        sys.exit(1)

    if not unit.entities:
        console.print("[yellow]Container holds no entities.[/]")
        return

    console.print(_entity_table(unit.entities, f"Entities ({len(unit.entities)} decoded)"))
    if unit.skipped_blocks:
        console.print(f"[yellow]![/] skipped {len(unit.skipped_blocks)} unknown top-level block(s)")


# ── Merge ────────────────────────────────────────────────────────────


@main.command()
@click.argument("containers", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="YAML config file")
@click.option("--workers", "-j", type=int, default=None, help="Decode/merge thread pool size")
@click.option("--strict", is_flag=True, help="Exit non-zero on any unit failure or merge issue")
@click.option(
    "--fail-fast/--ignore-failures",
    default=None,
    help="Abort on the first unit that fails to decode",
)
def merge(containers: tuple[str, ...], config_path: str | None, workers: int | None, strict: bool, fail_fast):
    """Decode CONTAINERS and merge them into one entity per symbol."""
    config = _load_config(
        config_path,
        workers=workers,
        ignore_failures=None if fail_fast is None else not fail_fast,
    )
    console.print(f"\n[bold blue]symdoc[/] — Merging {len(containers)} container(s)\n")

    corpus = _build(containers, config)

    if len(corpus):
        console.print(_entity_table(corpus, f"Symbols ({len(corpus)} merged)"))
    else:
        console.print("[yellow]No symbols.[/]")

    if corpus.failures:
        console.print("\n[red]Unit Failures:[/]")
        for failure in corpus.failures:
            console.print(f"  [red]x[/] {escape(failure.unit)}: [{failure.kind}] {escape(failure.message)}")

    if corpus.issues:
        console.print("\n[yellow]Merge Issues:[/]")
        for issue in corpus.issues:
            mark = "[red]x[/]" if issue.severity.value == "error" else "[yellow]![/]"
            console.print(f"  {mark} [{issue.code}] {issue.usr}: {escape(issue.message)}")

    summary = (
        f"{len(corpus)} symbol(s) from {len(containers) - len(corpus.failures)} unit(s), "
        f"{len(corpus.failures)} unit failure(s), {len(corpus.issues)} merge issue(s)"
    )
    console.print(Panel(summary, title="Merge Result"))

    if strict and (corpus.failures or corpus.issues):
        console.print("\n[red]FAIL[/] (strict mode)")
        sys.exit(1)


# ── Lookup ───────────────────────────────────────────────────────────


@main.command()
@click.argument("containers", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--usr", required=True, help="Symbol identifier as 40 hex digits")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="YAML config file")
def lookup(containers: tuple[str, ...], usr: str, config_path: str | None):
    """Print the canonical entity for one identifier."""
    from symdoc.meta.symbols import SymbolID

    try:
        sid = SymbolID.from_hex(usr)
    except ValueError:
        raise click.BadParameter(f"not a 40-digit hex identifier: {usr}", param_hint="--usr") from None

    corpus = _build(containers, _load_config(config_path))
    info = corpus.get(sid)
    if info is None:
        console.print(f"[yellow]Symbol {usr} not found.[/]")
        sys.exit(1)

    console.print(Panel(_describe(info), title=escape(info.qualified_name)))
    for issue in corpus.issues_for(sid):
        console.print(f"  [yellow]![/] [{issue.code}] {escape(issue.message)}")


# ── Index ────────────────────────────────────────────────────────────


@main.command()
@click.argument("containers", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="YAML config file")
def index(containers: tuple[str, ...], config_path: str | None):
    """Print the name-sorted symbol index."""
    corpus = _build(containers, _load_config(config_path))
    root = corpus.index()
    if not root.children:
        console.print("[yellow]No symbols.[/]")
        return

    for depth, entry in root.walk():
        kind = entry.ref.ref_type.name.lower()
        console.print(f"{'  ' * depth}{escape(entry.name)} [dim]{kind}[/]")


if __name__ == "__main__":
    main()
