"""memkg CLI: knowledge graph backed by a single JSONL file.

Commands:
    memkg init                     create memkg.toml
    memkg serve                    start stdio MCP server
    memkg status                   counts and file location
    memkg add NAME TYPE [OBS...]   create an entity
    memkg observe NAME TEXT...     add observations
    memkg forget NAME TEXT...      delete observations
    memkg relate FROM REL TO       create a relation
    memkg unrelate FROM REL TO     delete a relation
    memkg delete NAME...           delete entities (and their relations)
    memkg show NAME...             open nodes
    memkg search QUERY             entity search
    memkg observations QUERY       observation search
    memkg neighbors NAME           directly connected entities
    memkg path FROM TO             shortest path
    memkg subgraph NAME...         N-hop neighbourhood
    memkg by-type TYPE             entities of one type
    memkg relations                filter relations
    memkg grep PATTERN             entities by observation preset / regex
"""

from __future__ import annotations

import logging
import sys
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

import click

from memkg.config import MemKGConfig, init_config, load_config
from memkg.errors import KGError
from memkg.manager import KnowledgeGraphManager
from memkg.mcp import run_server
from memkg.models import Entity, ObservationAddition, ObservationDeletion, Relation

if TYPE_CHECKING:
    from memkg.models import KnowledgeGraph

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(ctx: click.Context) -> MemKGConfig:
    try:
        cfg = load_config(ctx.obj.get("root"))
        cfg.migrate_legacy()
    except (OSError, tomllib.TOMLDecodeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    return cfg


def _manager(ctx: click.Context) -> KnowledgeGraphManager:
    return KnowledgeGraphManager(_load_cfg(ctx).memory_file)


def _echo_entity(entity: Entity, prefix: str = "") -> None:
    click.echo(f"{prefix}# {entity.name}  type={entity.entity_type}  ●{len(entity.observations)} observations")
    for obs in entity.observations:
        click.echo(f"{prefix}  - {obs}")


def _echo_relation(rel: Relation) -> None:
    click.echo(f"  {rel.from_entity} --{rel.relation_type}--> {rel.to_entity}")


def _echo_graph(graph: KnowledgeGraph) -> None:
    if not graph.entities and not graph.relations:
        click.echo("(no results)")
        return
    for e in graph.entities:
        _echo_entity(e)
    if graph.relations:
        click.echo("\nRelations:")
        for r in graph.relations:
            _echo_relation(r)


class _KGErrorGroup(click.Group):
    """Report memkg errors as click errors instead of tracebacks."""

    def invoke(self, ctx: click.Context) -> object:
        try:
            return super().invoke(ctx)
        except (KGError, ValueError) as exc:
            raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(cls=_KGErrorGroup)
@click.version_option(package_name="memkg")
@click.option("--root", default=None, help="Project root (default: search upward for memkg.toml)")
@click.pass_context
def cli(ctx: click.Context, root: str | None) -> None:
    """memkg: entity/relation memory graph."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root


# ---------------------------------------------------------------------------
# memkg init / serve / status
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
@click.option("--file", "memory_file", default=None, help="Memory file path (default: memory.jsonl)")
def init(root: str, memory_file: str | None) -> None:
    """Create memkg.toml in the current project."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, memory_file=memory_file)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("memkg.toml already exists, skipping init")

    cfg = load_config(root_path)
    click.echo(f"Memory file : {cfg.memory_file}")


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Start the stdio MCP server."""
    cfg = _load_cfg(ctx)
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, cfg.log.level, logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    run_server(cfg.root)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show graph size and where it lives."""
    from rich.console import Console
    from rich.table import Table

    cfg = _load_cfg(ctx)
    graph = KnowledgeGraphManager(cfg.memory_file).read_graph()
    console = Console()

    table = Table(title=f"memkg: {cfg.root.name}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    from importlib.metadata import PackageNotFoundError, version as _pkg_version
    try:
        _ver = _pkg_version("memkg")
    except PackageNotFoundError:
        _ver = "unknown"
    table.add_row("Version", _ver)
    table.add_row("Config", str(cfg.config_path) if cfg.config_path.exists() else "[dim]defaults[/dim]")
    if cfg.memory_file.exists():
        size_kb = cfg.memory_file.stat().st_size / 1000
        table.add_row("Memory file", f"{cfg.memory_file}  [{size_kb:.1f} KB]")
    else:
        table.add_row("Memory file", f"{cfg.memory_file}  [yellow](not created yet)[/yellow]")
    table.add_row("", "")

    table.add_row("Entities", str(len(graph.entities)))
    table.add_row("Relations", str(len(graph.relations)))
    table.add_row("Observations", str(sum(len(e.observations) for e in graph.entities)))

    names = graph.names()
    dangling = sum(1 for r in graph.relations if not r.within(names))
    if dangling:
        table.add_row("  Dangling relations", f"[yellow]⚠ {dangling}[/yellow]")

    types: dict[str, int] = {}
    for e in graph.entities:
        types[e.entity_type] = types.get(e.entity_type, 0) + 1
    if types:
        table.add_row("", "")
        for etype, count in sorted(types.items(), key=lambda kv: (-kv[1], kv[0]))[:10]:
            table.add_row(f"  type={etype}", str(count))

    console.print(table)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name")
@click.argument("entity_type")
@click.argument("observations", nargs=-1)
@click.pass_context
def add(ctx: click.Context, name: str, entity_type: str, observations: tuple[str, ...]) -> None:
    """Create an entity (skipped if NAME already exists)."""
    created = _manager(ctx).create_entities([Entity(name, entity_type, list(observations))])
    if created:
        click.echo(f"Created {name}")
    else:
        click.echo(f"{name} already exists, skipped")


@cli.command()
@click.argument("name")
@click.argument("texts", nargs=-1, required=True)
@click.pass_context
def observe(ctx: click.Context, name: str, texts: tuple[str, ...]) -> None:
    """Add observations to an existing entity."""
    (result,) = _manager(ctx).add_observations([ObservationAddition(name, list(texts))])
    click.echo(f"Added {len(result.added_observations)} observation(s) to {name}")


@cli.command()
@click.argument("name")
@click.argument("texts", nargs=-1, required=True)
@click.pass_context
def forget(ctx: click.Context, name: str, texts: tuple[str, ...]) -> None:
    """Delete observations from an entity."""
    _manager(ctx).delete_observations([ObservationDeletion(name, list(texts))])
    click.echo("Observations deleted")


@cli.command()
@click.argument("from_entity")
@click.argument("relation_type")
@click.argument("to_entity")
@click.pass_context
def relate(ctx: click.Context, from_entity: str, relation_type: str, to_entity: str) -> None:
    """Create a relation FROM --RELATION--> TO."""
    created = _manager(ctx).create_relations([Relation(from_entity, to_entity, relation_type)])
    click.echo("Created relation" if created else "Relation already exists, skipped")


@cli.command()
@click.argument("from_entity")
@click.argument("relation_type")
@click.argument("to_entity")
@click.pass_context
def unrelate(ctx: click.Context, from_entity: str, relation_type: str, to_entity: str) -> None:
    """Delete the relation FROM --RELATION--> TO."""
    _manager(ctx).delete_relations([Relation(from_entity, to_entity, relation_type)])
    click.echo("Relation deleted")


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def delete(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Delete entities and every relation touching them."""
    _manager(ctx).delete_entities(names)
    click.echo(f"Deleted {', '.join(names)}")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def show(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Show entities and the relations among them."""
    _echo_graph(_manager(ctx).open_nodes(names))


@cli.command()
@click.argument("query")
@click.option("--fuzzy", is_flag=True, help="Tolerate typos")
@click.option("--neighbors", "-n", is_flag=True, help="Include 1-hop connected entities")
@click.option("--limit", "-l", default=None, type=click.IntRange(min=0), help="Max direct matches")
@click.pass_context
def search(ctx: click.Context, query: str, fuzzy: bool, neighbors: bool, limit: int | None) -> None:
    """Entity search.

    \b
    memkg search "auth module"          # any term
    memkg search "+auth +security"      # all terms
    memkg search "auth -deprecated"     # exclude
    memkg search 'name:Auth type:Module'
    """
    result = _manager(ctx).search_nodes(query, include_neighbors=neighbors, fuzzy=fuzzy, limit=limit)
    if not result.entities:
        click.echo("(no results)")
        return
    scores = {s.name: s.score for s in result.scores}
    for e in result.entities:
        label = f"[{scores[e.name]:g}]" if e.name in scores else "[neighbor]"
        click.echo(f"{label:>10}  {e.name}  type={e.entity_type}")
    if result.relations:
        click.echo("\nRelations:")
        for r in result.relations:
            _echo_relation(r)


@cli.command()
@click.argument("query")
@click.option("--fuzzy", is_flag=True, help="Tolerate typos")
@click.option("--limit", "-l", default=None, type=click.IntRange(min=0), help="Max observations")
@click.pass_context
def observations(ctx: click.Context, query: str, fuzzy: bool, limit: int | None) -> None:
    """Observation-level search."""
    cfg = _load_cfg(ctx)
    result = KnowledgeGraphManager(cfg.memory_file).search_observations(
        query,
        limit=limit if limit is not None else cfg.search.observation_limit,
        fuzzy=fuzzy,
    )
    if not result.matches:
        click.echo("(no results)")
        return
    for m in result.matches:
        click.echo(f"[{m.entity_name}] {m.observation}  ({m.score:g})")


@cli.command()
@click.argument("name")
@click.option(
    "--direction", "-d",
    default="both", show_default=True,
    type=click.Choice(["incoming", "outgoing", "both"]),
)
@click.option("--type", "relation_type", default=None, help="Only this relation type")
@click.pass_context
def neighbors(ctx: click.Context, name: str, direction: str, relation_type: str | None) -> None:
    """Entities one relation away from NAME."""
    results = _manager(ctx).get_neighbors(name, direction=direction, relation_type=relation_type)
    if not results:
        click.echo("(no results)")
        return
    for n in results:
        arrow = "->" if n.direction == "outgoing" else "<-"
        click.echo(f"  {arrow} {n.entity.name}  ({n.relation.relation_type})")


@cli.command()
@click.argument("from_entity")
@click.argument("to_entity")
@click.option("--max-depth", default=None, type=click.IntRange(min=0), help="Max path length")
@click.pass_context
def path(ctx: click.Context, from_entity: str, to_entity: str, max_depth: int | None) -> None:
    """Shortest path between two entities (relations treated as undirected)."""
    cfg = _load_cfg(ctx)
    result = KnowledgeGraphManager(cfg.memory_file).find_path(
        from_entity, to_entity, max_depth if max_depth is not None else cfg.search.max_path_depth,
    )
    if result is None:
        click.echo("No path found between the specified entities")
        return
    click.echo(f"length={result.length}")
    click.echo("  " + result.path[0].name)
    for rel, entity in zip(result.relations, result.path[1:], strict=True):
        click.echo(f"    --{rel.relation_type}-- {entity.name}")


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--depth", default=None, type=click.IntRange(min=0), help="Hops to expand")
@click.pass_context
def subgraph(ctx: click.Context, names: tuple[str, ...], depth: int | None) -> None:
    """Seed entities plus their N-hop neighbourhood."""
    cfg = _load_cfg(ctx)
    graph = KnowledgeGraphManager(cfg.memory_file).get_subgraph(
        names, depth if depth is not None else cfg.search.subgraph_depth,
    )
    _echo_graph(graph)


@cli.command("by-type")
@click.argument("entity_type")
@click.pass_context
def by_type(ctx: click.Context, entity_type: str) -> None:
    """Entities of ENTITY_TYPE (case-insensitive)."""
    _echo_graph(_manager(ctx).filter_by_type(entity_type))


@cli.command()
@click.option("--type", "relation_type", default=None)
@click.option("--from", "from_entity", default=None)
@click.option("--to", "to_entity", default=None)
@click.pass_context
def relations(ctx: click.Context, relation_type: str | None, from_entity: str | None, to_entity: str | None) -> None:
    """Filter relations by type, source, or target."""
    result = _manager(ctx).filter_relations(
        relation_type=relation_type, from_entity=from_entity, to_entity=to_entity,
    )
    if not result.relations:
        click.echo("(no results)")
        return
    for r in result.relations:
        _echo_relation(r)


@cli.command()
@click.argument("pattern")
@click.pass_context
def grep(ctx: click.Context, pattern: str) -> None:
    """Entities with an observation matching PATTERN.

    \b
    Presets: dated, techdebt, deprecated, purpose, quirk.
    Anything else is a case-insensitive regular expression.
    """
    entities = _manager(ctx).filter_by_observation(pattern)
    if not entities:
        click.echo("(no results)")
        return
    for e in entities:
        _echo_entity(e)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
