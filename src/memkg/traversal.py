"""Graph traversal over a loaded KnowledgeGraph snapshot.

Relations may name entities that do not exist; such endpoints are skipped,
never followed into results.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from memkg.models import KnowledgeGraph, NeighborResult, PathResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from memkg.models import Relation

DIRECTIONS = ("incoming", "outgoing", "both")


def open_nodes(graph: KnowledgeGraph, names: Iterable[str]) -> KnowledgeGraph:
    """The named entities plus relations with both endpoints among them."""
    wanted = set(names)
    entities = [e for e in graph.entities if e.name in wanted]
    found = {e.name for e in entities}
    return KnowledgeGraph(entities, [r for r in graph.relations if r.within(found)])


def get_neighbors(
    graph: KnowledgeGraph,
    entity_name: str,
    direction: str = "both",
    relation_type: str | None = None,
) -> list[NeighborResult]:
    """Entities one relation away, tagged with the direction of that relation.

    A self-relation is reported once per active direction.
    """
    if direction not in DIRECTIONS:
        msg = f"direction must be one of {', '.join(DIRECTIONS)}: {direction!r}"
        raise ValueError(msg)

    by_name = graph.entity_map()
    if entity_name not in by_name:
        return []

    outgoing = direction in ("outgoing", "both")
    incoming = direction in ("incoming", "both")
    results: list[NeighborResult] = []
    for rel in graph.relations:
        if relation_type and rel.relation_type != relation_type:
            continue
        if outgoing and rel.from_entity == entity_name and rel.to_entity in by_name:
            results.append(NeighborResult(by_name[rel.to_entity], rel, "outgoing"))
        if incoming and rel.to_entity == entity_name and rel.from_entity in by_name:
            results.append(NeighborResult(by_name[rel.from_entity], rel, "incoming"))
    return results


def find_path(
    graph: KnowledgeGraph,
    from_entity: str,
    to_entity: str,
    max_depth: int = 10,
) -> PathResult | None:
    """Shortest path by edge count, treating relations as undirected.

    Breadth-first from from_entity; neighbours are explored in relation
    insertion order and a node is marked visited when dequeued. Paths of
    max_depth edges are not extended. Returned relations keep their stored
    direction.
    """
    if max_depth < 0:
        msg = f"max_depth must be non-negative: {max_depth}"
        raise ValueError(msg)

    by_name = graph.entity_map()
    if from_entity not in by_name or to_entity not in by_name:
        return None
    if from_entity == to_entity:
        return PathResult(path=[by_name[from_entity]], relations=[], length=0)

    adjacency: dict[str, list[tuple[str, Relation]]] = {name: [] for name in by_name}
    for rel in graph.relations:
        if rel.from_entity in adjacency:
            adjacency[rel.from_entity].append((rel.to_entity, rel))
        if rel.to_entity in adjacency:
            adjacency[rel.to_entity].append((rel.from_entity, rel))

    visited: set[str] = set()
    queue: deque[tuple[str, list[str], list[Relation]]] = deque([(from_entity, [from_entity], [])])

    while queue:
        name, path, rels = queue.popleft()

        if name == to_entity:
            return PathResult(path=[by_name[n] for n in path], relations=rels, length=len(rels))

        if len(rels) >= max_depth or name in visited:
            continue
        visited.add(name)

        for neighbor, rel in adjacency.get(name, []):
            if neighbor not in visited:
                queue.append((neighbor, [*path, neighbor], [*rels, rel]))

    return None


def get_subgraph(graph: KnowledgeGraph, entity_names: Iterable[str], depth: int = 1) -> KnowledgeGraph:
    """Seeds plus everything within depth hops (undirected), and the relations among them.

    Each round adds the other endpoint of every relation touching the set as
    it stood at the start of the round.
    """
    if depth < 0:
        msg = f"depth must be non-negative: {depth}"
        raise ValueError(msg)

    members = set(entity_names)
    for _ in range(depth):
        frontier: set[str] = set()
        for rel in graph.relations:
            if rel.from_entity in members:
                frontier.add(rel.to_entity)
            if rel.to_entity in members:
                frontier.add(rel.from_entity)
        if frontier <= members:
            break
        members |= frontier

    return KnowledgeGraph(
        entities=[e for e in graph.entities if e.name in members],
        relations=[r for r in graph.relations if r.within(members)],
    )
