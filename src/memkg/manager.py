"""KnowledgeGraphManager: the full operation surface over one GraphStore.

Every call reloads the graph from disk; nothing is cached between calls.
Mutations go through GraphStore transactions, reads work on a fresh snapshot.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from memkg import search, traversal
from memkg.reader import GraphStore

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from memkg.models import (
        AddedObservations,
        Entity,
        KnowledgeGraph,
        NeighborResult,
        ObservationAddition,
        ObservationDeletion,
        ObservationSearchResult,
        PathResult,
        Relation,
        RelationFilterResult,
        SearchResult,
    )

logger = logging.getLogger("memkg.manager")


class KnowledgeGraphManager:
    def __init__(self, store: GraphStore | Path | str) -> None:
        self.store = store if isinstance(store, GraphStore) else GraphStore(store)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_entities(self, entities: Iterable[Entity]) -> list[Entity]:
        return self.store.create_entities(entities)

    def create_relations(self, relations: Iterable[Relation]) -> list[Relation]:
        return self.store.create_relations(relations)

    def add_observations(self, additions: Iterable[ObservationAddition]) -> list[AddedObservations]:
        return self.store.add_observations(additions)

    def delete_entities(self, names: Iterable[str]) -> None:
        self.store.delete_entities(names)

    def delete_observations(self, deletions: Iterable[ObservationDeletion]) -> None:
        self.store.delete_observations(deletions)

    def delete_relations(self, relations: Iterable[Relation]) -> None:
        self.store.delete_relations(relations)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_graph(self) -> KnowledgeGraph:
        return self.store.read_graph()

    def open_nodes(self, names: Iterable[str]) -> KnowledgeGraph:
        return traversal.open_nodes(self.read_graph(), names)

    def search_nodes(
        self,
        query: str,
        *,
        include_neighbors: bool = False,
        fuzzy: bool = False,
        limit: int | None = None,
    ) -> SearchResult:
        result = search.search_nodes(
            self.read_graph(), query,
            include_neighbors=include_neighbors, fuzzy=fuzzy, limit=limit,
        )
        logger.debug("search_nodes %r: %d entities", query, len(result.entities))
        return result

    def search_observations(
        self,
        query: str,
        *,
        limit: int = 10,
        include_entity: bool = False,
        fuzzy: bool = False,
    ) -> ObservationSearchResult:
        result = search.search_observations(
            self.read_graph(), query,
            limit=limit, include_entity=include_entity, fuzzy=fuzzy,
        )
        logger.debug("search_observations %r: %d matches", query, len(result.matches))
        return result

    def get_neighbors(
        self,
        entity_name: str,
        *,
        direction: str = "both",
        relation_type: str | None = None,
    ) -> list[NeighborResult]:
        return traversal.get_neighbors(
            self.read_graph(), entity_name, direction=direction, relation_type=relation_type,
        )

    def find_path(self, from_entity: str, to_entity: str, max_depth: int = 10) -> PathResult | None:
        return traversal.find_path(self.read_graph(), from_entity, to_entity, max_depth)

    def get_subgraph(self, entity_names: Iterable[str], depth: int = 1) -> KnowledgeGraph:
        return traversal.get_subgraph(self.read_graph(), entity_names, depth)

    def filter_by_type(self, entity_type: str) -> KnowledgeGraph:
        return search.filter_by_type(self.read_graph(), entity_type)

    def filter_relations(
        self,
        *,
        relation_type: str | None = None,
        from_entity: str | None = None,
        to_entity: str | None = None,
    ) -> RelationFilterResult:
        return search.filter_relations(
            self.read_graph(),
            relation_type=relation_type, from_entity=from_entity, to_entity=to_entity,
        )

    def filter_by_observation(self, pattern: str) -> list[Entity]:
        return search.filter_by_observation(self.read_graph(), pattern)
