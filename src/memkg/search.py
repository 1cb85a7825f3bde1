"""Search and filter operations over a loaded KnowledgeGraph snapshot.

search_nodes          entity-level search: field scopes, boolean terms, scoring,
                      optional 1-hop neighbour expansion
search_observations   observation-level search with parent-entity context
filter_by_type        entities of one type and the relations among them
filter_relations      relations by type / source / target plus their endpoints
filter_by_observation entities with an observation matching a preset or regex
"""

from __future__ import annotations

import enum
import re

from memkg.errors import InvalidPatternError
from memkg.matcher import entity_matches_field_query, fuzzy_match_any, matches_parsed_query
from memkg.models import (
    Entity,
    EntityScore,
    KnowledgeGraph,
    ObservationMatch,
    ObservationSearchResult,
    RelationFilterResult,
    SearchResult,
)
from memkg.query import parse_field_query, parse_query, strip_field_prefixes
from memkg.scorer import score_entity, score_observation

_OPERATOR_CHARS_RE = re.compile(r'[+\-"]')


def search_nodes(
    graph: KnowledgeGraph,
    query: str,
    *,
    include_neighbors: bool = False,
    fuzzy: bool = False,
    limit: int | None = None,
) -> SearchResult:
    """Rank entities against query.

    Relations in the result are every relation touching any returned entity,
    neighbours included. Scores cover only the direct matches.
    """
    if limit is not None and limit < 0:
        msg = f"limit must be non-negative: {limit}"
        raise ValueError(msg)
    if not query.strip():
        return SearchResult()

    fq = parse_field_query(query)
    if not fq.is_usable:
        return SearchResult()

    fallback_terms = fq.all.positive_terms if fuzzy and fq.all is not None else []

    matched: list[Entity] = []
    for entity in graph.entities:
        if entity_matches_field_query(entity, fq):
            matched.append(entity)
        elif fallback_terms and fuzzy_match_any(entity.text, fallback_terms):
            matched.append(entity)

    score_query = strip_field_prefixes(query) or query
    ranked = sorted(
        ((e, score_entity(e, score_query, fuzzy)) for e in matched),
        key=lambda pair: pair[1],
        reverse=True,
    )
    if limit:
        ranked = ranked[:limit]

    entities = [e for e, _ in ranked]
    scores = [EntityScore(e.name, s) for e, s in ranked]
    names = {e.name for e in entities}

    if include_neighbors and names:
        by_name = graph.entity_map()
        neighbors: dict[str, None] = {}
        for rel in graph.relations:
            if rel.from_entity in names:
                neighbors[rel.to_entity] = None
            if rel.to_entity in names:
                neighbors[rel.from_entity] = None
        for name in neighbors:
            if name not in names and name in by_name:
                entities.append(by_name[name])
                names.add(name)

    relations = [r for r in graph.relations if r.touches(names)]
    return SearchResult(entities=entities, relations=relations, scores=scores)


def search_observations(
    graph: KnowledgeGraph,
    query: str,
    *,
    limit: int = 10,
    include_entity: bool = False,
    fuzzy: bool = False,
) -> ObservationSearchResult:
    """Return individual observations ranked by score_observation.

    Only the boolean syntax applies here; field prefixes are plain text.
    """
    if limit < 0:
        msg = f"limit must be non-negative: {limit}"
        raise ValueError(msg)
    if not query.strip():
        return ObservationSearchResult()

    parsed = parse_query(query)
    fallback_terms = parsed.positive_terms if fuzzy else []
    score_query = _OPERATOR_CHARS_RE.sub(" ", query).strip()

    matches: list[ObservationMatch] = []
    for entity in graph.entities:
        for obs in entity.observations:
            if not matches_parsed_query(obs, parsed) and not (
                fallback_terms and fuzzy_match_any(obs, fallback_terms)
            ):
                continue
            score = score_observation(obs, score_query, fuzzy)
            if score > 0:
                matches.append(ObservationMatch(entity.name, entity.entity_type, obs, score))

    matches.sort(key=lambda m: m.score, reverse=True)
    matches = matches[:limit]

    if not include_entity:
        return ObservationSearchResult(matches=matches)
    parents = {m.entity_name for m in matches}
    return ObservationSearchResult(
        matches=matches,
        entities=[e for e in graph.entities if e.name in parents],
    )


def filter_by_type(graph: KnowledgeGraph, entity_type: str) -> KnowledgeGraph:
    wanted = entity_type.lower()
    entities = [e for e in graph.entities if e.entity_type.lower() == wanted]
    names = {e.name for e in entities}
    return KnowledgeGraph(entities, [r for r in graph.relations if r.within(names)])


def filter_relations(
    graph: KnowledgeGraph,
    *,
    relation_type: str | None = None,
    from_entity: str | None = None,
    to_entity: str | None = None,
) -> RelationFilterResult:
    """Relations matching every given criterion; relation_type ignores case."""
    wanted_type = relation_type.lower() if relation_type else None
    relations = [
        r for r in graph.relations
        if (not wanted_type or r.relation_type.lower() == wanted_type)
        and (not from_entity or r.from_entity == from_entity)
        and (not to_entity or r.to_entity == to_entity)
    ]
    endpoints = {r.from_entity for r in relations} | {r.to_entity for r in relations}
    return RelationFilterResult(
        relations=relations,
        entities=[e for e in graph.entities if e.name in endpoints],
    )


class ObservationPreset(enum.Enum):
    """Named observation filters."""

    DATED = re.compile(r"^\[\d{4}-\d{2}-\d{2}\]")
    TECHDEBT = re.compile(r"tech\s*debt|TODO|FIXME|HACK", re.IGNORECASE)
    DEPRECATED = re.compile(r"deprecated", re.IGNORECASE)
    PURPOSE = re.compile(r"purpose:", re.IGNORECASE)
    QUIRK = re.compile(r"quirk:", re.IGNORECASE)

    @classmethod
    def lookup(cls, name: str) -> ObservationPreset | None:
        return cls.__members__.get(name.upper())


def compile_observation_pattern(pattern: str) -> re.Pattern[str]:
    """Resolve a preset name (any case) or compile pattern as a case-insensitive regex."""
    preset = ObservationPreset.lookup(pattern)
    if preset is not None:
        return preset.value
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise InvalidPatternError(pattern, str(exc)) from exc


def filter_by_observation(graph: KnowledgeGraph, pattern: str) -> list[Entity]:
    regex = compile_observation_pattern(pattern)
    return [e for e in graph.entities if any(regex.search(obs) for obs in e.observations)]
