"""Data models for the entity/relation graph and the results of graph queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Entity:
    """A named node: type tag plus an ordered list of observations."""

    name: str
    entity_type: str
    observations: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Entity:
        return cls(
            name=d["name"],
            entity_type=d.get("entityType", ""),
            observations=list(d.get("observations", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entityType": self.entity_type,
            "observations": list(self.observations),
        }

    def to_record(self) -> dict[str, Any]:
        """Persisted line shape (discriminated by "type")."""
        return {"type": "entity", **self.to_dict()}

    @property
    def text(self) -> str:
        """Name, type and all observations joined for all-fields matching."""
        return f"{self.name} {self.entity_type} {' '.join(self.observations)}"


@dataclass(frozen=True)
class Relation:
    """A directed, typed edge between two entity names."""

    from_entity: str
    to_entity: str
    relation_type: str

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.from_entity, self.to_entity, self.relation_type)

    def touches(self, names: set[str] | frozenset[str]) -> bool:
        return self.from_entity in names or self.to_entity in names

    def within(self, names: set[str] | frozenset[str]) -> bool:
        return self.from_entity in names and self.to_entity in names

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Relation:
        return cls(
            from_entity=d["from"],
            to_entity=d["to"],
            relation_type=d.get("relationType", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_entity,
            "to": self.to_entity,
            "relationType": self.relation_type,
        }

    def to_record(self) -> dict[str, Any]:
        return {"type": "relation", **self.to_dict()}


@dataclass
class KnowledgeGraph:
    """Entities (unique by name) plus the relation list, in insertion order."""

    entities: list[Entity] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)

    def entity_map(self) -> dict[str, Entity]:
        return {e.name: e for e in self.entities}

    def names(self) -> set[str]:
        return {e.name for e in self.entities}

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }


# ---------------------------------------------------------------------------
# Operation inputs
# ---------------------------------------------------------------------------


@dataclass
class ObservationAddition:
    entity_name: str
    contents: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ObservationAddition:
        return cls(entity_name=d["entityName"], contents=list(d.get("contents", [])))


@dataclass
class ObservationDeletion:
    entity_name: str
    observations: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ObservationDeletion:
        return cls(entity_name=d["entityName"], observations=list(d.get("observations", [])))


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass
class AddedObservations:
    entity_name: str
    added_observations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"entityName": self.entity_name, "addedObservations": list(self.added_observations)}


@dataclass
class EntityScore:
    name: str
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "score": self.score}


@dataclass
class SearchResult:
    """search_nodes output; scores cover only the direct (pre-neighbor) matches."""

    entities: list[Entity] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    scores: list[EntityScore] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
            "scores": [s.to_dict() for s in self.scores],
        }


@dataclass
class NeighborResult:
    entity: Entity
    relation: Relation
    direction: str                      # incoming | outgoing

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity.to_dict(),
            "relation": self.relation.to_dict(),
            "direction": self.direction,
        }


@dataclass
class PathResult:
    path: list[Entity]
    relations: list[Relation]
    length: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": [e.to_dict() for e in self.path],
            "relations": [r.to_dict() for r in self.relations],
            "length": self.length,
        }


@dataclass
class RelationFilterResult:
    relations: list[Relation] = field(default_factory=list)
    entities: list[Entity] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "relations": [r.to_dict() for r in self.relations],
            "entities": [e.to_dict() for e in self.entities],
        }


@dataclass
class ObservationMatch:
    entity_name: str
    entity_type: str
    observation: str
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityName": self.entity_name,
            "entityType": self.entity_type,
            "observation": self.observation,
            "score": self.score,
        }


@dataclass
class ObservationSearchResult:
    matches: list[ObservationMatch] = field(default_factory=list)
    entities: list[Entity] | None = None    # only set when include_entity was requested

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"matches": [m.to_dict() for m in self.matches]}
        if self.entities is not None:
            d["entities"] = [e.to_dict() for e in self.entities]
        return d
