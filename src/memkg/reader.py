"""Read and write the JSONL memory file.

GraphStore is the public API:
    store = GraphStore("/path/to/memory.jsonl")
    store.create_entities([Entity("Alice", "person", ["Software engineer"])])
    graph = store.load()

memory.jsonl line types (entities first, then relations, in insertion order):
    {"type":"entity", "name":..., "entityType":..., "observations":[...]}
    {"type":"relation", "from":..., "to":..., "relationType":...}

Every mutation is one load -> modify -> save unit, run under an in-process
RLock plus flock(LOCK_EX) on <file>.lock, so concurrent writers serialize
instead of losing updates. Saves write <file>.tmp and rename it over the
target.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from memkg.errors import EntityNotFoundError, StorageError
from memkg.models import AddedObservations, Entity, KnowledgeGraph, Relation

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from memkg.models import ObservationAddition, ObservationDeletion

logger = logging.getLogger("memkg.reader")


class GraphStore:
    """JSONL-backed entity/relation store."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def _lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    @property
    def _tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> KnowledgeGraph:
        """Parse the memory file. A missing file is an empty graph."""
        graph = KnowledgeGraph()
        try:
            f = self.path.open(encoding="utf-8")
        except FileNotFoundError:
            return graph
        except OSError as exc:
            msg = f"Cannot read {self.path}: {exc}"
            raise StorageError(msg) from exc

        with f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                    kind = obj.get("type")
                    if kind == "entity":
                        graph.entities.append(Entity.from_dict(obj))
                    elif kind == "relation":
                        graph.relations.append(Relation.from_dict(obj))
                except (json.JSONDecodeError, AttributeError, KeyError, TypeError) as exc:
                    msg = f"Corrupt record at {self.path}:{lineno}: {exc}"
                    raise StorageError(msg) from exc

        logger.debug(
            "loaded %s: %d entities, %d relations",
            self.path, len(graph.entities), len(graph.relations),
        )
        return graph

    def save(self, graph: KnowledgeGraph) -> None:
        """Rewrite the whole file: entities block, then relations block."""
        lines = [json.dumps(e.to_record(), ensure_ascii=False) + "\n" for e in graph.entities]
        lines += [json.dumps(r.to_record(), ensure_ascii=False) + "\n" for r in graph.relations]
        tmp = self._tmp_path
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.writelines(lines)
            tmp.replace(self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            msg = f"Cannot write {self.path}: {exc}"
            raise StorageError(msg) from exc
        logger.debug(
            "saved %s: %d entities, %d relations",
            self.path, len(graph.entities), len(graph.relations),
        )

    @contextlib.contextmanager
    def transaction(self) -> Iterator[KnowledgeGraph]:
        """Load under an exclusive lock, yield the graph, save it on clean exit."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                lock_file = self._lock_path.open("a")
            except OSError as exc:
                msg = f"Cannot lock {self.path}: {exc}"
                raise StorageError(msg) from exc
            with lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                graph = self.load()
                yield graph
                self.save(graph)

    # ------------------------------------------------------------------
    # Write: create
    # ------------------------------------------------------------------

    def create_entities(self, entities: Iterable[Entity]) -> list[Entity]:
        """Append entities whose name is new; existing names are dropped, not updated."""
        with self.transaction() as graph:
            seen = graph.names()
            created: list[Entity] = []
            for e in entities:
                if e.name in seen:
                    continue
                seen.add(e.name)
                entity = Entity(e.name, e.entity_type, _dedup(e.observations))
                graph.entities.append(entity)
                created.append(entity)
        logger.debug("created %d entities", len(created))
        return created

    def create_relations(self, relations: Iterable[Relation]) -> list[Relation]:
        """Append relations whose (from, to, relationType) triple is new."""
        with self.transaction() as graph:
            seen = {r.key for r in graph.relations}
            created: list[Relation] = []
            for r in relations:
                if r.key in seen:
                    continue
                seen.add(r.key)
                graph.relations.append(r)
                created.append(r)
        logger.debug("created %d relations", len(created))
        return created

    def add_observations(self, additions: Iterable[ObservationAddition]) -> list[AddedObservations]:
        """Append unseen observations. Any unknown entity aborts the whole batch unchanged."""
        additions = list(additions)
        with self.transaction() as graph:
            by_name = graph.entity_map()
            for a in additions:
                if a.entity_name not in by_name:
                    raise EntityNotFoundError(a.entity_name)

            results: list[AddedObservations] = []
            for a in additions:
                entity = by_name[a.entity_name]
                added: list[str] = []
                for content in a.contents:
                    if content not in entity.observations:
                        entity.observations.append(content)
                        added.append(content)
                results.append(AddedObservations(a.entity_name, added))
        logger.debug("added observations to %d entities", len(results))
        return results

    # ------------------------------------------------------------------
    # Write: delete (missing targets are silently ignored)
    # ------------------------------------------------------------------

    def delete_entities(self, names: Iterable[str]) -> None:
        """Remove the named entities and every relation touching them."""
        doomed = set(names)
        with self.transaction() as graph:
            graph.entities = [e for e in graph.entities if e.name not in doomed]
            graph.relations = [r for r in graph.relations if not r.touches(doomed)]

    def delete_observations(self, deletions: Iterable[ObservationDeletion]) -> None:
        with self.transaction() as graph:
            by_name = graph.entity_map()
            for d in deletions:
                entity = by_name.get(d.entity_name)
                if entity is None:
                    continue
                drop = set(d.observations)
                entity.observations = [o for o in entity.observations if o not in drop]

    def delete_relations(self, relations: Iterable[Relation]) -> None:
        doomed = {r.key for r in relations}
        with self.transaction() as graph:
            graph.relations = [r for r in graph.relations if r.key not in doomed]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_graph(self) -> KnowledgeGraph:
        with self._lock:
            return self.load()


def _dedup(items: Iterable[str]) -> list[str]:
    """Drop repeated strings, keeping first-insertion order."""
    return list(dict.fromkeys(items))
