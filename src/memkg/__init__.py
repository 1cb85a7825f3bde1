"""Entity/relation memory graph: one JSONL file as source of truth, searched in memory.

Layout:
    memkg.toml        # optional project config
    memory.jsonl      # the graph

memory.jsonl line types:
    {"type":"entity", "name":..., "entityType":..., "observations":[...]}
    {"type":"relation", "from":..., "to":..., "relationType":...}

Every operation reloads the file; mutations rewrite it whole (tmp + rename)
under flock(LOCK_EX) on memory.jsonl.lock.
"""

from memkg.config import MemKGConfig, init_config, load_config
from memkg.errors import EntityNotFoundError, InvalidPatternError, KGError, StorageError
from memkg.manager import KnowledgeGraphManager
from memkg.models import Entity, KnowledgeGraph, Relation
from memkg.reader import GraphStore

__all__ = [
    "Entity",
    "EntityNotFoundError",
    "GraphStore",
    "InvalidPatternError",
    "KGError",
    "KnowledgeGraph",
    "KnowledgeGraphManager",
    "MemKGConfig",
    "Relation",
    "StorageError",
    "init_config",
    "load_config",
]
