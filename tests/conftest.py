"""Shared fixtures: a store on a temp file and a manager over it."""

import pytest

from memkg.manager import KnowledgeGraphManager
from memkg.models import Entity, Relation
from memkg.reader import GraphStore


@pytest.fixture
def memory_file(tmp_path):
    return tmp_path / "memory.jsonl"


@pytest.fixture
def store(memory_file):
    return GraphStore(memory_file)


@pytest.fixture
def manager(store):
    return KnowledgeGraphManager(store)


@pytest.fixture
def people(manager):
    """Alice works at TechCorp; Bob is unconnected."""
    manager.create_entities([
        Entity("Alice", "person", ["Software engineer", "Likes Python"]),
        Entity("TechCorp", "organization", ["AI startup"]),
        Entity("Bob", "person", ["Designer"]),
    ])
    manager.create_relations([Relation("Alice", "TechCorp", "works_at")])
    return manager


@pytest.fixture
def chain(manager):
    """A - B - C - D (imports), Z disconnected."""
    manager.create_entities([Entity(n, "Module", []) for n in ("A", "B", "C", "D", "Z")])
    manager.create_relations([
        Relation("A", "B", "imports"),
        Relation("B", "C", "imports"),
        Relation("C", "D", "imports"),
    ])
    return manager
