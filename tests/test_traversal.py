"""Tests for neighbours, shortest path, subgraph extraction and open_nodes."""

import itertools
import random
from collections import deque

import pytest

from memkg.models import Entity, KnowledgeGraph, Relation
from memkg.traversal import find_path, get_neighbors, get_subgraph, open_nodes


class TestOpenNodes:
    def test_only_relations_between_opened(self, people):
        graph = people.open_nodes(["Alice", "TechCorp"])
        assert [e.name for e in graph.entities] == ["Alice", "TechCorp"]
        assert len(graph.relations) == 1

        graph = people.open_nodes(["Alice", "Bob"])
        assert graph.relations == []

    def test_missing_and_empty(self, people):
        assert people.open_nodes(["Nobody"]).entities == []
        assert people.open_nodes([]).entities == []


class TestGetNeighbors:
    def test_incoming(self, people):
        (n,) = people.get_neighbors("TechCorp")
        assert n.entity.name == "Alice"
        assert n.direction == "incoming"
        assert n.relation == Relation("Alice", "TechCorp", "works_at")

    def test_direction_filter(self, chain):
        assert [n.entity.name for n in chain.get_neighbors("B")] == ["A", "C"]
        assert [n.entity.name for n in chain.get_neighbors("B", direction="outgoing")] == ["C"]
        assert [n.entity.name for n in chain.get_neighbors("B", direction="incoming")] == ["A"]

    def test_relation_type_filter(self, chain):
        chain.create_relations([Relation("B", "Z", "calls")])
        assert [n.entity.name for n in chain.get_neighbors("B", relation_type="calls")] == ["Z"]

    def test_missing_entity(self, chain):
        assert chain.get_neighbors("Nope") == []

    def test_dangling_endpoint_skipped(self, chain):
        chain.create_relations([Relation("A", "Ghost", "imports")])
        assert [n.entity.name for n in chain.get_neighbors("A")] == ["B"]

    def test_self_relation_reported_per_direction(self):
        graph = KnowledgeGraph([Entity("A", "t")], [Relation("A", "A", "self")])
        assert [n.direction for n in get_neighbors(graph, "A")] == ["outgoing", "incoming"]
        assert len(get_neighbors(graph, "A", direction="incoming")) == 1

    def test_bad_direction(self):
        with pytest.raises(ValueError, match="direction"):
            get_neighbors(KnowledgeGraph(), "A", direction="sideways")


class TestFindPath:
    def test_direct(self, people):
        result = people.find_path("Alice", "TechCorp")
        assert [e.name for e in result.path] == ["Alice", "TechCorp"]
        assert result.relations == [Relation("Alice", "TechCorp", "works_at")]
        assert result.length == 1

    def test_multi_hop(self, chain):
        result = chain.find_path("A", "D")
        assert [e.name for e in result.path] == ["A", "B", "C", "D"]
        assert result.length == 3

    def test_against_relation_direction(self, chain):
        result = chain.find_path("D", "A")
        assert [e.name for e in result.path] == ["D", "C", "B", "A"]
        # stored direction is kept
        assert result.relations[0] == Relation("C", "D", "imports")

    def test_same_entity(self, chain):
        result = chain.find_path("A", "A")
        assert [e.name for e in result.path] == ["A"]
        assert result.relations == [] and result.length == 0

    def test_disconnected_and_missing(self, chain):
        assert chain.find_path("A", "Z") is None
        assert chain.find_path("A", "Nope") is None
        assert chain.find_path("Nope", "A") is None

    def test_max_depth(self, chain):
        assert chain.find_path("A", "D", 2) is None
        assert chain.find_path("A", "D", 3).length == 3
        assert chain.find_path("A", "B", 0) is None

    def test_negative_depth_rejected(self, chain):
        with pytest.raises(ValueError, match="max_depth"):
            chain.find_path("A", "D", -1)

    def test_path_through_dangling_relation_not_taken(self):
        graph = KnowledgeGraph(
            [Entity("A", "t"), Entity("B", "t")],
            [Relation("A", "Ghost", "r"), Relation("Ghost", "B", "r")],
        )
        assert find_path(graph, "A", "B") is None

    def test_shortest_on_random_graphs(self):
        rng = random.Random(7)
        for _ in range(30):
            names = [f"n{i}" for i in range(8)]
            relations = [
                Relation(a, b, "r")
                for a, b in itertools.permutations(names, 2)
                if rng.random() < 0.15
            ]
            graph = KnowledgeGraph([Entity(n, "t") for n in names], relations)
            for a, b in itertools.product(names, repeat=2):
                expected = _bfs_distance(graph, a, b)
                result = find_path(graph, a, b)
                if expected is None:
                    assert result is None
                else:
                    assert result.length == expected
                    assert len(result.path) == expected + 1


def _bfs_distance(graph, start, goal):
    adjacency = {e.name: set() for e in graph.entities}
    for r in graph.relations:
        adjacency[r.from_entity].add(r.to_entity)
        adjacency[r.to_entity].add(r.from_entity)
    dist = {start: 0}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for nxt in adjacency[node]:
            if nxt not in dist:
                dist[nxt] = dist[node] + 1
                queue.append(nxt)
    return dist.get(goal)


class TestGetSubgraph:
    def test_one_hop(self, chain):
        names = {e.name for e in chain.get_subgraph(["B"], 1).entities}
        assert names == {"A", "B", "C"}

    def test_two_hops(self, chain):
        graph = chain.get_subgraph(["A"], 2)
        assert {e.name for e in graph.entities} == {"A", "B", "C"}
        assert [r.key for r in graph.relations] == [("A", "B", "imports"), ("B", "C", "imports")]

    def test_zero_hops_is_just_the_seeds(self, chain):
        graph = chain.get_subgraph(["A", "D"], 0)
        assert [e.name for e in graph.entities] == ["A", "D"]
        assert graph.relations == []

    def test_zero_hops_keeps_relations_among_adjacent_seeds(self, chain):
        graph = chain.get_subgraph(["A", "B"], 0)
        assert [e.name for e in graph.entities] == ["A", "B"]
        assert [r.key for r in graph.relations] == [("A", "B", "imports")]

    def test_missing_seed_ignored(self, chain):
        graph = chain.get_subgraph(["Nope", "Z"], 3)
        assert [e.name for e in graph.entities] == ["Z"]

    def test_dangling_neighbour_not_returned(self):
        graph = KnowledgeGraph([Entity("A", "t")], [Relation("A", "Ghost", "r")])
        result = get_subgraph(graph, ["A"], 1)
        assert [e.name for e in result.entities] == ["A"]
        # both names are in the expanded set, so the edge is kept
        assert len(result.relations) == 1

    def test_negative_depth_rejected(self):
        with pytest.raises(ValueError, match="depth"):
            get_subgraph(KnowledgeGraph(), ["A"], -1)


def test_open_nodes_pure():
    graph = KnowledgeGraph([Entity("A", "t"), Entity("B", "t")], [Relation("A", "B", "r")])
    assert open_nodes(graph, ["A", "B"]).relations == [Relation("A", "B", "r")]
