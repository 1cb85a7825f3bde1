"""Tests for the memkg command line."""

import pytest
from click.testing import CliRunner

from memkg.cli import cli


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv("MEMORY_FILE_PATH", raising=False)


@pytest.fixture
def run(tmp_path):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--root", str(tmp_path), *args])

    return _run


@pytest.fixture
def graph(run):
    run("add", "Alice", "person", "Software engineer")
    run("add", "TechCorp", "organization", "AI startup")
    run("add", "Bob", "person")
    run("relate", "Alice", "works_at", "TechCorp")
    return run


def test_init(tmp_path):
    result = CliRunner().invoke(cli, ["init", "--dir", str(tmp_path), "--file", "kg.jsonl"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "memkg.toml").exists()
    assert str(tmp_path / "kg.jsonl") in result.output

    again = CliRunner().invoke(cli, ["init", "--dir", str(tmp_path)])
    assert again.exit_code == 0
    assert "already exists" in again.output


def test_add_writes_jsonl(graph, tmp_path):
    lines = (tmp_path / "memory.jsonl").read_text().splitlines()
    assert len(lines) == 4
    assert graph("add", "Alice", "person").output.strip() == "Alice already exists, skipped"


def test_status(graph):
    result = graph("status")
    assert result.exit_code == 0, result.output
    assert "Entities" in result.output
    assert "type=person" in result.output


def test_show(graph):
    result = graph("show", "Alice", "TechCorp")
    assert "# Alice" in result.output
    assert "Alice --works_at--> TechCorp" in result.output


def test_observe_and_forget(graph):
    result = graph("observe", "Alice", "Likes Python", "Software engineer")
    assert "Added 1 observation(s) to Alice" in result.output
    graph("forget", "Alice", "Likes Python")
    assert "Likes Python" not in graph("show", "Alice").output


def test_observe_missing_entity_fails(graph):
    result = graph("observe", "Nobody", "x")
    assert result.exit_code == 1
    assert "Entity with name Nobody not found" in result.output


def test_search(graph):
    result = graph("search", "type:person")
    assert result.exit_code == 0
    assert "Alice" in result.output and "Bob" in result.output
    assert "TechCorp" not in result.output.split("Relations:")[0]


def test_search_neighbors_and_no_results(graph):
    assert "[neighbor]" in graph("search", "name:Alice", "--neighbors").output
    assert graph("search", "kubernetes").output.strip() == "(no results)"


def test_observations(graph):
    result = graph("observations", "startup")
    assert "[TechCorp] AI startup" in result.output


def test_neighbors(graph):
    result = graph("neighbors", "TechCorp", "-d", "incoming")
    assert "<- Alice  (works_at)" in result.output
    assert graph("neighbors", "TechCorp", "-d", "outgoing").output.strip() == "(no results)"


def test_path(graph):
    result = graph("path", "TechCorp", "Alice")
    assert "length=1" in result.output
    assert "No path found" in graph("path", "Alice", "Bob").output


def test_subgraph_and_filters(graph):
    assert "TechCorp" in graph("subgraph", "Alice").output
    assert "Bob" in graph("by-type", "PERSON").output
    assert "Alice --works_at--> TechCorp" in graph("relations", "--type", "WORKS_AT").output
    assert "TechCorp" in graph("grep", "startup").output


def test_grep_invalid_pattern(graph):
    result = graph("grep", "([")
    assert result.exit_code == 1
    assert "Invalid pattern" in result.output


def test_unrelate_and_delete(graph):
    graph("unrelate", "Alice", "works_at", "TechCorp")
    assert graph("relations").output.strip() == "(no results)"
    graph("delete", "Alice")
    assert graph("show", "Alice").output.strip() == "(no results)"


def test_corrupt_file_reported(run, tmp_path):
    (tmp_path / "memory.jsonl").write_text("not json\n")
    result = run("status")
    assert result.exit_code == 1
    assert "Corrupt record" in result.output
