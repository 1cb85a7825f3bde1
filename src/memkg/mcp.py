"""Stdio MCP server for memkg.

Tools (same names as the memory MCP server they replace):
    create_entities, create_relations, add_observations
    delete_entities, delete_observations, delete_relations
    read_graph, open_nodes, search_nodes, search_observations
    get_neighbors, find_path, get_subgraph
    filter_by_type, filter_relations, filter_observations

Each tools/call result carries the JSON as text content plus the same data
as structuredContent.

Protocol: JSON-RPC 2.0 over stdin/stdout (MCP spec).
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Any

from memkg.manager import KnowledgeGraphManager
from memkg.models import Entity, ObservationAddition, ObservationDeletion, Relation

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from memkg.config import MemKGConfig

_VERSION = "0.1.0"
_SERVER_NAME = "memory-server"
_PROTOCOL_VERSION = "2024-11-05"

logger = logging.getLogger("memkg.mcp")

_ENTITY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "The name of the entity"},
        "entityType": {"type": "string", "description": "The type of the entity"},
        "observations": {
            "type": "array",
            "items": {"type": "string"},
            "description": "An array of observation contents associated with the entity",
        },
    },
    "required": ["name", "entityType", "observations"],
}

_RELATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "from": {"type": "string", "description": "The name of the entity where the relation starts"},
        "to": {"type": "string", "description": "The name of the entity where the relation ends"},
        "relationType": {"type": "string", "description": "The type of the relation"},
    },
    "required": ["from", "to", "relationType"],
}

_QUERY_SYNTAX = """\
Query Syntax:
- Multiple words: OR logic (matches any word)
- +term: Required (must be present)
- -term: Excluded (must NOT be present)
- "phrase": Exact phrase match"""


def _tool_defs() -> list[dict[str, Any]]:
    return [
        {
            "name": "create_entities",
            "description": "Create multiple new entities in the knowledge graph",
            "inputSchema": {
                "type": "object",
                "properties": {"entities": {"type": "array", "items": _ENTITY_SCHEMA}},
                "required": ["entities"],
            },
        },
        {
            "name": "create_relations",
            "description": (
                "Create multiple new relations between entities in the knowledge graph. "
                "Relations should be in active voice"
            ),
            "inputSchema": {
                "type": "object",
                "properties": {"relations": {"type": "array", "items": _RELATION_SCHEMA}},
                "required": ["relations"],
            },
        },
        {
            "name": "add_observations",
            "description": "Add new observations to existing entities in the knowledge graph",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "observations": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "entityName": {"type": "string"},
                                "contents": {"type": "array", "items": {"type": "string"}},
                            },
                            "required": ["entityName", "contents"],
                        },
                    },
                },
                "required": ["observations"],
            },
        },
        {
            "name": "delete_entities",
            "description": "Delete multiple entities and their associated relations from the knowledge graph",
            "inputSchema": {
                "type": "object",
                "properties": {"entityNames": {"type": "array", "items": {"type": "string"}}},
                "required": ["entityNames"],
            },
        },
        {
            "name": "delete_observations",
            "description": "Delete specific observations from entities in the knowledge graph",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "deletions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "entityName": {"type": "string"},
                                "observations": {"type": "array", "items": {"type": "string"}},
                            },
                            "required": ["entityName", "observations"],
                        },
                    },
                },
                "required": ["deletions"],
            },
        },
        {
            "name": "delete_relations",
            "description": "Delete multiple relations from the knowledge graph",
            "inputSchema": {
                "type": "object",
                "properties": {"relations": {"type": "array", "items": _RELATION_SCHEMA}},
                "required": ["relations"],
            },
        },
        {
            "name": "read_graph",
            "description": "Read the entire knowledge graph",
            "inputSchema": {"type": "object", "properties": {}},
        },
        {
            "name": "search_nodes",
            "description": (
                "Search for nodes in the knowledge graph. Returns full entities with scores.\n"
                f"{_QUERY_SYNTAX}\n"
                "- name:value / type:value / obs:value: Search only that field"
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "includeNeighbors": {"type": "boolean", "default": False},
                    "fuzzy": {"type": "boolean", "default": False},
                    "limit": {"type": "integer"},
                },
                "required": ["query"],
            },
        },
        {
            "name": "open_nodes",
            "description": "Open specific nodes in the knowledge graph by their names",
            "inputSchema": {
                "type": "object",
                "properties": {"names": {"type": "array", "items": {"type": "string"}}},
                "required": ["names"],
            },
        },
        {
            "name": "get_neighbors",
            "description": "Get all entities directly connected to a given entity via relations.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "entityName": {"type": "string"},
                    "direction": {"type": "string", "enum": ["incoming", "outgoing", "both"], "default": "both"},
                    "relationType": {"type": "string"},
                },
                "required": ["entityName"],
            },
        },
        {
            "name": "find_path",
            "description": "Find the shortest path between two entities (breadth-first, relations undirected).",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "fromEntity": {"type": "string"},
                    "toEntity": {"type": "string"},
                    "maxDepth": {"type": "integer", "minimum": 0},
                },
                "required": ["fromEntity", "toEntity"],
            },
        },
        {
            "name": "get_subgraph",
            "description": "Extract the seed entities and their N-hop neighborhood.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "entityNames": {"type": "array", "items": {"type": "string"}},
                    "depth": {"type": "integer", "minimum": 0},
                },
                "required": ["entityNames"],
            },
        },
        {
            "name": "filter_by_type",
            "description": "Get all entities of a specific type (case-insensitive) and the relations between them.",
            "inputSchema": {
                "type": "object",
                "properties": {"entityType": {"type": "string"}},
                "required": ["entityType"],
            },
        },
        {
            "name": "filter_relations",
            "description": "Filter relations by type, source entity, or target entity.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "relationType": {"type": "string"},
                    "fromEntity": {"type": "string"},
                    "toEntity": {"type": "string"},
                },
            },
        },
        {
            "name": "filter_observations",
            "description": (
                "Find entities with observations matching a pattern. Presets: dated, techdebt, "
                "deprecated, purpose, quirk. Anything else is a case-insensitive regex."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {"pattern": {"type": "string"}},
                "required": ["pattern"],
            },
        },
        {
            "name": "search_observations",
            "description": (
                "Search at the observation level, returning individual matching observations "
                f"with their parent entity context.\n{_QUERY_SYNTAX}"
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "limit": {"type": "integer", "default": 10},
                    "includeEntity": {"type": "boolean", "default": False},
                    "fuzzy": {"type": "boolean", "default": False},
                },
                "required": ["query"],
            },
        },
    ]


class MemoryServer:
    def __init__(self, manager: KnowledgeGraphManager, cfg: MemKGConfig | None = None) -> None:
        from memkg.config import SearchConfig
        self.manager = manager
        self._search = cfg.search if cfg is not None else SearchConfig()

    @classmethod
    def from_config(cls, config_root: Path | None = None) -> MemoryServer:
        from memkg.config import load_config
        cfg = load_config(config_root)
        cfg.migrate_legacy()
        return cls(KnowledgeGraphManager(cfg.memory_file), cfg)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _call_create_entities(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        created = self.manager.create_entities(Entity.from_dict(e) for e in args["entities"])
        return None, {"entities": [e.to_dict() for e in created]}

    def _call_create_relations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        created = self.manager.create_relations(Relation.from_dict(r) for r in args["relations"])
        return None, {"relations": [r.to_dict() for r in created]}

    def _call_add_observations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        results = self.manager.add_observations(
            ObservationAddition.from_dict(o) for o in args["observations"]
        )
        return None, {"results": [r.to_dict() for r in results]}

    def _call_delete_entities(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        self.manager.delete_entities(args["entityNames"])
        return _done("Entities deleted successfully")

    def _call_delete_observations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        self.manager.delete_observations(ObservationDeletion.from_dict(d) for d in args["deletions"])
        return _done("Observations deleted successfully")

    def _call_delete_relations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        self.manager.delete_relations(Relation.from_dict(r) for r in args["relations"])
        return _done("Relations deleted successfully")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _call_read_graph(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:  # noqa: ARG002
        return None, self.manager.read_graph().to_dict()

    def _call_open_nodes(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        return None, self.manager.open_nodes(args["names"]).to_dict()

    def _call_search_nodes(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        limit = args.get("limit")
        result = self.manager.search_nodes(
            args["query"],
            include_neighbors=bool(args.get("includeNeighbors", False)),
            fuzzy=bool(args.get("fuzzy", False)),
            limit=int(limit) if limit is not None else None,
        )
        return None, result.to_dict()

    def _call_search_observations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        result = self.manager.search_observations(
            args["query"],
            limit=int(args.get("limit", self._search.observation_limit)),
            include_entity=bool(args.get("includeEntity", False)),
            fuzzy=bool(args.get("fuzzy", False)),
        )
        return None, result.to_dict()

    def _call_get_neighbors(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        neighbors = self.manager.get_neighbors(
            args["entityName"],
            direction=args.get("direction") or "both",
            relation_type=args.get("relationType"),
        )
        return None, {"neighbors": [n.to_dict() for n in neighbors]}

    def _call_find_path(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        max_depth = args.get("maxDepth")
        result = self.manager.find_path(
            args["fromEntity"],
            args["toEntity"],
            int(max_depth) if max_depth is not None else self._search.max_path_depth,
        )
        if result is None:
            return (
                "No path found between the specified entities",
                {"path": None, "relations": None, "length": None},
            )
        return None, result.to_dict()

    def _call_get_subgraph(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        depth = args.get("depth")
        graph = self.manager.get_subgraph(
            args["entityNames"],
            int(depth) if depth is not None else self._search.subgraph_depth,
        )
        return None, graph.to_dict()

    def _call_filter_by_type(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        return None, self.manager.filter_by_type(args["entityType"]).to_dict()

    def _call_filter_relations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        result = self.manager.filter_relations(
            relation_type=args.get("relationType"),
            from_entity=args.get("fromEntity"),
            to_entity=args.get("toEntity"),
        )
        return None, result.to_dict()

    def _call_filter_observations(self, args: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        entities = self.manager.filter_by_observation(args["pattern"])
        return None, {"entities": [e.to_dict() for e in entities]}

    def call_tool(self, name: str, arguments: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Run a tool; returns (text content, structured content)."""
        dispatch: dict[str, Callable[[dict[str, Any]], tuple[str | None, dict[str, Any]]]] = {
            "create_entities": self._call_create_entities,
            "create_relations": self._call_create_relations,
            "add_observations": self._call_add_observations,
            "delete_entities": self._call_delete_entities,
            "delete_observations": self._call_delete_observations,
            "delete_relations": self._call_delete_relations,
            "read_graph": self._call_read_graph,
            "open_nodes": self._call_open_nodes,
            "search_nodes": self._call_search_nodes,
            "search_observations": self._call_search_observations,
            "get_neighbors": self._call_get_neighbors,
            "find_path": self._call_find_path,
            "get_subgraph": self._call_get_subgraph,
            "filter_by_type": self._call_filter_by_type,
            "filter_relations": self._call_filter_relations,
            "filter_observations": self._call_filter_observations,
        }
        if name not in dispatch:
            msg = f"Unknown tool: {name}"
            raise ValueError(msg)
        text, structured = dispatch[name](arguments)
        if text is None:
            text = _to_text(name, structured)
        return text, structured

    def handle_message(self, msg: dict[str, Any]) -> dict[str, Any] | None:
        """Answer one JSON-RPC message; None for notifications."""
        method = msg.get("method", "")
        msg_id = msg.get("id")

        if method == "initialize":
            return _reply(msg_id, {
                "protocolVersion": _PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": _SERVER_NAME, "version": _VERSION},
            })

        if method == "notifications/initialized":
            return None  # no response for notifications

        if method == "tools/list":
            return _reply(msg_id, {"tools": _tool_defs()})

        if method == "tools/call":
            params = msg.get("params", {})
            tool_name = params.get("name", "")
            arguments = params.get("arguments") or {}
            try:
                text, structured = self.call_tool(tool_name, arguments)
            except KeyError as exc:
                logger.warning("tool %s: missing argument %s", tool_name, exc)
                return _tool_error(msg_id, f"missing argument {exc}")
            except Exception as exc:
                logger.warning("tool %s failed: %s", tool_name, exc)
                return _tool_error(msg_id, str(exc))
            return _reply(msg_id, {
                "content": [{"type": "text", "text": text}],
                "structuredContent": structured,
                "isError": False,
            })

        if msg_id is not None:
            return {
                "jsonrpc": "2.0",
                "id": msg_id,
                "error": {"code": -32601, "message": f"Method not found: {method}"},
            }
        return None


def _done(message: str) -> tuple[str, dict[str, Any]]:
    return message, {"success": True, "message": message}


def _to_text(tool_name: str, structured: dict[str, Any]) -> str:
    # list-returning tools show the bare list as text
    unwrap = {
        "create_entities": "entities",
        "create_relations": "relations",
        "add_observations": "results",
        "get_neighbors": "neighbors",
    }
    payload = structured[unwrap[tool_name]] if tool_name in unwrap else structured
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _reply(msg_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


def _tool_error(msg_id: Any, message: str) -> dict[str, Any]:
    return _reply(msg_id, {
        "content": [{"type": "text", "text": f"Error: {message}"}],
        "isError": True,
    })


async def _run_server(config_root: Path | None = None) -> None:
    server = MemoryServer.from_config(config_root)
    logger.info("memory server on stdio, file=%s", server.manager.store.path)
    reader = asyncio.StreamReader()
    loop = asyncio.get_running_loop()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    writer_transport, _ = await loop.connect_write_pipe(
        asyncio.BaseProtocol, sys.stdout.buffer
    )

    def write_json(obj: Any) -> None:
        line = json.dumps(obj) + "\n"
        writer_transport.write(line.encode())

    while True:
        try:
            line = await reader.readline()
        except (asyncio.IncompleteReadError, EOFError):
            break
        if not line:
            break
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("ignoring malformed message: %r", line[:200])
            continue
        if not isinstance(msg, dict):
            continue

        response = server.handle_message(msg)
        if response is not None:
            write_json(response)


def run_server(config_root: Path | None = None) -> None:
    """Entry point for `memkg serve`."""
    asyncio.run(_run_server(config_root))
