"""MemKGConfig: project-local config for the JSONL knowledge graph.

Default layout (all relative to the project root):

    memkg.toml            # project config (optional)
    .env                  # optional: MEMORY_FILE_PATH=...
    memory.jsonl          # the graph

memkg.toml example:

    [memory]
    file = "memory.jsonl"

    [search]
    observation_limit = 10
    max_path_depth = 10
    subgraph_depth = 1

    [log]
    level = "WARNING"

The memory file is resolved from, in order: the MEMORY_FILE_PATH environment
variable, MEMORY_FILE_PATH in .env, [memory] file, then memory.jsonl.
Relative paths are taken from the project root.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("memkg.config")

_CONFIG_FILENAME = "memkg.toml"
_DEFAULT_MEMORY_FILE = "memory.jsonl"
_LEGACY_MEMORY_FILE = "memory.json"
_ENV_MEMORY_FILE = "MEMORY_FILE_PATH"


@dataclass
class SearchConfig:
    observation_limit: int = 10
    max_path_depth: int = 10
    subgraph_depth: int = 1


@dataclass
class LogConfig:
    level: str = "WARNING"


@dataclass
class MemKGConfig:
    """Resolved configuration for a knowledge graph project."""

    root: Path                      # directory that contains memkg.toml
    memory_file: Path = field(default_factory=Path)
    explicit_path: bool = False     # memory_file came from env/.env/toml, not the default
    search: SearchConfig = field(default_factory=SearchConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    def migrate_legacy(self) -> bool:
        """Rename memory.json to memory.jsonl when only the former exists.

        Skipped when the memory file was configured explicitly. Returns True
        if a file was moved.
        """
        if self.explicit_path:
            return False
        legacy = self.root / _LEGACY_MEMORY_FILE
        if not legacy.exists() or self.memory_file.exists():
            return False
        logger.info("found legacy %s, migrating to %s", legacy, self.memory_file)
        legacy.rename(self.memory_file)
        return True


def _load_env(root: Path) -> dict[str, str]:
    """Parse a simple KEY=VALUE .env file (no external dependency)."""
    env_file = root / ".env"
    if not env_file.exists():
        return {}
    env: dict[str, str] = {}
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            env[k.strip()] = v.strip().strip('"').strip("'")
    return env


def load_config(root: Path | str | None = None) -> MemKGConfig:
    """Load memkg.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    mem_section = raw.get("memory", {})
    srch_section = raw.get("search", {})
    log_section = raw.get("log", {})

    env = _load_env(root_path)
    configured = (
        os.environ.get(_ENV_MEMORY_FILE)
        or env.get(_ENV_MEMORY_FILE)
        or mem_section.get("file")
    )
    memory_file = Path(configured or _DEFAULT_MEMORY_FILE).expanduser()
    if not memory_file.is_absolute():
        memory_file = root_path / memory_file

    return MemKGConfig(
        root=root_path,
        memory_file=memory_file,
        explicit_path=bool(configured),
        search=SearchConfig(
            observation_limit=int(srch_section.get("observation_limit", 10)),
            max_path_depth=int(srch_section.get("max_path_depth", 10)),
            subgraph_depth=int(srch_section.get("subgraph_depth", 1)),
        ),
        log=LogConfig(
            level=str(log_section.get("level", "WARNING")).upper(),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for memkg.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, memory_file: str | None = None) -> Path:
    """Write a default memkg.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"memkg.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[memory]
file = "{memory_file or _DEFAULT_MEMORY_FILE}"   # or set MEMORY_FILE_PATH (env or .env)

# [search]
# observation_limit = 10   # default limit for search_observations
# max_path_depth = 10      # default maxDepth for find_path
# subgraph_depth = 1       # default depth for get_subgraph

# [log]
# level = "WARNING"        # server logs go to stderr
"""
    config_path.write_text(content)
    return config_path
