"""
Vault tasks MCP server entry point.

Configuration comes from the environment:

    VAULT_ROOT    vault directory (required)
    EXCLUDE_DIRS  comma-separated directory names to skip
    INDEX_DB      SQLite file for the task index (":memory:" by default)
    API_ENABLED   serve the REST API alongside MCP ("true"/"false")
    API_PORT      REST API port

On startup the whole vault is indexed before the sync worker, the REST API
thread and the MCP stdio transport are started.
"""

import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

from mcp.server.fastmcp import FastMCP

from api.tools import register_tools
from cache.vault_cache import VaultCache
from index.store import IndexStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)

DEFAULT_EXCLUDE_DIRS = ".git,.obsidian,node_modules,.trash"


@dataclass
class ServerConfig:
    vault_root: Path
    exclude_dirs: Set[str] = field(default_factory=set)
    index_db: str = ":memory:"
    api_enabled: bool = True
    api_port: int = 9400


def _split_csv(raw: str) -> Set[str]:
    return {part.strip() for part in raw.split(",") if part.strip()}


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("true", "1", "yes")


def load_config() -> Optional[ServerConfig]:
    """Build the server configuration, or log why it can't and return None."""
    raw_root = os.environ.get("VAULT_ROOT", "")
    if not raw_root:
        log.error("VAULT_ROOT environment variable is not set")
        return None
    vault_root = Path(raw_root)
    if not vault_root.is_dir():
        log.error("VAULT_ROOT is not a directory: %s", vault_root)
        return None

    try:
        api_port = int(os.environ.get("API_PORT", "9400"))
    except ValueError:
        log.error("API_PORT is not a number: %s", os.environ["API_PORT"])
        return None

    return ServerConfig(
        vault_root=vault_root,
        exclude_dirs=_split_csv(os.environ.get("EXCLUDE_DIRS", DEFAULT_EXCLUDE_DIRS)),
        index_db=os.environ.get("INDEX_DB", ":memory:"),
        api_enabled=_env_flag("API_ENABLED", "true"),
        api_port=api_port,
    )


def _serve_api(cache: VaultCache, port: int) -> None:
    """Thread target: serve the REST API with uvicorn."""
    import uvicorn

    from api.app import create_app

    log.info("REST API listening on port %d", port)
    uvicorn.run(create_app(cache), host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    config = load_config()
    if config is None:
        sys.exit(1)

    log.info("Vault root: %s (excluding %s)", config.vault_root, sorted(config.exclude_dirs))
    log.info("Task index: %s", config.index_db)

    cache = VaultCache(index=IndexStore(config.index_db))
    cache.initialize(config.vault_root, config.exclude_dirs)
    cache.start_worker()

    if config.api_enabled:
        threading.Thread(
            target=_serve_api, args=(cache, config.api_port), daemon=True, name="vault-api"
        ).start()

    mcp = FastMCP("vault-tasks")
    register_tools(mcp, cache)

    log.info("Serving vault-tasks over stdio")
    try:
        mcp.run(transport="stdio")
    finally:
        cache.stop_worker()
        cache.index.close()


if __name__ == "__main__":
    main()
