"""
Vault cache: page storage, task index and sync worker for one vault.

Design:
    Page storage  : <vault_root>/<page>.md files (UTF-8)
    Index         : IndexStore (SQLite), scoped per page
    Editor        : EditorBuffer holding the page that is currently open
    Indexed pages : Dict[str, float]   page name → mtime at last index pass

Page-to-index bookkeeping is guarded by _lock (threading.RLock).
The editor buffer is shared by every caller; editor_lock must be held from
open_page() through save_page(). schedule_file_sync() queues a page on
_update_queue; a worker thread drains it and re-indexes the page.

Pages are read and written with newline="" so offsets and line endings
match the bytes on disk.
"""

import logging
import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from editor.buffer import EditorBuffer
from index.store import IndexStore
from index.task_index import index_tasks
from models.task import ExtractionResult
from parsers.markdown_parser import parse_markdown
from tasks.cycle import known_custom_states

log = logging.getLogger(__name__)

PAGE_SUFFIX = ".md"


class VaultCache:
    """
    Index and storage front for a markdown vault.

    Initialize with initialize(), then start the background worker with
    start_worker(). Writers that change a page behind the editor's back call
    schedule_file_sync() so the page is re-indexed without blocking them.
    """

    def __init__(
        self,
        index: Optional[IndexStore] = None,
        editor: Optional[EditorBuffer] = None,
    ) -> None:
        self._lock = threading.RLock()
        self.editor_lock = threading.RLock()
        self.index = index or IndexStore()
        self.editor = editor or EditorBuffer()
        self._vault_root: Optional[Path] = None
        self._exclude_dirs: Set[str] = set()
        self._pages: Dict[str, float] = {}
        self._update_queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._worker_thread: Optional[threading.Thread] = None
        self._last_full_scan: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def initialize(self, vault_root: Path, exclude_dirs: Set[str]) -> None:
        """
        Full vault scan. Blocks until complete.
        Call once at server startup before starting the worker.
        """
        self._vault_root = vault_root
        self._exclude_dirs = exclude_dirs
        log.info("Starting vault scan: %s", vault_root)
        for path in self._walk_pages(vault_root):
            try:
                self.index_page(self.page_name(path))
            except Exception:
                log.exception("Failed to index %s", path)
        self._last_full_scan = datetime.now()
        log.info(
            "Vault scan complete: %d pages, %d tasks",
            len(self._pages),
            len(self.index.query_prefix("task:")),
        )

    def start_worker(self) -> None:
        """Start the background sync worker thread (daemon)."""
        self._worker_thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="vault-sync-worker"
        )
        self._worker_thread.start()

    def stop_worker(self) -> None:
        """Signal the worker thread to stop and wait for it."""
        self._update_queue.put(None)  # sentinel
        if self._worker_thread:
            self._worker_thread.join(timeout=5)

    @property
    def vault_root(self) -> Optional[Path]:
        return self._vault_root

    # ------------------------------------------------------------------
    # Page paths
    # ------------------------------------------------------------------

    def _walk_pages(self, root: Path) -> Iterator[Path]:
        """Yield every *.md page under root, respecting exclusions."""
        for path in sorted(root.rglob(f"*{PAGE_SUFFIX}")):
            rel = path.relative_to(root)
            if any(part in self._exclude_dirs for part in rel.parts[:-1]):
                continue
            if path.is_file():
                yield path

    def page_path(self, name: str) -> Path:
        """Resolve a page name to its file, refusing names that leave the vault."""
        if self._vault_root is None:
            raise RuntimeError("Vault cache is not initialized")
        root = self._vault_root.resolve()
        path = (root / f"{name}{PAGE_SUFFIX}").resolve()
        try:
            path.relative_to(root)
        except ValueError:
            raise ValueError(f"Page name escapes the vault: {name!r}") from None
        return path

    def page_name(self, path: Path) -> str:
        """Page name for a file under the vault root."""
        rel = path.resolve().relative_to(self._vault_root.resolve())
        return rel.as_posix()[: -len(PAGE_SUFFIX)]

    # ------------------------------------------------------------------
    # Page storage
    # ------------------------------------------------------------------

    def read_page(self, name: str) -> str:
        """Return the stored text of a page; FileNotFoundError if it does not exist."""
        return self._read_file(self.page_path(name))

    @staticmethod
    def _read_file(path: Path) -> str:
        with path.open(encoding="utf-8", newline="") as f:
            return f.read()

    def write_page(self, name: str, text: str) -> None:
        """Store a page. Does not re-index; see schedule_file_sync."""
        path = self.page_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)

    def list_pages(self) -> List[str]:
        with self._lock:
            return sorted(self._pages)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index_page(self, name: str) -> Optional[ExtractionResult]:
        """
        Parse a page and replace its index entries.

        A page that no longer exists has its entries dropped and returns None.
        Storage errors propagate.
        """
        path = self.page_path(name)
        with self._lock:
            if not path.exists():
                self._remove_page(name)
                return None
            mtime = path.stat().st_mtime
            text = self._read_file(path)
            result = index_tasks(self.index, name, parse_markdown(text))
            self._pages[name] = mtime
            return result

    def _remove_page(self, name: str) -> None:
        """Remove a deleted page from the index (caller holds _lock)."""
        self._pages.pop(name, None)
        self.index.clear_page(name)
        log.info("Dropped deleted page %s from index", name)

    def is_page_stale(self, name: str) -> bool:
        """
        Return True if the page changed on disk since it was last indexed.

        A page deleted after indexing is stale; one that was never indexed
        and does not exist is not.
        """
        path = self.page_path(name)
        with self._lock:
            known = self._pages.get(name)
            try:
                mtime = path.stat().st_mtime
            except OSError:
                return known is not None
            return known is None or known < mtime

    # ------------------------------------------------------------------
    # Sync worker
    # ------------------------------------------------------------------

    def schedule_file_sync(self, path: str) -> None:
        """Queue a vault-relative file (``"Inbox.md"``) for re-indexing (non-blocking)."""
        self._update_queue.put(path)

    def sync_file(self, path: str) -> None:
        """Re-index the page stored at a vault-relative path."""
        if not path.endswith(PAGE_SUFFIX):
            log.debug("Ignoring sync for non-page file %s", path)
            return
        name = path[: -len(PAGE_SUFFIX)]
        self.index_page(name)

    def drain_sync_queue(self) -> int:
        """Process every queued sync request on the calling thread; returns the count."""
        count = 0
        while True:
            try:
                item = self._update_queue.get_nowait()
            except queue.Empty:
                return count
            if item is None:
                continue
            self.sync_file(item)
            count += 1

    def _worker_loop(self) -> None:
        """Drain the update queue, re-indexing pages as they arrive."""
        while True:
            item = self._update_queue.get()
            if item is None:  # sentinel → stop
                break
            try:
                self.sync_file(item)
            except Exception:
                log.exception("Worker failed to sync %s", item)

    # ------------------------------------------------------------------
    # Editor
    # ------------------------------------------------------------------

    def open_page(self, name: str, cursor: int = 0) -> None:
        """Load a page into the editor buffer."""
        self.editor.open(name, self.read_page(name), cursor)

    def save_page(self) -> None:
        """Write the editor buffer back to its page and re-index it."""
        name = self.editor.get_current_page()
        if not name:
            raise RuntimeError("No page is open")
        self.write_page(name, self.editor.get_text())
        self.index_page(name)

    # ------------------------------------------------------------------
    # Status / diagnostics
    # ------------------------------------------------------------------

    def status(self) -> dict:
        with self._lock:
            return {
                "pages_indexed": len(self._pages),
                "tasks_indexed": len(self.index.query_prefix("task:")),
                "custom_states": known_custom_states(self.index),
                "open_page": self.editor.get_current_page() or None,
                "last_full_scan": self._last_full_scan.isoformat() if self._last_full_scan else None,
                "vault_root": str(self._vault_root) if self._vault_root else None,
                "exclude_dirs": sorted(self._exclude_dirs),
            }
