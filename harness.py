"""
Interactive harness for testing vault-tasks without MCP integration.

Usage:
    python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]

Drops you into an interactive REPL where you can query and cycle tasks
directly. Also runs a quick smoke test on startup to verify indexing works.
"""

import json
import sys
from pathlib import Path

# Add src/ to path so imports work
sys.path.insert(0, str(Path(__file__).parent / "src"))

from api.task_handlers import handle_page_reindex, handle_task_cycle, handle_task_postpone
from cache.vault_cache import VaultCache
from query.evaluator import parse_query
from tasks.query_provider import query_tasks

USAGE = "Usage: python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]"
DEFAULT_EXCLUDE = (".git", ".obsidian", "node_modules", ".trash")


def _print_tasks(tasks: list, limit: int = 20) -> None:
    for t in tasks[:limit]:
        deadline = f"  deadline={t['deadline']}" if "deadline" in t else ""
        print(f"    [{t['state']}] {t['page']}@{t['pos']:<6d} {t['name']}{deadline}")
    if len(tasks) > limit:
        print(f"    ... and {len(tasks) - limit} more")


def smoke_test(cache: VaultCache) -> None:
    """Quick automated checks after initialization."""
    st = cache.status()
    print("\n=== Smoke Test ===")
    print(f"  Vault root:     {st['vault_root']}")
    print(f"  Pages indexed:  {st['pages_indexed']}")
    print(f"  Tasks indexed:  {st['tasks_indexed']}")
    print(f"  Custom states:  {st['custom_states']}")
    print(f"  Exclude dirs:   {st['exclude_dirs']}")

    open_tasks = query_tasks(cache.index, parse_query("where done = false"))
    print(f"\n  Open tasks: {len(open_tasks)}")
    _print_tasks(open_tasks, limit=5)

    done_tasks = query_tasks(cache.index, parse_query("where done = true"))
    print(f"\n  Done tasks: {len(done_tasks)}")
    _print_tasks(done_tasks, limit=5)

    due = query_tasks(cache.index, parse_query("where done = false order by deadline limit 10"))
    due = [t for t in due if "deadline" in t]
    print(f"\n  Next deadlines: {len(due)}")
    _print_tasks(due)

    print("\n=== Smoke Test Complete ===\n")


def repl(cache: VaultCache) -> None:
    """Simple REPL for interactive exploration."""
    print("Interactive mode. Type 'help' for commands, 'quit' to exit.\n")

    commands = {
        "help":     "Show this help",
        "status":   "Show cache status",
        "query":    'Query tasks. Usage: query where done = false order by deadline limit 20',
        "cycle":    "Cycle a task. Usage: cycle <page> <pos>",
        "postpone": "Postpone a deadline. Usage: postpone <page> <cursor> <option>",
        "reindex":  "Re-index a page, or every changed page. Usage: reindex [page]",
        "pages":    "List indexed pages",
        "quit":     "Exit",
    }

    while True:
        try:
            line = input("vault-tasks> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue

        parts = line.split()
        cmd = parts[0].lower()

        try:
            if cmd == "quit" or cmd == "exit":
                break

            elif cmd == "help":
                for k, v in commands.items():
                    print(f"  {k:12s} {v}")

            elif cmd == "status":
                print(json.dumps(cache.status(), indent=2, default=str))

            elif cmd == "query":
                results = query_tasks(cache.index, parse_query(line[len("query"):]))
                print(f"Found {len(results)} tasks:")
                _print_tasks(results, limit=100)

            elif cmd == "cycle":
                if len(parts) < 3:
                    print("Usage: cycle <page> <pos>")
                    continue
                result = handle_task_cycle(cache, page=parts[1], pos=int(parts[2]))
                cache.drain_sync_queue()
                print(json.dumps(result, indent=2))

            elif cmd == "postpone":
                if len(parts) < 4:
                    print("Usage: postpone <page> <cursor> <option>")
                    continue
                option = " ".join(parts[3:])
                result = handle_task_postpone(cache, page=parts[1], cursor=int(parts[2]), option=option)
                print(json.dumps(result, indent=2))

            elif cmd == "reindex":
                if len(parts) < 2:
                    result = handle_page_reindex(cache, stale_only=True)
                    print(f"  {len(result['indexed'])} changed page(s) re-indexed")
                    continue
                result = cache.index_page(" ".join(parts[1:]))
                print(f"  {len(result.tasks) if result else 0} task(s) indexed")

            elif cmd == "pages":
                for name in cache.list_pages():
                    print(f"  {name}")

            else:
                print(f"Unknown command: {cmd}. Type 'help' for available commands.")
        except Exception as e:
            print(f"  Error: {e}")


def _parse_args(argv: list) -> tuple:
    """Return (vault_root, exclude_dirs) from ``<VAULT_ROOT> [--exclude a,b]``."""
    if not argv:
        raise SystemExit(USAGE)
    vault_root = Path(argv[0]).resolve()
    exclude_dirs = set(DEFAULT_EXCLUDE)
    rest = argv[1:]
    if rest:
        if rest[0] != "--exclude" or len(rest) != 2:
            raise SystemExit(USAGE)
        exclude_dirs = {d.strip() for d in rest[1].split(",") if d.strip()}
    return vault_root, exclude_dirs


def main():
    vault_root, exclude_dirs = _parse_args(sys.argv[1:])
    if not vault_root.is_dir():
        raise SystemExit(f"Error: {vault_root} is not a directory")

    print(f"Indexing {vault_root} (skipping {', '.join(sorted(exclude_dirs)) or 'nothing'})")
    cache = VaultCache()
    cache.initialize(vault_root, exclude_dirs)

    smoke_test(cache)
    repl(cache)


if __name__ == "__main__":
    main()
