"""
Tests for tasks/cycle.py.

Covers:
- next_state: checkbox toggle and custom state rotation
- known_custom_states across pages
- cycle_task_state through task_cycle_at_pos on an open buffer
- Unknown custom states abort without touching the buffer
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from cache.vault_cache import VaultCache
from index.store import IndexStore
from index.task_index import index_tasks
from parsers.markdown_parser import parse_markdown
from tasks.commands import task_cycle_at_pos
from tasks.cycle import known_custom_states, next_state
from tasks.errors import TaskSyncError, UnknownStateError


INBOX = (
    "- [ ] Buy milk\n"   # task at 2
    "- [-] Draft\n"      # task at 17
    "- [/] Review\n"     # task at 29
    "- [!] Ship\n"       # task at 42
)


@pytest.fixture
def cache(tmp_path):
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "Inbox.md").write_text(INBOX, encoding="utf-8")
    c = VaultCache()
    c.initialize(vault, set())
    c.open_page("Inbox")
    return c


# ---------------------------------------------------------------------------
# next_state
# ---------------------------------------------------------------------------

class TestNextState:
    def test_incomplete_to_done(self):
        assert next_state(" ") == "x"

    @pytest.mark.parametrize("state", ["x", "X"])
    def test_done_to_incomplete(self, state):
        assert next_state(state) == " "

    def test_two_cycles_return_to_start(self):
        assert next_state(next_state(" ")) == " "

    def test_custom_rotation_is_sorted(self):
        known = {"-", "/", "!"}
        assert next_state("!", known) == "-"
        assert next_state("-", known) == "/"
        assert next_state("/", known) == "!"

    def test_single_custom_state_stays(self):
        assert next_state("-", ["-"]) == "-"

    def test_unknown_custom_state(self):
        with pytest.raises(UnknownStateError) as exc:
            next_state("?", ["-", "/"])
        assert exc.value.state == "?"
        assert isinstance(exc.value, TaskSyncError)

    def test_custom_state_without_known_states(self):
        with pytest.raises(UnknownStateError):
            next_state("-")


# ---------------------------------------------------------------------------
# known_custom_states
# ---------------------------------------------------------------------------

class TestKnownCustomStates:
    def test_union_across_pages(self):
        store = IndexStore()
        index_tasks(store, "A", parse_markdown("- [/] a\n- [x] b\n"))
        index_tasks(store, "B", parse_markdown("- [-] c\n- [!] d\n- [/] e\n"))
        assert known_custom_states(store) == ["!", "-", "/"]

    def test_empty_index(self):
        assert known_custom_states(IndexStore()) == []


# ---------------------------------------------------------------------------
# Cycling in the open buffer
# ---------------------------------------------------------------------------

class TestCycleAtPos:
    def test_cycle_on_state(self, cache):
        result = task_cycle_at_pos(cache, "Inbox", 3)
        assert result.old_state == " "
        assert result.new_state == "x"
        assert result.pos == 2
        assert cache.editor.get_text().startswith("- [x] Buy milk\n")

    def test_cycle_on_bracket(self, cache):
        result = task_cycle_at_pos(cache, "Inbox", 2)
        assert result.new_state == "x"

    def test_cycle_twice_restores_text(self, cache):
        task_cycle_at_pos(cache, "Inbox", 3)
        task_cycle_at_pos(cache, "Inbox", 3)
        assert cache.editor.get_text() == INBOX

    def test_custom_state_advances(self, cache):
        result = task_cycle_at_pos(cache, "Inbox", 18)
        assert (result.old_state, result.new_state) == ("-", "/")
        assert "- [/] Draft\n" in cache.editor.get_text()

    def test_custom_state_wraps(self, cache):
        result = task_cycle_at_pos(cache, "Inbox", 30)
        assert (result.old_state, result.new_state) == ("/", "!")

    def test_position_outside_marker_does_nothing(self, cache):
        assert task_cycle_at_pos(cache, "Inbox", 8) is None
        assert cache.editor.get_text() == INBOX

    def test_position_past_end(self, cache):
        assert task_cycle_at_pos(cache, "Inbox", len(INBOX) + 5) is None

    def test_does_not_write_page(self, cache):
        task_cycle_at_pos(cache, "Inbox", 3)
        assert cache.read_page("Inbox") == INBOX

    def test_unknown_state_leaves_buffer(self, cache):
        cache.editor.open("Scratch", "- [?] what\n")
        with pytest.raises(UnknownStateError):
            task_cycle_at_pos(cache, "Scratch", 3)
        assert cache.editor.get_text() == "- [?] what\n"

    def test_to_dict(self, cache):
        result = task_cycle_at_pos(cache, "Inbox", 3)
        assert result.to_dict() == {
            "page": "Inbox",
            "pos": 2,
            "old_state": " ",
            "new_state": "x",
            "updated_refs": [],
            "stale_refs": [],
        }
