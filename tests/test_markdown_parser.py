"""
Tests for parsers/markdown_parser.py and parsers/tree.py.

Covers:
- Lossless round-trip: render_to_text(parse_markdown(s)) == s
- Task / TaskState / TaskMarker structure and offsets
- Inline nodes: wiki links, hashtags, deadlines, attributes
- Directive and fenced code blocks
- node_at_pos, replace_nodes_matching, NodeArena parent lookup
"""

import sys
from pathlib import Path

# Add src to path so imports work without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from models.tree import NodeArena
from parsers.markdown_parser import parse_markdown
from parsers.tree import (
    REMOVE,
    Visit,
    collect_nodes_of_type,
    find_node_of_type,
    node_at_pos,
    render_to_text,
    replace_nodes_matching,
    traverse_tree,
)


SAMPLE_PAGE = (
    "# Groceries\n"
    "\n"
    "Some intro text with a #tag and [[Other Page]].\n"
    "\n"
    "- [ ] Buy milk 📅 2024-01-05 #errand prio:: high\n"
    "    - [x] Check fridge\n"
    "      note under the subtask\n"
    "- [-] Custom state [owner:: Jane Doe]\n"
    "* plain bullet\n"
    "1. ordered item\n"
    "\n"
    "```\n"
    "- [ ] not a task\n"
    "```\n"
    "<!-- #query task where done = false -->\n"
    "- [ ] Buy milk [[Groceries@16]]\n"
    "<!-- /query -->\n"
    "trailing line without newline"
)


# ---------------------------------------------------------------------------
# Round-trip
# ---------------------------------------------------------------------------

class TestRoundTrip:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "\n",
            "plain text",
            "- [ ] task\n",
            "- [ ] task\r\n- [x] done\r\n",
            "-\n- \n-[ ] no space\n",
            "\t- [ ] tab indented\n\t\t- [/] deeper\n",
            SAMPLE_PAGE,
        ],
    )
    def test_render_reproduces_input(self, text):
        assert render_to_text(parse_markdown(text)) == text

    def test_document_covers_whole_text(self):
        tree = parse_markdown(SAMPLE_PAGE)
        assert tree.type == "Document"
        assert tree.start == 0
        assert tree.end == len(SAMPLE_PAGE)

    def test_leaf_offsets_match_text(self):
        tree = parse_markdown(SAMPLE_PAGE)
        for node in tree.walk():
            if node.text is not None:
                assert SAMPLE_PAGE[node.start:node.end] == node.text

    def test_typed_nodes_are_containers(self):
        tree = parse_markdown(SAMPLE_PAGE)
        for node in tree.walk():
            if node.type is not None:
                assert node.text is None
                assert node.children

    def test_mutated_state_renders_back(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        state = find_node_of_type(tree, "TaskState")
        state.children[1].text = "x"
        rendered = render_to_text(tree)
        assert rendered == "- [x] Buy milk\n"
        reparsed = find_node_of_type(parse_markdown(rendered), "TaskState")
        assert reparsed.children[1].text == "x"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestTasks:
    def test_task_structure(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        task = find_node_of_type(tree, "Task")
        assert task.start == 2
        assert task.end == 14
        state = task.children[0]
        assert state.type == "TaskState"
        assert [c.type for c in state.children] == ["TaskMarker", None, "TaskMarker"]
        assert state.children[1].text == " "
        assert render_to_text(task) == "[ ] Buy milk"

    def test_task_offsets_on_later_lines(self):
        tree = parse_markdown("- [ ] parent\n    - [ ] child\n")
        tasks = collect_nodes_of_type(tree, "Task")
        assert [t.start for t in tasks] == [2, 19]

    def test_custom_state_tokens(self):
        tree = parse_markdown("- [/] a\n- [TODO] b\n- [?] c\n")
        states = [t.children[0].children[1].text for t in collect_nodes_of_type(tree, "Task")]
        assert states == ["/", "TODO", "?"]

    def test_state_token_with_spaces(self):
        tree = parse_markdown("- [in progress] Write report\n")
        task = find_node_of_type(tree, "Task")
        assert task.start == 2
        assert task.children[0].children[1].text == "in progress"
        assert render_to_text(task.children[0]) == "[in progress]"

    def test_task_at_end_of_line(self):
        tree = parse_markdown("- [x]")
        task = find_node_of_type(tree, "Task")
        assert task is not None
        assert task.children[0].children[1].text == "x"

    @pytest.mark.parametrize(
        "line",
        [
            "- [link](https://example.com)\n",
            "- [[Wiki Page]]\n",
            "- []\n",
            "[ ] not in a list\n",
        ],
    )
    def test_not_tasks(self, line):
        assert find_node_of_type(parse_markdown(line), "Task") is None

    def test_ordered_list_task(self):
        tree = parse_markdown("1. [ ] numbered\n")
        assert find_node_of_type(tree, "OrderedList") is not None
        assert find_node_of_type(tree, "Task").start == 3

    def test_nested_list_is_sibling_of_task(self):
        tree = parse_markdown("- [ ] parent\n    - [ ] child\n")
        item = find_node_of_type(tree, "ListItem")
        types = [c.type for c in item.children]
        assert types == ["ListMark", None, "Task", None, "BulletList"]

    def test_blank_line_ends_list_unless_indented(self):
        tree = parse_markdown("- a\n\n    continued\n\nafter\n")
        lists = collect_nodes_of_type(tree, "BulletList")
        assert len(lists) == 1
        assert "continued" in render_to_text(lists[0])
        assert "after" not in render_to_text(lists[0])


# ---------------------------------------------------------------------------
# Inline nodes
# ---------------------------------------------------------------------------

class TestInline:
    def test_wiki_link(self):
        tree = parse_markdown("- [ ] see [[Inbox@12]]\n")
        page = find_node_of_type(tree, "WikiLinkPage")
        assert render_to_text(page) == "Inbox@12"
        link = find_node_of_type(tree, "WikiLink")
        assert render_to_text(link) == "[[Inbox@12]]"

    def test_hashtag(self):
        tree = parse_markdown("text #errand and #home/chores\n")
        tags = [render_to_text(n) for n in collect_nodes_of_type(tree, "Hashtag")]
        assert tags == ["#errand", "#home/chores"]

    def test_heading_and_anchor_are_not_hashtags(self):
        tree = parse_markdown("# Title\nissue#12\n")
        assert collect_nodes_of_type(tree, "Hashtag") == []

    def test_deadline_includes_leading_whitespace(self):
        tree = parse_markdown("- [ ] Pay rent 📅 2024-01-05\n")
        deadline = find_node_of_type(tree, "DeadlineDate")
        assert render_to_text(deadline) == " 📅 2024-01-05"
        assert deadline.start == 14

    def test_bare_attribute(self):
        tree = parse_markdown("- [ ] a prio:: high\n")
        attr = find_node_of_type(tree, "Attribute")
        assert render_to_text(find_node_of_type(attr, "AttributeName")) == "prio"
        assert render_to_text(find_node_of_type(attr, "AttributeValue")) == "high"

    def test_bracketed_attribute(self):
        tree = parse_markdown("- [ ] a [owner:: Jane Doe]\n")
        attr = find_node_of_type(tree, "Attribute")
        assert render_to_text(attr) == " [owner:: Jane Doe]"
        assert render_to_text(find_node_of_type(attr, "AttributeValue")) == "Jane Doe"

    def test_url_is_not_attribute(self):
        tree = parse_markdown("see https://example.com\n")
        assert find_node_of_type(tree, "Attribute") is None


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

class TestBlocks:
    def test_fenced_code_is_opaque(self):
        tree = parse_markdown("```\n- [ ] not a task\n```\n")
        assert find_node_of_type(tree, "FencedCode") is not None
        assert find_node_of_type(tree, "Task") is None

    def test_directive_body_is_parsed(self):
        text = "<!-- #query task -->\n- [ ] Buy milk [[Inbox@2]]\n<!-- /query -->\n"
        tree = parse_markdown(text)
        directive = find_node_of_type(tree, "Directive")
        assert [c.type for c in directive.children] == [
            "DirectiveStart",
            "DirectiveBody",
            "DirectiveEnd",
        ]
        assert find_node_of_type(directive, "Task").start == 23

    def test_unclosed_directive_is_text(self):
        tree = parse_markdown("<!-- #query task -->\n- [ ] Buy milk\n")
        assert find_node_of_type(tree, "Directive") is None
        assert find_node_of_type(tree, "Task") is not None


# ---------------------------------------------------------------------------
# Tree primitives
# ---------------------------------------------------------------------------

class TestNodeAtPos:
    def test_state_position_returns_task_state(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        assert node_at_pos(tree, 3).type == "TaskState"

    def test_bracket_returns_task_marker(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        assert node_at_pos(tree, 2).type == "TaskMarker"

    def test_text_returns_task(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        assert node_at_pos(tree, 8).type == "Task"

    def test_out_of_range(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        assert node_at_pos(tree, 100) is None
        assert node_at_pos(tree, -1) is None

    def test_blank_line_returns_document(self):
        tree = parse_markdown("\n\n")
        assert node_at_pos(tree, 0).type == "Document"


class TestTraversal:
    def test_skip_subtree(self):
        tree = parse_markdown("- [ ] a #x\n")
        seen = []

        def visit(node):
            seen.append(node.type)
            return Visit.SKIP_SUBTREE if node.type == "Task" else Visit.CONTINUE

        traverse_tree(tree, visit)
        assert "Task" in seen
        assert "Hashtag" not in seen

    def test_replace_nodes_matching_removes(self):
        tree = parse_markdown("- [ ] a #x #y\n")
        replace_nodes_matching(tree, lambda n: REMOVE if n.type == "Hashtag" else None)
        assert collect_nodes_of_type(tree, "Hashtag") == []
        assert render_to_text(tree) == "- [ ] a  \n"

    def test_arena_parent_lookup(self):
        tree = parse_markdown("- [ ] Buy milk\n")
        arena = NodeArena(tree)
        state = find_node_of_type(tree, "TaskState")
        assert arena.parent_of(state).type == "Task"
        item = arena.find_parent_matching(state, lambda n: n.type == "ListItem")
        assert item is not None
        assert arena.parent_of(tree) is None

    def test_arena_rejects_foreign_node(self):
        arena = NodeArena(parse_markdown("- [ ] a\n"))
        other = find_node_of_type(parse_markdown("- [ ] b\n"), "Task")
        with pytest.raises(KeyError):
            arena.parent_of(other)
