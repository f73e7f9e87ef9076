"""Tests for editing commands applied through the dispatcher."""

import pytest

from pagedraft.commands import (
    CommandRegistry,
    DeleteBackward,
    DeleteForward,
    InsertText,
    SetBlockType,
    SetLink,
    SetTextAlign,
    SplitBlock,
    ToggleList,
    ToggleMark,
    apply,
    is_active,
)
from pagedraft.model import (
    BOLD,
    Align,
    Block,
    BlockKind,
    Document,
    Mark,
    MarkKind,
    Selection,
    TextRun,
)


def para(text=""):
    return Block.paragraph(TextRun(text)) if text else Block.paragraph()


def bullets(*texts):
    return Block.bullet_list(*(Block.list_item(para(text)) for text in texts))


@pytest.fixture
def hello():
    return Document((para("Hello world"),))


# --- Marks ---

def test_toggle_bold_on_range(hello):
    doc, _ = apply(hello, Selection.between((0, 0), (0, 5)), ToggleMark(MarkKind.BOLD))
    assert doc.blocks[0].children == (
        TextRun("Hello", frozenset({BOLD})),
        TextRun(" world"),
    )


def test_toggle_bold_twice_restores_document(hello):
    selection = Selection.between((0, 0), (0, 5))
    doc, selection = apply(hello, selection, ToggleMark(MarkKind.BOLD))
    doc, _ = apply(doc, selection, ToggleMark(MarkKind.BOLD))
    assert doc == hello


def test_toggle_bold_on_partially_bold_range_adds_everywhere(hello):
    doc, _ = apply(hello, Selection.between((0, 0), (0, 5)), ToggleMark(MarkKind.BOLD))
    doc, _ = apply(doc, Selection.between((0, 0), (0, 11)), ToggleMark(MarkKind.BOLD))
    assert doc.blocks[0].children == (TextRun("Hello world", frozenset({BOLD})),)


def test_toggle_mark_at_caret_sets_stored_marks():
    doc, selection = apply(Document(), Selection.caret(), ToggleMark(MarkKind.BOLD))
    assert doc == Document()
    assert selection.stored_marks == frozenset({BOLD})
    assert is_active(doc, selection, "bold")

    doc, selection = apply(doc, selection, InsertText("X"))
    assert doc.blocks[0].children == (TextRun("X", frozenset({BOLD})),)
    assert selection == Selection.caret(0, 1)


def test_typing_continues_marks_from_the_left():
    doc = Document((Block.paragraph(TextRun("ab", frozenset({BOLD}))),))
    doc, _ = apply(doc, Selection.caret(0, 2), InsertText("c"))
    assert doc.blocks[0].children == (TextRun("abc", frozenset({BOLD})),)


def test_link_is_not_a_toggle_mark(hello):
    selection = Selection.between((0, 0), (0, 5))
    doc, _ = apply(hello, selection, ToggleMark(MarkKind.LINK))
    assert doc is hello


# --- Block types and alignment ---

def test_set_heading_and_toggle_back():
    doc = Document((para("Title"),))
    doc, selection = apply(doc, Selection.caret(0, 2), SetBlockType(BlockKind.HEADING, 1))
    assert doc.blocks[0] == Block.heading(1, TextRun("Title"))
    assert is_active(doc, selection, "heading", level=1)
    assert not is_active(doc, selection, "heading", level=2)

    doc, _ = apply(doc, selection, SetBlockType(BlockKind.HEADING, 1))
    assert doc.blocks[0] == para("Title")


def test_set_heading_changes_level():
    doc = Document((Block.heading(1, TextRun("Title")),))
    doc, _ = apply(doc, Selection.caret(), SetBlockType(BlockKind.HEADING, 3))
    assert doc.blocks[0].level == 3


def test_invalid_heading_level_is_ignored():
    doc = Document((para("Title"),))
    new_doc, _ = apply(doc, Selection.caret(), SetBlockType(BlockKind.HEADING, 4))
    assert new_doc is doc


def test_set_block_type_spans_selected_blocks():
    doc = Document((para("a"), para("b"), para("c")))
    doc, _ = apply(doc, Selection.between((0, 0), (1, 1)), SetBlockType(BlockKind.HEADING, 2))
    assert [b.kind for b in doc.blocks] == [BlockKind.HEADING, BlockKind.HEADING, BlockKind.PARAGRAPH]


def test_set_text_align():
    doc = Document((para("a"), para("b")))
    doc, selection = apply(doc, Selection.caret(1, 0), SetTextAlign(Align.CENTER))
    assert doc.blocks[0].align == Align.LEFT
    assert doc.blocks[1].align == Align.CENTER
    assert is_active(doc, selection, text_align="center")
    assert not is_active(doc, selection, text_align="right")


def test_unknown_alignment_is_ignored():
    doc = Document((para("a"),))
    new_doc, _ = apply(doc, Selection.caret(), SetTextAlign("justify"))
    assert new_doc is doc


# --- Lists ---

def test_toggle_bullet_list_wraps_and_unwraps():
    doc = Document((para("one"), para("two")))
    selection = Selection.between((0, 0), (1, 0))
    wrapped, selection = apply(doc, selection, ToggleList(BlockKind.BULLET_LIST))
    assert wrapped.blocks == (bullets("one", "two"),)
    assert is_active(wrapped, selection, "bulletList")
    assert not is_active(wrapped, selection, "orderedList")

    unwrapped, _ = apply(wrapped, selection, ToggleList(BlockKind.BULLET_LIST))
    assert unwrapped == doc


def test_toggle_other_list_kind_retags():
    doc = Document((bullets("one", "two"),))
    doc, _ = apply(doc, Selection.caret(0, 0), ToggleList(BlockKind.ORDERED_LIST))
    assert doc.blocks[0].kind == BlockKind.ORDERED_LIST
    assert len(doc.blocks[0].children) == 2


def test_toggle_list_off_for_middle_item_splits_list():
    doc = Document((bullets("a", "b", "c"),))
    doc, _ = apply(doc, Selection.caret(1, 0), ToggleList(BlockKind.BULLET_LIST))
    assert doc.blocks == (bullets("a"), para("b"), bullets("c"))


def test_toggle_list_joins_neighbouring_list():
    doc = Document((bullets("a"), para("b")))
    doc, _ = apply(doc, Selection.caret(1, 0), ToggleList(BlockKind.BULLET_LIST))
    assert doc.blocks == (bullets("a", "b"),)


# --- Links ---

def test_set_link_on_selection(hello):
    doc, _ = apply(hello, Selection.between((0, 0), (0, 5)), SetLink("https://example.com"))
    assert doc.blocks[0].children == (
        TextRun("Hello", frozenset({Mark.link("https://example.com")})),
        TextRun(" world"),
    )


def test_set_link_replaces_existing_link(hello):
    selection = Selection.between((0, 0), (0, 5))
    doc, _ = apply(hello, selection, SetLink("https://a.example"))
    doc, _ = apply(doc, selection, SetLink("https://b.example"))
    assert doc.blocks[0].children[0].link == Mark.link("https://b.example")


@pytest.mark.parametrize("href", ["", None])
def test_set_link_without_url_is_noop(hello, href):
    doc, _ = apply(hello, Selection.between((0, 0), (0, 5)), SetLink(href))
    assert doc == hello


def test_set_link_on_caret_is_noop(hello):
    doc, _ = apply(hello, Selection.caret(0, 2), SetLink("https://example.com"))
    assert doc is hello


# --- Text entry ---

def test_insert_text_into_empty_document():
    doc, selection = apply(Document(), Selection.caret(), InsertText("Hello world"))
    assert doc.textblocks()[0].text == "Hello world"
    assert selection == Selection.caret(0, 11)


def test_insert_text_with_newline_splits_block():
    doc, selection = apply(Document(), Selection.caret(), InsertText("ab\ncd"))
    assert [b.text for b in doc.textblocks()] == ["ab", "cd"]
    assert selection == Selection.caret(1, 2)


def test_insert_text_replaces_selection(hello):
    doc, selection = apply(hello, Selection.between((0, 0), (0, 5)), InsertText("Howdy"))
    assert doc.textblocks()[0].text == "Howdy world"
    assert selection == Selection.caret(0, 5)


def test_split_block(hello):
    doc, selection = apply(hello, Selection.caret(0, 5), SplitBlock())
    assert [b.text for b in doc.textblocks()] == ["Hello", " world"]
    assert selection == Selection.caret(1, 0)


def test_split_heading_at_end_starts_paragraph():
    doc = Document((Block.heading(1, TextRun("Title")),))
    doc, _ = apply(doc, Selection.caret(0, 5), SplitBlock())
    assert [b.kind for b in doc.blocks] == [BlockKind.HEADING, BlockKind.PARAGRAPH]


def test_split_inside_list_item_creates_item():
    doc = Document((bullets("ab"),))
    doc, selection = apply(doc, Selection.caret(0, 1), SplitBlock())
    assert doc.blocks == (bullets("a", "b"),)
    assert selection == Selection.caret(1, 0)


def test_enter_on_empty_list_item_leaves_list():
    doc = Document((Block.bullet_list(
        Block.list_item(para("a")),
        Block.list_item(para()),
    ),))
    doc, selection = apply(doc, Selection.caret(1, 0), SplitBlock())
    assert doc.blocks == (bullets("a"), para())
    assert selection == Selection.caret(1, 0)


def test_delete_backward_within_block():
    doc, selection = apply(Document((para("Hello"),)), Selection.caret(0, 5), DeleteBackward())
    assert doc.textblocks()[0].text == "Hell"
    assert selection == Selection.caret(0, 4)


def test_delete_backward_joins_blocks():
    doc = Document((para("ab"), para("cd")))
    doc, selection = apply(doc, Selection.caret(1, 0), DeleteBackward())
    assert doc.blocks == (para("abcd"),)
    assert selection == Selection.caret(0, 2)


def test_delete_backward_at_document_start_is_noop():
    doc = Document((para("ab"),))
    new_doc, _ = apply(doc, Selection.caret(0, 0), DeleteBackward())
    assert new_doc is doc


def test_delete_backward_at_list_item_start_lifts_item():
    doc = Document((bullets("a", "b"),))
    doc, selection = apply(doc, Selection.caret(1, 0), DeleteBackward())
    assert doc.blocks == (bullets("a"), para("b"))
    assert selection == Selection.caret(1, 0)


def test_delete_forward_joins_next_block():
    doc = Document((para("ab"), para("cd")))
    doc, selection = apply(doc, Selection.caret(0, 2), DeleteForward())
    assert doc.blocks == (para("abcd"),)
    assert selection == Selection.caret(0, 2)


def test_delete_forward_at_document_end_is_noop():
    doc = Document((para("ab"),))
    new_doc, _ = apply(doc, Selection.caret(0, 2), DeleteForward())
    assert new_doc is doc


def test_delete_selection_across_blocks():
    doc = Document((para("Hello"), para("big"), para("world")))
    doc, selection = apply(doc, Selection.between((0, 2), (2, 3)), DeleteBackward())
    assert doc.blocks == (para("Held"),)
    assert selection == Selection.caret(0, 2)


# --- Dispatcher ---

def test_out_of_range_selection_leaves_state_alone(hello):
    selection = Selection.caret(3, 0)
    doc, new_selection = apply(hello, selection, InsertText("x"))
    assert doc is hello
    assert new_selection is selection


def test_is_active_unknown_name():
    assert not is_active(Document(), Selection.caret(), "strikethrough")


def test_is_active_paragraph():
    assert is_active(Document(), Selection.caret(), "paragraph")
    assert not is_active(Document(), Selection.caret(), "heading")


def test_command_registry_defaults():
    registry = CommandRegistry()
    assert registry.get_command('bold') == ToggleMark(MarkKind.BOLD)
    assert registry.get_command('heading2') == SetBlockType(BlockKind.HEADING, 2)
    assert registry.get_command('align_center') == SetTextAlign(Align.CENTER)
    assert registry.get_command('ordered_list') == ToggleList(BlockKind.ORDERED_LIST)
    assert registry.get_command('nonexistent') is None
    assert 'underline' in registry.names()


def test_command_registry_register():
    registry = CommandRegistry()
    registry.register('shout', InsertText("!"))
    assert registry.get_command('shout') == InsertText("!")
