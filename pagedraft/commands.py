"""Editing commands and the pure dispatcher that applies them.

Each command is a small frozen value. `apply` looks up the handler for the
command's type and returns the new (document, selection) pair; the input
document is returned as-is whenever the command does not apply.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Union

from .model import (
    HEADING_LEVELS,
    LIST_KINDS,
    TEXT_BLOCK_KINDS,
    Align,
    Block,
    BlockKind,
    Document,
    Mark,
    MarkKind,
    Position,
    Selection,
    TextRun,
    marks_at,
    normalize,
    split_runs,
)

logger = logging.getLogger(__name__)

TOGGLE_MARKS = frozenset({MarkKind.BOLD, MarkKind.ITALIC, MarkKind.UNDERLINE})


@dataclass(frozen=True)
class ToggleMark:
    kind: MarkKind


@dataclass(frozen=True)
class SetBlockType:
    kind: BlockKind
    level: Optional[int] = None


@dataclass(frozen=True)
class SetTextAlign:
    align: Align


@dataclass(frozen=True)
class ToggleList:
    kind: BlockKind


@dataclass(frozen=True)
class SetLink:
    href: Optional[str] = None


@dataclass(frozen=True)
class InsertText:
    text: str


@dataclass(frozen=True)
class SplitBlock:
    pass


@dataclass(frozen=True)
class DeleteBackward:
    pass


@dataclass(frozen=True)
class DeleteForward:
    pass


Command = Union[
    ToggleMark, SetBlockType, SetTextAlign, ToggleList, SetLink,
    InsertText, SplitBlock, DeleteBackward, DeleteForward,
]
Result = tuple[Document, Selection]


def apply(document: Document, selection: Selection, command: Command) -> Result:
    """Apply `command` to `document` at `selection`.

    Returns the (possibly identical) document and the selection that follows
    the edit. Invalid selections and inapplicable commands leave both as they
    were.
    """
    if not selection.is_valid(document):
        logger.debug(f"Ignoring {command!r}: selection {selection!r} is out of range")
        return document, selection
    handler = _HANDLERS.get(type(command))
    if handler is None:
        logger.debug(f"Ignoring unknown command {command!r}")
        return document, selection
    return handler(document, selection, command)


# --- Helpers ---

def _coerce(enum_type, value):
    try:
        return enum_type(value)
    except ValueError:
        return None


def _map_ranges(document: Document, selection: Selection,
                update: Callable[[frozenset], frozenset]) -> Document:
    """Rewrite the marks of every run inside the selection."""
    ranges = {index: (lo, hi) for index, lo, hi in selection.ranges(document)}

    def rewrite(index: int, block: Block) -> Block:
        if index not in ranges:
            return block
        before, inside, after = split_runs(block.children, *ranges[index])
        inside = tuple(TextRun(run.text, update(run.marks)) for run in inside)
        return replace(block, children=before + inside + after)

    return document.map_textblocks(rewrite)


def _selected_runs(document: Document, selection: Selection) -> list[TextRun]:
    blocks = document.textblocks()
    runs: list[TextRun] = []
    for index, lo, hi in selection.ranges(document):
        runs.extend(split_runs(blocks[index].children, lo, hi)[1])
    return runs


def _caret_marks(document: Document, selection: Selection) -> frozenset:
    if selection.stored_marks is not None:
        return selection.stored_marks
    head = selection.head
    return marks_at(document.textblocks()[head.block_index], head.offset)


def _list_item_path(document: Document, path: tuple) -> Optional[tuple]:
    """Path of the list item whose first child is the text block at `path`."""
    if len(path) < 2 or path[-1] != 0:
        return None
    parent = path[:-1]
    if document.node_at(parent).kind != BlockKind.LIST_ITEM:
        return None
    return parent


def _lift_item(document: Document, item_path: tuple) -> Document:
    """Move a list item's blocks out of its list, splitting the list around it."""
    list_path = item_path[:-1]
    container = document.node_at(list_path)
    index = item_path[-1]
    before = container.children[:index]
    after = container.children[index + 1:]
    nodes = []
    if before:
        nodes.append(replace(container, children=before))
    nodes.extend(container.children[index].children)
    if after:
        nodes.append(replace(container, children=after))
    return normalize(document.replace_at(list_path, *nodes))


def _delete_range(document: Document, start: Position, end: Position) -> Result:
    blocks = document.textblocks()
    first, last = blocks[start.block_index], blocks[end.block_index]
    head = split_runs(first.children, start.offset, start.offset)[0]
    tail = split_runs(last.children, end.offset, end.offset)[2]

    def cut(index: int, block: Block) -> Optional[Block]:
        if index == start.block_index:
            return replace(block, children=head + tail)
        if start.block_index < index <= end.block_index:
            return None
        return block

    return document.map_textblocks(cut), Selection(start, start)


def _split_block(document: Document, position: Position) -> Result:
    path = document.textblock_paths()[position.block_index]
    block = document.node_at(path)
    before, _, after = split_runs(block.children, position.offset, position.offset)
    item_path = path[:-1] if len(path) > 1 else None
    in_item = item_path is not None and document.node_at(item_path).kind == BlockKind.LIST_ITEM

    if in_item and not block.text and document.node_at(item_path).children == (block,):
        # Enter on an empty list item ends the list
        return _lift_item(document, item_path), Selection(position, position)

    first = replace(block, children=before)
    second = replace(block, children=after)
    if block.kind == BlockKind.HEADING and not after:
        second = Block(BlockKind.PARAGRAPH, (), align=block.align)

    if in_item:
        item = document.node_at(item_path)
        split_at = path[-1]
        first_item = replace(item, children=item.children[:split_at] + (first,))
        second_item = replace(item, children=(second,) + item.children[split_at + 1:])
        document = document.replace_at(item_path, first_item, second_item)
    else:
        document = document.replace_at(path, first, second)
    caret = Position(position.block_index + 1, 0)
    return normalize(document), Selection(caret, caret)


# --- Handlers ---

def _toggle_mark(document: Document, selection: Selection, command: ToggleMark) -> Result:
    kind = _coerce(MarkKind, command.kind)
    if kind not in TOGGLE_MARKS:
        return document, selection
    mark = Mark(kind)
    if selection.empty:
        stored = _caret_marks(document, selection)
        stored = stored - {mark} if mark in stored else stored | {mark}
        return document, replace(selection, stored_marks=stored)

    remove = all(run.has(kind) for run in _selected_runs(document, selection))
    if remove:
        new_document = _map_ranges(document, selection, lambda marks: marks - {mark})
    else:
        new_document = _map_ranges(document, selection, lambda marks: marks | {mark})
    return new_document, selection


def _set_block_type(document: Document, selection: Selection, command: SetBlockType) -> Result:
    kind = _coerce(BlockKind, command.kind)
    if kind not in TEXT_BLOCK_KINDS:
        return document, selection
    level = None
    if kind == BlockKind.HEADING:
        if command.level not in HEADING_LEVELS:
            return document, selection
        level = command.level
        first, last = selection.from_.block_index, selection.to.block_index
        selected = document.textblocks()[first:last + 1]
        if all(b.kind == BlockKind.HEADING and b.level == level for b in selected):
            kind, level = BlockKind.PARAGRAPH, None

    first, last = selection.from_.block_index, selection.to.block_index

    def rekind(index: int, block: Block) -> Block:
        if first <= index <= last:
            return replace(block, kind=kind, level=level)
        return block

    return document.map_textblocks(rekind), selection


def _set_text_align(document: Document, selection: Selection, command: SetTextAlign) -> Result:
    align = _coerce(Align, command.align)
    if align is None:
        return document, selection
    first, last = selection.from_.block_index, selection.to.block_index

    def realign(index: int, block: Block) -> Block:
        if first <= index <= last:
            return replace(block, align=align)
        return block

    return document.map_textblocks(realign), selection


def _toggle_list(document: Document, selection: Selection, command: ToggleList) -> Result:
    kind = _coerce(BlockKind, command.kind)
    if kind not in LIST_KINDS:
        return document, selection
    paths = document.textblock_paths()
    first = selection.from_.block_index
    last = selection.to.block_index
    top_first, top_last = paths[first][0], paths[last][0]
    selected = document.blocks[top_first:top_last + 1]

    if all(block.kind == kind for block in selected):
        # Lift the selected items out of their lists, last list first so
        # earlier paths stay valid
        for top in range(top_last, top_first - 1, -1):
            items = sorted({path[1] for path in paths[first:last + 1] if path[0] == top})
            for item in reversed(items):
                document = _lift_item(document, (top, item))
        return document, selection

    if all(block.is_list for block in selected):
        replacement = tuple(replace(block, kind=kind) for block in selected)
    else:
        items = []
        for block in selected:
            if block.is_list:
                items.extend(block.children)
            else:
                items.append(Block.list_item(block))
        replacement = (Block(kind, tuple(items)),)
    blocks = document.blocks[:top_first] + replacement + document.blocks[top_last + 1:]
    return normalize(Document(blocks)), selection


def _set_link(document: Document, selection: Selection, command: SetLink) -> Result:
    if not command.href or selection.empty:
        return document, selection
    link = Mark.link(command.href)

    def relink(marks: frozenset) -> frozenset:
        return frozenset(m for m in marks if m.kind != MarkKind.LINK) | {link}

    return _map_ranges(document, selection, relink), selection


def _insert_text(document: Document, selection: Selection, command: InsertText) -> Result:
    if not command.text and selection.empty:
        return document, selection
    stored = selection.stored_marks
    if not selection.empty:
        document, selection = _delete_range(document, selection.from_, selection.to)
    marks = stored if stored is not None else _caret_marks(document, selection)

    caret = selection.head
    for number, line in enumerate(command.text.split("\n")):
        if number:
            document, split = _split_block(document, caret)
            caret = split.head
        if not line:
            continue

        def insert(index: int, block: Block, caret=caret, line=line) -> Block:
            if index != caret.block_index:
                return block
            before, _, after = split_runs(block.children, caret.offset, caret.offset)
            return replace(block, children=before + (TextRun(line, marks),) + after)

        document = document.map_textblocks(insert)
        caret = Position(caret.block_index, caret.offset + len(line))
    return document, Selection(caret, caret)


def _split(document: Document, selection: Selection, command: SplitBlock) -> Result:
    if not selection.empty:
        document, selection = _delete_range(document, selection.from_, selection.to)
    return _split_block(document, selection.head)


def _delete_backward(document: Document, selection: Selection, command: DeleteBackward) -> Result:
    if not selection.empty:
        return _delete_range(document, selection.from_, selection.to)
    caret = selection.head
    if caret.offset > 0:
        return _delete_range(document, Position(caret.block_index, caret.offset - 1), caret)
    item_path = _list_item_path(document, document.textblock_paths()[caret.block_index])
    if item_path is not None:
        # Backspace at the start of a list item lifts it out of the list
        return _lift_item(document, item_path), selection
    if caret.block_index == 0:
        return document, selection
    previous = document.textblocks()[caret.block_index - 1]
    return _delete_range(document, Position(caret.block_index - 1, len(previous.text)), caret)


def _delete_forward(document: Document, selection: Selection, command: DeleteForward) -> Result:
    if not selection.empty:
        return _delete_range(document, selection.from_, selection.to)
    caret = selection.head
    blocks = document.textblocks()
    if caret.offset < len(blocks[caret.block_index].text):
        return _delete_range(document, caret, Position(caret.block_index, caret.offset + 1))
    if caret.block_index + 1 < len(blocks):
        return _delete_range(document, caret, Position(caret.block_index + 1, 0))
    return document, selection


_HANDLERS: Dict[type, Callable] = {
    ToggleMark: _toggle_mark,
    SetBlockType: _set_block_type,
    SetTextAlign: _set_text_align,
    ToggleList: _toggle_list,
    SetLink: _set_link,
    InsertText: _insert_text,
    SplitBlock: _split,
    DeleteBackward: _delete_backward,
    DeleteForward: _delete_forward,
}


def is_active(document: Document, selection: Selection, name: Optional[str] = None,
              **attrs) -> bool:
    """Return True if formatting `name` (with `attrs`) covers the selection.

    Mirrors toolbar queries such as ``is_active(doc, sel, "bold")``,
    ``is_active(doc, sel, "heading", level=1)`` or
    ``is_active(doc, sel, text_align="center")``.
    """
    if not selection.is_valid(document):
        return False
    mark_kind = _coerce(MarkKind, name) if name else None
    if mark_kind is not None:
        if selection.empty:
            return any(m.kind == mark_kind for m in _caret_marks(document, selection))
        runs = _selected_runs(document, selection)
        return bool(runs) and all(run.has(mark_kind) for run in runs)

    kind = _coerce(BlockKind, name) if name else None
    if name and kind is None:
        return False
    first, last = selection.from_.block_index, selection.to.block_index
    entries = list(document.iter_textblocks())[first:last + 1]
    for path, block in entries:
        if kind in LIST_KINDS:
            if _nearest_list_kind(document, path) != kind:
                return False
        elif kind is not None and block.kind != kind:
            return False
        if "level" in attrs and block.level != attrs["level"]:
            return False
        if "text_align" in attrs and block.align != _coerce(Align, attrs["text_align"]):
            return False
    return True


def _nearest_list_kind(document: Document, path: tuple) -> Optional[BlockKind]:
    for depth in range(len(path) - 1, 0, -1):
        ancestor = document.node_at(path[:depth])
        if ancestor.is_list:
            return ancestor.kind
    return None


class CommandRegistry:
    """Registry mapping toolbar action names to commands."""

    def __init__(self):
        self._commands: Dict[str, Command] = {}
        self._setup_default_commands()

    def _setup_default_commands(self):
        """Set up the default toolbar actions."""
        # Marks
        self.register('bold', ToggleMark(MarkKind.BOLD))
        self.register('italic', ToggleMark(MarkKind.ITALIC))
        self.register('underline', ToggleMark(MarkKind.UNDERLINE))

        # Block types
        self.register('paragraph', SetBlockType(BlockKind.PARAGRAPH))
        for level in HEADING_LEVELS:
            self.register(f'heading{level}', SetBlockType(BlockKind.HEADING, level))

        # Alignment
        for align in Align:
            self.register(f'align_{align.value}', SetTextAlign(align))

        # Lists
        self.register('bullet_list', ToggleList(BlockKind.BULLET_LIST))
        self.register('ordered_list', ToggleList(BlockKind.ORDERED_LIST))

    def register(self, name: str, command: Command):
        """Register a command under an action name."""
        self._commands[name] = command

    def get_command(self, name: str) -> Optional[Command]:
        """Get the command for an action name."""
        return self._commands.get(name)

    def names(self) -> list[str]:
        return list(self._commands)
