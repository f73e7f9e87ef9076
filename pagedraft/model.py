"""Document model: blocks, text runs, marks, positions and selections.

Every value here is immutable. Commands build new documents instead of
editing old ones, so two documents compare equal exactly when they have the
same structure, text, marks and attributes.
"""

import itertools
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterator, Optional, Union


class BlockKind(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"


class Align(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class MarkKind(str, Enum):
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    LINK = "link"


TEXT_BLOCK_KINDS = frozenset({BlockKind.PARAGRAPH, BlockKind.HEADING})
LIST_KINDS = frozenset({BlockKind.BULLET_LIST, BlockKind.ORDERED_LIST})
HEADING_LEVELS = (1, 2, 3)


@dataclass(frozen=True)
class Mark:
    kind: MarkKind
    href: Optional[str] = None

    @classmethod
    def link(cls, href: str) -> "Mark":
        return cls(MarkKind.LINK, href)


BOLD = Mark(MarkKind.BOLD)
ITALIC = Mark(MarkKind.ITALIC)
UNDERLINE = Mark(MarkKind.UNDERLINE)


@dataclass(frozen=True)
class TextRun:
    text: str
    marks: frozenset = frozenset()

    def has(self, kind: MarkKind) -> bool:
        return any(mark.kind == kind for mark in self.marks)

    @property
    def link(self) -> Optional[Mark]:
        for mark in self.marks:
            if mark.kind == MarkKind.LINK:
                return mark
        return None


@dataclass(frozen=True)
class Block:
    kind: BlockKind
    children: tuple = ()
    level: Optional[int] = None
    align: Align = Align.LEFT

    @classmethod
    def paragraph(cls, *runs: TextRun, align: Align = Align.LEFT) -> "Block":
        return cls(BlockKind.PARAGRAPH, tuple(runs), align=align)

    @classmethod
    def heading(cls, level: int, *runs: TextRun, align: Align = Align.LEFT) -> "Block":
        return cls(BlockKind.HEADING, tuple(runs), level=level, align=align)

    @classmethod
    def bullet_list(cls, *items: "Block") -> "Block":
        return cls(BlockKind.BULLET_LIST, tuple(items))

    @classmethod
    def ordered_list(cls, *items: "Block") -> "Block":
        return cls(BlockKind.ORDERED_LIST, tuple(items))

    @classmethod
    def list_item(cls, *blocks: "Block") -> "Block":
        return cls(BlockKind.LIST_ITEM, tuple(blocks))

    @property
    def is_textblock(self) -> bool:
        return self.kind in TEXT_BLOCK_KINDS

    @property
    def is_list(self) -> bool:
        return self.kind in LIST_KINDS

    @property
    def text(self) -> str:
        """Concatenated text of a text block's runs ("" for containers)."""
        if not self.is_textblock:
            return ""
        return "".join(run.text for run in self.children)


Node = Union[Block, TextRun]
Path = tuple


@dataclass(frozen=True)
class Document:
    blocks: tuple = ()

    def __post_init__(self):
        # A document always offers a caret position
        if not self.blocks:
            object.__setattr__(self, "blocks", (Block.paragraph(),))

    @classmethod
    def empty(cls) -> "Document":
        return cls((Block.paragraph(),))

    def iter_textblocks(self) -> Iterator[tuple[Path, Block]]:
        """Yield (path, block) for every text block in document order."""
        return _iter_textblocks(self.blocks, ())

    def textblocks(self) -> list[Block]:
        return [block for _, block in self.iter_textblocks()]

    def textblock_paths(self) -> list[Path]:
        return [path for path, _ in self.iter_textblocks()]

    def node_at(self, path: Path) -> Block:
        if not path:
            raise ValueError("node_at needs a non-empty path")
        nodes = self.blocks
        node = None
        for index in path:
            node = nodes[index]
            nodes = node.children
        return node

    def replace_at(self, path: Path, *nodes: Node) -> "Document":
        """Return a copy with the node at `path` replaced by `nodes`."""
        return Document(_replace_in(self.blocks, path, tuple(nodes)))

    def map_textblocks(self, fn: Callable[[int, Block], Optional[Block]]) -> "Document":
        """Rebuild the document passing each text block through `fn`.

        `fn` receives the text block's index and the block; returning None
        removes it. The result is normalized.
        """
        counter = itertools.count()

        def rebuild(nodes: tuple) -> tuple:
            out = []
            for node in nodes:
                if isinstance(node, TextRun):
                    out.append(node)
                elif node.is_textblock:
                    mapped = fn(next(counter), node)
                    if mapped is not None:
                        out.append(mapped)
                else:
                    out.append(replace(node, children=rebuild(node.children)))
            return tuple(out)

        return normalize(Document(rebuild(self.blocks)))


def _iter_textblocks(nodes: tuple, prefix: Path) -> Iterator[tuple[Path, Block]]:
    for i, node in enumerate(nodes):
        if not isinstance(node, Block):
            continue
        if node.is_textblock:
            yield prefix + (i,), node
        else:
            yield from _iter_textblocks(node.children, prefix + (i,))


def _replace_in(nodes: tuple, path: Path, new_nodes: tuple) -> tuple:
    i = path[0]
    if len(path) == 1:
        return nodes[:i] + new_nodes + nodes[i + 1:]
    parent = nodes[i]
    children = _replace_in(parent.children, path[1:], new_nodes)
    return nodes[:i] + (replace(parent, children=children),) + nodes[i + 1:]


@dataclass(frozen=True, order=True)
class Position:
    block_index: int = 0
    offset: int = 0


@dataclass(frozen=True)
class Selection:
    anchor: Position = Position()
    head: Position = Position()
    # Marks chosen at a collapsed caret for the next insertion
    stored_marks: Optional[frozenset] = None

    @classmethod
    def caret(cls, block_index: int = 0, offset: int = 0) -> "Selection":
        position = Position(block_index, offset)
        return cls(position, position)

    @classmethod
    def between(cls, anchor: tuple[int, int], head: tuple[int, int]) -> "Selection":
        return cls(Position(*anchor), Position(*head))

    @property
    def from_(self) -> Position:
        return min(self.anchor, self.head)

    @property
    def to(self) -> Position:
        return max(self.anchor, self.head)

    @property
    def empty(self) -> bool:
        return self.anchor == self.head

    def is_valid(self, document: Document) -> bool:
        blocks = document.textblocks()
        for position in (self.anchor, self.head):
            if not 0 <= position.block_index < len(blocks):
                return False
            if not 0 <= position.offset <= len(blocks[position.block_index].text):
                return False
        return True

    def ranges(self, document: Document) -> Iterator[tuple[int, int, int]]:
        """Yield (block_index, start, end) for each text block in the selection."""
        start, end = self.from_, self.to
        blocks = document.textblocks()
        for index in range(start.block_index, end.block_index + 1):
            lo = start.offset if index == start.block_index else 0
            hi = end.offset if index == end.block_index else len(blocks[index].text)
            yield index, lo, hi


# --- Run helpers ---

def split_runs(runs: tuple, start: int, end: int) -> tuple[tuple, tuple, tuple]:
    """Cut runs at character offsets into (before, inside, after)."""
    before, inside, after = [], [], []
    pos = 0
    for run in runs:
        run_start, run_end = pos, pos + len(run.text)
        pos = run_end
        for lo, hi, bucket in ((run_start, min(run_end, start), before),
                               (max(run_start, start), min(run_end, end), inside),
                               (max(run_start, end), run_end, after)):
            if hi > lo:
                bucket.append(TextRun(run.text[lo - run_start:hi - run_start], run.marks))
    return tuple(before), tuple(inside), tuple(after)


def normalize_runs(runs) -> tuple:
    """Drop empty runs and merge neighbours with identical marks."""
    out: list[TextRun] = []
    for run in runs:
        if not run.text:
            continue
        if out and out[-1].marks == run.marks:
            out[-1] = TextRun(out[-1].text + run.text, run.marks)
        else:
            out.append(run)
    return tuple(out)


def marks_at(block: Block, offset: int) -> frozenset:
    """Marks a character typed at `offset` inherits (from the left if possible)."""
    pos = 0
    runs = block.children
    for run in runs:
        run_end = pos + len(run.text)
        if offset > 0 and pos < offset <= run_end:
            return run.marks
        pos = run_end
    if offset == 0 and runs:
        return runs[0].marks
    return frozenset()


def normalize_block(block: Block) -> Optional[Block]:
    if block.is_textblock:
        return replace(block, children=normalize_runs(block.children))
    children = []
    for child in block.children:
        normalized = normalize_block(child)
        if normalized is not None:
            children.append(normalized)
    if not children:
        return None
    return replace(block, children=tuple(_join_adjacent_lists(children)))


def _join_adjacent_lists(blocks: list) -> list:
    out: list[Block] = []
    for block in blocks:
        if out and block.is_list and out[-1].kind == block.kind:
            out[-1] = replace(out[-1], children=out[-1].children + block.children)
        else:
            out.append(block)
    return out


def normalize(document: Document) -> Document:
    blocks = []
    for block in document.blocks:
        normalized = normalize_block(block)
        if normalized is not None:
            blocks.append(normalized)
    return Document(tuple(_join_adjacent_lists(blocks)))
