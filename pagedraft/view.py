"""Terminal layout of the first page and content height measurement.

The whole document is laid out on the first page, as in the browser editor:
later pages are placeholders that only show where page boundaries would be.
The measured height is the number of laid-out lines times the line height.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .constants import EditorConstants
from .model import BOLD, UNDERLINE, Align, Block, BlockKind, Document, Position
from .pagination import MeasurementUnavailable


def render_paragraph(paragraph: str, num_columns: int) -> tuple[list[str], list[int]]:
    """Render into a list of lines, with word wrap.

    Returns (lines, cumulative_counts) where cumulative_counts are character
    counts in the original paragraph at the end of each visual line,
    including the space swallowed by each line break.
    """
    if not paragraph:
        return ([""], [0])

    lines: list[str] = []
    cumulative_counts: list[int] = []
    char_count = 0
    current_line: Optional[str] = None

    def place_long_word(word: str) -> str:
        nonlocal char_count
        # Break long word across as many lines as needed
        while len(word) >= num_columns:
            lines.append(word[:num_columns])
            char_count += num_columns
            cumulative_counts.append(char_count)
            word = word[num_columns:]
        return word

    for word in paragraph.split(" "):
        if current_line is None:
            current_line = place_long_word(word)
        elif len(current_line) + 1 + len(word) < num_columns:
            current_line += " " + word
        else:
            # Commit current line
            lines.append(current_line)
            char_count += len(current_line) + 1  # +1 for the space at the break
            cumulative_counts.append(char_count)
            current_line = place_long_word(word)

    assert current_line is not None
    lines.append(current_line)
    char_count += len(current_line)
    cumulative_counts.append(char_count)
    return (lines, cumulative_counts)


@dataclass(frozen=True)
class RenderedLine:
    """One visual line: a prefix (indent, list marker, alignment) and styled text."""

    prefix: str = ""
    segments: tuple = ()  # (text, marks) pairs
    block_index: Optional[int] = None
    start: int = 0  # Offset of the first character within its text block
    style: frozenset = frozenset()  # Marks drawn over the whole line

    @property
    def body(self) -> str:
        return "".join(text for text, _ in self.segments)

    @property
    def text(self) -> str:
        return self.prefix + self.body


def _line_segments(block: Block, start: int, end: int) -> tuple:
    segments = []
    pos = 0
    for run in block.children:
        run_start, run_end = pos, pos + len(run.text)
        pos = run_end
        lo, hi = max(run_start, start), min(run_end, end)
        if hi > lo:
            segments.append((run.text[lo - run_start:hi - run_start], run.marks))
    return tuple(segments)


def _heading_style(block: Block) -> frozenset:
    if block.kind != BlockKind.HEADING:
        return frozenset()
    if block.level == 1:
        return frozenset({BOLD, UNDERLINE})
    return frozenset({BOLD})


class DocumentLayout:
    """Visual lines of a document plus the mapping from text blocks to lines."""

    def __init__(self, document: Document, num_columns: int):
        self.num_columns = num_columns
        self.lines: list[RenderedLine] = []
        # block index -> list of (line index, cumulative count)
        self._block_lines: dict[int, list[tuple[int, int]]] = {}
        self._next_block = 0
        for top_index, block in enumerate(document.blocks):
            if top_index:
                self.lines.append(RenderedLine())  # Paragraph spacing
            self._layout_node(block, "", "")

    def _layout_node(self, block: Block, first_prefix: str, rest_prefix: str):
        if block.is_textblock:
            self._layout_textblock(block, first_prefix, rest_prefix)
            return
        if block.kind == BlockKind.LIST_ITEM:
            for child_index, child in enumerate(block.children):
                prefix = first_prefix if child_index == 0 else rest_prefix
                self._layout_node(child, prefix, rest_prefix)
            return
        # Lists: one marker per item, nested content indented under the marker
        for number, item in enumerate(block.children, 1):
            if block.kind == BlockKind.BULLET_LIST:
                marker = EditorConstants.BULLET_MARKER
            else:
                marker = f"{number}. "
            self._layout_node(item, rest_prefix + marker, rest_prefix + " " * len(marker))

    def _layout_textblock(self, block: Block, first_prefix: str, rest_prefix: str):
        index = self._next_block
        self._next_block += 1
        width = max(1, self.num_columns - len(rest_prefix))
        text = block.text
        line_texts, counts = render_paragraph(text, width)
        entries = []
        start = 0
        for line_number, (line_text, count) in enumerate(zip(line_texts, counts)):
            prefix = first_prefix if line_number == 0 else rest_prefix
            if block.align == Align.CENTER:
                prefix += " " * ((width - len(line_text)) // 2)
            elif block.align == Align.RIGHT:
                prefix += " " * (width - 1 - len(line_text))
            entries.append((len(self.lines), count))
            self.lines.append(RenderedLine(
                prefix=prefix,
                segments=_line_segments(block, start, start + len(line_text)),
                block_index=index,
                start=start,
                style=_heading_style(block),
            ))
            start = count
        self._block_lines[index] = entries

    def caret_location(self, position: Position) -> tuple[int, int]:
        """Return the (line, column) where the caret at `position` is drawn."""
        entries = self._block_lines.get(position.block_index)
        if not entries:
            return (0, 0)
        # At a line boundary the caret belongs to the start of the next line
        line_index, _ = entries[-1]
        for candidate, count in entries:
            if position.offset < count:
                line_index = candidate
                break
        line = self.lines[line_index]
        return (line_index, len(line.prefix) + position.offset - line.start)

    def position_at(self, line_index: int, column: int) -> Optional[Position]:
        """Map a (line, column) back to a document position, if the line holds text."""
        if not 0 <= line_index < len(self.lines):
            return None
        line = self.lines[line_index]
        if line.block_index is None:
            return None
        offset = min(max(0, column - len(line.prefix)), len(line.body))
        return Position(line.block_index, line.start + offset)

    @property
    def height(self) -> int:
        """Height of the laid-out lines only; the page padding (2 x 96) is not included."""
        return len(self.lines) * EditorConstants.LINE_HEIGHT


class TerminalPageView:
    """Lays out the current document for the terminal and measures it."""

    num_columns: int = EditorConstants.DOCUMENT_WIDTH
    num_rows: int = 24

    def __init__(self, document_source: Optional[Callable[[], Document]] = None):
        self.document_source = document_source
        # Measuring is only possible once the view is on screen
        self.attached = False
        self._layout: Optional[DocumentLayout] = None
        self._layout_document: Optional[Document] = None
        self.scroll_top = 0

    def attach(self) -> None:
        self.attached = True

    def detach(self) -> None:
        self.attached = False

    def layout(self, document: Document) -> DocumentLayout:
        if self._layout is None or self._layout_document is not document \
                or self._layout.num_columns != self.num_columns:
            self._layout = DocumentLayout(document, self.num_columns)
            self._layout_document = document
        return self._layout

    def measure_height(self) -> int:
        """Height of the laid-out content in layout units."""
        if not self.attached or self.document_source is None:
            raise MeasurementUnavailable()
        return self.layout(self.document_source()).height

    def page_break_line(self, page_number: int) -> str:
        """Create a centered page break line with page number."""
        page_text = f" Page {page_number} "
        padding = (self.num_columns - len(page_text)) // 2
        rule = EditorConstants.PAGE_BREAK_CHAR
        return rule * padding + page_text + rule * (self.num_columns - padding - len(page_text))

    def frame(self, document: Document, page_count: int) -> list[RenderedLine]:
        """All lines of the editing surface: live content, then placeholder pages."""
        lines = list(self.layout(document).lines)
        for page_number in range(2, page_count + 1):
            lines.append(RenderedLine(prefix=self.page_break_line(page_number)))
        return lines

    def scroll_to(self, caret_line: int, visible_rows: int) -> int:
        """Adjust scroll_top so that `caret_line` is visible; returns scroll_top."""
        if caret_line < self.scroll_top:
            self.scroll_top = caret_line
        elif caret_line >= self.scroll_top + visible_rows:
            self.scroll_top = caret_line - visible_rows + 1
        self.scroll_top = max(0, self.scroll_top)
        return self.scroll_top
