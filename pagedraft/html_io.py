"""HTML serialization of documents and parsing of HTML fragments.

The markup follows the usual rich-text editor conventions: ``<p>`` and
``<h1>``-``<h3>`` for text blocks, ``<ul>``/``<ol>`` with ``<li>`` items
holding paragraphs, ``<strong>``/``<em>``/``<u>``/``<a>`` for marks and an
inline ``text-align`` style for non-default alignment.
"""

import html
import re
from typing import Iterable

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from .constants import EditorConstants
from .model import (
    BOLD,
    ITALIC,
    UNDERLINE,
    Align,
    Block,
    BlockKind,
    Document,
    Mark,
    MarkKind,
    TextRun,
    normalize,
)

_HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 3, "h5": 3, "h6": 3}
_LIST_TAGS = {"ul": BlockKind.BULLET_LIST, "ol": BlockKind.ORDERED_LIST}
_LIST_TAG_NAMES = {kind: tag for tag, kind in _LIST_TAGS.items()}
_MARK_TAGS = {"strong": BOLD, "b": BOLD, "em": ITALIC, "i": ITALIC, "u": UNDERLINE}
_MARK_TAG_NAMES = {MarkKind.BOLD: "strong", MarkKind.ITALIC: "em", MarkKind.UNDERLINE: "u"}
# Outermost first
_MARK_ORDER = (MarkKind.LINK, MarkKind.BOLD, MarkKind.ITALIC, MarkKind.UNDERLINE)
_IGNORED_TAGS = {"head", "script", "style", "noscript", "template"}
# Whitespace-only text inside these is content, not formatting
_PRESERVE_WHITESPACE_TAGS = {
    "pre", "textarea", "p", "h1", "h2", "h3", "h4", "h5", "h6", "li",
    "strong", "b", "em", "i", "u", "a",
}
_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)

_TEXT_ALIGN_RE = re.compile(r"text-align\s*:\s*(left|center|right)", re.IGNORECASE)
_LINE_BREAK_RE = re.compile(r"\s*[\r\n]\s*")


# --- Serialization ---

def to_html(document: Document) -> str:
    """Serialize a document to an HTML fragment."""
    return "".join(_block_html(block) for block in document.blocks)


def _block_html(block: Block) -> str:
    if block.is_textblock:
        tag = "p" if block.kind == BlockKind.PARAGRAPH else f"h{block.level}"
        style = ""
        if block.align != Align.LEFT:
            style = f' style="text-align: {block.align.value}"'
        return f"<{tag}{style}>{''.join(_run_html(run) for run in block.children)}</{tag}>"
    inner = "".join(_block_html(child) for child in block.children)
    if block.kind == BlockKind.LIST_ITEM:
        return f"<li>{inner}</li>"
    tag = _LIST_TAG_NAMES[block.kind]
    return f"<{tag}>{inner}</{tag}>"


def _run_html(run: TextRun) -> str:
    out = html.escape(run.text, quote=False)
    by_kind = {mark.kind: mark for mark in run.marks}
    for kind in reversed(_MARK_ORDER):
        mark = by_kind.get(kind)
        if mark is None:
            continue
        if kind == MarkKind.LINK:
            out = (
                f'<a target="{EditorConstants.LINK_TARGET}" rel="{EditorConstants.LINK_REL}" '
                f'class="{EditorConstants.LINK_CLASS}" href="{html.escape(mark.href or "")}">'
                f"{out}</a>"
            )
        else:
            tag = _MARK_TAG_NAMES[kind]
            out = f"<{tag}>{out}</{tag}>"
    return out


# --- Parsing ---

def parse_html(fragment: str) -> Document:
    """Parse an HTML fragment (or whole page) into a normalized document."""
    soup = BeautifulSoup(fragment or "", "html.parser",
                         preserve_whitespace_tags=_PRESERVE_WHITESPACE_TAGS)
    return normalize(Document(tuple(_parse_blocks(soup.children))))


def _parse_blocks(nodes: Iterable) -> list[Block]:
    blocks: list[Block] = []
    pending: list = []  # Inline nodes found outside any text block

    def flush():
        runs = _parse_runs(pending, frozenset())
        if "".join(run.text for run in runs).strip():
            blocks.append(Block.paragraph(*runs))
        pending.clear()

    for node in nodes:
        if isinstance(node, _SKIPPED_STRINGS):
            continue
        if isinstance(node, NavigableString):
            pending.append(node)
            continue
        if not isinstance(node, Tag) or node.name in _IGNORED_TAGS:
            continue
        if node.name == "p" or node.name in _HEADING_TAGS:
            flush()
            blocks.append(_parse_textblock(node))
        elif node.name in _LIST_TAGS:
            flush()
            blocks.append(Block(_LIST_TAGS[node.name], tuple(_parse_items(node))))
        elif _is_block_container(node):
            flush()
            blocks.extend(_parse_blocks(node.children))
        else:
            pending.append(node)
    flush()
    return blocks


def _is_block_container(tag: Tag) -> bool:
    return tag.name in {
        "html", "body", "main", "article", "section", "header", "footer",
        "aside", "nav", "div", "blockquote", "li", "figure",
    }


def _parse_textblock(tag: Tag) -> Block:
    align = _parse_align(tag)
    runs = _parse_runs(tag.children, frozenset())
    if tag.name == "p":
        return Block.paragraph(*runs, align=align)
    return Block.heading(_HEADING_TAGS[tag.name], *runs, align=align)


def _parse_align(tag: Tag) -> Align:
    match = _TEXT_ALIGN_RE.search(tag.get("style") or "")
    if match:
        return Align(match.group(1).lower())
    legacy = (tag.get("align") or "").lower()
    if legacy in {"left", "center", "right"}:
        return Align(legacy)
    return Align.LEFT


def _parse_items(list_tag: Tag) -> list[Block]:
    items = []
    for child in list_tag.children:
        if isinstance(child, Tag) and child.name == "li":
            blocks = _parse_blocks(child.children) or [Block.paragraph()]
            items.append(Block.list_item(*blocks))
        elif isinstance(child, Tag) and child.name not in _IGNORED_TAGS:
            # Stray content directly inside a list becomes its own item
            blocks = _parse_blocks([child])
            if blocks:
                items.append(Block.list_item(*blocks))
    return items


def _parse_runs(nodes: Iterable, marks: frozenset) -> list[TextRun]:
    runs: list[TextRun] = []
    for node in nodes:
        if isinstance(node, _SKIPPED_STRINGS):
            continue
        if isinstance(node, NavigableString):
            runs.append(TextRun(_LINE_BREAK_RE.sub(" ", str(node)), marks))
            continue
        if not isinstance(node, Tag) or node.name in _IGNORED_TAGS:
            continue
        if node.name == "br":
            runs.append(TextRun(" ", marks))
        elif node.name in _MARK_TAGS:
            runs.extend(_parse_runs(node.children, marks | {_MARK_TAGS[node.name]}))
        elif node.name == "a" and node.get("href"):
            link = Mark.link(node["href"])
            inner = frozenset(m for m in marks if m.kind != MarkKind.LINK) | {link}
            runs.extend(_parse_runs(node.children, inner))
        else:
            runs.extend(_parse_runs(node.children, marks))
    return runs
