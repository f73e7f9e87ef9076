"""Word and character statistics for a document."""

from dataclasses import dataclass

from .model import Document

BLOCK_SEPARATOR = "\n"


@dataclass(frozen=True)
class DocumentStats:
    word_count: int = 0
    char_count: int = 0


def text_projection(document: Document) -> str:
    """Flatten a document to plain text.

    Run texts are concatenated in document order with one separator between
    consecutive text blocks.
    """
    return BLOCK_SEPARATOR.join(block.text for block in document.textblocks())


def count_words(text: str) -> int:
    # Split by whitespace and count non-empty strings
    return len(text.split())


def compute_stats(document: Document) -> DocumentStats:
    text = text_projection(document)
    return DocumentStats(word_count=count_words(text), char_count=len(text))


class StatsAggregator:
    """Keeps the statistics of the most recently committed document."""

    def __init__(self):
        self.stats = DocumentStats()

    def recompute(self, document: Document) -> DocumentStats:
        self.stats = compute_stats(document)
        return self.stats

    @property
    def word_count(self) -> int:
        return self.stats.word_count

    @property
    def char_count(self) -> int:
        return self.stats.char_count
