"""Pagedraft - A paginated rich text editing library."""

from .commands import (
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
from .model import (
    Align,
    Block,
    BlockKind,
    Document,
    Mark,
    MarkKind,
    Position,
    Selection,
    TextRun,
)
from .pagination import MeasurementUnavailable, PageDescriptor, PaginationEngine
from .session import EditorSession
from .stats import DocumentStats, compute_stats, text_projection

__all__ = [
    'Align',
    'Block',
    'BlockKind',
    'CommandRegistry',
    'DeleteBackward',
    'DeleteForward',
    'Document',
    'DocumentStats',
    'EditorSession',
    'InsertText',
    'Mark',
    'MarkKind',
    'MeasurementUnavailable',
    'PageDescriptor',
    'PaginationEngine',
    'Position',
    'Selection',
    'SetBlockType',
    'SetLink',
    'SetTextAlign',
    'SplitBlock',
    'TextRun',
    'ToggleList',
    'ToggleMark',
    'apply',
    'compute_stats',
    'is_active',
    'text_projection',
]
