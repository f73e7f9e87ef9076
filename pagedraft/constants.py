"""Constants and configuration for the pagedraft editor."""


class PageGeometry:
    """Fixed page geometry, in layout units (1/96 inch)."""

    PAGE_HEIGHT = 1056  # US letter, 11in
    PAGE_WIDTH = 816  # US letter, 8.5in
    PAGE_PADDING = 96  # 1in margin on all sides
    AVAILABLE_HEIGHT = PAGE_HEIGHT - 2 * PAGE_PADDING  # Content height per page
    AVAILABLE_WIDTH = PAGE_WIDTH - 2 * PAGE_PADDING


class EditorConstants:
    """Central configuration constants for the editor."""

    # Initial document
    DEFAULT_CONTENT = "<p></p>"
    PLACEHOLDER = "Start typing your document..."
    LINK_PROMPT = "Enter URL:"

    # Export
    EXPORT_FILENAME = "document.html"
    EXPORT_MIME_TYPE = "text/html"
    EXPORT_TEMP_SUFFIX = ".tmp"

    # Link markup, as written by the serializer
    LINK_TARGET = "_blank"
    LINK_REL = "noopener noreferrer nofollow"
    LINK_CLASS = "text-blue-600 underline cursor-pointer"

    # Terminal rendering
    DOCUMENT_WIDTH = 65  # Columns of page text (624 units at 9.6 units per column)
    LINE_HEIGHT = 24  # Layout units per rendered line
    MIN_TERMINAL_WIDTH = 65  # Minimum terminal width required for display
    PAGE_BREAK_CHAR = "─"
    BULLET_MARKER = "• "

    # Resize handling
    RESIZE_POLL_INTERVAL = 0.1  # Seconds between checks for pending resizes

    # Printing
    PRINT_FONT = "Courier"
    PRINT_FONT_BOLD = "Courier-Bold"
    PRINT_FONT_SIZE = 12  # Courier advance 7.2pt = one 9.6 unit column
    PRINT_TIMEOUT = 10  # Seconds to wait for lpr

    # Status messages
    TERMINAL_TOO_NARROW_MESSAGE = "Terminal too narrow! Need at least {} columns."
    CURRENT_WIDTH_MESSAGE = "Current width: {} columns."
