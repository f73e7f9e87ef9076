"""Full-screen terminal editor built on an EditorSession."""

import logging
import signal
import sys
import termios
from typing import Callable, Optional

import blessed

from .commands import CommandRegistry, DeleteBackward, DeleteForward, InsertText, SplitBlock
from .constants import EditorConstants
from .export import save_export
from .model import Position, Selection
from .print_output import PrintOutput
from .session import EditorSession
from .view import RenderedLine, TerminalPageView

logger = logging.getLogger(__name__)

# Control characters and function keys mapped to toolbar action names
KEY_BINDINGS = {
    '\x02': 'bold',          # Ctrl-B
    '\x0f': 'italic',        # Ctrl-O
    '\x15': 'underline',     # Ctrl-U
    'KEY_F2': 'heading1',
    'KEY_F3': 'heading2',
    'KEY_F4': 'heading3',
    'KEY_F5': 'paragraph',
    'KEY_F6': 'align_left',
    'KEY_F7': 'align_center',
    'KEY_F8': 'align_right',
    'KEY_F9': 'bullet_list',
    'KEY_F10': 'ordered_list',
}

CTRL_A = '\x01'
CTRL_E = '\x05'
CTRL_K = '\x0b'
CTRL_P = '\x10'
CTRL_Q = '\x11'
CTRL_W = '\x17'
ESCAPE = '\x1b'

HELP_TEXT = (
    "^B bold  ^O italic  ^U underline  ^K link  F2-F4 heading  F5 paragraph  "
    "F6-F8 align  F9/F10 lists  ^A select all  ^E export  ^P print  ^Q quit"
)


class Editor:
    """Main word processor application controller."""

    def __init__(self, initial_content: str = EditorConstants.DEFAULT_CONTENT,
                 terminal: Optional[blessed.Terminal] = None):
        """Initialize the editor components."""
        self.term = terminal or blessed.Terminal()
        self.view = TerminalPageView()
        self.command_registry = CommandRegistry()
        self.print_output = PrintOutput()
        self.session = self._create_session(initial_content)
        self.running = False
        self.status_message: Optional[str] = None
        self._resize_pending = False
        self._resize_listener: Optional[Callable[[], None]] = None

    def _create_session(self, initial_content: str) -> EditorSession:
        session = EditorSession(
            measure_height=self.view.measure_height,
            prompt_text=self.prompt,
            resize_source=self._subscribe_resize,
            print_trigger=self._print,
            initial_content=initial_content,
        )
        self.view.document_source = lambda: session.document
        return session

    def load_file(self, filename: str) -> bool:
        """Use an HTML file as the initial content."""
        try:
            with open(filename, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not load {filename}: {e}")
            self.status_message = f"Could not load {filename}"
            return False
        self.session = self._create_session(content)
        return True

    # --- Resize subscription ---

    def _handle_resize(self, signum, frame):
        """Handle terminal resize signal."""
        del signum, frame  # Unused
        # Only record it; the event loop measures between key presses
        self._resize_pending = True

    def _subscribe_resize(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._resize_listener = listener
        if not hasattr(signal, 'SIGWINCH'):
            return self._clear_resize_listener
        original_handler = signal.signal(signal.SIGWINCH, self._handle_resize)

        def unsubscribe() -> None:
            signal.signal(signal.SIGWINCH, original_handler)
            self._clear_resize_listener()

        return unsubscribe

    def _clear_resize_listener(self) -> None:
        self._resize_listener = None
        self._resize_pending = False

    def drain_resize(self) -> bool:
        """Deliver a pending resize to the session; returns True if there was one."""
        if not self._resize_pending:
            return False
        self._resize_pending = False
        if self._resize_listener is not None:
            self._resize_listener()
        return True

    # --- Main loop ---

    @staticmethod
    def _disable_flow_control():
        """Let Ctrl-Q and Ctrl-V through to the editor; returns the settings to restore."""
        try:
            old_settings = termios.tcgetattr(sys.stdin)
            new_settings = list(old_settings)
            # Input flags (index 0): XON/XOFF would swallow Ctrl-Q and Ctrl-S
            new_settings[0] &= ~(termios.IXON | termios.IXOFF)
            # Local flags (index 3): IEXTEN would swallow Ctrl-V and Ctrl-O
            new_settings[3] &= ~termios.IEXTEN
            termios.tcsetattr(sys.stdin, termios.TCSANOW, new_settings)
            return old_settings
        except (termios.error, AttributeError, OSError, ValueError) as e:
            # Not a tty
            logger.debug(f"Could not disable flow control: {e}")
            return None

    @staticmethod
    def _restore_tty(old_settings) -> None:
        if old_settings is None:
            return
        try:
            termios.tcsetattr(sys.stdin, termios.TCSANOW, old_settings)
        except (termios.error, OSError, ValueError) as e:
            logger.warning(f"Could not restore terminal settings: {e}")

    def run(self):
        """Run the main editor loop."""
        self.running = True
        try:
            with self.session, self.term.fullscreen(), self.term.cbreak():
                # Disable flow control AFTER entering cbreak mode
                old_settings = self._disable_flow_control()
                self.view.attach()
                try:
                    # The view can be measured now that it is on screen
                    self.session.on_resize()
                    need_draw = True
                    while self.running:
                        if need_draw:
                            self._draw()
                            need_draw = False
                        key = self.term.inkey(timeout=EditorConstants.RESIZE_POLL_INTERVAL)
                        if self.drain_resize():
                            need_draw = True
                        if key:
                            self.handle_key(key)
                            need_draw = True
                finally:
                    self.view.detach()
                    # Restore terminal settings before exiting cbreak
                    self._restore_tty(old_settings)
        except KeyboardInterrupt:
            # Ctrl-C quits without a traceback
            self.running = False

    def handle_key(self, key) -> None:
        """Dispatch one keystroke."""
        self.status_message = None
        name = key.name if key.is_sequence else None
        action = KEY_BINDINGS.get(name or str(key))
        if action is not None:
            self.session.dispatch(self.command_registry.get_command(action))
        elif name == 'KEY_ENTER' or key == '\n' or key == '\r':
            self.session.dispatch(SplitBlock())
        elif name == 'KEY_BACKSPACE' or key == '\x7f':
            self.session.dispatch(DeleteBackward())
        elif name == 'KEY_DELETE':
            self.session.dispatch(DeleteForward())
        elif name in ('KEY_LEFT', 'KEY_RIGHT', 'KEY_SLEFT', 'KEY_SRIGHT'):
            self.move_horizontal(-1 if name.endswith('LEFT') else 1, extend=name.startswith('KEY_S'))
        elif name in ('KEY_UP', 'KEY_DOWN'):
            self.move_vertical(-1 if name == 'KEY_UP' else 1)
        elif name in ('KEY_HOME', 'KEY_END'):
            self.move_line_edge(name == 'KEY_END')
        elif key == CTRL_Q:
            self.running = False
        elif key == CTRL_K:
            self.session.prompt_link()
        elif key == CTRL_A:
            self.session.select_all()
        elif key == CTRL_E:
            self.export()
        elif key == CTRL_P:
            self.session.print_document()
        elif key == CTRL_W:
            self.status_message = f"{self.session.word_count} words, {self.session.char_count} characters"
        elif name == 'KEY_F1':
            self.status_message = HELP_TEXT
        elif not key.is_sequence and str(key) and (ord(str(key)[0]) >= 32 or str(key) == '\t'):
            self.session.dispatch(InsertText(str(key)))

    # --- Caret movement ---

    def _set_caret(self, position: Position, extend: bool = False) -> None:
        selection = self.session.selection
        anchor = selection.anchor if extend else position
        self.session.set_selection(Selection(anchor, position))

    def move_horizontal(self, delta: int, extend: bool = False) -> None:
        selection = self.session.selection
        if not extend and not selection.empty:
            # Collapse to the edge in the direction of travel
            self._set_caret(selection.from_ if delta < 0 else selection.to)
            return
        blocks = self.session.document.textblocks()
        head = selection.head
        offset = head.offset + delta
        index = head.block_index
        if offset < 0:
            if index == 0:
                return
            index -= 1
            offset = len(blocks[index].text)
        elif offset > len(blocks[index].text):
            if index + 1 >= len(blocks):
                return
            index += 1
            offset = 0
        self._set_caret(Position(index, offset), extend)

    def move_vertical(self, delta: int) -> None:
        layout = self.view.layout(self.session.document)
        line, column = layout.caret_location(self.session.selection.head)
        target = line + delta
        while 0 <= target < len(layout.lines):
            position = layout.position_at(target, column)
            if position is not None:
                self._set_caret(position)
                return
            target += delta

    def move_line_edge(self, to_end: bool) -> None:
        layout = self.view.layout(self.session.document)
        line_index, _ = layout.caret_location(self.session.selection.head)
        line = layout.lines[line_index]
        column = len(line.prefix) + (len(line.body) if to_end else 0)
        position = layout.position_at(line_index, column)
        if position is not None:
            self._set_caret(position)

    # --- Host capabilities ---

    def prompt(self, message: str) -> Optional[str]:
        """Read a line of text on the status row; None if cancelled with Escape."""
        text = ""
        while True:
            self._draw_status(f" {message} {text}")
            key = self.term.inkey()
            if key.name == 'KEY_ENTER' or key in ('\n', '\r'):
                return text
            if key == ESCAPE or key.name == 'KEY_ESCAPE':
                return None
            if key.name == 'KEY_BACKSPACE' or key == '\x7f':
                text = text[:-1]
            elif not key.is_sequence and str(key) and ord(str(key)[0]) >= 32:
                text += str(key)

    def _print(self) -> tuple[bool, str]:
        lines = self.view.layout(self.session.document).lines
        success, error = self.print_output.print_to_printer(lines)
        self.status_message = "Sent to printer" if success else error
        return success, error

    def export(self) -> tuple[bool, str]:
        success, result = save_export(self.session.export())
        self.status_message = f"Exported to {result}" if success else result
        return success, result

    # --- Drawing ---

    def _status_line(self) -> str:
        session = self.session
        formats = [label for label, name in (("B", "bold"), ("I", "italic"), ("U", "underline"))
                   if session.is_active(name)]
        return (f" Page 1 of {session.page_count} | {session.word_count} words | "
                f"{session.char_count} characters | {''.join(formats) or '-'} | F1 help")

    def _styled(self, text: str, marks) -> str:
        kinds = {mark.kind.value for mark in marks}
        out = ""
        if 'bold' in kinds:
            out += self.term.bold
        if 'italic' in kinds:
            out += self.term.italic
        if 'underline' in kinds or 'link' in kinds:
            out += self.term.underline
        return out + text + self.term.normal if out else text

    def _draw_line(self, line: RenderedLine, selected: Optional[tuple[int, int]]) -> str:
        out = line.prefix
        pos = line.start
        for text, marks in line.segments:
            marks = marks | line.style
            for lo, hi, highlight in self._split_selected(pos, pos + len(text), selected):
                piece = self._styled(text[lo - pos:hi - pos], marks)
                out += self.term.reverse + piece + self.term.normal if highlight else piece
            pos += len(text)
        return out

    @staticmethod
    def _split_selected(start: int, end: int, selected: Optional[tuple[int, int]]):
        if selected is None:
            return [(start, end, False)]
        lo, hi = max(start, selected[0]), min(end, selected[1])
        if lo >= hi:
            return [(start, end, False)]
        parts = [(start, lo, False), (lo, hi, True), (hi, end, False)]
        return [part for part in parts if part[1] > part[0]]

    def _selected_range(self, line: RenderedLine) -> Optional[tuple[int, int]]:
        selection = self.session.selection
        if selection.empty or line.block_index is None:
            return None
        start, end = selection.from_, selection.to
        if not start.block_index <= line.block_index <= end.block_index:
            return None
        lo = start.offset if line.block_index == start.block_index else 0
        hi = end.offset if line.block_index == end.block_index else line.start + len(line.body)
        return lo, hi

    def _draw(self):
        """Draw the current editor state to the terminal."""
        term = self.term
        if term.width < EditorConstants.MIN_TERMINAL_WIDTH:
            print(term.home + term.clear
                  + EditorConstants.TERMINAL_TOO_NARROW_MESSAGE.format(EditorConstants.MIN_TERMINAL_WIDTH)
                  + "\n" + EditorConstants.CURRENT_WIDTH_MESSAGE.format(term.width),
                  end='', flush=True)
            return

        document = self.session.document
        rows = max(1, term.height - 2)
        frame = self.view.frame(document, self.session.page_count)
        layout = self.view.layout(document)
        caret_line, caret_column = layout.caret_location(self.session.selection.head)
        top = self.view.scroll_to(caret_line, rows)
        left_margin = (term.width - self.view.num_columns) // 2

        out = term.home + term.clear + term.reverse(self._status_line().ljust(term.width)[:term.width])
        is_empty = len(layout.lines) == 1 and not layout.lines[0].body
        for row, line in enumerate(frame[top:top + rows], start=1):
            out += term.move_xy(left_margin, row)
            if is_empty and line.block_index == 0:
                out += line.prefix + term.dim(EditorConstants.PLACEHOLDER)
            else:
                out += self._draw_line(line, self._selected_range(line))
        out += self._status_text()
        out += term.move_xy(left_margin + caret_column, caret_line - top + 1)
        print(out, end='', flush=True)

    def _status_text(self) -> str:
        term = self.term
        text = f" {self.status_message}" if self.status_message else ""
        return term.move_xy(0, term.height - 1) + term.clear_eol + text[:term.width]

    def _draw_status(self, text: str) -> None:
        term = self.term
        print(term.move_xy(0, term.height - 1) + term.clear_eol + text[:term.width],
              end='', flush=True)
