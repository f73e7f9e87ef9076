"""Printing: render laid-out lines to PDF and submit them to CUPS."""

import io
import logging
import os
import shutil
import subprocess
import tempfile
from typing import List, Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .constants import EditorConstants, PageGeometry
from .model import MarkKind
from .view import RenderedLine

logger = logging.getLogger(__name__)

# PDF points per layout unit (72 points vs. 96 units per inch)
POINTS_PER_UNIT = 0.75
LINES_PER_PAGE = PageGeometry.AVAILABLE_HEIGHT // EditorConstants.LINE_HEIGHT


def paginate_lines(lines: List[RenderedLine]) -> List[List[RenderedLine]]:
    """Split laid-out lines into printed pages of page-body height."""
    pages = [lines[i:i + LINES_PER_PAGE] for i in range(0, len(lines), LINES_PER_PAGE)]
    return pages or [[]]


class PDFGenerator:
    """Generate letter-size PDF pages from laid-out lines."""

    def __init__(self):
        self.page_width, self.page_height = letter
        self.margin = PageGeometry.PAGE_PADDING * POINTS_PER_UNIT
        self.line_height = EditorConstants.LINE_HEIGHT * POINTS_PER_UNIT
        self.font_size = EditorConstants.PRINT_FONT_SIZE

    def _font_for(self, marks) -> str:
        kinds = {mark.kind for mark in marks}
        bold = MarkKind.BOLD in kinds
        italic = MarkKind.ITALIC in kinds
        if bold and italic:
            return "Courier-BoldOblique"
        if bold:
            return EditorConstants.PRINT_FONT_BOLD
        if italic:
            return "Courier-Oblique"
        return EditorConstants.PRINT_FONT

    def generate_pdf(self, lines: List[RenderedLine]) -> bytes:
        """Generate PDF from laid-out lines.

        Returns:
            Complete PDF document as bytes.
        """
        pdf_buffer = io.BytesIO()
        c = canvas.Canvas(pdf_buffer, pagesize=letter)
        char_width = c.stringWidth("X", EditorConstants.PRINT_FONT, self.font_size)

        for page in paginate_lines(lines):
            y_position = self.page_height - self.margin - self.font_size
            for line in page:
                x_position = self.margin + len(line.prefix) * char_width
                if line.block_index is None:
                    # Rules and spacing have no marks
                    c.setFont(EditorConstants.PRINT_FONT, self.font_size)
                    c.drawString(self.margin, y_position, line.prefix)
                for text, marks in line.segments:
                    marks = marks | line.style
                    c.setFont(self._font_for(marks), self.font_size)
                    c.drawString(x_position, y_position, text)
                    width = len(text) * char_width
                    if any(mark.kind in (MarkKind.UNDERLINE, MarkKind.LINK) for mark in marks):
                        c.line(x_position, y_position - 2, x_position + width, y_position - 2)
                    x_position += width
                y_position -= self.line_height
            c.showPage()

        c.save()
        return pdf_buffer.getvalue()


class PrintOutput:
    """Handles printing to printers and generating PDF files."""

    def __init__(self):
        """Initialize print output handler."""
        self.lpr_available = shutil.which("lpr") is not None
        self.pdf_generator = PDFGenerator()

    def print_to_printer(self, lines: List[RenderedLine],
                         printer: Optional[str] = None) -> tuple[bool, str]:
        """Submit a print job to CUPS.

        Args:
            lines: Laid-out document lines.
            printer: Printer name, or None for the default printer.

        Returns:
            Tuple of (success, error_message).
        """
        if not self.lpr_available:
            return False, "Printing is not available (lpr command not found)"

        pdf_filename = None
        try:
            pdf_content = self.pdf_generator.generate_pdf(lines)
            with tempfile.NamedTemporaryFile(mode='wb', suffix='.pdf',
                                             delete=False) as pdf_file:
                pdf_filename = pdf_file.name
                pdf_file.write(pdf_content)

            cmd = ['lpr']
            if printer:
                cmd.extend(['-P', printer])
            cmd.append(pdf_filename)

            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=EditorConstants.PRINT_TIMEOUT,
            )
            if result.returncode != 0:
                error_msg = result.stderr.strip() if result.stderr else "Print command failed"
                logger.warning(f"lpr failed: {error_msg}")
                return False, f"Print failed: {error_msg}"
            return True, ""

        except subprocess.TimeoutExpired:
            logger.warning("lpr timed out")
            return False, "Print command timed out"
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Print error: {e}")
            return False, f"Print error: {str(e)}"
        finally:
            if pdf_filename is not None and os.path.exists(pdf_filename):
                os.unlink(pdf_filename)

    def save_to_file(self, lines: List[RenderedLine], filename: str) -> tuple[bool, str]:
        """Generate a PDF file from laid-out lines.

        Returns:
            Tuple of (success, error_message).
        """
        if not filename.endswith('.pdf'):
            filename += '.pdf'
        try:
            pdf_content = self.pdf_generator.generate_pdf(lines)
            with open(filename, 'wb') as f:
                f.write(pdf_content)
            return True, ""
        except OSError as e:
            logger.warning(f"Could not save PDF to {filename}: {e}")
            return False, f"Save error: {str(e)}"
