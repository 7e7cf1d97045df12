# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""A small flowing-text layout on top of the reportlab canvas."""

import io
from typing import List, Optional

from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

# A4 portrait, in points.
PAGE_WIDTH = 595
PAGE_HEIGHT = 842
MARGIN_LEFT = 42
MARGIN_RIGHT = 42
MARGIN_TOP = 796
MARGIN_BOTTOM = 48
CONTENT_WIDTH = PAGE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT

FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
TEXT_COLOR = (0.1, 0.13, 0.18)
RULE_COLOR = (0.82, 0.85, 0.9)

TITLE_SIZE = 18
SUBTITLE_SIZE = 13
BODY_SIZE = 11
BULLET_PREFIX = "- "
BULLET_INDENT = 10


def wrap_text(text: str, font_name: str, size: float, max_width: float) -> List[str]:
    """
    Greedily wraps text into lines no wider than max_width.

    Each newline starts a new paragraph; blank paragraphs yield an empty
    line. A single word wider than max_width is kept on its own line.
    """
    lines: List[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if stringWidth(candidate, font_name, size) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


class PdfDrawer:
    """Draws titles, paragraphs and bullets top to bottom, adding pages as needed."""

    def __init__(self, title: Optional[str] = None):
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
        if title:
            self._canvas.setTitle(title)
        self.page_count = 1
        self.y = MARGIN_TOP

    def _new_page(self) -> None:
        self._canvas.showPage()
        self.page_count += 1
        self.y = MARGIN_TOP

    def _ensure_space(self, required: float) -> None:
        if self.y - required >= MARGIN_BOTTOM:
            return
        self._new_page()

    def _draw_line_of_text(self, text: str, x: float, font_name: str, size: float) -> None:
        self._canvas.setFillColorRGB(*TEXT_COLOR)
        self._canvas.setFont(font_name, size)
        self._canvas.drawString(x, self.y, text)

    def _draw_wrapped(
        self,
        text: str,
        size: float,
        bold: bool = False,
        prefix: str = "",
        indent: float = 0,
        line_gap: float = 6,
    ) -> None:
        font_name = BOLD_FONT if bold else FONT
        value = f"{prefix}{text}" if prefix else text
        for line in wrap_text(value, font_name, size, CONTENT_WIDTH - indent):
            self._ensure_space(size + line_gap + 2)
            if line:
                self._draw_line_of_text(line, MARGIN_LEFT + indent, font_name, size)
            self.y -= size + line_gap

    def title(self, text: str) -> None:
        line_gap = 8
        for line in wrap_text(text, BOLD_FONT, TITLE_SIZE, CONTENT_WIDTH):
            self._ensure_space(TITLE_SIZE + line_gap + 2)
            line_width = stringWidth(line, BOLD_FONT, TITLE_SIZE)
            x = MARGIN_LEFT + max(0, (CONTENT_WIDTH - line_width) / 2)
            self._draw_line_of_text(line, x, BOLD_FONT, TITLE_SIZE)
            self.y -= TITLE_SIZE + line_gap
        self.y -= 4

    def rule(self) -> None:
        self._ensure_space(14)
        self._canvas.setStrokeColorRGB(*RULE_COLOR)
        self._canvas.setLineWidth(1)
        self._canvas.line(MARGIN_LEFT, self.y, PAGE_WIDTH - MARGIN_RIGHT, self.y)
        self.y -= 18

    def subtitle(self, text: str) -> None:
        self._draw_wrapped(text, SUBTITLE_SIZE, bold=True, line_gap=6)
        self.y -= 2

    def paragraph(self, text: str) -> None:
        self._draw_wrapped(text, BODY_SIZE, line_gap=5)

    def bullet(self, text: str) -> None:
        self._draw_wrapped(
            text, BODY_SIZE, prefix=BULLET_PREFIX, indent=BULLET_INDENT, line_gap=5
        )

    def spacer(self, height: float = 10) -> None:
        self.y -= height

    def render(self) -> bytes:
        self._canvas.save()
        return self._buffer.getvalue()
