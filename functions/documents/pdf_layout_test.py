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

import io
import unittest

from pypdf import PdfReader
from reportlab.pdfbase.pdfmetrics import stringWidth

from documents import pdf_layout


class WrapTextTest(unittest.TestCase):

    def test_short_text_stays_on_one_line(self):
        self.assertEqual(
            pdf_layout.wrap_text("Bonjour le monde", "Helvetica", 11, 500),
            ["Bonjour le monde"],
        )

    def test_blank_paragraphs_become_empty_lines(self):
        self.assertEqual(
            pdf_layout.wrap_text("un\n\ndeux", "Helvetica", 11, 500),
            ["un", "", "deux"],
        )

    def test_long_text_is_wrapped_within_width(self):
        text = " ".join(["mandat"] * 60)
        lines = pdf_layout.wrap_text(text, "Helvetica", 11, 200)
        self.assertGreater(len(lines), 1)
        for line in lines:
            self.assertLessEqual(stringWidth(line, "Helvetica", 11), 200)
        self.assertEqual(" ".join(lines), text)

    def test_overlong_word_keeps_its_own_line(self):
        word = "x" * 200
        self.assertEqual(
            pdf_layout.wrap_text(f"a {word} b", "Helvetica", 11, 100), ["a", word, "b"]
        )


class PdfDrawerTest(unittest.TestCase):

    def test_render_single_page(self):
        drawer = pdf_layout.PdfDrawer(title="Essai")
        drawer.title("Titre")
        drawer.rule()
        drawer.subtitle("Sous-titre")
        drawer.paragraph("Un paragraphe.")
        drawer.bullet("Un point.")
        pdf_bytes = drawer.render()

        self.assertTrue(pdf_bytes.startswith(b"%PDF"))
        reader = PdfReader(io.BytesIO(pdf_bytes))
        self.assertEqual(len(reader.pages), 1)
        text = reader.pages[0].extract_text()
        self.assertIn("Titre", text)
        self.assertIn("- Un point.", text)

    def test_spacer_moves_cursor_down(self):
        drawer = pdf_layout.PdfDrawer()
        drawer.spacer()
        self.assertEqual(drawer.y, pdf_layout.MARGIN_TOP - 10)
        drawer.spacer(4)
        self.assertEqual(drawer.y, pdf_layout.MARGIN_TOP - 14)

    def test_new_page_when_bottom_margin_is_reached(self):
        drawer = pdf_layout.PdfDrawer()
        for index in range(120):
            drawer.paragraph(f"Ligne {index}")
            self.assertGreaterEqual(drawer.y, pdf_layout.MARGIN_BOTTOM)
        self.assertGreater(drawer.page_count, 1)

        reader = PdfReader(io.BytesIO(drawer.render()))
        self.assertEqual(len(reader.pages), drawer.page_count)


if __name__ == "__main__":
    unittest.main()
