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

import unittest

from shared import weight


class FormatUnitWeightLabelTest(unittest.TestCase):

    def test_missing_or_non_positive_weights_have_no_label(self):
        for value in (None, 0, -1, float("nan"), float("inf")):
            with self.subTest(value=value):
                self.assertEqual(weight.format_unit_weight_label(value), "")

    def test_sub_kilogram_weights_are_shown_in_grams(self):
        self.assertEqual(weight.format_unit_weight_label(0.25), "250g")
        self.assertEqual(weight.format_unit_weight_label(0.5), "500g")

    def test_kilograms_drop_trailing_zeros(self):
        self.assertEqual(weight.format_unit_weight_label(1), "1 Kg")
        self.assertEqual(weight.format_unit_weight_label(1.5), "1.5 Kg")
        self.assertEqual(weight.format_unit_weight_label(2.346), "2.35 Kg")


class ProductWeightTest(unittest.TestCase):

    def test_explicit_weight_wins(self):
        self.assertEqual(weight.product_weight_kg(weight_kg=2.0, unit="500 g"), 2.0)

    def test_weight_is_parsed_from_unit_label(self):
        self.assertEqual(weight.product_weight_kg(unit="Sachet 500 g"), 0.5)
        self.assertEqual(weight.product_weight_kg(unit="1,5 kg"), 1.5)
        self.assertEqual(weight.product_weight_kg(unit="2KG"), 2.0)

    def test_fallbacks(self):
        self.assertEqual(weight.product_weight_kg(unit="piece", measurement="kg"), 1.0)
        self.assertEqual(
            weight.product_weight_kg(unit="piece"), weight.DEFAULT_UNIT_WEIGHT_KG
        )
        self.assertEqual(weight.product_weight_kg(), 0.25)


if __name__ == "__main__":
    unittest.main()
