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

from orders import share_gain


class ShareGainTest(unittest.TestCase):

    def test_logistics_estimate_floors(self):
        self.assertAlmostEqual(share_gain.estimate_logistics_cost(20, 100), 17.0)
        self.assertAlmostEqual(share_gain.estimate_logistics_cost(0, 0), 8.0)
        self.assertAlmostEqual(share_gain.estimate_logistics_cost(2, 1000), 50.0)

    def test_estimate_share_gain(self):
        estimate = share_gain.estimate_share_gain(
            max_weight_kg=20,
            total_value_euros=100,
            base_ordered_weight_kg=4,
            participant_weight_kg=1,
        )
        self.assertEqual(estimate.current_weight_kg, 5)
        self.assertEqual(estimate.remaining_capacity_kg, 15)
        self.assertAlmostEqual(estimate.potential_credit_euros, 2.55)
        self.assertAlmostEqual(estimate.progress_percent, 25.0)

    def test_reported_weight_and_full_order(self):
        estimate = share_gain.estimate_share_gain(
            max_weight_kg=10,
            total_value_euros=0,
            base_ordered_weight_kg=2,
            participant_weight_kg=1,
            reported_weight_kg=12,
        )
        self.assertEqual(estimate.current_weight_kg, 12)
        self.assertEqual(estimate.max_weight_kg, 12)
        self.assertEqual(estimate.remaining_capacity_kg, 0.0)
        self.assertEqual(estimate.potential_credit_euros, 0.0)
        self.assertEqual(estimate.progress_percent, 100.0)


if __name__ == "__main__":
    unittest.main()
