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

from orders import settlement
from orders.models import Order
from orders.testing import sample_order_full
from shared.types import DeliveryOption


class LogisticCostTest(unittest.TestCase):

    def test_cost_tiers(self):
        self.assertEqual(settlement.logistic_cost_by_weight(0), 0)
        self.assertEqual(settlement.logistic_cost_by_weight(-3), 0)
        self.assertEqual(settlement.logistic_cost_by_weight(0.01), 15)
        self.assertEqual(settlement.logistic_cost_by_weight(1), 15)
        self.assertEqual(settlement.logistic_cost_by_weight(4), 25)
        self.assertEqual(settlement.logistic_cost_by_weight(9), 30)
        self.assertEqual(settlement.logistic_cost_by_weight(16), 40)

    def test_resolve_effective_weight(self):
        self.assertEqual(settlement.resolve_effective_weight_kg(3, 5, 20), 5)
        self.assertEqual(settlement.resolve_effective_weight_kg(30, 5, 20), 20)
        self.assertEqual(settlement.resolve_effective_weight_kg(3, 0, None), 3)
        self.assertEqual(settlement.resolve_effective_weight_kg(3, -2, 0), 3)

    def test_share_fraction(self):
        self.assertEqual(settlement.share_fraction(0), 0.0)
        self.assertEqual(settlement.share_fraction(100), 0.0)
        self.assertEqual(settlement.share_fraction(50), 1.0)
        self.assertAlmostEqual(settlement.share_fraction(10), 1 / 9)

    def test_delivery_fee_by_option(self):
        order = Order(
            id="o",
            sharer_profile_id="s",
            delivery_fee_cents=1000,
            pickup_delivery_fee_cents=600,
        )
        order.delivery_option = DeliveryOption.PRODUCER_PICKUP
        self.assertEqual(settlement.delivery_fee_cents(order, 16), 600)
        order.delivery_option = DeliveryOption.PRODUCER_DELIVERY
        self.assertEqual(settlement.delivery_fee_cents(order, 16), 1000)
        order.delivery_option = DeliveryOption.CHRONOFRESH
        self.assertEqual(settlement.delivery_fee_cents(order, 16), 4000)


class OrderCloseCalculatorTest(unittest.TestCase):

    def test_final_prices_and_gains(self):
        calculator = settlement.OrderCloseCalculator(sample_order_full())

        self.assertEqual(calculator.total_weight_kg, 3.0)
        self.assertEqual(calculator.effective_weight_kg, 3.0)
        self.assertEqual(calculator.delivery_fee_cents, 1000)
        # 1000 base + 333 delivery + 148 sharer fee
        self.assertEqual(calculator.unit_final_cents("p1"), 1481)
        self.assertEqual(
            calculator.final_totals_by_participant(),
            {"part-sharer": 1481, "part-alice": 2962},
        )
        gains = calculator.participant_gains()
        self.assertEqual(len(gains), 1)
        self.assertEqual(gains[0].participant.id, "part-alice")
        self.assertEqual(gains[0].paid_cents, 3000)
        self.assertEqual(gains[0].gain_cents, 38)
        self.assertEqual(calculator.sharer_products_final_cents, 1481)
        self.assertEqual(calculator.sharer_share_cents, 500)
        self.assertEqual(calculator.sharer_order_gain_cents, 0)

    def test_minimum_weight_spreads_delivery_over_more_kilos(self):
        calculator = settlement.OrderCloseCalculator(sample_order_full(min_weight_kg=10))
        self.assertEqual(calculator.effective_weight_kg, 10)
        self.assertEqual(calculator.unit_final_cents("p1"), 1222)

    def test_extra_quantities_are_merged_into_sharer_basket(self):
        calculator = settlement.OrderCloseCalculator(
            sample_order_full(), {"p1": 2, "p2": -4}
        )
        self.assertEqual(calculator.extra_quantities, {"p1": 2, "p2": 0})
        self.assertEqual(calculator.merged_sharer_quantities, {"p1": 3, "p2": 0})
        self.assertEqual(calculator.total_weight_kg, 5.0)
        self.assertEqual(calculator.unit_final_cents("p1"), 1333)
        self.assertEqual(calculator.sharer_products_final_cents, 3999)

    def test_extra_units_respect_max_weight(self):
        self.assertTrue(
            settlement.OrderCloseCalculator(sample_order_full(), {"p1": 16}).can_add_extra_unit("p1")
        )
        full = settlement.OrderCloseCalculator(sample_order_full(), {"p1": 17})
        self.assertFalse(full.can_add_extra_unit("p1"))
        self.assertEqual(full.adjust_extra_quantity("p1", 1), {"p1": 17})
        self.assertEqual(full.adjust_extra_quantity("p1", -20), {"p1": 0})
        self.assertFalse(full.exceeds_max_weight)
        self.assertTrue(
            settlement.OrderCloseCalculator(sample_order_full(), {"p1": 18}).exceeds_max_weight
        )

    def test_pickup_fee_goes_to_sharer(self):
        calculator = settlement.OrderCloseCalculator(
            sample_order_full(delivery_option=DeliveryOption.PRODUCER_PICKUP)
        )
        self.assertEqual(calculator.pickup_share_bonus_cents, 600)
        self.assertEqual(calculator.sharer_share_cents, 1100)

    def test_settle_uses_coop_balance_after_share(self):
        calculator = settlement.OrderCloseCalculator(sample_order_full())

        covered = calculator.settle(2000)
        self.assertEqual(covered.coop_applied_cents, 981)
        self.assertEqual(covered.remaining_to_pay_cents, 0)
        self.assertFalse(covered.requires_payment)

        partial = calculator.settle(300)
        self.assertEqual(partial.coop_applied_cents, 300)
        self.assertEqual(partial.remaining_to_pay_cents, 681)
        self.assertTrue(partial.requires_payment)

        opted_out = calculator.settle(2000, use_coop_balance=False)
        self.assertEqual(opted_out.coop_applied_cents, 0)
        self.assertEqual(opted_out.remaining_to_pay_cents, 981)

        negative = calculator.settle(-50)
        self.assertEqual(negative.coop_applied_cents, 0)

    def test_settle_deducts_sharer_payments(self):
        calculator = settlement.OrderCloseCalculator(
            sample_order_full(sharer_payments_cents=500)
        )
        self.assertEqual(calculator.sharer_paid_cents, 500)
        result = calculator.settle(0)
        self.assertEqual(result.remaining_to_pay_cents, 481)


if __name__ == "__main__":
    unittest.main()
