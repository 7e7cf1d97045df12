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

from orders import pricing
from orders.models import Order, OrderFull, Participant, Payment
from shared.types import DeliveryOption, OrderStatus, ParticipantRole, PaymentStatus


def _order(**overrides) -> Order:
    values = dict(
        id="order-1",
        sharer_profile_id="sharer",
        delivery_option=DeliveryOption.PRODUCER_DELIVERY,
        max_weight_kg=10.0,
        sharer_percentage=10.0,
        delivery_fee_cents=1000,
        pickup_delivery_fee_cents=500,
    )
    values.update(overrides)
    return Order(**values)


class PaidAmountsTest(unittest.TestCase):

    def test_only_paid_and_authorized_payments_count(self):
        payments = [
            Payment(id="1", participant_id="p1", amount_cents=1000, status=PaymentStatus.PAID),
            Payment(id="2", participant_id="p1", amount_cents=500, status=PaymentStatus.AUTHORIZED),
            Payment(id="3", participant_id="p1", amount_cents=700, status=PaymentStatus.FAILED),
            Payment(id="4", participant_id="p2", amount_cents=300, status=PaymentStatus.PAID),
        ]
        self.assertEqual(pricing.sum_paid_cents_for_participant(payments, "p1"), 1500)
        self.assertEqual(pricing.sum_paid_cents_for_participant(payments, None), 0)


class UnitPricesTest(unittest.TestCase):

    def test_pricing_weight(self):
        order = _order(ordered_weight_kg=4.0, min_weight_kg=5.0, max_weight_kg=20.0)
        self.assertEqual(pricing.baseline_effective_weight_kg(order), 5.0)
        self.assertEqual(pricing.pricing_weight_kg(order, 8.0), 8.0)
        self.assertEqual(pricing.pricing_weight_kg(order, 30.0), 20.0)
        order.effective_weight_kg = 12.0
        self.assertEqual(pricing.pricing_weight_kg(order, 8.0), 12.0)

    def test_unit_prices_use_delivery_or_pickup_fee(self):
        prices = pricing.unit_prices_cents(_order(), {"p1": 1000}, {"p1": 1.0}, 5.0)
        self.assertEqual(prices, {"p1": 1333})
        pickup = _order(delivery_option=DeliveryOption.PRODUCER_PICKUP)
        prices = pricing.unit_prices_cents(pickup, {"p1": 1000}, {"p1": 1.0}, 5.0)
        self.assertEqual(prices, {"p1": 1222})

    def test_clamp_quantity_for_max(self):
        weights = {"a": 1.0, "b": 0.5}
        quantities = {"a": 2, "b": 2}
        self.assertEqual(
            pricing.clamp_quantity_for_max("a", 6, quantities, weights, 5.0, 10.0), 4
        )
        self.assertEqual(
            pricing.clamp_quantity_for_max("a", 1, quantities, weights, 5.0, 10.0), 1
        )
        self.assertEqual(
            pricing.clamp_quantity_for_max("a", 6, quantities, weights, 5.0, None), 6
        )
        self.assertEqual(
            pricing.clamp_quantity_for_max("a", 6, quantities, weights, 9.5, 10.0), 2
        )


class CoopAndFeesTest(unittest.TestCase):

    def test_apply_coop_balance(self):
        self.assertEqual(pricing.apply_coop_balance(1000, 300), pricing.CoopOffset(300, 700))
        self.assertEqual(pricing.apply_coop_balance(1000, 5000), pricing.CoopOffset(1000, 0))
        self.assertEqual(
            pricing.apply_coop_balance(1000, 300, use_coop_balance=False),
            pricing.CoopOffset(0, 1000),
        )

    def test_payment_fee_totals_estimate_missing_fees(self):
        totals = pricing.payment_fee_totals(
            [
                Payment(id="1", participant_id="p", amount_cents=1000, status=PaymentStatus.PAID),
                Payment(
                    id="2",
                    participant_id="p",
                    amount_cents=2000,
                    status=PaymentStatus.AUTHORIZED,
                    fee_cents=30,
                    fee_vat_cents=6,
                ),
                Payment(id="3", participant_id="p", amount_cents=9000, status=PaymentStatus.FAILED),
            ]
        )
        self.assertEqual(totals, pricing.PaymentFeeTotals(52, 10, 62))


class OrderFinanceSummaryTest(unittest.TestCase):

    def _order_full(self, **order_overrides) -> OrderFull:
        values = dict(
            delivery_option=DeliveryOption.CHRONOFRESH,
            delivery_fee_cents=1200,
            max_weight_kg=20.0,
            sharer_share_cents=0,
        )
        values.update(order_overrides)
        order = _order(**values)
        return OrderFull(
            order=order,
            participants=[
                Participant(
                    id="s",
                    profile_id="sharer",
                    role=ParticipantRole.SHARER,
                    total_amount_cents=1500,
                    total_weight_kg=1.5,
                ),
                Participant(
                    id="a",
                    profile_id="alice",
                    total_amount_cents=3000,
                    total_weight_kg=3.0,
                ),
            ],
            payments=[
                Payment(id="1", participant_id="a", amount_cents=1000, status=PaymentStatus.PAID)
            ],
        )

    def test_open_order_summary(self):
        summary = pricing.summarize_order_finances(self._order_full())
        self.assertEqual(summary.participant_totals_cents, 3000)
        self.assertEqual(summary.sharer_share_cents, 300)
        self.assertEqual(summary.sharer_deficit_cents, 1200)
        self.assertEqual(summary.sharer_gain_cents, 0)
        self.assertEqual(summary.paid_total_cents, 1000)
        self.assertEqual(summary.remaining_to_collect_cents, 2000)
        self.assertEqual(summary.delivery_fee_to_platform_cents, 1200)
        self.assertEqual(summary.delivery_fee_to_producer_cents, 0)
        self.assertEqual(summary.platform_share_with_fees_cents, 1226)
        self.assertTrue(summary.can_reach_full_coverage)

    def test_locked_order_keeps_stored_share(self):
        summary = pricing.summarize_order_finances(
            self._order_full(status=OrderStatus.LOCKED, sharer_share_cents=800)
        )
        self.assertEqual(summary.sharer_share_cents, 800)
        self.assertEqual(summary.sharer_deficit_cents, 700)


if __name__ == "__main__":
    unittest.main()
