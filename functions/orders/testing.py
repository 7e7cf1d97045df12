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

"""Small order fixtures shared by the order tests."""

from orders.models import Order, OrderFull, OrderItem, Participant, Payment, ProductOffer
from shared.types import DeliveryOption, ParticipantRole, PaymentStatus

SHARER_PROFILE_ID = "sharer-profile"
PARTICIPANT_PROFILE_ID = "alice-profile"


def sample_order_full(
    *,
    delivery_option: DeliveryOption = DeliveryOption.PRODUCER_DELIVERY,
    min_weight_kg: float = 0.0,
    max_weight_kg: float | None = 20.0,
    sharer_payments_cents: int = 0,
) -> OrderFull:
    """
    One product at 10 EUR/kg, a participant holding 2 units and the sharer 1,
    10 EUR delivery and a 10% sharer fee.
    """
    order = Order(
        id="order-1",
        sharer_profile_id=SHARER_PROFILE_ID,
        order_code="ABC123",
        delivery_option=delivery_option,
        min_weight_kg=min_weight_kg,
        max_weight_kg=max_weight_kg,
        sharer_percentage=10.0,
        delivery_fee_cents=1000,
        pickup_delivery_fee_cents=600,
        sharer_share_cents=500,
    )
    sharer = Participant(
        id="part-sharer", profile_id=SHARER_PROFILE_ID, role=ParticipantRole.SHARER
    )
    alice = Participant(
        id="part-alice",
        profile_id=PARTICIPANT_PROFILE_ID,
        role=ParticipantRole.PARTICIPANT,
        total_amount_cents=3000,
        total_weight_kg=2.0,
    )
    payments = [
        Payment(
            id="pay-alice",
            participant_id=alice.id,
            amount_cents=3000,
            status=PaymentStatus.PAID,
        )
    ]
    if sharer_payments_cents:
        payments.append(
            Payment(
                id="pay-sharer",
                participant_id=sharer.id,
                amount_cents=sharer_payments_cents,
                status=PaymentStatus.PAID,
            )
        )
    return OrderFull(
        order=order,
        participants=[sharer, alice],
        items=[
            OrderItem(
                id="item-alice",
                participant_id=alice.id,
                product_id="p1",
                quantity_units=2,
                lot_id="lot-1",
                unit_weight_kg=1.0,
                unit_base_price_cents=1000,
            ),
            OrderItem(
                id="item-sharer",
                participant_id=sharer.id,
                product_id="p1",
                quantity_units=1,
                lot_id="lot-1",
                unit_weight_kg=1.0,
                unit_base_price_cents=1000,
            ),
        ],
        products_offered=[
            ProductOffer(
                product_id="p1",
                unit_base_price_cents=1000,
                unit_weight_kg=1.0,
                active_lot_id="lot-1",
            ),
            ProductOffer(
                product_id="p2",
                unit_base_price_cents=500,
                unit_weight_kg=0.5,
                active_lot_id="lot-2",
            ),
        ],
        payments=payments,
    )
