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

"""
Financial reconciliation performed when a sharer closes a group order.

Every amount is in integer cents and every weight in kilograms. Delivery fees
are spread over the units by weight, then the sharer fee is added on top of
base price plus delivery so the sharer keeps a fixed share of what is sold.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from orders.models import Order, OrderFull, OrderItem, Participant
from shared.money import euros_to_cents, round_half_up
from shared.types import PAID_PAYMENT_STATUSES, DeliveryOption, ParticipantRole

LOGISTIC_BASE_EUROS = 7
LOGISTIC_PER_SQRT_KG_EUROS = 8
LOGISTIC_STEP_EUROS = 5
LOGISTIC_MINIMUM_EUROS = 15

# Tolerance when comparing a weight against the order's maximum.
WEIGHT_EPSILON_KG = 1e-6


def logistic_cost_by_weight(weight_kg: float) -> int:
    """Returns the carrier cost in euros for a shipment of weight_kg."""
    if not weight_kg or weight_kg <= 0:
        return 0
    raw = LOGISTIC_BASE_EUROS + LOGISTIC_PER_SQRT_KG_EUROS * math.sqrt(weight_kg)
    stepped = LOGISTIC_STEP_EUROS * round_half_up(raw / LOGISTIC_STEP_EUROS)
    return max(LOGISTIC_MINIMUM_EUROS, stepped)


def resolve_effective_weight_kg(
    total_weight_kg: float, min_weight_kg: float, max_weight_kg: Optional[float]
) -> float:
    """Weight used for pricing: at least the minimum, at most the maximum."""
    floor = max(min_weight_kg or 0.0, 0.0)
    if max_weight_kg is not None and max_weight_kg > 0:
        return min(max(total_weight_kg, floor), max_weight_kg)
    return max(total_weight_kg, floor)


def delivery_fee_cents(order: Order, effective_weight_kg: float) -> int:
    if order.delivery_option == DeliveryOption.PRODUCER_PICKUP:
        return max(0, order.pickup_delivery_fee_cents or 0)
    if order.delivery_option == DeliveryOption.PRODUCER_DELIVERY:
        return max(0, order.delivery_fee_cents or 0)
    return euros_to_cents(logistic_cost_by_weight(effective_weight_kg))


def share_fraction(sharer_percentage: float) -> float:
    """
    Converts the sharer percentage of the final price into a markup.

    A sharer keeping p% of the final price adds p / (100 - p) on top of the
    price before fee.
    """
    percentage = max(sharer_percentage or 0.0, 0.0)
    if percentage <= 0 or percentage >= 100:
        return 0.0
    return percentage / (100 - percentage)


def unit_final_price_cents(
    unit_base_price_cents: int,
    unit_weight_kg: float,
    fee_per_kg: float,
    fraction: float,
) -> int:
    unit_delivery = round_half_up(fee_per_kg * unit_weight_kg)
    unit_sharer_fee = round_half_up((unit_base_price_cents + unit_delivery) * fraction)
    return unit_base_price_cents + unit_delivery + unit_sharer_fee


@dataclass(frozen=True)
class ProductMeta:
    unit_base_price_cents: int
    unit_weight_kg: float


@dataclass(frozen=True)
class ParticipantGain:
    participant: Participant
    paid_cents: int
    final_total_cents: int
    gain_cents: int


@dataclass(frozen=True)
class CloseSettlement:
    coop_applied_cents: int
    remaining_to_pay_cents: int

    @property
    def requires_payment(self) -> bool:
        return self.remaining_to_pay_cents > 0


class OrderCloseCalculator:
    """
    Recomputes final prices of an open order as the sharer is about to close it.

    The sharer may top the order up with extra units; extras are keyed by
    product id and negative values count as zero.
    """

    def __init__(
        self,
        order_full: OrderFull,
        extra_quantities: Optional[Mapping[str, int]] = None,
    ):
        self.order_full = order_full
        self.order = order_full.order
        self.sharer = order_full.sharer
        self.extra_quantities = {
            product_id: max(0, int(qty))
            for product_id, qty in (extra_quantities or {}).items()
        }
        self.product_meta: Dict[str, ProductMeta] = {}
        for entry in order_full.products_offered:
            base = entry.unit_base_price_cents
            if base is None:
                base = entry.unit_final_price_cents or 0
            self.product_meta[entry.product_id] = ProductMeta(
                unit_base_price_cents=base,
                unit_weight_kg=entry.unit_weight_kg or 0.0,
            )

    def _is_sharer_item(self, item: OrderItem) -> bool:
        return self.sharer is not None and item.participant_id == self.sharer.id

    @property
    def sharer_items(self) -> List[OrderItem]:
        return [item for item in self.order_full.items if self._is_sharer_item(item)]

    @property
    def current_sharer_quantities(self) -> Dict[str, int]:
        quantities: Dict[str, int] = {}
        for item in self.sharer_items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity_units
        return quantities

    @property
    def merged_sharer_quantities(self) -> Dict[str, int]:
        current = self.current_sharer_quantities
        return {
            entry.product_id: current.get(entry.product_id, 0)
            + self.extra_quantities.get(entry.product_id, 0)
            for entry in self.order_full.products_offered
        }

    def _unit_weight(self, product_id: str) -> float:
        meta = self.product_meta.get(product_id)
        return meta.unit_weight_kg if meta else 0.0

    @property
    def total_weight_kg(self) -> float:
        others = 0.0
        for item in self.order_full.items:
            if self._is_sharer_item(item):
                continue
            unit_weight = item.unit_weight_kg
            if unit_weight is None:
                unit_weight = self._unit_weight(item.product_id)
            others += unit_weight * item.quantity_units
        sharer = sum(
            self._unit_weight(product_id) * qty
            for product_id, qty in self.merged_sharer_quantities.items()
        )
        return others + sharer

    @property
    def exceeds_max_weight(self) -> bool:
        max_weight = self.order.max_weight_kg
        if max_weight is None or max_weight <= 0:
            return False
        return self.total_weight_kg > max_weight + WEIGHT_EPSILON_KG

    def can_add_extra_unit(self, product_id: str) -> bool:
        max_weight = self.order.max_weight_kg
        if max_weight is None or max_weight <= 0:
            return True
        unit_weight = self._unit_weight(product_id)
        if unit_weight <= 0:
            return True
        return self.total_weight_kg + unit_weight <= max_weight + WEIGHT_EPSILON_KG

    def adjust_extra_quantity(self, product_id: str, delta: int) -> Dict[str, int]:
        """Returns the extras after a +/- click, refusing units past the max."""
        if delta > 0 and not self.can_add_extra_unit(product_id):
            return dict(self.extra_quantities)
        updated = dict(self.extra_quantities)
        updated[product_id] = max(0, updated.get(product_id, 0) + delta)
        return updated

    @property
    def effective_weight_kg(self) -> float:
        return resolve_effective_weight_kg(
            self.total_weight_kg, self.order.min_weight_kg, self.order.max_weight_kg
        )

    @property
    def delivery_fee_cents(self) -> int:
        return delivery_fee_cents(self.order, self.effective_weight_kg)

    @property
    def share_fraction(self) -> float:
        return share_fraction(self.order.sharer_percentage)

    @property
    def fee_per_kg(self) -> float:
        effective = self.effective_weight_kg
        return self.delivery_fee_cents / effective if effective > 0 else 0.0

    def unit_final_cents(self, product_id: str) -> int:
        meta = self.product_meta.get(product_id)
        if meta is None:
            return 0
        return unit_final_price_cents(
            meta.unit_base_price_cents,
            meta.unit_weight_kg,
            self.fee_per_kg,
            self.share_fraction,
        )

    def final_totals_by_participant(self) -> Dict[str, int]:
        totals = {participant.id: 0 for participant in self.order_full.participants}
        for item in self.order_full.items:
            unit_final = self.unit_final_cents(item.product_id)
            totals[item.participant_id] = (
                totals.get(item.participant_id, 0) + unit_final * item.quantity_units
            )
        if self.sharer is not None:
            totals[self.sharer.id] = sum(
                self.unit_final_cents(product_id) * qty
                for product_id, qty in self.merged_sharer_quantities.items()
                if qty > 0
            )
        return totals

    def participant_gains(self) -> List[ParticipantGain]:
        """What each participant overpaid now that the order got heavier."""
        final_totals = self.final_totals_by_participant()
        gains = []
        for participant in self.order_full.participants:
            if self.sharer is not None and participant.id == self.sharer.id:
                continue
            paid = 0
            if participant.role == ParticipantRole.PARTICIPANT:
                paid = max(0, participant.total_amount_cents or 0)
            final_total = final_totals.get(participant.id, 0)
            gains.append(
                ParticipantGain(
                    participant=participant,
                    paid_cents=paid,
                    final_total_cents=final_total,
                    gain_cents=max(0, paid - final_total),
                )
            )
        return gains

    @property
    def sharer_products_final_cents(self) -> int:
        if self.sharer is None:
            return 0
        return self.final_totals_by_participant().get(self.sharer.id, 0)

    @property
    def pickup_share_bonus_cents(self) -> int:
        if self.order.delivery_option != DeliveryOption.PRODUCER_PICKUP:
            return 0
        return max(0, self.order.pickup_delivery_fee_cents or 0)

    @property
    def sharer_share_cents(self) -> int:
        return (self.order.sharer_share_cents or 0) + self.pickup_share_bonus_cents

    @property
    def sharer_order_gain_cents(self) -> int:
        return max(0, self.sharer_share_cents - self.sharer_products_final_cents)

    @property
    def sharer_paid_cents(self) -> int:
        if self.sharer is None:
            return 0
        return sum(
            payment.amount_cents
            for payment in self.order_full.payments
            if payment.participant_id == self.sharer.id
            and payment.status in PAID_PAYMENT_STATUSES
        )

    def settle(self, coop_balance_cents: int, use_coop_balance: bool = True) -> CloseSettlement:
        """
        Splits what the sharer still owes between coop balance and a payment.

        The sharer share offsets the sharer's own products first, then any
        payment already made for this order, then the coop balance.
        """
        required = max(0, self.sharer_products_final_cents - self.sharer_share_cents)
        due = max(0, required - self.sharer_paid_cents)
        usable = max(0, coop_balance_cents) if use_coop_balance else 0
        applied = min(usable, due)
        return CloseSettlement(
            coop_applied_cents=applied,
            remaining_to_pay_cents=max(0, due - applied),
        )
