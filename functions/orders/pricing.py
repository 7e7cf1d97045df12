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
Pricing helpers used while participants build their basket and while the
order summary is displayed.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from orders.models import Order, OrderFull, Payment
from orders.settlement import (
    resolve_effective_weight_kg,
    share_fraction,
    unit_final_price_cents,
)
from shared.money import round_half_up
from shared.types import PAID_PAYMENT_STATUSES, DeliveryOption, OrderStatus, ParticipantRole

# Card processing fallback when the provider did not report its fee.
PAYMENT_FEE_RATE = 0.007
PAYMENT_FEE_FIXED_CENTS = 15
PAYMENT_FEE_VAT_RATE = 0.2


def sum_paid_cents_for_participant(
    payments: Iterable[Payment], participant_id: Optional[str]
) -> int:
    if not participant_id:
        return 0
    return sum(
        payment.amount_cents
        for payment in payments
        if payment.participant_id == participant_id
        and payment.status in PAID_PAYMENT_STATUSES
    )


def max_order_weight_kg(order: Order) -> Optional[float]:
    if order.max_weight_kg is not None and order.max_weight_kg > 0:
        return order.max_weight_kg
    return None


def baseline_effective_weight_kg(order: Order) -> float:
    """The stored effective weight, or one derived from the ordered weight."""
    stored = order.effective_weight_kg or 0.0
    if stored > 0:
        return stored
    return resolve_effective_weight_kg(
        max(0.0, order.ordered_weight_kg or 0.0),
        order.min_weight_kg,
        order.max_weight_kg,
    )


def pricing_weight_kg(order: Order, projected_weight_kg: float) -> float:
    unclamped = max(baseline_effective_weight_kg(order), projected_weight_kg)
    max_weight = max_order_weight_kg(order)
    return min(unclamped, max_weight) if max_weight else unclamped


def pricing_delivery_fee_cents(order: Order) -> int:
    if order.delivery_option == DeliveryOption.PRODUCER_PICKUP:
        return order.pickup_delivery_fee_cents or 0
    return order.delivery_fee_cents or 0


def unit_prices_cents(
    order: Order,
    base_prices_cents: Mapping[str, int],
    unit_weights_kg: Mapping[str, float],
    projected_weight_kg: float,
) -> dict[str, int]:
    """Unit price per product if the order reached projected_weight_kg."""
    weight = pricing_weight_kg(order, projected_weight_kg)
    fee_per_kg = pricing_delivery_fee_cents(order) / weight if weight > 0 else 0.0
    fraction = share_fraction(order.sharer_percentage)
    return {
        product_id: unit_final_price_cents(
            base_cents, unit_weights_kg.get(product_id, 0.0), fee_per_kg, fraction
        )
        for product_id, base_cents in base_prices_cents.items()
    }


def selected_weight_kg(
    quantities: Mapping[str, float], unit_weights_kg: Mapping[str, float]
) -> float:
    return sum(
        unit_weights_kg.get(product_id, 0.0) * (qty or 0)
        for product_id, qty in quantities.items()
    )


def clamp_quantity_for_max(
    product_id: str,
    candidate_qty: float,
    quantities: Mapping[str, float],
    unit_weights_kg: Mapping[str, float],
    already_ordered_weight_kg: float,
    max_weight_kg: Optional[float],
) -> float:
    """
    Limits a new quantity so the basket never exceeds the order's capacity.

    Decreases are always accepted; increases stop at the remaining capacity
    but never drop below the current quantity.
    """
    current_qty = quantities.get(product_id, 0) or 0
    sanitized = max(0, candidate_qty)
    if max_weight_kg is None:
        return sanitized
    if sanitized <= current_qty:
        return sanitized
    unit_weight = unit_weights_kg.get(product_id, 0.0)
    if unit_weight <= 0:
        return sanitized
    other_weight = selected_weight_kg(quantities, unit_weights_kg) - unit_weight * current_qty
    available = max_weight_kg - already_ordered_weight_kg - other_weight
    if available <= 0:
        return current_qty
    max_qty = available / unit_weight
    if not math.isfinite(max_qty):
        return sanitized
    clamped_max = max(0.0, max_qty)
    if clamped_max < current_qty:
        return current_qty
    return min(sanitized, clamped_max)


@dataclass(frozen=True)
class CoopOffset:
    applied_cents: int
    remaining_to_pay_cents: int


def apply_coop_balance(
    total_cents: int, coop_balance_cents: int, use_coop_balance: bool = True
) -> CoopOffset:
    applied = min(coop_balance_cents, total_cents) if use_coop_balance else 0
    return CoopOffset(applied_cents=applied, remaining_to_pay_cents=max(0, total_cents - applied))


@dataclass(frozen=True)
class PaymentFeeTotals:
    fee_ht_cents: int = 0
    fee_vat_cents: int = 0
    fee_ttc_cents: int = 0


def payment_fee_totals(payments: Iterable[Payment]) -> PaymentFeeTotals:
    """Sums the processing fees of paid payments, estimating missing ones."""
    fee_ht = fee_vat = 0
    for payment in payments:
        if payment.status not in PAID_PAYMENT_STATUSES:
            continue
        ht = payment.fee_cents
        if ht is None:
            ht = round_half_up(payment.amount_cents * PAYMENT_FEE_RATE + PAYMENT_FEE_FIXED_CENTS)
        vat = payment.fee_vat_cents
        if vat is None:
            vat = round_half_up(ht * PAYMENT_FEE_VAT_RATE)
        fee_ht += ht
        fee_vat += vat
    return PaymentFeeTotals(fee_ht_cents=fee_ht, fee_vat_cents=fee_vat, fee_ttc_cents=fee_ht + fee_vat)


@dataclass(frozen=True)
class OrderFinanceSummary:
    participant_totals_cents: int
    sharer_products_cents: int
    sharer_share_cents: int
    adjusted_sharer_share_cents: int
    sharer_deficit_cents: int
    sharer_gain_cents: int
    paid_total_cents: int
    remaining_to_collect_cents: int
    payment_fees: PaymentFeeTotals
    delivery_fee_to_producer_cents: int
    delivery_fee_to_platform_cents: int
    delivery_fee_to_sharer_cents: int
    platform_share_with_fees_cents: int
    can_reach_full_coverage: bool


_LOCKED_OR_AFTER = frozenset(
    {
        OrderStatus.LOCKED,
        OrderStatus.CONFIRMED,
        OrderStatus.DELIVERED,
        OrderStatus.DISTRIBUTED,
        OrderStatus.FINISHED,
    }
)


def summarize_order_finances(
    order_full: OrderFull, platform_share_cents: int = 0
) -> OrderFinanceSummary:
    """
    Breaks an order's money down between participants, sharer, producer and
    platform, as shown on the order page.
    """
    order = order_full.order
    sharer = order_full.sharer
    participants = [
        p for p in order_full.participants if p.role == ParticipantRole.PARTICIPANT
    ]
    participant_totals = sum(p.total_amount_cents for p in participants)
    participant_weight = sum(p.total_weight_kg for p in participants)
    sharer_products = sharer.total_amount_cents if sharer else 0
    sharer_percentage = max(order.sharer_percentage or 0.0, 0.0)

    share_from_items = sum(
        (item.unit_sharer_fee_cents or 0) * (item.quantity_units or 0)
        for item in order_full.items
        if sharer is None or item.participant_id != sharer.id
    )
    stored_share = max(0, order.sharer_share_cents or 0)
    percent_share = max(0, round_half_up(participant_totals * sharer_percentage / 100))
    computed_share = share_from_items if share_from_items > 0 else percent_share
    if order.status in _LOCKED_OR_AFTER and stored_share > 0:
        sharer_share = stored_share
    else:
        sharer_share = stored_share if stored_share > 0 else computed_share

    pickup_fee = max(0, order.pickup_delivery_fee_cents or 0)
    is_pickup = order.delivery_option == DeliveryOption.PRODUCER_PICKUP
    adjusted_share = sharer_share + pickup_fee if is_pickup else sharer_share
    deficit = max(0, sharer_products - adjusted_share)

    paid_payments = [p for p in order_full.payments if p.status in PAID_PAYMENT_STATUSES]
    paid_total = sum(p.amount_cents for p in paid_payments)
    fees = payment_fee_totals(paid_payments)

    base_delivery_fee = max(0, order.delivery_fee_cents or 0)
    to_producer = base_delivery_fee if order.delivery_option == DeliveryOption.PRODUCER_DELIVERY else 0
    to_platform = base_delivery_fee if order.delivery_option == DeliveryOption.CHRONOFRESH else 0
    to_sharer = pickup_fee if is_pickup else 0

    max_weight = order.max_weight_kg
    sharer_weight = sharer.total_weight_kg if sharer else 0.0
    value_per_kg = participant_totals / participant_weight if participant_weight > 0 else 0.0
    if max_weight is not None:
        max_participant_weight = max(max_weight - sharer_weight, participant_weight, 0.0)
    else:
        max_participant_weight = participant_weight
    max_participant_totals = round_half_up(max_participant_weight * value_per_kg)
    max_share = round_half_up(max_participant_totals * sharer_percentage / 100)
    if is_pickup:
        max_share += pickup_fee

    return OrderFinanceSummary(
        participant_totals_cents=participant_totals,
        sharer_products_cents=sharer_products,
        sharer_share_cents=sharer_share,
        adjusted_sharer_share_cents=adjusted_share,
        sharer_deficit_cents=deficit,
        sharer_gain_cents=max(0, adjusted_share - sharer_products),
        paid_total_cents=paid_total,
        remaining_to_collect_cents=max(0, participant_totals - paid_total),
        payment_fees=fees,
        delivery_fee_to_producer_cents=to_producer,
        delivery_fee_to_platform_cents=to_platform,
        delivery_fee_to_sharer_cents=to_sharer,
        platform_share_with_fees_cents=platform_share_cents + fees.fee_ttc_cents + to_platform,
        can_reach_full_coverage=(
            deficit > 0 and max_weight is not None and max_share >= sharer_products
        ),
    )
