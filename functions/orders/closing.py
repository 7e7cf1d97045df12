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

"""Closing a group order: final settlement, lock, then best-effort follow-ups."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Protocol

from orders.models import OrderFull, OrderItem
from orders.settlement import CloseSettlement, OrderCloseCalculator
from shared.types import OrderStatus

logger = logging.getLogger(__name__)

CLOSED = "closed"
PAYMENT_REQUIRED = "payment_required"

WARNING_INVOICE_UNCONFIRMED = "invoice_unconfirmed"
WARNING_INVOICE_CHECK_FAILED = "invoice_check_failed"
WARNING_EMAIL_TRIGGER_FAILED = "email_trigger_failed"


class OrderCloseError(Exception):
    status_code = 400


class OrderNotFoundError(OrderCloseError):
    status_code = 404


class OrderAccessError(OrderCloseError):
    status_code = 403


class OrderStateError(OrderCloseError):
    status_code = 409


class OrderStore(Protocol):
    """The slice of the database the closing flow needs."""

    def get_order_full(self, order_id: str) -> Optional[OrderFull]:
        ...

    def get_coop_balance(self, profile_id: str) -> int:
        ...

    def update_order_item_quantity(self, item_id: str, quantity_units: int) -> None:
        ...

    def add_order_item(self, order_id: str, item: OrderItem) -> None:
        ...

    def lock_order(
        self,
        order_id: str,
        *,
        effective_weight_kg: float,
        delivery_fee_cents: int,
        sharer_share_cents: int,
        coop_applied_cents: int,
    ) -> None:
        ...

    def list_participant_invoices(self, order_id: str, profile_id: str) -> list:
        ...

    def issue_sharer_invoice(self, order_id: str, amount_cents: int) -> object:
        ...


@dataclass
class CloseOutcome:
    status: str
    settlement: CloseSettlement
    warnings: List[str] = field(default_factory=list)


class OrderCloser:
    """Runs the sharer's close action against an OrderStore."""

    def __init__(
        self,
        store: OrderStore,
        trigger_outgoing_emails: Optional[Callable[[], object]] = None,
    ):
        self.store = store
        self.trigger_outgoing_emails = trigger_outgoing_emails

    def load_calculator(
        self,
        order_id: str,
        profile_id: str,
        extra_quantities: Optional[Mapping[str, int]] = None,
    ) -> OrderCloseCalculator:
        order_full = self.store.get_order_full(order_id)
        if order_full is None:
            raise OrderNotFoundError("Order not found")
        if order_full.order.sharer_profile_id != profile_id:
            raise OrderAccessError("Only the sharer can close this order")
        if order_full.order.status != OrderStatus.OPEN:
            raise OrderStateError("Order is not open")
        if order_full.sharer is None:
            raise OrderStateError("Order has no sharer participant")
        calculator = OrderCloseCalculator(order_full, extra_quantities)
        if any(qty > 0 for qty in calculator.extra_quantities.values()) and (
            calculator.exceeds_max_weight
        ):
            raise OrderCloseError("Extra quantities exceed the order max weight")
        return calculator

    def preview(
        self,
        order_id: str,
        profile_id: str,
        *,
        use_coop_balance: bool = True,
        extra_quantities: Optional[Mapping[str, int]] = None,
    ) -> tuple[OrderCloseCalculator, CloseSettlement]:
        calculator = self.load_calculator(order_id, profile_id, extra_quantities)
        balance = self.store.get_coop_balance(profile_id)
        return calculator, calculator.settle(balance, use_coop_balance)

    def close(
        self,
        order_id: str,
        profile_id: str,
        *,
        use_coop_balance: bool = True,
        extra_quantities: Optional[Mapping[str, int]] = None,
    ) -> CloseOutcome:
        calculator, settlement = self.preview(
            order_id,
            profile_id,
            use_coop_balance=use_coop_balance,
            extra_quantities=extra_quantities,
        )
        if settlement.requires_payment:
            logger.info(
                "Order %s needs %s cents from the sharer before closing",
                order_id,
                settlement.remaining_to_pay_cents,
            )
            return CloseOutcome(status=PAYMENT_REQUIRED, settlement=settlement)

        self._apply_extra_quantities(calculator)
        self.store.lock_order(
            order_id,
            effective_weight_kg=calculator.effective_weight_kg,
            delivery_fee_cents=calculator.delivery_fee_cents,
            sharer_share_cents=calculator.sharer_share_cents,
            coop_applied_cents=settlement.coop_applied_cents,
        )
        logger.info("Order %s locked by sharer %s", order_id, profile_id)

        outcome = CloseOutcome(status=CLOSED, settlement=settlement)
        self._ensure_sharer_invoice(order_id, profile_id, calculator, outcome)
        self._trigger_emails(order_id, outcome)
        return outcome

    def _apply_extra_quantities(self, calculator: OrderCloseCalculator) -> None:
        order_full = calculator.order_full
        current = calculator.current_sharer_quantities
        sharer_items = calculator.sharer_items
        for entry in order_full.products_offered:
            extra = calculator.extra_quantities.get(entry.product_id, 0)
            if extra <= 0:
                continue
            target_qty = current.get(entry.product_id, 0) + extra
            existing = next(
                (item for item in sharer_items if item.product_id == entry.product_id),
                None,
            )
            if existing is not None:
                self.store.update_order_item_quantity(existing.id, target_qty)
            else:
                self.store.add_order_item(
                    order_full.order.id,
                    OrderItem(
                        id=uuid.uuid4().hex,
                        participant_id=calculator.sharer.id,
                        product_id=entry.product_id,
                        quantity_units=target_qty,
                        lot_id=entry.active_lot_id,
                        unit_weight_kg=entry.unit_weight_kg,
                        unit_base_price_cents=entry.unit_base_price_cents,
                    ),
                )

    def _ensure_sharer_invoice(
        self,
        order_id: str,
        profile_id: str,
        calculator: OrderCloseCalculator,
        outcome: CloseOutcome,
    ) -> None:
        try:
            invoices = self.store.list_participant_invoices(order_id, profile_id)
            if not invoices:
                self.store.issue_sharer_invoice(order_id, calculator.sharer_order_gain_cents)
                invoices = self.store.list_participant_invoices(order_id, profile_id)
            if not invoices:
                logger.warning("Order %s closed but sharer invoice not confirmed", order_id)
                outcome.warnings.append(WARNING_INVOICE_UNCONFIRMED)
        except Exception:
            logger.exception("Invoice check failed after closing order %s", order_id)
            outcome.warnings.append(WARNING_INVOICE_CHECK_FAILED)

    def _trigger_emails(self, order_id: str, outcome: CloseOutcome) -> None:
        if self.trigger_outgoing_emails is None:
            return
        try:
            self.trigger_outgoing_emails()
        except Exception:
            logger.exception("Outgoing email trigger failed for order %s", order_id)
            outcome.warnings.append(WARNING_EMAIL_TRIGGER_FAILED)
