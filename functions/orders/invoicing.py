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

"""Platform commission invoices issued to the producer of a distributed order."""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Optional, Protocol

from documents.models import LegalEntity
from orders.closing import OrderAccessError, OrderNotFoundError, OrderStateError
from orders.models import (
    PLATFORM_INVOICE_SERIE,
    InvoiceLineRecord,
    InvoiceRecord,
    LotPriceLine,
    OrderFull,
    OrderItem,
    ProductOffer,
)
from shared.money import round_half_up
from shared.types import OrderStatus, OutgoingEmailKind

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_FEE_PERCENT = 10.0
PLATFORM_FEE_PERCENT_SETTING = "platform_fee_percent"
PLATFORM_COMMISSION_LABEL = "Commission plateforme"
PLATFORM_COMMISSION_COMPONENT = "platform_commission"
PLATFORM_PRICE_SOURCE = "platform"

STANDARD_VAT_RATE = 0.20
FRANCHISE_VAT_MENTION = "TVA non applicable, art. 293 B du CGI"

INVOICEABLE_STATUSES = (OrderStatus.DISTRIBUTED, OrderStatus.FINISHED)

# Payment processing costs are passed through, never invoiced as commission.
PAYMENT_COST_CODE_MARKERS = (
    "paiement",
    "payment",
    "stancer",
    "stripe",
    "banc",
    "carte",
    "cb",
)
PAYMENT_COST_LABEL_MARKERS = (
    "frais de paiement",
    "frais paiement",
    "paiement",
    "payment",
    "stancer",
    "stripe",
    "carte bancaire",
    "frais banc",
)


def is_payment_cost_line(line: LotPriceLine) -> bool:
    code = (line.platform_cost_code or "").lower()
    label = (line.label or "").lower()
    return any(marker in code for marker in PAYMENT_COST_CODE_MARKERS) or any(
        marker in label for marker in PAYMENT_COST_LABEL_MARKERS
    )


def breakdown_commission_cents(
    items: Iterable[OrderItem], lines: Iterable[LotPriceLine]
) -> int:
    """Platform price components of each item's lot, times the quantity."""
    per_lot: dict = {}
    for line in lines:
        if line.source != PLATFORM_PRICE_SOURCE or is_payment_cost_line(line):
            continue
        per_lot[line.lot_id] = per_lot.get(line.lot_id, 0) + line.value_cents
    return sum(
        per_lot.get(item.lot_id, 0) * item.quantity_units
        for item in items
        if item.lot_id
    )


def fallback_commission_cents(
    items: Iterable[OrderItem],
    products_offered: Iterable[ProductOffer],
    entity_fee_percent: Optional[float] = None,
    setting_fee_percent: Optional[float] = None,
) -> int:
    """Percentage of the base price, product rate first, then entity, then platform."""
    product_rates: Mapping[str, Optional[float]] = {
        offer.product_id: offer.platform_fee_percent for offer in products_offered
    }
    total = 0.0
    for item in items:
        if item.unit_base_price_cents is None:
            continue
        percent = next(
            (
                rate
                for rate in (
                    product_rates.get(item.product_id),
                    entity_fee_percent,
                    setting_fee_percent,
                )
                if rate is not None
            ),
            DEFAULT_PLATFORM_FEE_PERCENT,
        )
        total += item.unit_base_price_cents * item.quantity_units * percent / 100
    return round_half_up(total)


@dataclass(frozen=True)
class VatSplit:
    vat_rate: float
    total_ht_cents: int
    total_tva_cents: int
    mention_tva: Optional[str] = None


def vat_split(total_ttc_cents: int, vat_regime: Optional[str]) -> VatSplit:
    if vat_regime == "assujetti":
        ht = round_half_up(total_ttc_cents / (1 + STANDARD_VAT_RATE))
        return VatSplit(STANDARD_VAT_RATE, ht, total_ttc_cents - ht)
    if vat_regime == "franchise":
        return VatSplit(0.0, total_ttc_cents, 0, FRANCHISE_VAT_MENTION)
    return VatSplit(0.0, total_ttc_cents, 0)


class InvoiceStore(Protocol):
    """The slice of the database platform invoicing needs."""

    def get_order_full(self, order_id: str) -> Optional[OrderFull]:
        ...

    def get_legal_entity_for_profile(self, profile_id: str) -> Optional[LegalEntity]:
        ...

    def list_lot_price_lines(self, lot_ids: Iterable[str]) -> List[LotPriceLine]:
        ...

    def get_platform_setting_numeric(self, key: str) -> Optional[float]:
        ...

    def find_invoice(self, order_id: str, serie: str) -> Optional[InvoiceRecord]:
        ...

    def next_invoice_numero(self, serie: str, issued_at: float) -> str:
        ...

    def save_invoice(
        self, invoice: InvoiceRecord, lines: Optional[List[InvoiceLineRecord]] = None
    ) -> InvoiceRecord:
        ...

    def enqueue_invoice_email(
        self, facture_id: str, kind: OutgoingEmailKind, to_profile_id: Optional[str]
    ) -> bool:
        ...


class PlatformInvoicer:
    """Issues, or refreshes, the platform commission invoice of an order."""

    def __init__(
        self,
        store: InvoiceStore,
        platform_profile_id: str,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.platform_profile_id = platform_profile_id
        self.clock = clock

    def commission_cents(self, order_full: OrderFull, entity: Optional[LegalEntity]) -> int:
        lot_ids = {item.lot_id for item in order_full.items if item.lot_id}
        commission = breakdown_commission_cents(
            order_full.items, self.store.list_lot_price_lines(lot_ids)
        )
        if commission:
            return commission
        return fallback_commission_cents(
            order_full.items,
            order_full.products_offered,
            entity.platform_fee_percent if entity else None,
            self.store.get_platform_setting_numeric(PLATFORM_FEE_PERCENT_SETTING),
        )

    def create_for_order(self, order_id: str, profile_id: str) -> InvoiceRecord:
        order_full = self.store.get_order_full(order_id)
        if order_full is None:
            raise OrderNotFoundError("Order not found")
        order = order_full.order
        if order.sharer_profile_id != profile_id:
            raise OrderAccessError("Not allowed")
        if order.status not in INVOICEABLE_STATUSES:
            raise OrderStateError("Order not distributed")

        entity = (
            self.store.get_legal_entity_for_profile(order.producer_profile_id)
            if order.producer_profile_id
            else None
        )
        total_ttc = max(0, self.commission_cents(order_full, entity))
        split = vat_split(total_ttc, entity.vat_regime if entity else None)

        invoice = self.store.find_invoice(order_id, PLATFORM_INVOICE_SERIE)
        if invoice is None:
            now = self.clock()
            invoice = InvoiceRecord(
                id=uuid.uuid4().hex,
                order_id=order_id,
                profile_id=self.platform_profile_id,
                serie=PLATFORM_INVOICE_SERIE,
                numero=self.store.next_invoice_numero(PLATFORM_INVOICE_SERIE, now),
                total_ttc_cents=total_ttc,
                issued_at=now,
                client_profile_id=order.producer_profile_id,
            )
            logger.info("Issuing platform invoice %s for order %s", invoice.numero, order_id)
        invoice.currency = order.currency
        invoice.total_ttc_cents = total_ttc
        invoice.total_ht_cents = split.total_ht_cents
        invoice.total_tva_cents = split.total_tva_cents
        invoice.mention_tva = split.mention_tva
        invoice.status = "issued"

        line = InvoiceLineRecord(
            id=uuid.uuid4().hex,
            facture_id=invoice.id,
            label=PLATFORM_COMMISSION_LABEL,
            quantity=1,
            unit_ttc_cents=total_ttc,
            total_ttc_cents=total_ttc,
            vat_rate=split.vat_rate,
            total_ht_cents=split.total_ht_cents,
            total_tva_cents=split.total_tva_cents,
            component=PLATFORM_COMMISSION_COMPONENT,
        )
        self.store.save_invoice(invoice, [line])
        self.store.enqueue_invoice_email(
            invoice.id, OutgoingEmailKind.PLATFORM_INVOICE, order.producer_profile_id
        )
        return invoice
