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

import time
from dataclasses import dataclass, field
from typing import List, Optional

from shared.types import DeliveryOption, OrderStatus, ParticipantRole, PaymentStatus


@dataclass
class Order:
    id: str
    sharer_profile_id: str
    status: OrderStatus = OrderStatus.OPEN
    producer_profile_id: Optional[str] = None
    order_code: Optional[str] = None
    delivery_option: DeliveryOption = DeliveryOption.CHRONOFRESH
    min_weight_kg: float = 0.0
    max_weight_kg: Optional[float] = None
    sharer_percentage: float = 0.0
    delivery_fee_cents: int = 0
    pickup_delivery_fee_cents: int = 0
    sharer_share_cents: int = 0
    effective_weight_kg: float = 0.0
    ordered_weight_kg: float = 0.0
    currency: str = "EUR"

    @property
    def public_code(self) -> str:
        return self.order_code or self.id


@dataclass
class Participant:
    id: str
    profile_id: str
    role: ParticipantRole = ParticipantRole.PARTICIPANT
    total_amount_cents: int = 0
    total_weight_kg: float = 0.0


@dataclass
class OrderItem:
    id: str
    participant_id: str
    product_id: str
    quantity_units: int
    lot_id: Optional[str] = None
    unit_weight_kg: Optional[float] = None
    unit_base_price_cents: Optional[int] = None
    unit_sharer_fee_cents: Optional[int] = None


@dataclass
class ProductOffer:
    """A product offered in an order, with the prices frozen at opening."""

    product_id: str
    unit_base_price_cents: Optional[int] = None
    unit_final_price_cents: Optional[int] = None
    unit_weight_kg: Optional[float] = None
    active_lot_id: Optional[str] = None
    platform_fee_percent: Optional[float] = None


@dataclass
class Payment:
    id: str
    participant_id: str
    amount_cents: int
    status: PaymentStatus = PaymentStatus.PENDING
    fee_cents: Optional[int] = None
    fee_vat_cents: Optional[int] = None


@dataclass
class OrderFull:
    order: Order
    participants: List[Participant] = field(default_factory=list)
    items: List[OrderItem] = field(default_factory=list)
    products_offered: List[ProductOffer] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)

    @property
    def sharer(self) -> Optional[Participant]:
        for participant in self.participants:
            if participant.role == ParticipantRole.SHARER:
                return participant
        return None


SHARER_INVOICE_SERIE = "PA"
PLATFORM_INVOICE_SERIE = "PLAT_PROD"


@dataclass
class LotPriceLine:
    """One component of a lot's price (producer share, platform commission, ...)."""

    id: str
    lot_id: str
    source: str
    value_cents: int
    platform_cost_code: Optional[str] = None
    label: Optional[str] = None


@dataclass
class InvoiceRecord:
    id: str
    order_id: str
    profile_id: str
    serie: str
    numero: str
    total_ttc_cents: int
    issued_at: float = field(default_factory=lambda: time.time())
    client_profile_id: Optional[str] = None
    currency: str = "EUR"
    total_ht_cents: Optional[int] = None
    total_tva_cents: Optional[int] = None
    mention_tva: Optional[str] = None
    status: str = "issued"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "profile_id": self.profile_id,
            "serie": self.serie,
            "numero": self.numero,
            "total_ttc_cents": self.total_ttc_cents,
            "issued_at": self.issued_at,
            "client_profile_id": self.client_profile_id,
            "currency": self.currency,
            "total_ht_cents": self.total_ht_cents,
            "total_tva_cents": self.total_tva_cents,
            "mention_tva": self.mention_tva,
            "status": self.status,
        }


@dataclass
class InvoiceLineRecord:
    id: str
    facture_id: str
    label: str
    quantity: int
    unit_ttc_cents: int
    total_ttc_cents: int
    vat_rate: float
    total_ht_cents: int
    total_tva_cents: int
    component: Optional[str] = None
