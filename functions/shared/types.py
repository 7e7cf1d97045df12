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

from enum import StrEnum


class PaymentStatus(StrEnum):
    """Internal payment status shared by every payment provider."""

    PAID = "paid"
    AUTHORIZED = "authorized"
    FAILED = "failed"
    PENDING = "pending"


# Payments that count as money received for an order.
PAID_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.AUTHORIZED})


class DeliveryOption(StrEnum):
    CHRONOFRESH = "chronofresh"
    PRODUCER_DELIVERY = "producer_delivery"
    PRODUCER_PICKUP = "producer_pickup"


class ParticipantRole(StrEnum):
    SHARER = "sharer"
    PARTICIPANT = "participant"


class OrderStatus(StrEnum):
    OPEN = "open"
    LOCKED = "locked"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    DISTRIBUTED = "distributed"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class AccountType(StrEnum):
    INDIVIDUAL = "individual"
    COMPANY = "company"
    ASSOCIATION = "association"
    PUBLIC_INSTITUTION = "public_institution"


class ProfileRole(StrEnum):
    CLIENT = "client"
    PRODUCER = "producer"
    ADMIN = "admin"


class LegalDocumentType(StrEnum):
    PRODUCER_MANDAT = "producer_mandat"
    SHARER_AUTOFACTURATION = "sharer_autofacturation"


class LegalDocumentStatus(StrEnum):
    DRAFT = "draft"
    UPLOADED = "uploaded"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that occupy the single active slot per (profile, type, version).
ACTIVE_LEGAL_DOCUMENT_STATUSES = frozenset(
    {
        LegalDocumentStatus.DRAFT,
        LegalDocumentStatus.UPLOADED,
        LegalDocumentStatus.PENDING_REVIEW,
        LegalDocumentStatus.APPROVED,
    }
)

# Statuses an owner may still edit, and the ones they may move a document to.
OWNER_EDITABLE_STATUSES = frozenset(
    {
        LegalDocumentStatus.DRAFT,
        LegalDocumentStatus.UPLOADED,
        LegalDocumentStatus.PENDING_REVIEW,
        LegalDocumentStatus.REJECTED,
    }
)
OWNER_TARGET_STATUSES = frozenset(
    {
        LegalDocumentStatus.DRAFT,
        LegalDocumentStatus.UPLOADED,
        LegalDocumentStatus.PENDING_REVIEW,
    }
)


class OutgoingEmailStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class OutgoingEmailKind(StrEnum):
    SHARER_INVOICE = "FACTURE_PARTAGEUR"
    PLATFORM_INVOICE = "FACTURE_PLATEFORME"
