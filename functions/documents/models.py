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

from dataclasses import dataclass, field
import time
from typing import Optional

from shared.types import AccountType, LegalDocumentStatus, LegalDocumentType, ProfileRole


@dataclass
class Profile:
    id: str
    account_type: AccountType = AccountType.INDIVIDUAL
    role: ProfileRole = ProfileRole.CLIENT
    verified: bool = False
    handle: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    address_details: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    contact_email_public: Optional[str] = None
    phone: Optional[str] = None
    phone_public: Optional[str] = None


@dataclass
class LegalEntity:
    id: str
    profile_id: str
    legal_name: Optional[str] = None
    entity_type: Optional[str] = None
    siret: Optional[str] = None
    vat_number: Optional[str] = None
    vat_regime: Optional[str] = None
    iban: Optional[str] = None
    account_holder_name: Optional[str] = None
    can_receive_sharer_cash: bool = False
    platform_fee_percent: Optional[float] = None


@dataclass
class LegalDocument:
    id: str
    profile_id: str
    doc_type: LegalDocumentType
    status: LegalDocumentStatus = LegalDocumentStatus.DRAFT
    template_version: str = "v1"
    legal_entity_id: Optional[str] = None
    generated_pdf_path: Optional[str] = None
    signed_pdf_path: Optional[str] = None
    submitted_at: Optional[float] = None
    reviewed_at: Optional[float] = None
    reviewer_profile_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "legal_entity_id": self.legal_entity_id,
            "doc_type": self.doc_type.value,
            "status": self.status.value,
            "template_version": self.template_version,
            "generated_pdf_path": self.generated_pdf_path,
            "signed_pdf_path": self.signed_pdf_path,
            "submitted_at": self.submitted_at,
            "reviewed_at": self.reviewed_at,
            "reviewer_profile_id": self.reviewer_profile_id,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
