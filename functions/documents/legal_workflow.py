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
Lifecycle of legal documents: draft -> uploaded/pending_review -> approved or
rejected, with the bookkeeping the hosted database used to do in triggers.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Protocol

from documents.models import LegalDocument, LegalEntity, Profile
from shared.types import (
    ACTIVE_LEGAL_DOCUMENT_STATUSES,
    OWNER_EDITABLE_STATUSES,
    OWNER_TARGET_STATUSES,
    LegalDocumentStatus,
    LegalDocumentType,
    ProfileRole,
)

logger = logging.getLogger(__name__)

# Folder layout of signed uploads: <owner kind>/<profile id>/<document kind>/.
SIGNED_UPLOAD_FOLDERS = {
    LegalDocumentType.PRODUCER_MANDAT: ("producers", "mandat"),
    LegalDocumentType.SHARER_AUTOFACTURATION: ("sharers", "autofacturation"),
}

_REVIEW_CLEARED_STATUSES = frozenset(
    {
        LegalDocumentStatus.DRAFT,
        LegalDocumentStatus.UPLOADED,
        LegalDocumentStatus.PENDING_REVIEW,
    }
)
_REVIEWED_STATUSES = frozenset({LegalDocumentStatus.APPROVED, LegalDocumentStatus.REJECTED})
_PENDING_STATUSES = (LegalDocumentStatus.UPLOADED, LegalDocumentStatus.PENDING_REVIEW)


class LegalDocumentError(Exception):
    status_code = 400


class LegalDocumentNotFoundError(LegalDocumentError):
    status_code = 404


class LegalDocumentPermissionError(LegalDocumentError):
    status_code = 403


class LegalDocumentConflictError(LegalDocumentError):
    status_code = 409


class LegalDocumentStore(Protocol):
    def get_profile(self, profile_id: str) -> Optional[Profile]:
        ...

    def mark_profile_verified_producer(self, profile_id: str) -> None:
        ...

    def get_legal_entity(self, legal_entity_id: str) -> Optional[LegalEntity]:
        ...

    def enable_sharer_cash(self, profile_id: str) -> None:
        ...

    def get_legal_document(self, doc_id: str) -> Optional[LegalDocument]:
        ...

    def find_active_legal_document(
        self, profile_id: str, doc_type: LegalDocumentType, template_version: str
    ) -> Optional[LegalDocument]:
        ...

    def list_legal_documents(
        self, statuses: Iterable[LegalDocumentStatus]
    ) -> List[LegalDocument]:
        ...

    def save_legal_document(self, doc: LegalDocument) -> LegalDocument:
        ...


@dataclass(frozen=True)
class PendingDocument:
    profile_id: str
    handle: Optional[str]
    legal_name: Optional[str]
    doc_type: LegalDocumentType
    submitted_at: Optional[float]
    signed_pdf_path: Optional[str]
    status: LegalDocumentStatus


def normalize_for_write(doc: LegalDocument, actor_id: Optional[str], now: float) -> None:
    """Applies the review bookkeeping every write must respect."""
    doc.updated_at = now
    if doc.status in _REVIEW_CLEARED_STATUSES:
        doc.reviewed_at = None
        doc.reviewer_profile_id = None
    if doc.status == LegalDocumentStatus.PENDING_REVIEW and doc.submitted_at is None:
        doc.submitted_at = now
    if doc.status in _REVIEWED_STATUSES:
        if doc.reviewed_at is None:
            doc.reviewed_at = now
        if doc.reviewer_profile_id is None:
            doc.reviewer_profile_id = actor_id
    if doc.status == LegalDocumentStatus.REJECTED:
        reason = (doc.rejection_reason or "").strip()
        if not reason:
            raise LegalDocumentError("rejection_reason is required when status is rejected")
        doc.rejection_reason = reason
    else:
        doc.rejection_reason = None


def timestamped_pdf_name(now: Optional[datetime] = None) -> str:
    """'<ISO-8601 UTC, ':' and '.' replaced by '-'>-<uuid4>.pdf'"""
    now = now or datetime.now(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return f"{iso.replace(':', '-').replace('.', '-')}-{uuid.uuid4()}.pdf"


def signed_upload_prefix(doc_type: LegalDocumentType, profile_id: str) -> str:
    owner_folder, doc_folder = SIGNED_UPLOAD_FOLDERS[doc_type]
    return f"{owner_folder}/{profile_id}/{doc_folder}/"


def is_valid_signed_path(doc_type: LegalDocumentType, profile_id: str, path: str) -> bool:
    return path.startswith(signed_upload_prefix(doc_type, profile_id)) and path.lower().endswith(
        ".pdf"
    )


class LegalDocumentWorkflow:
    """Saves legal documents while enforcing ownership and review rules."""

    def __init__(self, store: LegalDocumentStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def save(
        self,
        doc: LegalDocument,
        *,
        actor_id: Optional[str] = None,
        previous_status: Optional[LegalDocumentStatus] = None,
    ) -> LegalDocument:
        normalize_for_write(doc, actor_id, self.clock())
        if doc.status in ACTIVE_LEGAL_DOCUMENT_STATUSES:
            active = self.store.find_active_legal_document(
                doc.profile_id, doc.doc_type, doc.template_version
            )
            if active is not None and active.id != doc.id:
                raise LegalDocumentConflictError(
                    "An active document already exists for this type and version"
                )
        saved = self.store.save_legal_document(doc)
        if saved.status != previous_status and saved.status == LegalDocumentStatus.APPROVED:
            self._on_approved(saved)
        return saved

    def _on_approved(self, doc: LegalDocument) -> None:
        if doc.doc_type == LegalDocumentType.SHARER_AUTOFACTURATION:
            self.store.enable_sharer_cash(doc.profile_id)
        elif doc.doc_type == LegalDocumentType.PRODUCER_MANDAT:
            self.store.mark_profile_verified_producer(doc.profile_id)
        logger.info("Legal document %s approved (%s)", doc.id, doc.doc_type)

    def record_generated_pdf(
        self,
        *,
        profile_id: str,
        legal_entity_id: Optional[str],
        doc_type: LegalDocumentType,
        template_version: str,
        generated_pdf_path: str,
    ) -> LegalDocument:
        """Points the active document at a fresh PDF, creating a draft if none."""
        existing = self.store.find_active_legal_document(profile_id, doc_type, template_version)
        if existing is not None:
            existing.generated_pdf_path = generated_pdf_path
            return self.save(existing, actor_id=profile_id, previous_status=existing.status)
        doc = LegalDocument(
            id=uuid.uuid4().hex,
            profile_id=profile_id,
            legal_entity_id=legal_entity_id,
            doc_type=doc_type,
            status=LegalDocumentStatus.DRAFT,
            template_version=template_version,
            generated_pdf_path=generated_pdf_path,
        )
        return self.save(doc, actor_id=profile_id)

    def _get_owned(self, doc_id: str, profile_id: str) -> LegalDocument:
        doc = self.store.get_legal_document(doc_id)
        if doc is None or doc.profile_id != profile_id:
            raise LegalDocumentNotFoundError("Document not found")
        return doc

    def signed_upload_path(self, doc_id: str, profile_id: str) -> str:
        doc = self._get_owned(doc_id, profile_id)
        if doc.status not in OWNER_EDITABLE_STATUSES:
            raise LegalDocumentConflictError("Document can no longer be modified")
        return signed_upload_prefix(doc.doc_type, profile_id) + timestamped_pdf_name()

    def submit_signed(self, doc_id: str, profile_id: str, signed_pdf_path: str) -> LegalDocument:
        doc = self._get_owned(doc_id, profile_id)
        return self.owner_update(
            doc,
            profile_id,
            status=LegalDocumentStatus.PENDING_REVIEW,
            signed_pdf_path=signed_pdf_path,
        )

    def owner_update(
        self,
        doc: LegalDocument,
        profile_id: str,
        *,
        status: LegalDocumentStatus,
        signed_pdf_path: Optional[str] = None,
    ) -> LegalDocument:
        if doc.profile_id != profile_id:
            raise LegalDocumentPermissionError("Not allowed")
        if doc.status not in OWNER_EDITABLE_STATUSES or status not in OWNER_TARGET_STATUSES:
            raise LegalDocumentConflictError(
                f"Cannot move document from {doc.status} to {status}"
            )
        if signed_pdf_path is not None:
            path = signed_pdf_path.strip()
            if not is_valid_signed_path(doc.doc_type, profile_id, path):
                raise LegalDocumentError("Invalid signed_pdf_path")
            doc.signed_pdf_path = path
        if status == LegalDocumentStatus.PENDING_REVIEW and not doc.signed_pdf_path:
            raise LegalDocumentError("A signed PDF is required before review")
        previous_status = doc.status
        doc.status = status
        return self.save(doc, actor_id=profile_id, previous_status=previous_status)

    def _require_reviewer(self, reviewer_id: str) -> None:
        reviewer = self.store.get_profile(reviewer_id)
        if reviewer is None or reviewer.role != ProfileRole.ADMIN:
            raise LegalDocumentPermissionError("Reviewer role required")

    def _get_any(self, doc_id: str) -> LegalDocument:
        doc = self.store.get_legal_document(doc_id)
        if doc is None:
            raise LegalDocumentNotFoundError(f"Document not found: {doc_id}")
        return doc

    def approve(self, doc_id: str, reviewer_id: str) -> LegalDocument:
        self._require_reviewer(reviewer_id)
        doc = self._get_any(doc_id)
        previous_status = doc.status
        doc.status = LegalDocumentStatus.APPROVED
        doc.rejection_reason = None
        doc.reviewed_at = None
        doc.reviewer_profile_id = reviewer_id
        return self.save(doc, actor_id=reviewer_id, previous_status=previous_status)

    def reject(self, doc_id: str, reviewer_id: str, reason: Optional[str]) -> LegalDocument:
        self._require_reviewer(reviewer_id)
        if not (reason or "").strip():
            raise LegalDocumentError("rejection reason is required")
        doc = self._get_any(doc_id)
        previous_status = doc.status
        doc.status = LegalDocumentStatus.REJECTED
        doc.rejection_reason = reason.strip()
        doc.reviewed_at = None
        doc.reviewer_profile_id = reviewer_id
        return self.save(doc, actor_id=reviewer_id, previous_status=previous_status)

    def pending_documents(self, reviewer_id: str) -> List[PendingDocument]:
        """Documents awaiting review, newest submission first."""
        self._require_reviewer(reviewer_id)
        docs = self.store.list_legal_documents(_PENDING_STATUSES)
        docs.sort(key=lambda d: (d.submitted_at is None, -(d.submitted_at or 0.0)))
        pending = []
        for doc in docs:
            profile = self.store.get_profile(doc.profile_id)
            entity = (
                self.store.get_legal_entity(doc.legal_entity_id)
                if doc.legal_entity_id
                else None
            )
            pending.append(
                PendingDocument(
                    profile_id=doc.profile_id,
                    handle=profile.handle if profile else None,
                    legal_name=entity.legal_name if entity else None,
                    doc_type=doc.doc_type,
                    submitted_at=doc.submitted_at,
                    signed_pdf_path=doc.signed_pdf_path,
                    status=doc.status,
                )
            )
        return pending
