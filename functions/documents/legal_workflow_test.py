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

from backend.db import InMemoryDbClient
from documents import legal_workflow
from documents.models import LegalDocument, LegalEntity, Profile
from shared.types import (
    ACTIVE_LEGAL_DOCUMENT_STATUSES,
    AccountType,
    LegalDocumentStatus,
    LegalDocumentType,
    ProfileRole,
)

OWNER_ID = "owner-1"
ADMIN_ID = "admin-1"


class NormalizeForWriteTest(unittest.TestCase):

    def _doc(self, status, **kwargs):
        return LegalDocument(
            id="doc",
            profile_id=OWNER_ID,
            doc_type=LegalDocumentType.PRODUCER_MANDAT,
            status=status,
            **kwargs,
        )

    def test_pending_review_stamps_submission_once(self):
        doc = self._doc(LegalDocumentStatus.PENDING_REVIEW)
        legal_workflow.normalize_for_write(doc, OWNER_ID, 10.0)
        self.assertEqual(doc.submitted_at, 10.0)
        legal_workflow.normalize_for_write(doc, OWNER_ID, 20.0)
        self.assertEqual(doc.submitted_at, 10.0)
        self.assertEqual(doc.updated_at, 20.0)

    def test_open_statuses_clear_review(self):
        doc = self._doc(
            LegalDocumentStatus.DRAFT,
            reviewed_at=5.0,
            reviewer_profile_id=ADMIN_ID,
            rejection_reason="old",
        )
        legal_workflow.normalize_for_write(doc, OWNER_ID, 10.0)
        self.assertIsNone(doc.reviewed_at)
        self.assertIsNone(doc.reviewer_profile_id)
        self.assertIsNone(doc.rejection_reason)

    def test_review_is_stamped(self):
        doc = self._doc(LegalDocumentStatus.APPROVED)
        legal_workflow.normalize_for_write(doc, ADMIN_ID, 10.0)
        self.assertEqual(doc.reviewed_at, 10.0)
        self.assertEqual(doc.reviewer_profile_id, ADMIN_ID)

    def test_rejection_needs_a_reason(self):
        with self.assertRaises(legal_workflow.LegalDocumentError):
            legal_workflow.normalize_for_write(
                self._doc(LegalDocumentStatus.REJECTED, rejection_reason="  "), ADMIN_ID, 1.0
            )
        doc = self._doc(LegalDocumentStatus.REJECTED, rejection_reason="  Illisible ")
        legal_workflow.normalize_for_write(doc, ADMIN_ID, 1.0)
        self.assertEqual(doc.rejection_reason, "Illisible")


class LegalDocumentWorkflowTest(unittest.TestCase):

    def setUp(self):
        self.now = 1000.0
        self.db = InMemoryDbClient()
        self.db.save_profile(
            Profile(id=OWNER_ID, account_type=AccountType.COMPANY, handle="ferme")
        )
        self.db.save_profile(Profile(id=ADMIN_ID, role=ProfileRole.ADMIN))
        self.db.save_legal_entity(
            LegalEntity(id="entity-1", profile_id=OWNER_ID, legal_name="Ferme SARL")
        )
        self.workflow = legal_workflow.LegalDocumentWorkflow(self.db, clock=lambda: self.now)

    def _generated(self, doc_type=LegalDocumentType.SHARER_AUTOFACTURATION, path="gen/1.pdf"):
        return self.workflow.record_generated_pdf(
            profile_id=OWNER_ID,
            legal_entity_id="entity-1",
            doc_type=doc_type,
            template_version="v1",
            generated_pdf_path=path,
        )

    def _submitted(self, doc_type=LegalDocumentType.SHARER_AUTOFACTURATION):
        doc = self._generated(doc_type)
        path = self.workflow.signed_upload_path(doc.id, OWNER_ID)
        return self.workflow.submit_signed(doc.id, OWNER_ID, path)

    def test_generated_pdf_reuses_active_document(self):
        first = self._generated(path="gen/1.pdf")
        self.assertEqual(first.status, LegalDocumentStatus.DRAFT)
        self.assertEqual(first.legal_entity_id, "entity-1")
        second = self._generated(path="gen/2.pdf")
        self.assertEqual(second.id, first.id)
        self.assertEqual(self.db.get_legal_document(first.id).generated_pdf_path, "gen/2.pdf")
        self.assertEqual(len(self.db.legal_documents), 1)

    def test_single_active_document_per_type_and_version(self):
        self._generated()
        duplicate = LegalDocument(
            id="other",
            profile_id=OWNER_ID,
            doc_type=LegalDocumentType.SHARER_AUTOFACTURATION,
        )
        with self.assertRaises(legal_workflow.LegalDocumentConflictError):
            self.workflow.save(duplicate)
        duplicate.template_version = "v2"
        self.workflow.save(duplicate)

    def test_signed_upload_path_is_scoped_to_owner(self):
        doc = self._generated(LegalDocumentType.PRODUCER_MANDAT)
        path = self.workflow.signed_upload_path(doc.id, OWNER_ID)
        self.assertTrue(path.startswith(f"producers/{OWNER_ID}/mandat/"))
        self.assertTrue(path.endswith(".pdf"))
        self.assertNotIn(":", path)
        with self.assertRaises(legal_workflow.LegalDocumentNotFoundError):
            self.workflow.signed_upload_path(doc.id, "someone-else")

    def test_submit_rejects_foreign_paths(self):
        doc = self._generated()
        with self.assertRaises(legal_workflow.LegalDocumentError):
            self.workflow.submit_signed(doc.id, OWNER_ID, "sharers/other/autofacturation/x.pdf")
        with self.assertRaises(legal_workflow.LegalDocumentError):
            self.workflow.submit_signed(doc.id, OWNER_ID, f"sharers/{OWNER_ID}/autofacturation/x.png")

    def test_submit_moves_to_pending_review(self):
        self.now = 2000.0
        doc = self._submitted()
        self.assertEqual(doc.status, LegalDocumentStatus.PENDING_REVIEW)
        self.assertEqual(doc.submitted_at, 2000.0)
        self.assertTrue(doc.signed_pdf_path.startswith(f"sharers/{OWNER_ID}/autofacturation/"))

    def test_only_admins_review(self):
        doc = self._submitted()
        with self.assertRaises(legal_workflow.LegalDocumentPermissionError):
            self.workflow.approve(doc.id, OWNER_ID)
        with self.assertRaises(legal_workflow.LegalDocumentPermissionError):
            self.workflow.pending_documents(OWNER_ID)

    def test_approving_self_billing_enables_sharer_cash(self):
        doc = self._submitted()
        self.now = 3000.0
        approved = self.workflow.approve(doc.id, ADMIN_ID)
        self.assertEqual(approved.status, LegalDocumentStatus.APPROVED)
        self.assertEqual(approved.reviewed_at, 3000.0)
        self.assertEqual(approved.reviewer_profile_id, ADMIN_ID)
        self.assertTrue(self.db.get_legal_entity("entity-1").can_receive_sharer_cash)
        self.assertEqual(self.db.get_profile(OWNER_ID).role, ProfileRole.CLIENT)

    def test_approving_mandate_makes_a_verified_producer(self):
        doc = self._submitted(LegalDocumentType.PRODUCER_MANDAT)
        self.workflow.approve(doc.id, ADMIN_ID)
        profile = self.db.get_profile(OWNER_ID)
        self.assertEqual(profile.role, ProfileRole.PRODUCER)
        self.assertTrue(profile.verified)
        self.assertFalse(self.db.get_legal_entity("entity-1").can_receive_sharer_cash)

    def test_reject_then_resubmit(self):
        doc = self._submitted()
        with self.assertRaises(legal_workflow.LegalDocumentError):
            self.workflow.reject(doc.id, ADMIN_ID, " ")
        rejected = self.workflow.reject(doc.id, ADMIN_ID, " Signature manquante ")
        self.assertEqual(rejected.status, LegalDocumentStatus.REJECTED)
        self.assertEqual(rejected.rejection_reason, "Signature manquante")

        self.now = 5000.0
        path = self.workflow.signed_upload_path(doc.id, OWNER_ID)
        resubmitted = self.workflow.submit_signed(doc.id, OWNER_ID, path)
        self.assertEqual(resubmitted.status, LegalDocumentStatus.PENDING_REVIEW)
        self.assertEqual(resubmitted.submitted_at, 1000.0)
        self.assertEqual(resubmitted.updated_at, 5000.0)
        self.assertIsNone(resubmitted.rejection_reason)
        self.assertIsNone(resubmitted.reviewer_profile_id)

    def test_approving_while_another_document_is_active_conflicts(self):
        rejected = LegalDocument(
            id="rejected",
            profile_id=OWNER_ID,
            doc_type=LegalDocumentType.SHARER_AUTOFACTURATION,
            status=LegalDocumentStatus.REJECTED,
            rejection_reason="Illisible",
        )
        self.workflow.save(rejected)
        draft = self._generated()

        with self.assertRaises(legal_workflow.LegalDocumentConflictError):
            self.workflow.approve("rejected", ADMIN_ID)

        self.assertEqual(
            self.db.get_legal_document("rejected").status, LegalDocumentStatus.REJECTED
        )
        active = self.db.list_legal_documents(ACTIVE_LEGAL_DOCUMENT_STATUSES)
        self.assertEqual([doc.id for doc in active], [draft.id])
        self.assertFalse(self.db.get_legal_entity("entity-1").can_receive_sharer_cash)

    def test_returned_documents_are_detached_from_the_store(self):
        doc = self._generated()
        fetched = self.db.get_legal_document(doc.id)
        fetched.status = LegalDocumentStatus.APPROVED
        self.assertEqual(self.db.get_legal_document(doc.id).status, LegalDocumentStatus.DRAFT)

    def test_approved_documents_are_frozen_for_owner(self):
        doc = self._submitted()
        self.workflow.approve(doc.id, ADMIN_ID)
        with self.assertRaises(legal_workflow.LegalDocumentConflictError):
            self.workflow.signed_upload_path(doc.id, OWNER_ID)

    def test_pending_documents_newest_first(self):
        self.now = 100.0
        older = self._submitted(LegalDocumentType.PRODUCER_MANDAT)
        self.now = 200.0
        newer = self._submitted(LegalDocumentType.SHARER_AUTOFACTURATION)
        self.db.save_profile(Profile(id="owner-2", account_type=AccountType.COMPANY))
        uploaded = LegalDocument(
            id="uploaded",
            profile_id="owner-2",
            doc_type=LegalDocumentType.PRODUCER_MANDAT,
            status=LegalDocumentStatus.UPLOADED,
        )
        self.workflow.save(uploaded)

        pending = self.workflow.pending_documents(ADMIN_ID)

        self.assertEqual(
            [(item.doc_type, item.submitted_at) for item in pending],
            [
                (newer.doc_type, 200.0),
                (older.doc_type, 100.0),
                (LegalDocumentType.PRODUCER_MANDAT, None),
            ],
        )
        self.assertEqual(pending[0].handle, "ferme")
        self.assertEqual(pending[0].legal_name, "Ferme SARL")
        self.assertIsNone(pending[2].legal_name)


if __name__ == "__main__":
    unittest.main()
