import io
import unittest

from pypdf import PdfReader

from backend.config import DEFAULT_PLATFORM_PROFILE_ID
from backend.tests.api_testing import ApiTestCase
from documents.models import LegalDocument, LegalEntity, Profile
from shared.types import AccountType, LegalDocumentStatus, LegalDocumentType, ProfileRole

PRODUCER_ID = "producer-1"
ADMIN_ID = "admin-1"


class LegalDocumentApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.db.save_profile(
            Profile(
                id=PRODUCER_ID,
                account_type=AccountType.COMPANY,
                handle="ferme-du-pre",
                email="contact@ferme.test",
                address="1 chemin du Pre",
                city="Lyon",
                postcode="69001",
            )
        )
        self.db.save_legal_entity(
            LegalEntity(
                id="entity-1",
                profile_id=PRODUCER_ID,
                legal_name="Ferme du Pre SARL",
                siret="12345678900011",
            )
        )
        self.db.save_profile(
            Profile(id=DEFAULT_PLATFORM_PROFILE_ID, account_type=AccountType.COMPANY)
        )
        self.db.save_legal_entity(
            LegalEntity(
                id="entity-platform",
                profile_id=DEFAULT_PLATFORM_PROFILE_ID,
                legal_name="Partage SAS",
            )
        )
        self.db.save_profile(Profile(id=ADMIN_ID, role=ProfileRole.ADMIN))
        self.producer = self.login(PRODUCER_ID)
        self.admin = self.login(ADMIN_ID)

    def _generate(self, doc_type="producer_mandat", **extra):
        return self.post(
            "generate_legal_document_pdf",
            json={"doc_type": doc_type, **extra},
            headers=self.producer,
        )

    def test_generate_uploads_pdf_and_records_draft(self):
        response = self._generate(template_version=" v2 ")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["docType"], "producer_mandat")
        self.assertEqual(body["templateVersion"], "v2")
        path = body["generatedPath"]
        self.assertTrue(path.startswith(f"{PRODUCER_ID}/producer_mandat/v2/"))
        self.assertTrue(path.endswith(".pdf"))
        self.assertEqual(
            body["signedUrl"],
            f"{self.storage.base_url}/{self.settings.legal_documents_bucket}/{path}"
            "?op=get&expires=600",
        )

        pdf_bytes = self.storage.get_bytes(self.settings.legal_documents_bucket, path)
        reader = PdfReader(io.BytesIO(pdf_bytes))
        text = "\n".join(page.extract_text() for page in reader.pages)
        self.assertIn("Ferme du Pre SARL", text)

        doc = self.db.find_active_legal_document(
            PRODUCER_ID, LegalDocumentType.PRODUCER_MANDAT, "v2"
        )
        self.assertEqual(doc.status, LegalDocumentStatus.DRAFT)
        self.assertEqual(doc.generated_pdf_path, path)
        self.assertEqual(doc.legal_entity_id, "entity-1")

    def test_regenerating_keeps_one_active_document(self):
        first = self._generate().json()["generatedPath"]
        second = self._generate().json()["generatedPath"]
        self.assertNotEqual(first, second)
        self.assertEqual(len(self.db.legal_documents), 1)
        (doc,) = self.db.legal_documents.values()
        self.assertEqual(doc.generated_pdf_path, second)

    def test_generate_checks(self):
        response = self.post("generate_legal_document_pdf", json={"doc_type": "producer_mandat"})
        self.assertEqual(response.status_code, 401)

        response = self._generate(doc_type="contract")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid doc_type"})

        self.db.get_profile(PRODUCER_ID).account_type = AccountType.INDIVIDUAL
        response = self._generate()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            response.json(), {"error": "Document unavailable for individual account type"}
        )

    def test_generate_needs_platform_entity(self):
        del self.db.legal_entities["entity-platform"]
        response = self._generate()
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Platform legal entity not found"})
        self.assertEqual(self.storage.stored_objects, {})

    def test_signed_upload_submit_and_approve(self):
        self._generate()
        (doc,) = self.db.legal_documents.values()

        response = self.post(f"legal_documents/{doc.id}/signed_upload_url", headers=self.producer)
        self.assertEqual(response.status_code, 200)
        upload = response.json()
        self.assertEqual(upload["bucket"], "signed_documents")
        self.assertTrue(upload["path"].startswith(f"producers/{PRODUCER_ID}/mandat/"))
        self.assertIn("op=put", upload["signed_url"])
        self.assertEqual(upload["expires_in"], 600)

        response = self.post(
            f"legal_documents/{doc.id}/submit",
            json={"signed_pdf_path": upload["path"]},
            headers=self.producer,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "pending_review")
        self.assertIsNotNone(response.json()["submitted_at"])

        response = self.post("legal_documents/pending", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        (item,) = response.json()["documents"]
        self.assertEqual(item["handle"], "ferme-du-pre")
        self.assertEqual(item["legal_name"], "Ferme du Pre SARL")
        self.assertEqual(item["signed_pdf_path"], upload["path"])

        response = self.post(f"legal_documents/{doc.id}/approve", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "approved")
        self.assertEqual(response.json()["reviewer_profile_id"], ADMIN_ID)
        profile = self.db.get_profile(PRODUCER_ID)
        self.assertEqual(profile.role, ProfileRole.PRODUCER)
        self.assertTrue(profile.verified)

    def test_submit_rejects_paths_outside_owner_folder(self):
        self._generate()
        (doc,) = self.db.legal_documents.values()
        response = self.post(
            f"legal_documents/{doc.id}/submit",
            json={"signed_pdf_path": "producers/someone-else/mandat/x.pdf"},
            headers=self.producer,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid signed_pdf_path"})

        response = self.post(
            f"legal_documents/{doc.id}/submit", json={}, headers=self.producer
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Missing signed_pdf_path"})

    def test_other_users_cannot_see_a_document(self):
        self._generate()
        (doc,) = self.db.legal_documents.values()
        response = self.post(f"legal_documents/{doc.id}/signed_upload_url", headers=self.admin)
        self.assertEqual(response.status_code, 404)

    def test_review_is_admin_only(self):
        self.db.save_legal_document(
            LegalDocument(
                id="doc-1",
                profile_id=PRODUCER_ID,
                doc_type=LegalDocumentType.SHARER_AUTOFACTURATION,
                status=LegalDocumentStatus.PENDING_REVIEW,
                signed_pdf_path=f"sharers/{PRODUCER_ID}/autofacturation/x.pdf",
                submitted_at=1.0,
            )
        )
        for name in ("legal_documents/pending", "legal_documents/doc-1/approve"):
            response = self.post(name, headers=self.producer)
            self.assertEqual(response.status_code, 403)
        response = self.post("legal_documents/pending")
        self.assertEqual(response.status_code, 401)

    def test_reject_needs_reason(self):
        self.db.save_legal_document(
            LegalDocument(
                id="doc-1",
                profile_id=PRODUCER_ID,
                doc_type=LegalDocumentType.SHARER_AUTOFACTURATION,
                status=LegalDocumentStatus.PENDING_REVIEW,
                signed_pdf_path=f"sharers/{PRODUCER_ID}/autofacturation/x.pdf",
                submitted_at=1.0,
            )
        )
        response = self.post("legal_documents/doc-1/reject", json={}, headers=self.admin)
        self.assertEqual(response.status_code, 400)

        response = self.post(
            "legal_documents/doc-1/reject", json={"reason": "Page 2 manquante"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "rejected")
        self.assertEqual(body["rejection_reason"], "Page 2 manquante")
        self.assertFalse(self.db.get_legal_entity("entity-1").can_receive_sharer_cash)


if __name__ == "__main__":
    unittest.main()
