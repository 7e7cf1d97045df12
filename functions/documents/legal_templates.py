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
Templates of the two legal documents a professional account signs:

* the producer billing and payment-collection mandate, and
* the professional sharer self-billing agreement.
"""

from typing import Any, Mapping, Optional

from documents.pdf_layout import PdfDrawer
from shared.types import LegalDocumentType

PLACEHOLDER = "........................................"

DOC_TYPE_LABELS = {
    LegalDocumentType.PRODUCER_MANDAT: (
        "MANDAT PRODUCTEUR DE FACTURATION ET D'ENCAISSEMENT DES PAIEMENTS"
    ),
    LegalDocumentType.SHARER_AUTOFACTURATION: (
        "ACCORD D'AUTOFACTURATION - PARTAGEUR PROFESSIONNEL"
    ),
}


def safe_text(value: Any) -> str:
    """Returns a printable value, or a dotted line to fill in by hand."""
    if isinstance(value, str):
        return value.strip() or PLACEHOLDER
    if value is None:
        return PLACEHOLDER
    return str(value)


def _field(profile: Optional[Mapping[str, Any]], key: str) -> str:
    value = (profile or {}).get(key)
    return value.strip() if isinstance(value, str) else ""


def build_address(profile: Optional[Mapping[str, Any]]) -> str:
    city_line = " ".join(
        part for part in (_field(profile, "postcode"), _field(profile, "city")) if part
    )
    parts = [_field(profile, "address"), _field(profile, "address_details"), city_line]
    return ", ".join(part for part in parts if part)


def build_email(profile: Optional[Mapping[str, Any]]) -> str:
    return _field(profile, "contact_email_public")


def build_phone(profile: Optional[Mapping[str, Any]]) -> str:
    return _field(profile, "phone_public") or _field(profile, "phone")


class _Party:
    """Printable identity of one side of a contract."""

    def __init__(self, legal_entity: Mapping[str, Any], profile: Mapping[str, Any]):
        self.legal_name = safe_text(legal_entity.get("legal_name"))
        self.entity_type = safe_text(legal_entity.get("entity_type"))
        self.siret = safe_text(legal_entity.get("siret"))
        self.vat_number = safe_text(legal_entity.get("vat_number"))
        self.iban = safe_text(legal_entity.get("iban"))
        self.account_holder = safe_text(legal_entity.get("account_holder_name"))
        self.address = safe_text(build_address(profile))
        self.email = safe_text(build_email(profile))
        self.phone = safe_text(build_phone(profile))


def _article(d: PdfDrawer, heading: str) -> None:
    d.subtitle(heading)
    d.spacer(8)


def _signatures(d: PdfDrawer, signer_label: str) -> None:
    d.spacer()
    _article(d, "Signatures")
    d.paragraph(f"Fait à {PLACEHOLDER}")
    d.paragraph("Le .. / .. / ....")
    d.paragraph(signer_label)
    d.paragraph(PLACEHOLDER)
    d.paragraph("La Plateforme PARTAGE (signature) :")
    d.paragraph(PLACEHOLDER)


def render_producer_mandat(
    *,
    legal_entity: Mapping[str, Any],
    producer_profile: Mapping[str, Any],
    platform_legal_entity: Mapping[str, Any],
    platform_profile: Mapping[str, Any],
) -> bytes:
    producer = _Party(legal_entity, producer_profile)
    platform = _Party(platform_legal_entity, platform_profile)
    label = DOC_TYPE_LABELS[LegalDocumentType.PRODUCER_MANDAT]
    d = PdfDrawer(title=label)

    d.title(label)
    d.rule()

    d.subtitle("Entre les soussignés")
    d.spacer(6)
    d.paragraph("Le Producteur (Mandant)")
    d.paragraph(f"Raison sociale / Nom : {producer.legal_name}")
    d.paragraph(f"Forme juridique : {producer.entity_type}")
    d.paragraph(f"Adresse : {producer.address}")
    d.paragraph(f"SIREN/SIRET: {producer.siret}")
    d.paragraph(f"N° TVA (si applicable) : {producer.vat_number}")
    d.paragraph(f"Représenté par : {producer.account_holder}")
    d.paragraph(f"Email : {producer.email}")
    d.paragraph(f"Téléphone : {producer.phone}")
    d.spacer()

    d.paragraph("Et")
    d.paragraph(f"La Plateforme PARTAGE (Mandataire) : {platform.legal_name}")
    d.paragraph(f"Adresse : {platform.address}")
    d.paragraph(f"SIREN/SIRET: {platform.siret}")
    d.paragraph(f"N° TVA : {platform.vat_number}")
    d.paragraph(f"Représentée par : {platform.account_holder}")
    d.paragraph(f"Email : {platform.email}")
    d.paragraph(f"Téléphone : {platform.phone}")
    d.spacer()

    _article(d, "Article 1 — Objet (facturation)")
    d.paragraph(
        "Le Producteur mandate la Plateforme pour établir matériellement les factures "
        "liées aux ventes réalisées via PARTAGE, au nom et pour le compte du Producteur."
    )
    d.spacer(6)

    _article(d, "Article 2 — Portée")
    d.bullet("Ventes de produits du Producteur commandées via la plateforme.")
    d.bullet("Avoirs et rectifications associés à ces ventes.")
    d.spacer(6)

    _article(d, "Article 3 — Série et numérotation")
    d.paragraph("Numérotation utilisée :")
    d.paragraph("[ ] série du Producteur")
    d.paragraph("[ ] série dédiée PARTAGE pour compte Producteur")
    d.spacer(6)

    _article(d, "Article 4 — Transmission, validation, corrections")
    d.paragraph(
        "La Plateforme met à disposition du Producteur un exemplaire de chaque facture "
        "émise. Délai de contestation/correction : ........ jours."
    )
    d.paragraph("En cas d'erreur, la Plateforme émet les documents correctifs applicables.")
    d.spacer(6)

    _article(d, "Article 5 — Encaissement et reversement")
    d.paragraph(
        "Le Producteur autorise la Plateforme à recevoir les paiements des acheteurs "
        "pour son compte, puis à reverser les sommes dues."
    )
    d.paragraph("Le reversement est réalisé après déduction des montants contractuels.")
    d.bullet("Commission plateforme")
    d.bullet("Frais de service partageur (si applicables)")
    d.bullet("Ajustements livraison selon l'option choisie")
    d.bullet("Frais de paiement (si applicables)")
    d.spacer(6)

    _article(d, "Article 6 — Délai et compte bancaire")
    d.paragraph("Délai après clôture/encaissement : 1 mois après la clôture de la commande")
    d.paragraph(f"IBAN du Producteur: {producer.iban}")
    d.paragraph(f"Titulaire du compte : {producer.account_holder}")
    d.spacer(6)

    _article(d, "Article 7 — Responsabilités")
    d.paragraph(
        "Le Producteur reste responsable des informations commerciales, de la "
        "qualification TVA de ses produits et de ses obligations comptables et "
        "déclaratives."
    )
    d.spacer(6)

    _article(d, "Article 8 — Durée et résiliation")
    d.paragraph(
        "Prend effet le .. / .. / ...., pour une durée indéterminée, résiliable avec "
        "préavis de ........ jours."
    )
    d.paragraph("La résiliation n'affecte pas les opérations déjà réalisées.")

    _signatures(d, "Le Producteur (signature + cachet si applicable) :")
    return d.render()


def render_sharer_autofacturation(
    *,
    legal_entity: Mapping[str, Any],
    sharer_profile: Mapping[str, Any],
    platform_legal_entity: Mapping[str, Any],
    platform_profile: Mapping[str, Any],
) -> bytes:
    sharer = _Party(legal_entity, sharer_profile)
    platform = _Party(platform_legal_entity, platform_profile)
    label = DOC_TYPE_LABELS[LegalDocumentType.SHARER_AUTOFACTURATION]
    d = PdfDrawer(title=label)

    d.title(label)
    d.rule()

    d.subtitle("Partie partageur professionnel")
    d.spacer(6)
    d.paragraph(f"Raison sociale / Nom : {sharer.legal_name}")
    d.paragraph(f"Forme juridique : {sharer.entity_type}")
    d.paragraph(f"SIREN/SIRET: {sharer.siret}")
    d.paragraph(f"N° TVA (si applicable) : {sharer.vat_number}")
    d.paragraph(f"Représentant : {sharer.account_holder}")
    d.paragraph(f"Adresse : {sharer.address}")
    d.paragraph(f"Email : {sharer.email}")
    d.paragraph(f"Téléphone : {sharer.phone}")
    d.spacer()

    d.subtitle("Partie plateforme PARTAGE")
    d.spacer(6)
    d.paragraph(f"Raison sociale : {platform.legal_name}")
    d.paragraph(f"Adresse : {platform.address}")
    d.paragraph(f"SIREN/SIRET: {platform.siret}")
    d.paragraph(f"N° TVA : {platform.vat_number}")
    d.paragraph(f"Représentant : {platform.account_holder}")
    d.paragraph(f"Email : {platform.email}")
    d.paragraph(f"Téléphone : {platform.phone}")
    d.spacer()

    _article(d, "Article 1 — Objet")
    d.paragraph(
        "Le partageur professionnel accepte l'autofacturation pour la part en argent "
        "qui lui revient dans le cadre des opérations réalisées sur la plateforme."
    )
    d.spacer(6)

    _article(d, "Article 2 — Modalités")
    d.paragraph(
        "La Plateforme peut établir les documents nécessaires de règlement et reverser "
        "les montants dus selon les règles contractuelles."
    )
    d.spacer(6)

    _article(d, "Article 3 — Coordonnées de paiement")
    d.paragraph(f"IBAN: {sharer.iban}")
    d.paragraph(f"Titulaire du compte : {sharer.account_holder}")
    d.spacer(6)

    _article(d, "Article 4 — Durée")
    d.paragraph("Accord valable jusqu'à résiliation écrite de l'une des parties.")

    _signatures(d, "Le Partageur professionnel (signature) :")
    return d.render()


def render_legal_document(
    doc_type: LegalDocumentType,
    *,
    legal_entity: Mapping[str, Any],
    profile: Mapping[str, Any],
    platform_legal_entity: Mapping[str, Any],
    platform_profile: Mapping[str, Any],
) -> bytes:
    if doc_type == LegalDocumentType.PRODUCER_MANDAT:
        return render_producer_mandat(
            legal_entity=legal_entity,
            producer_profile=profile,
            platform_legal_entity=platform_legal_entity,
            platform_profile=platform_profile,
        )
    return render_sharer_autofacturation(
        legal_entity=legal_entity,
        sharer_profile=profile,
        platform_legal_entity=platform_legal_entity,
        platform_profile=platform_profile,
    )
