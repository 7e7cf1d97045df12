"""
Pydantic schemas for the Partage functions.

Request fields are optional and loosely typed so handlers can answer with
the same error messages the hosted functions use.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StancerCreatePaymentIntentRequest(BaseModel):
    order_id: Optional[str] = None
    amount_cents: Any = None
    idempotency_key: Optional[str] = None
    return_url: Optional[str] = None


class StancerCreatePaymentIntentResponse(BaseModel):
    provider_payment_id: str
    payment_url: str


class StancerConfirmPaymentRequest(BaseModel):
    provider_payment_id: Optional[str] = None


class StancerConfirmPaymentResponse(BaseModel):
    provider_payment_id: str
    stancer_status: Optional[str] = None
    status: str


class StripeCreateCheckoutSessionRequest(BaseModel):
    order_id: Optional[str] = None
    amount_cents: Any = None
    idempotency_key: Optional[str] = None
    return_url: Any = None


class StripeCreateCheckoutSessionResponse(BaseModel):
    provider_payment_id: str
    client_secret: str


class StripeCheckoutSessionStatusRequest(BaseModel):
    provider_payment_id: Any = None
    session_id: Any = None


class StripeCheckoutSessionStatusResponse(BaseModel):
    provider_payment_id: str
    stripe_status: Optional[str] = None
    payment_status: Optional[str] = None
    status: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_intent_id: Optional[str] = None


class GenerateLegalDocumentRequest(BaseModel):
    doc_type: Optional[str] = None
    template_version: Optional[str] = None


class GenerateLegalDocumentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    doc_type: str = Field(alias="docType")
    template_version: str = Field(alias="templateVersion")
    generated_path: str = Field(alias="generatedPath")
    signed_url: str = Field(alias="signedUrl")


class SignedUploadUrlResponse(BaseModel):
    bucket: str
    path: str
    signed_url: str
    expires_in: int


class SubmitSignedDocumentRequest(BaseModel):
    signed_pdf_path: Optional[str] = None


class RejectDocumentRequest(BaseModel):
    reason: Optional[str] = None


class LegalDocumentResponse(BaseModel):
    id: str
    profile_id: str
    legal_entity_id: Optional[str] = None
    doc_type: str
    status: str
    template_version: str
    generated_pdf_path: Optional[str] = None
    signed_pdf_path: Optional[str] = None
    submitted_at: Optional[float] = None
    reviewed_at: Optional[float] = None
    reviewer_profile_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: float
    updated_at: float


class PendingDocumentItem(BaseModel):
    profile_id: str
    handle: Optional[str] = None
    legal_name: Optional[str] = None
    doc_type: str
    submitted_at: Optional[float] = None
    signed_pdf_path: Optional[str] = None
    status: str


class PendingDocumentsResponse(BaseModel):
    documents: List[PendingDocumentItem]


class OrderCloseRequest(BaseModel):
    order_id: Optional[str] = None
    use_coop_balance: bool = True
    extra_quantities: Dict[str, int] = Field(default_factory=dict)


class ParticipantGainItem(BaseModel):
    participant_id: str
    profile_id: str
    paid_cents: int
    final_total_cents: int
    gain_cents: int


class PaymentFeeTotalsItem(BaseModel):
    fee_ht_cents: int
    fee_vat_cents: int
    fee_ttc_cents: int


class OrderFinanceItem(BaseModel):
    participant_totals_cents: int
    sharer_products_cents: int
    sharer_share_cents: int
    adjusted_sharer_share_cents: int
    sharer_deficit_cents: int
    sharer_gain_cents: int
    paid_total_cents: int
    remaining_to_collect_cents: int
    payment_fees: PaymentFeeTotalsItem
    delivery_fee_to_producer_cents: int
    delivery_fee_to_platform_cents: int
    delivery_fee_to_sharer_cents: int
    platform_share_with_fees_cents: int
    can_reach_full_coverage: bool


class OrderClosePreviewResponse(BaseModel):
    order_id: str
    total_weight_kg: float
    effective_weight_kg: float
    delivery_fee_cents: int
    unit_final_prices_cents: Dict[str, int]
    participant_gains: List[ParticipantGainItem]
    sharer_products_final_cents: int
    sharer_share_cents: int
    sharer_order_gain_cents: int
    sharer_paid_cents: int
    coop_balance_cents: int
    coop_applied_cents: int
    remaining_to_pay_cents: int
    requires_payment: bool
    finance: OrderFinanceItem


class CloseOrderResponse(BaseModel):
    status: str
    order_id: str
    amount_cents: int = 0
    coop_applied_cents: int = 0
    warnings: List[str] = Field(default_factory=list)


class CreatePlatformInvoiceRequest(BaseModel):
    order_id: Optional[str] = None


class PlatformInvoiceResponse(BaseModel):
    facture_id: str
    numero: str
    currency: str
    total_ttc_cents: int
    total_ht_cents: int
    total_tva_cents: int
    mention_tva: Optional[str] = None
