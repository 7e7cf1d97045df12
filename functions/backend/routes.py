"""
HTTP routes for the Partage functions.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import Any, Optional

import requests
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.auth import AuthClient, AuthUser
from backend.config import Settings, get_settings
from backend.db import DbClient
from backend.dependencies import (
    get_auth_client,
    get_db_client,
    get_stancer_client,
    get_storage_client,
    get_stripe_client,
    require_supabase_env,
)
from backend.emails import SCAN_PENDING, scan_pending_emails
from backend.errors import ApiError
from backend.schemas import (
    CloseOrderResponse,
    CreatePlatformInvoiceRequest,
    GenerateLegalDocumentRequest,
    GenerateLegalDocumentResponse,
    LegalDocumentResponse,
    OrderClosePreviewResponse,
    OrderCloseRequest,
    ParticipantGainItem,
    PendingDocumentItem,
    PendingDocumentsResponse,
    PlatformInvoiceResponse,
    RejectDocumentRequest,
    SignedUploadUrlResponse,
    StancerConfirmPaymentRequest,
    StancerConfirmPaymentResponse,
    StancerCreatePaymentIntentRequest,
    StancerCreatePaymentIntentResponse,
    StripeCheckoutSessionStatusRequest,
    StripeCheckoutSessionStatusResponse,
    StripeCreateCheckoutSessionRequest,
    StripeCreateCheckoutSessionResponse,
    SubmitSignedDocumentRequest,
)
from backend.storage import StorageClient, StorageError
from documents.legal_templates import render_legal_document
from documents.legal_workflow import (
    LegalDocumentError,
    LegalDocumentWorkflow,
    timestamped_pdf_name,
)
from orders.closing import PAYMENT_REQUIRED, OrderCloseError, OrderCloser
from orders.invoicing import PlatformInvoicer
from orders.pricing import summarize_order_finances
from payments.stancer import (
    StancerApiError,
    StancerClient,
    build_payment_description,
    extract_stancer_status,
    map_stancer_status,
)
from payments.stripe_checkout import (
    StripeApiError,
    StripeCheckoutClient,
    summarize_checkout_session,
)
from shared.money import round_half_up
from shared.types import AccountType, LegalDocumentType

logger = logging.getLogger(__name__)

router = APIRouter()

UNAUTHORIZED = "Unauthorized"


def _require_user(auth: AuthClient, authorization: Optional[str]) -> AuthUser:
    user = auth.get_user(authorization)
    if user is None:
        raise ApiError(401, UNAUTHORIZED)
    return user


def _parse_amount_cents(value: Any) -> int:
    if isinstance(value, bool):
        raise ApiError(400, "Invalid amount_cents")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ApiError(400, "Invalid amount_cents")
    if not math.isfinite(amount) or amount <= 0:
        raise ApiError(400, "Invalid amount_cents")
    return round_half_up(amount)


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


# Payments


@router.post(
    "/stancer_create_payment_intent",
    response_model=StancerCreatePaymentIntentResponse,
)
def stancer_create_payment_intent(
    payload: StancerCreatePaymentIntentRequest,
    authorization: Optional[str] = Header(None),
    stancer: StancerClient = Depends(get_stancer_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if not payload.order_id or not payload.idempotency_key or payload.amount_cents is None:
        raise ApiError(400, "Missing order_id / amount_cents / idempotency_key")
    amount_cents = _parse_amount_cents(payload.amount_cents)
    user = _require_user(auth, authorization)

    try:
        intent = stancer.create_payment_intent(
            amount_cents=amount_cents,
            description=build_payment_description(payload.order_id, user.id),
            idempotency_key=payload.idempotency_key,
            return_url=_clean(payload.return_url) or None,
        )
    except StancerApiError as exc:
        raise ApiError(
            502, "Stancer create failed", status=exc.status_code, details=exc.details
        )
    except requests.RequestException as exc:
        logger.warning("Stancer create request failed: %s", exc)
        raise ApiError(502, "Stancer create failed", status=None, details=str(exc))

    provider_payment_id = intent.get("id")
    payment_url = intent.get("url")
    if not provider_payment_id or not payment_url:
        raise ApiError(502, "Stancer response missing id/url", details=intent)
    logger.info("Stancer intent %s created for order %s", provider_payment_id, payload.order_id)
    return StancerCreatePaymentIntentResponse(
        provider_payment_id=provider_payment_id, payment_url=payment_url
    )


@router.post("/stancer_confirm_payment", response_model=StancerConfirmPaymentResponse)
def stancer_confirm_payment(
    payload: StancerConfirmPaymentRequest,
    authorization: Optional[str] = Header(None),
    stancer: StancerClient = Depends(get_stancer_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if not payload.provider_payment_id:
        raise ApiError(400, "Missing provider_payment_id")
    _require_user(auth, authorization)

    try:
        intent = stancer.get_payment_intent(payload.provider_payment_id)
    except StancerApiError as exc:
        raise ApiError(
            502, "Stancer fetch failed", status=exc.status_code, details=exc.details
        )
    except requests.RequestException as exc:
        logger.warning("Stancer fetch request failed: %s", exc)
        raise ApiError(502, "Stancer fetch failed", status=None, details=str(exc))

    stancer_status = extract_stancer_status(intent)
    return StancerConfirmPaymentResponse(
        provider_payment_id=payload.provider_payment_id,
        stancer_status=stancer_status,
        status=map_stancer_status(stancer_status).value,
    )


@router.post(
    "/stripe_create_checkout_session",
    response_model=StripeCreateCheckoutSessionResponse,
)
def stripe_create_checkout_session(
    payload: StripeCreateCheckoutSessionRequest,
    authorization: Optional[str] = Header(None),
    stripe: StripeCheckoutClient = Depends(get_stripe_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if (
        not payload.order_id
        or not payload.idempotency_key
        or payload.amount_cents is None
        or not payload.return_url
    ):
        raise ApiError(
            400, "Missing order_id / amount_cents / idempotency_key / return_url"
        )
    amount_cents = _parse_amount_cents(payload.amount_cents)
    return_url = _clean(payload.return_url)
    if not return_url:
        raise ApiError(400, "Invalid return_url")
    user = _require_user(auth, authorization)

    try:
        session = stripe.create_checkout_session(
            order_id=payload.order_id,
            user_id=user.id,
            amount_cents=amount_cents,
            return_url=return_url,
            idempotency_key=payload.idempotency_key,
            customer_email=_clean(user.email) or None,
        )
    except StripeApiError as exc:
        raise ApiError(
            502,
            "Stripe checkout session create failed",
            status=exc.status_code,
            stripe_message=exc.message,
            details=exc.details,
        )
    except requests.RequestException as exc:
        logger.warning("Stripe create request failed: %s", exc)
        raise ApiError(
            502,
            "Stripe checkout session create failed",
            status=None,
            stripe_message=None,
            details=str(exc),
        )

    provider_payment_id = session.get("id")
    client_secret = session.get("client_secret")
    if not provider_payment_id or not client_secret:
        raise ApiError(502, "Stripe response missing id/client_secret", details=session)
    logger.info("Stripe session %s created for order %s", provider_payment_id, payload.order_id)
    return StripeCreateCheckoutSessionResponse(
        provider_payment_id=provider_payment_id, client_secret=client_secret
    )


@router.post(
    "/stripe_checkout_session_status",
    response_model=StripeCheckoutSessionStatusResponse,
)
def stripe_checkout_session_status(
    payload: StripeCheckoutSessionStatusRequest,
    authorization: Optional[str] = Header(None),
    stripe: StripeCheckoutClient = Depends(get_stripe_client),
    auth: AuthClient = Depends(get_auth_client),
):
    session_id = _clean(payload.provider_payment_id) or _clean(payload.session_id)
    if not session_id:
        raise ApiError(400, "Missing provider_payment_id")
    _require_user(auth, authorization)

    try:
        session = stripe.retrieve_checkout_session(session_id)
    except StripeApiError as exc:
        raise ApiError(
            502,
            "Stripe checkout session fetch failed",
            status=exc.status_code,
            details=exc.details,
        )
    except requests.RequestException as exc:
        logger.warning("Stripe fetch request failed: %s", exc)
        raise ApiError(
            502, "Stripe checkout session fetch failed", status=None, details=str(exc)
        )
    return StripeCheckoutSessionStatusResponse(
        **summarize_checkout_session(session_id, session)
    )


# Legal documents


@router.post(
    "/generate_legal_document_pdf",
    response_model=GenerateLegalDocumentResponse,
    dependencies=[Depends(require_supabase_env)],
)
def generate_legal_document_pdf(
    payload: GenerateLegalDocumentRequest,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    auth: AuthClient = Depends(get_auth_client),
    settings: Settings = Depends(get_settings),
):
    """
    Renders the caller's mandate or self-billing agreement, stores it and
    points their active legal document at it.
    """
    if not authorization:
        raise ApiError(401, UNAUTHORIZED)
    try:
        doc_type = LegalDocumentType(payload.doc_type or "")
    except ValueError:
        raise ApiError(400, "Invalid doc_type")
    template_version = (payload.template_version or "v1").strip() or "v1"
    user = _require_user(auth, authorization)

    profile = db.get_profile(user.id)
    if profile is None:
        raise ApiError(404, "Profile not found")
    if profile.account_type == AccountType.INDIVIDUAL:
        raise ApiError(403, "Document unavailable for individual account type")
    legal_entity = db.get_legal_entity_for_profile(user.id)
    if legal_entity is None:
        raise ApiError(404, "Legal entity not found")
    platform_legal_entity = db.get_legal_entity_for_profile(settings.platform_profile_id)
    if platform_legal_entity is None:
        raise ApiError(404, "Platform legal entity not found")
    platform_profile = db.get_profile(settings.platform_profile_id)
    if platform_profile is None:
        raise ApiError(404, "Platform profile not found")

    pdf_bytes = render_legal_document(
        doc_type,
        legal_entity=asdict(legal_entity),
        profile=asdict(profile),
        platform_legal_entity=asdict(platform_legal_entity),
        platform_profile=asdict(platform_profile),
    )
    object_path = f"{user.id}/{doc_type.value}/{template_version}/{timestamped_pdf_name()}"
    bucket = settings.legal_documents_bucket
    try:
        storage.upload_bytes(
            bucket, object_path, pdf_bytes, content_type="application/pdf", upsert=False
        )
    except StorageError as exc:
        logger.warning("Upload of %s failed: %s", object_path, exc)
        raise ApiError(500, "Unable to upload generated PDF", details=str(exc))
    try:
        signed_url = storage.presign_get(
            bucket, object_path, expires_in=settings.signed_url_ttl_seconds
        )
    except StorageError as exc:
        logger.warning("Signing %s failed: %s", object_path, exc)
        raise ApiError(500, "Unable to generate signed URL")

    LegalDocumentWorkflow(db).record_generated_pdf(
        profile_id=user.id,
        legal_entity_id=legal_entity.id,
        doc_type=doc_type,
        template_version=template_version,
        generated_pdf_path=object_path,
    )
    logger.info("Generated %s %s for profile %s", doc_type.value, template_version, user.id)
    return GenerateLegalDocumentResponse(
        doc_type=doc_type.value,
        template_version=template_version,
        generated_path=object_path,
        signed_url=signed_url,
    )


def _legal_error(exc: LegalDocumentError) -> ApiError:
    return ApiError(exc.status_code, str(exc))


@router.post(
    "/legal_documents/pending",
    response_model=PendingDocumentsResponse,
    dependencies=[Depends(require_supabase_env)],
)
def list_pending_legal_documents(
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    user = _require_user(auth, authorization)
    try:
        pending = LegalDocumentWorkflow(db).pending_documents(user.id)
    except LegalDocumentError as exc:
        raise _legal_error(exc)
    return PendingDocumentsResponse(
        documents=[
            PendingDocumentItem(
                profile_id=item.profile_id,
                handle=item.handle,
                legal_name=item.legal_name,
                doc_type=item.doc_type.value,
                submitted_at=item.submitted_at,
                signed_pdf_path=item.signed_pdf_path,
                status=item.status.value,
            )
            for item in pending
        ]
    )


@router.post(
    "/legal_documents/{doc_id}/signed_upload_url",
    response_model=SignedUploadUrlResponse,
    dependencies=[Depends(require_supabase_env)],
)
def legal_document_signed_upload_url(
    doc_id: str,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    auth: AuthClient = Depends(get_auth_client),
    settings: Settings = Depends(get_settings),
):
    user = _require_user(auth, authorization)
    try:
        path = LegalDocumentWorkflow(db).signed_upload_path(doc_id, user.id)
    except LegalDocumentError as exc:
        raise _legal_error(exc)
    bucket = settings.signed_documents_bucket
    try:
        url = storage.presign_put(
            bucket, path, expires_in=settings.signed_url_ttl_seconds
        )
    except StorageError as exc:
        logger.warning("Signing upload %s failed: %s", path, exc)
        raise ApiError(500, "Unable to generate signed URL")
    return SignedUploadUrlResponse(
        bucket=bucket,
        path=path,
        signed_url=url,
        expires_in=settings.signed_url_ttl_seconds,
    )


@router.post(
    "/legal_documents/{doc_id}/submit",
    response_model=LegalDocumentResponse,
    dependencies=[Depends(require_supabase_env)],
)
def submit_legal_document(
    doc_id: str,
    payload: SubmitSignedDocumentRequest,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if not _clean(payload.signed_pdf_path):
        raise ApiError(400, "Missing signed_pdf_path")
    user = _require_user(auth, authorization)
    try:
        doc = LegalDocumentWorkflow(db).submit_signed(doc_id, user.id, payload.signed_pdf_path)
    except LegalDocumentError as exc:
        raise _legal_error(exc)
    logger.info("Legal document %s submitted for review", doc.id)
    return LegalDocumentResponse(**doc.as_dict())


@router.post(
    "/legal_documents/{doc_id}/approve",
    response_model=LegalDocumentResponse,
    dependencies=[Depends(require_supabase_env)],
)
def approve_legal_document(
    doc_id: str,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    user = _require_user(auth, authorization)
    try:
        doc = LegalDocumentWorkflow(db).approve(doc_id, user.id)
    except LegalDocumentError as exc:
        raise _legal_error(exc)
    return LegalDocumentResponse(**doc.as_dict())


@router.post(
    "/legal_documents/{doc_id}/reject",
    response_model=LegalDocumentResponse,
    dependencies=[Depends(require_supabase_env)],
)
def reject_legal_document(
    doc_id: str,
    payload: RejectDocumentRequest,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    user = _require_user(auth, authorization)
    try:
        doc = LegalDocumentWorkflow(db).reject(doc_id, user.id, payload.reason)
    except LegalDocumentError as exc:
        raise _legal_error(exc)
    logger.info("Legal document %s rejected", doc.id)
    return LegalDocumentResponse(**doc.as_dict())


# Orders


def _order_closer(db: DbClient) -> OrderCloser:
    return OrderCloser(db, trigger_outgoing_emails=lambda: scan_pending_emails(db))


@router.post(
    "/order_close_preview",
    response_model=OrderClosePreviewResponse,
    dependencies=[Depends(require_supabase_env)],
)
def order_close_preview(
    payload: OrderCloseRequest,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if not payload.order_id:
        raise ApiError(400, "Missing order_id")
    user = _require_user(auth, authorization)
    try:
        calculator, settlement = _order_closer(db).preview(
            payload.order_id,
            user.id,
            use_coop_balance=payload.use_coop_balance,
            extra_quantities=payload.extra_quantities,
        )
    except OrderCloseError as exc:
        raise ApiError(exc.status_code, str(exc))

    return OrderClosePreviewResponse(
        order_id=payload.order_id,
        total_weight_kg=calculator.total_weight_kg,
        effective_weight_kg=calculator.effective_weight_kg,
        delivery_fee_cents=calculator.delivery_fee_cents,
        unit_final_prices_cents={
            entry.product_id: calculator.unit_final_cents(entry.product_id)
            for entry in calculator.order_full.products_offered
        },
        participant_gains=[
            ParticipantGainItem(
                participant_id=gain.participant.id,
                profile_id=gain.participant.profile_id,
                paid_cents=gain.paid_cents,
                final_total_cents=gain.final_total_cents,
                gain_cents=gain.gain_cents,
            )
            for gain in calculator.participant_gains()
        ],
        sharer_products_final_cents=calculator.sharer_products_final_cents,
        sharer_share_cents=calculator.sharer_share_cents,
        sharer_order_gain_cents=calculator.sharer_order_gain_cents,
        sharer_paid_cents=calculator.sharer_paid_cents,
        coop_balance_cents=db.get_coop_balance(user.id),
        coop_applied_cents=settlement.coop_applied_cents,
        remaining_to_pay_cents=settlement.remaining_to_pay_cents,
        requires_payment=settlement.requires_payment,
        finance=asdict(summarize_order_finances(calculator.order_full)),
    )


@router.post(
    "/close_order",
    response_model=CloseOrderResponse,
    dependencies=[Depends(require_supabase_env)],
)
def close_order(
    payload: OrderCloseRequest,
    authorization: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if not payload.order_id:
        raise ApiError(400, "Missing order_id")
    user = _require_user(auth, authorization)
    try:
        outcome = _order_closer(db).close(
            payload.order_id,
            user.id,
            use_coop_balance=payload.use_coop_balance,
            extra_quantities=payload.extra_quantities,
        )
    except OrderCloseError as exc:
        raise ApiError(exc.status_code, str(exc))

    amount_cents = (
        outcome.settlement.remaining_to_pay_cents
        if outcome.status == PAYMENT_REQUIRED
        else 0
    )
    return CloseOrderResponse(
        status=outcome.status,
        order_id=payload.order_id,
        amount_cents=amount_cents,
        coop_applied_cents=outcome.settlement.coop_applied_cents,
        warnings=outcome.warnings,
    )


@router.post(
    "/create_platform_invoice",
    response_model=PlatformInvoiceResponse,
    dependencies=[Depends(require_supabase_env)],
)
def create_platform_invoice(
    payload: CreatePlatformInvoiceRequest,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    if not payload.order_id:
        raise ApiError(400, "Missing order_id")
    user = _require_user(auth, authorization)
    try:
        invoice = PlatformInvoicer(db, settings.platform_profile_id).create_for_order(
            payload.order_id, user.id
        )
    except OrderCloseError as exc:
        raise ApiError(exc.status_code, str(exc))

    return PlatformInvoiceResponse(
        facture_id=invoice.id,
        numero=invoice.numero,
        currency=invoice.currency,
        total_ttc_cents=invoice.total_ttc_cents,
        total_ht_cents=invoice.total_ht_cents,
        total_tva_cents=invoice.total_tva_cents,
        mention_tva=invoice.mention_tva,
    )


# Outgoing emails


@router.post("/process-emails-sortants")
async def process_emails_sortants(
    request: Request,
    x_internal_secret: Optional[str] = Header(None),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    secret = settings.billing_internal_secret
    if not secret or x_internal_secret != secret:
        return PlainTextResponse(UNAUTHORIZED, status_code=401)

    try:
        body = await request.json()
    except ValueError:
        body = {}
    mode = body.get("mode") if isinstance(body, dict) else None
    mode = mode if mode is not None else SCAN_PENDING
    if mode != SCAN_PENDING:
        return JSONResponse({"ok": False, "error": "mode invalide"}, status_code=400)

    try:
        return scan_pending_emails(db)
    except SQLAlchemyError as exc:
        logger.exception("Outgoing email scan failed")
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=500)
