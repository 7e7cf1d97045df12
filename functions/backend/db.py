"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from documents.models import LegalDocument, LegalEntity, Profile
from orders.models import (
    PLATFORM_INVOICE_SERIE,
    SHARER_INVOICE_SERIE,
    InvoiceLineRecord,
    InvoiceRecord,
    LotPriceLine,
    Order,
    OrderFull,
    OrderItem,
    Participant,
    Payment,
    ProductOffer,
)
from shared.types import (
    ACTIVE_LEGAL_DOCUMENT_STATUSES,
    AccountType,
    DeliveryOption,
    LegalDocumentStatus,
    LegalDocumentType,
    OrderStatus,
    OutgoingEmailKind,
    OutgoingEmailStatus,
    ParticipantRole,
    PaymentStatus,
    ProfileRole,
)

INVOICE_NUMERO_PREFIXES = {SHARER_INVOICE_SERIE: "PA", PLATFORM_INVOICE_SERIE: "PP"}


class DbClient(Protocol):
    """Interface for database access."""

    # Profiles and legal entities
    def get_profile(self, profile_id: str) -> Optional[Profile]:
        ...

    def save_profile(self, profile: Profile) -> Profile:
        ...

    def mark_profile_verified_producer(self, profile_id: str) -> None:
        ...

    def get_legal_entity(self, legal_entity_id: str) -> Optional[LegalEntity]:
        ...

    def get_legal_entity_for_profile(self, profile_id: str) -> Optional[LegalEntity]:
        ...

    def save_legal_entity(self, entity: LegalEntity) -> LegalEntity:
        ...

    def enable_sharer_cash(self, profile_id: str) -> None:
        ...

    # Legal documents
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

    # Orders
    def save_order_full(self, order_full: OrderFull) -> None:
        ...

    def get_order_full(self, order_id: str) -> Optional[OrderFull]:
        ...

    def update_order_item_quantity(self, item_id: str, quantity_units: int) -> None:
        ...

    def add_order_item(self, order_id: str, item: OrderItem) -> None:
        ...

    def lock_order(
        self,
        order_id: str,
        *,
        effective_weight_kg: float,
        delivery_fee_cents: int,
        sharer_share_cents: int,
        coop_applied_cents: int,
    ) -> None:
        ...

    def get_coop_balance(self, profile_id: str) -> int:
        ...

    def set_coop_balance(self, profile_id: str, balance_cents: int) -> None:
        ...

    # Invoices and outgoing emails
    def list_participant_invoices(
        self, order_id: str, profile_id: str
    ) -> List[InvoiceRecord]:
        ...

    def issue_sharer_invoice(self, order_id: str, amount_cents: int) -> InvoiceRecord:
        ...

    def find_invoice(self, order_id: str, serie: str) -> Optional[InvoiceRecord]:
        ...

    def next_invoice_numero(self, serie: str, issued_at: float) -> str:
        ...

    def save_invoice(
        self, invoice: InvoiceRecord, lines: Optional[List[InvoiceLineRecord]] = None
    ) -> InvoiceRecord:
        """Upserts the invoice; when lines are given they replace the stored ones."""
        ...

    def list_invoice_lines(self, facture_id: str) -> List[InvoiceLineRecord]:
        ...

    def enqueue_invoice_email(
        self, facture_id: str, kind: OutgoingEmailKind, to_profile_id: Optional[str]
    ) -> bool:
        """Queues one pending email per (invoice, kind); False when already queued."""
        ...

    # Pricing inputs
    def list_lot_price_lines(self, lot_ids: Iterable[str]) -> List[LotPriceLine]:
        ...

    def add_lot_price_line(self, line: LotPriceLine) -> None:
        ...

    def get_platform_setting_numeric(self, key: str) -> Optional[float]:
        ...

    def set_platform_setting_numeric(self, key: str, value: float) -> None:
        ...

    def list_pending_emails(self, limit: int = 10) -> List["OutgoingEmailRecord"]:
        ...


@dataclass
class OutgoingEmailRecord:
    id: str
    kind: OutgoingEmailKind
    status: OutgoingEmailStatus = OutgoingEmailStatus.PENDING
    facture_id: Optional[str] = None
    to_profile_id: Optional[str] = None
    try_count: int = 0
    error: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    sent_at: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status.value,
            "facture_id": self.facture_id,
            "to_profile_id": self.to_profile_id,
            "try_count": self.try_count,
            "error": self.error,
            "created_at": self.created_at,
            "sent_at": self.sent_at,
        }


def invoice_year_prefix(serie: str, issued_at: float) -> str:
    year = datetime.fromtimestamp(issued_at, tz=timezone.utc).year
    return f"{INVOICE_NUMERO_PREFIXES.get(serie, serie)}-{year}-"


def next_invoice_sequence(numeros: Iterable[str], year_prefix: str) -> int:
    """Sequences restart at 1 every year."""
    last = 0
    for numero in numeros:
        suffix = numero[len(year_prefix):] if numero.startswith(year_prefix) else ""
        if suffix.isdigit():
            last = max(last, int(suffix))
    return last + 1


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.legal_entities: Dict[str, LegalEntity] = {}
        self.legal_documents: Dict[str, LegalDocument] = {}
        self.orders: Dict[str, OrderFull] = {}
        self.coop_balances: Dict[str, int] = {}
        self.invoices: Dict[str, InvoiceRecord] = {}
        self.emails: Dict[str, OutgoingEmailRecord] = {}
        self.invoice_lines: Dict[str, List[InvoiceLineRecord]] = {}
        self.lot_price_lines: List[LotPriceLine] = []
        self.platform_settings: Dict[str, float] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.profiles.clear()
        self.legal_entities.clear()
        self.legal_documents.clear()
        self.orders.clear()
        self.coop_balances.clear()
        self.invoices.clear()
        self.emails.clear()
        self.invoice_lines.clear()
        self.lot_price_lines.clear()
        self.platform_settings.clear()

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        return self.profiles.get(profile_id)

    def save_profile(self, profile: Profile) -> Profile:
        self.profiles[profile.id] = profile
        return profile

    def mark_profile_verified_producer(self, profile_id: str) -> None:
        profile = self.profiles.get(profile_id)
        if profile:
            profile.role = ProfileRole.PRODUCER
            profile.verified = True

    def get_legal_entity(self, legal_entity_id: str) -> Optional[LegalEntity]:
        return self.legal_entities.get(legal_entity_id)

    def get_legal_entity_for_profile(self, profile_id: str) -> Optional[LegalEntity]:
        for entity in self.legal_entities.values():
            if entity.profile_id == profile_id:
                return entity
        return None

    def save_legal_entity(self, entity: LegalEntity) -> LegalEntity:
        self.legal_entities[entity.id] = entity
        return entity

    def enable_sharer_cash(self, profile_id: str) -> None:
        entity = self.get_legal_entity_for_profile(profile_id)
        if entity:
            entity.can_receive_sharer_cash = True

    def get_legal_document(self, doc_id: str) -> Optional[LegalDocument]:
        doc = self.legal_documents.get(doc_id)
        return copy.deepcopy(doc) if doc else None

    def find_active_legal_document(
        self, profile_id: str, doc_type: LegalDocumentType, template_version: str
    ) -> Optional[LegalDocument]:
        for doc in self.legal_documents.values():
            if (
                doc.profile_id == profile_id
                and doc.doc_type == doc_type
                and doc.template_version == template_version
                and doc.status in ACTIVE_LEGAL_DOCUMENT_STATUSES
            ):
                return copy.deepcopy(doc)
        return None

    def list_legal_documents(
        self, statuses: Iterable[LegalDocumentStatus]
    ) -> List[LegalDocument]:
        wanted = set(statuses)
        return [
            copy.deepcopy(doc) for doc in self.legal_documents.values() if doc.status in wanted
        ]

    def save_legal_document(self, doc: LegalDocument) -> LegalDocument:
        self.legal_documents[doc.id] = copy.deepcopy(doc)
        return doc

    def save_order_full(self, order_full: OrderFull) -> None:
        self.orders[order_full.order.id] = copy.deepcopy(order_full)

    def get_order_full(self, order_id: str) -> Optional[OrderFull]:
        order_full = self.orders.get(order_id)
        return copy.deepcopy(order_full) if order_full else None

    def update_order_item_quantity(self, item_id: str, quantity_units: int) -> None:
        for order_full in self.orders.values():
            for item in order_full.items:
                if item.id == item_id:
                    item.quantity_units = quantity_units
                    return

    def add_order_item(self, order_id: str, item: OrderItem) -> None:
        self.orders[order_id].items.append(copy.deepcopy(item))

    def lock_order(
        self,
        order_id: str,
        *,
        effective_weight_kg: float,
        delivery_fee_cents: int,
        sharer_share_cents: int,
        coop_applied_cents: int,
    ) -> None:
        order = self.orders[order_id].order
        order.status = OrderStatus.LOCKED
        order.effective_weight_kg = effective_weight_kg
        order.delivery_fee_cents = delivery_fee_cents
        order.sharer_share_cents = sharer_share_cents
        if coop_applied_cents > 0:
            profile_id = order.sharer_profile_id
            self.coop_balances[profile_id] = (
                self.coop_balances.get(profile_id, 0) - coop_applied_cents
            )

    def get_coop_balance(self, profile_id: str) -> int:
        return self.coop_balances.get(profile_id, 0)

    def set_coop_balance(self, profile_id: str, balance_cents: int) -> None:
        self.coop_balances[profile_id] = balance_cents

    def list_participant_invoices(
        self, order_id: str, profile_id: str
    ) -> List[InvoiceRecord]:
        return [
            invoice
            for invoice in self.invoices.values()
            if invoice.order_id == order_id and invoice.profile_id == profile_id
        ]

    def issue_sharer_invoice(self, order_id: str, amount_cents: int) -> InvoiceRecord:
        order = self.orders[order_id].order
        now = time.time()
        invoice = InvoiceRecord(
            id=uuid.uuid4().hex,
            order_id=order_id,
            profile_id=order.sharer_profile_id,
            serie=SHARER_INVOICE_SERIE,
            numero=self.next_invoice_numero(SHARER_INVOICE_SERIE, now),
            total_ttc_cents=amount_cents,
            issued_at=now,
        )
        self.invoices[invoice.id] = invoice
        email = OutgoingEmailRecord(
            id=uuid.uuid4().hex,
            kind=OutgoingEmailKind.SHARER_INVOICE,
            facture_id=invoice.id,
            to_profile_id=invoice.profile_id,
            created_at=now,
        )
        self.emails[email.id] = email
        return invoice

    def find_invoice(self, order_id: str, serie: str) -> Optional[InvoiceRecord]:
        for invoice in self.invoices.values():
            if invoice.order_id == order_id and invoice.serie == serie:
                return copy.deepcopy(invoice)
        return None

    def next_invoice_numero(self, serie: str, issued_at: float) -> str:
        prefix = invoice_year_prefix(serie, issued_at)
        numeros = [i.numero for i in self.invoices.values() if i.serie == serie]
        return f"{prefix}{next_invoice_sequence(numeros, prefix):04d}"

    def save_invoice(
        self, invoice: InvoiceRecord, lines: Optional[List[InvoiceLineRecord]] = None
    ) -> InvoiceRecord:
        self.invoices[invoice.id] = copy.deepcopy(invoice)
        if lines is not None:
            self.invoice_lines[invoice.id] = copy.deepcopy(lines)
        return invoice

    def list_invoice_lines(self, facture_id: str) -> List[InvoiceLineRecord]:
        return copy.deepcopy(self.invoice_lines.get(facture_id, []))

    def enqueue_invoice_email(
        self, facture_id: str, kind: OutgoingEmailKind, to_profile_id: Optional[str]
    ) -> bool:
        if any(
            email.facture_id == facture_id and email.kind == kind
            for email in self.emails.values()
        ):
            return False
        email = OutgoingEmailRecord(
            id=uuid.uuid4().hex,
            kind=kind,
            facture_id=facture_id,
            to_profile_id=to_profile_id,
        )
        self.emails[email.id] = email
        return True

    def list_lot_price_lines(self, lot_ids: Iterable[str]) -> List[LotPriceLine]:
        wanted = set(lot_ids)
        return [line for line in self.lot_price_lines if line.lot_id in wanted]

    def add_lot_price_line(self, line: LotPriceLine) -> None:
        self.lot_price_lines.append(line)

    def get_platform_setting_numeric(self, key: str) -> Optional[float]:
        return self.platform_settings.get(key)

    def set_platform_setting_numeric(self, key: str, value: float) -> None:
        self.platform_settings[key] = value

    def add_email(self, email: OutgoingEmailRecord) -> None:
        self.emails[email.id] = email

    def list_pending_emails(self, limit: int = 10) -> List[OutgoingEmailRecord]:
        pending = [
            email
            for email in self.emails.values()
            if email.status == OutgoingEmailStatus.PENDING
        ]
        pending.sort(key=lambda email: email.created_at)
        return pending[:limit]


def _plain(value):
    return value.value if isinstance(value, Enum) else value


def _row_values(record, *exclude: str) -> dict:
    return {
        f.name: _plain(getattr(record, f.name))
        for f in fields(record)
        if f.name not in exclude
    }


def _record_from_row(cls, row, **enums):
    values = {f.name: getattr(row, f.name) for f in fields(cls)}
    for name, enum_cls in enums.items():
        if values[name] is not None:
            values[name] = enum_cls(values[name])
    return cls(**values)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # Profiles and legal entities

    def _to_profile(self, row: "ProfileRow") -> Profile:
        return _record_from_row(Profile, row, account_type=AccountType, role=ProfileRole)

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        with self.Session() as session:
            row = session.get(ProfileRow, profile_id)
            return self._to_profile(row) if row else None

    def save_profile(self, profile: Profile) -> Profile:
        with self.Session() as session:
            session.merge(ProfileRow(**_row_values(profile)))
            session.commit()
        return profile

    def mark_profile_verified_producer(self, profile_id: str) -> None:
        with self.Session() as session:
            row = session.get(ProfileRow, profile_id)
            if not row:
                return
            row.role = ProfileRole.PRODUCER.value
            row.verified = True
            session.commit()

    def get_legal_entity(self, legal_entity_id: str) -> Optional[LegalEntity]:
        with self.Session() as session:
            row = session.get(LegalEntityRow, legal_entity_id)
            return _record_from_row(LegalEntity, row) if row else None

    def get_legal_entity_for_profile(self, profile_id: str) -> Optional[LegalEntity]:
        with self.Session() as session:
            stmt = (
                select(LegalEntityRow)
                .where(LegalEntityRow.profile_id == profile_id)
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return _record_from_row(LegalEntity, row) if row else None

    def save_legal_entity(self, entity: LegalEntity) -> LegalEntity:
        with self.Session() as session:
            session.merge(LegalEntityRow(**_row_values(entity)))
            session.commit()
        return entity

    def enable_sharer_cash(self, profile_id: str) -> None:
        with self.Session() as session:
            session.query(LegalEntityRow).filter(
                LegalEntityRow.profile_id == profile_id
            ).update(
                {LegalEntityRow.can_receive_sharer_cash: True},
                synchronize_session=False,
            )
            session.commit()

    # Legal documents

    def _to_legal_document(self, row: "LegalDocumentRow") -> LegalDocument:
        return _record_from_row(
            LegalDocument, row, doc_type=LegalDocumentType, status=LegalDocumentStatus
        )

    def get_legal_document(self, doc_id: str) -> Optional[LegalDocument]:
        with self.Session() as session:
            row = session.get(LegalDocumentRow, doc_id)
            return self._to_legal_document(row) if row else None

    def find_active_legal_document(
        self, profile_id: str, doc_type: LegalDocumentType, template_version: str
    ) -> Optional[LegalDocument]:
        active = [status.value for status in ACTIVE_LEGAL_DOCUMENT_STATUSES]
        with self.Session() as session:
            stmt = (
                select(LegalDocumentRow)
                .where(
                    LegalDocumentRow.profile_id == profile_id,
                    LegalDocumentRow.doc_type == doc_type.value,
                    LegalDocumentRow.template_version == template_version,
                    LegalDocumentRow.status.in_(active),
                )
                .order_by(LegalDocumentRow.created_at.desc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_legal_document(row) if row else None

    def list_legal_documents(
        self, statuses: Iterable[LegalDocumentStatus]
    ) -> List[LegalDocument]:
        wanted = [status.value for status in statuses]
        with self.Session() as session:
            rows = session.execute(
                select(LegalDocumentRow).where(LegalDocumentRow.status.in_(wanted))
            ).scalars()
            return [self._to_legal_document(row) for row in rows]

    def save_legal_document(self, doc: LegalDocument) -> LegalDocument:
        with self.Session() as session:
            session.merge(LegalDocumentRow(**_row_values(doc)))
            session.commit()
        return doc

    # Orders

    def save_order_full(self, order_full: OrderFull) -> None:
        order_id = order_full.order.id
        with self.Session() as session:
            session.merge(OrderRow(**_row_values(order_full.order)))
            for participant in order_full.participants:
                session.merge(
                    ParticipantRow(order_id=order_id, **_row_values(participant))
                )
            for item in order_full.items:
                session.merge(OrderItemRow(order_id=order_id, **_row_values(item)))
            for entry in order_full.products_offered:
                session.merge(OrderProductRow(order_id=order_id, **_row_values(entry)))
            for payment in order_full.payments:
                session.merge(PaymentRow(order_id=order_id, **_row_values(payment)))
            session.commit()

    def get_order_full(self, order_id: str) -> Optional[OrderFull]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return None
            order = _record_from_row(
                Order, row, status=OrderStatus, delivery_option=DeliveryOption
            )

            def rows_of(model):
                return session.execute(
                    select(model).where(model.order_id == order_id)
                ).scalars()

            return OrderFull(
                order=order,
                participants=[
                    _record_from_row(Participant, p, role=ParticipantRole)
                    for p in rows_of(ParticipantRow)
                ],
                items=[_record_from_row(OrderItem, i) for i in rows_of(OrderItemRow)],
                products_offered=[
                    _record_from_row(ProductOffer, p) for p in rows_of(OrderProductRow)
                ],
                payments=[
                    _record_from_row(Payment, p, status=PaymentStatus)
                    for p in rows_of(PaymentRow)
                ],
            )

    def update_order_item_quantity(self, item_id: str, quantity_units: int) -> None:
        with self.Session() as session:
            row = session.get(OrderItemRow, item_id)
            if not row:
                return
            row.quantity_units = quantity_units
            session.commit()

    def add_order_item(self, order_id: str, item: OrderItem) -> None:
        with self.Session() as session:
            session.add(OrderItemRow(order_id=order_id, **_row_values(item)))
            session.commit()

    def lock_order(
        self,
        order_id: str,
        *,
        effective_weight_kg: float,
        delivery_fee_cents: int,
        sharer_share_cents: int,
        coop_applied_cents: int,
    ) -> None:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return
            row.status = OrderStatus.LOCKED.value
            row.effective_weight_kg = effective_weight_kg
            row.delivery_fee_cents = delivery_fee_cents
            row.sharer_share_cents = sharer_share_cents
            if coop_applied_cents > 0:
                balance = session.get(CoopBalanceRow, row.sharer_profile_id)
                if balance is None:
                    balance = CoopBalanceRow(profile_id=row.sharer_profile_id, balance_cents=0)
                    session.add(balance)
                balance.balance_cents -= coop_applied_cents
            session.commit()

    def get_coop_balance(self, profile_id: str) -> int:
        with self.Session() as session:
            row = session.get(CoopBalanceRow, profile_id)
            return row.balance_cents if row else 0

    def set_coop_balance(self, profile_id: str, balance_cents: int) -> None:
        with self.Session() as session:
            session.merge(CoopBalanceRow(profile_id=profile_id, balance_cents=balance_cents))
            session.commit()

    # Invoices and outgoing emails

    def list_participant_invoices(
        self, order_id: str, profile_id: str
    ) -> List[InvoiceRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(InvoiceRow).where(
                    InvoiceRow.order_id == order_id,
                    InvoiceRow.profile_id == profile_id,
                )
            ).scalars()
            return [_record_from_row(InvoiceRecord, row) for row in rows]

    def issue_sharer_invoice(self, order_id: str, amount_cents: int) -> InvoiceRecord:
        now = time.time()
        with self.Session() as session:
            order = session.get(OrderRow, order_id)
            if not order:
                raise KeyError(order_id)
            invoice = InvoiceRecord(
                id=uuid.uuid4().hex,
                order_id=order_id,
                profile_id=order.sharer_profile_id,
                serie=SHARER_INVOICE_SERIE,
                numero=self._next_numero(session, SHARER_INVOICE_SERIE, now),
                total_ttc_cents=amount_cents,
                issued_at=now,
            )
            session.add(InvoiceRow(**_row_values(invoice)))
            email = OutgoingEmailRecord(
                id=uuid.uuid4().hex,
                kind=OutgoingEmailKind.SHARER_INVOICE,
                facture_id=invoice.id,
                to_profile_id=invoice.profile_id,
                created_at=now,
            )
            session.add(OutgoingEmailRow(**_row_values(email)))
            session.commit()
            return invoice

    def _next_numero(self, session: Session, serie: str, issued_at: float) -> str:
        prefix = invoice_year_prefix(serie, issued_at)
        numeros = session.execute(
            select(InvoiceRow.numero).where(
                InvoiceRow.serie == serie, InvoiceRow.numero.like(f"{prefix}%")
            )
        ).scalars()
        return f"{prefix}{next_invoice_sequence(numeros, prefix):04d}"

    def find_invoice(self, order_id: str, serie: str) -> Optional[InvoiceRecord]:
        with self.Session() as session:
            row = session.execute(
                select(InvoiceRow)
                .where(InvoiceRow.order_id == order_id, InvoiceRow.serie == serie)
                .limit(1)
            ).scalar_one_or_none()
            return _record_from_row(InvoiceRecord, row) if row else None

    def next_invoice_numero(self, serie: str, issued_at: float) -> str:
        with self.Session() as session:
            return self._next_numero(session, serie, issued_at)

    def save_invoice(
        self, invoice: InvoiceRecord, lines: Optional[List[InvoiceLineRecord]] = None
    ) -> InvoiceRecord:
        with self.Session() as session:
            session.merge(InvoiceRow(**_row_values(invoice)))
            if lines is not None:
                session.execute(
                    delete(InvoiceLineRow).where(InvoiceLineRow.facture_id == invoice.id)
                )
                for line in lines:
                    session.add(InvoiceLineRow(**_row_values(line)))
            session.commit()
        return invoice

    def list_invoice_lines(self, facture_id: str) -> List[InvoiceLineRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(InvoiceLineRow).where(InvoiceLineRow.facture_id == facture_id)
            ).scalars()
            return [_record_from_row(InvoiceLineRecord, row) for row in rows]

    def enqueue_invoice_email(
        self, facture_id: str, kind: OutgoingEmailKind, to_profile_id: Optional[str]
    ) -> bool:
        with self.Session() as session:
            existing = session.execute(
                select(func.count())
                .select_from(OutgoingEmailRow)
                .where(
                    OutgoingEmailRow.facture_id == facture_id,
                    OutgoingEmailRow.kind == kind.value,
                )
            ).scalar_one()
            if existing:
                return False
            email = OutgoingEmailRecord(
                id=uuid.uuid4().hex,
                kind=kind,
                facture_id=facture_id,
                to_profile_id=to_profile_id,
            )
            session.add(OutgoingEmailRow(**_row_values(email)))
            session.commit()
            return True

    # Pricing inputs

    def list_lot_price_lines(self, lot_ids: Iterable[str]) -> List[LotPriceLine]:
        wanted = list(set(lot_ids))
        if not wanted:
            return []
        with self.Session() as session:
            rows = session.execute(
                select(LotPriceLineRow).where(LotPriceLineRow.lot_id.in_(wanted))
            ).scalars()
            return [_record_from_row(LotPriceLine, row) for row in rows]

    def add_lot_price_line(self, line: LotPriceLine) -> None:
        with self.Session() as session:
            session.add(LotPriceLineRow(**_row_values(line)))
            session.commit()

    def get_platform_setting_numeric(self, key: str) -> Optional[float]:
        with self.Session() as session:
            row = session.get(PlatformSettingRow, key)
            return row.value_numeric if row else None

    def set_platform_setting_numeric(self, key: str, value: float) -> None:
        with self.Session() as session:
            session.merge(PlatformSettingRow(key=key, value_numeric=value))
            session.commit()

    def add_email(self, email: OutgoingEmailRecord) -> None:
        with self.Session() as session:
            session.add(OutgoingEmailRow(**_row_values(email)))
            session.commit()

    def list_pending_emails(self, limit: int = 10) -> List[OutgoingEmailRecord]:
        with self.Session() as session:
            stmt = (
                select(OutgoingEmailRow)
                .where(OutgoingEmailRow.status == OutgoingEmailStatus.PENDING.value)
                .order_by(OutgoingEmailRow.created_at.asc())
                .limit(limit)
            )
            return [
                _record_from_row(
                    OutgoingEmailRecord,
                    row,
                    kind=OutgoingEmailKind,
                    status=OutgoingEmailStatus,
                )
                for row in session.execute(stmt).scalars()
            ]


Base = declarative_base()


class ProfileRow(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    account_type = Column(String, nullable=False)
    role = Column(String, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    handle = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    address_details = Column(String, nullable=True)
    city = Column(String, nullable=True)
    postcode = Column(String, nullable=True)
    contact_email_public = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    phone_public = Column(String, nullable=True)


class LegalEntityRow(Base):
    __tablename__ = "legal_entities"

    id = Column(String, primary_key=True)
    profile_id = Column(String, nullable=False, index=True)
    legal_name = Column(String, nullable=True)
    entity_type = Column(String, nullable=True)
    siret = Column(String, nullable=True)
    vat_number = Column(String, nullable=True)
    vat_regime = Column(String, nullable=True)
    iban = Column(String, nullable=True)
    account_holder_name = Column(String, nullable=True)
    can_receive_sharer_cash = Column(Boolean, nullable=False, default=False)
    platform_fee_percent = Column(Float, nullable=True)


class LegalDocumentRow(Base):
    __tablename__ = "legal_documents"

    id = Column(String, primary_key=True)
    profile_id = Column(String, nullable=False, index=True)
    legal_entity_id = Column(String, nullable=True)
    doc_type = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    template_version = Column(String, nullable=False)
    generated_pdf_path = Column(String, nullable=True)
    signed_pdf_path = Column(String, nullable=True)
    submitted_at = Column(Float, nullable=True)
    reviewed_at = Column(Float, nullable=True)
    reviewer_profile_id = Column(String, nullable=True)
    rejection_reason = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class OrderRow(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    sharer_profile_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    producer_profile_id = Column(String, nullable=True)
    order_code = Column(String, nullable=True)
    delivery_option = Column(String, nullable=False)
    min_weight_kg = Column(Float, nullable=False, default=0.0)
    max_weight_kg = Column(Float, nullable=True)
    sharer_percentage = Column(Float, nullable=False, default=0.0)
    delivery_fee_cents = Column(Integer, nullable=False, default=0)
    pickup_delivery_fee_cents = Column(Integer, nullable=False, default=0)
    sharer_share_cents = Column(Integer, nullable=False, default=0)
    effective_weight_kg = Column(Float, nullable=False, default=0.0)
    ordered_weight_kg = Column(Float, nullable=False, default=0.0)
    currency = Column(String, nullable=False, default="EUR")


class ParticipantRow(Base):
    __tablename__ = "order_participants"

    id = Column(String, primary_key=True)
    order_id = Column(String, nullable=False, index=True)
    profile_id = Column(String, nullable=False)
    role = Column(String, nullable=False)
    total_amount_cents = Column(Integer, nullable=False, default=0)
    total_weight_kg = Column(Float, nullable=False, default=0.0)


class OrderItemRow(Base):
    __tablename__ = "order_items"

    id = Column(String, primary_key=True)
    order_id = Column(String, nullable=False, index=True)
    participant_id = Column(String, nullable=False)
    product_id = Column(String, nullable=False)
    quantity_units = Column(Integer, nullable=False)
    lot_id = Column(String, nullable=True)
    unit_weight_kg = Column(Float, nullable=True)
    unit_base_price_cents = Column(Integer, nullable=True)
    unit_sharer_fee_cents = Column(Integer, nullable=True)


class OrderProductRow(Base):
    __tablename__ = "order_products"

    order_id = Column(String, primary_key=True)
    product_id = Column(String, primary_key=True)
    unit_base_price_cents = Column(Integer, nullable=True)
    unit_final_price_cents = Column(Integer, nullable=True)
    unit_weight_kg = Column(Float, nullable=True)
    active_lot_id = Column(String, nullable=True)
    platform_fee_percent = Column(Float, nullable=True)


class PaymentRow(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True)
    order_id = Column(String, nullable=False, index=True)
    participant_id = Column(String, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    fee_cents = Column(Integer, nullable=True)
    fee_vat_cents = Column(Integer, nullable=True)


class CoopBalanceRow(Base):
    __tablename__ = "coop_balances"

    profile_id = Column(String, primary_key=True)
    balance_cents = Column(Integer, nullable=False, default=0)


class InvoiceRow(Base):
    __tablename__ = "factures"

    id = Column(String, primary_key=True)
    order_id = Column(String, nullable=False, index=True)
    profile_id = Column(String, nullable=False, index=True)
    serie = Column(String, nullable=False)
    numero = Column(String, nullable=False, unique=True)
    total_ttc_cents = Column(Integer, nullable=False)
    issued_at = Column(Float, nullable=False)
    client_profile_id = Column(String, nullable=True)
    currency = Column(String, nullable=False, default="EUR")
    total_ht_cents = Column(Integer, nullable=True)
    total_tva_cents = Column(Integer, nullable=True)
    mention_tva = Column(String, nullable=True)
    status = Column(String, nullable=False, default="issued")


class OutgoingEmailRow(Base):
    __tablename__ = "emails_sortants"

    id = Column(String, primary_key=True)
    kind = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    facture_id = Column(String, nullable=True)
    to_profile_id = Column(String, nullable=True)
    try_count = Column(Integer, nullable=False, default=0)
    error = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    sent_at = Column(Float, nullable=True)


class InvoiceLineRow(Base):
    __tablename__ = "facture_lignes"

    id = Column(String, primary_key=True)
    facture_id = Column(String, nullable=False, index=True)
    label = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_ttc_cents = Column(Integer, nullable=False)
    total_ttc_cents = Column(Integer, nullable=False)
    vat_rate = Column(Float, nullable=False, default=0.0)
    total_ht_cents = Column(Integer, nullable=False)
    total_tva_cents = Column(Integer, nullable=False)
    component = Column(String, nullable=True)


class LotPriceLineRow(Base):
    __tablename__ = "lot_price_breakdown"

    id = Column(String, primary_key=True)
    lot_id = Column(String, nullable=False, index=True)
    source = Column(String, nullable=False)
    value_cents = Column(Integer, nullable=False)
    platform_cost_code = Column(String, nullable=True)
    label = Column(String, nullable=True)


class PlatformSettingRow(Base):
    __tablename__ = "platform_settings"

    key = Column(String, primary_key=True)
    value_numeric = Column(Float, nullable=True)
