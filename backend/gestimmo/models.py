# backend/gestimmo/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain.statuses import (
    ContractStatus,
    MaintenanceStatus,
    PaymentMethod,
    PaymentStatus,
    PropertyStatus,
    Role,
    Urgency,
    ValidationStatus,
)


def _enum(cls) -> SAEnum:
    # Stored as plain strings; unknown values fail on read and write.
    return SAEnum(
        cls,
        native_enum=False,
        length=30,
        validate_strings=True,
        values_callable=lambda e: [m.value for m in e],
    )


# -----------------------------
# Identity
# -----------------------------
class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    # NULL is meaningful: such legacy profiles act as staff on the web surface.
    role: Mapped[Optional[Role]] = mapped_column(_enum(Role), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


# -----------------------------
# Core domain: Properties / Tenants / Contracts
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    property_type: Mapped[str] = mapped_column(String(40), nullable=False, default="apartment")

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # monthly rent
    charges: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[PropertyStatus] = mapped_column(
        _enum(PropertyStatus), nullable=False, default=PropertyStatus.AVAILABLE, index=True
    )

    photo_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    contract_template_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    contracts: Mapped[List["Contract"]] = relationship(back_populates="property", cascade="all, delete-orphan")


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, unique=True, index=True
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    emergency_contact: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    document_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    contracts: Mapped[List["Contract"]] = relationship(back_populates="tenant", cascade="all, delete-orphan")


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    landlord_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=True, index=True)

    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    charges: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deposit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    payment_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=5)

    status: Mapped[ContractStatus] = mapped_column(
        _enum(ContractStatus), nullable=False, default=ContractStatus.DRAFT, index=True
    )
    signed_by_tenant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    signed_by_landlord: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    property: Mapped["Property"] = relationship(back_populates="contracts")
    tenant: Mapped["Tenant"] = relationship(back_populates="contracts")
    payments: Mapped[List["Payment"]] = relationship(back_populates="contract", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_contracts_property_status", "property_id", "status"),)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("contract_id", "month", name="uq_payments_contract_month"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contract_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    month: Mapped[str] = mapped_column(String(120), nullable=False)  # "Octobre 2026"
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    amount_paid: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(_enum(PaymentMethod), nullable=True)
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True
    )
    validation_status: Mapped[ValidationStatus] = mapped_column(
        _enum(ValidationStatus), nullable=False, default=ValidationStatus.NOT_SUBMITTED
    )
    late_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    proof_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    validation_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    validated_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=True)
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    contract: Mapped["Contract"] = relationship(back_populates="payments")


# -----------------------------
# Ops
# -----------------------------
class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    reported_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)  # plumbing|electrical|...
    urgency: Mapped[Urgency] = mapped_column(_enum(Urgency), nullable=False, default=Urgency.MEDIUM)
    status: Mapped[MaintenanceStatus] = mapped_column(
        _enum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.REPORTED
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default="info")  # info|success|warning|error
    related_entity_type: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    related_entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (Index("idx_documents_entity", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(60), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    document_type: Mapped[str] = mapped_column(String(60), nullable=False)

    file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uploaded_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("profiles.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
