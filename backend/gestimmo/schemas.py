# backend/gestimmo/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

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


# -------------------- Profiles --------------------

class ProfileOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None


# -------------------- Properties --------------------

class PropertyCreate(BaseModel):
    title: str
    description: Optional[str] = None
    address: str
    city: Optional[str] = None
    property_type: str = "apartment"
    price: float = Field(default=0.0, ge=0)
    charges: float = Field(default=0.0, ge=0)
    status: PropertyStatus = PropertyStatus.AVAILABLE
    owner_id: Optional[int] = None


class PropertyUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    property_type: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    charges: Optional[float] = Field(default=None, ge=0)
    status: Optional[PropertyStatus] = None


class PropertyOut(BaseModel):
    id: int
    owner_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    address: str
    city: Optional[str] = None
    property_type: str
    price: float
    charges: float
    status: PropertyStatus
    photo_urls: List[str] = Field(default_factory=list)
    contract_template_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # read-time occupancy projection
    has_active_contract: bool = False
    is_contractable: bool = False

    model_config = ConfigDict(from_attributes=True)


# -------------------- Tenants --------------------

class TenantCreate(BaseModel):
    full_name: str
    email: str
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    document_id: Optional[str] = None
    user_id: Optional[int] = None


class TenantUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    document_id: Optional[str] = None
    user_id: Optional[int] = None


class TenantOut(TenantCreate):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Contracts --------------------

class ContractCreate(BaseModel):
    property_id: int
    tenant_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: Optional[float] = Field(default=None, ge=0)
    charges: Optional[float] = Field(default=None, ge=0)
    deposit: Optional[float] = Field(default=None, ge=0)
    payment_day: int = Field(default=1, ge=1, le=28)
    grace_period_days: int = Field(default=5, ge=0)


class ContractRequest(BaseModel):
    property_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ContractUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: Optional[float] = Field(default=None, ge=0)
    charges: Optional[float] = Field(default=None, ge=0)
    deposit: Optional[float] = Field(default=None, ge=0)
    payment_day: Optional[int] = Field(default=None, ge=1, le=28)
    grace_period_days: Optional[int] = Field(default=None, ge=0)
    status: Optional[ContractStatus] = None


class ContractOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    landlord_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: float
    charges: float
    deposit: Optional[float] = None
    payment_day: int
    grace_period_days: int
    status: ContractStatus
    signed_by_tenant: bool
    signed_by_landlord: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Payments --------------------

class PaymentCreate(BaseModel):
    contract_id: int
    amount: float = Field(gt=0)
    due_date: date
    month: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None


class ManualPaymentCreate(BaseModel):
    # Kept loose so the service can answer with its own 400 messages.
    contract_id: Optional[int] = None
    due_date: Optional[str] = None
    amount: Optional[float] = None
    payment_method: Optional[str] = None


class PaymentUpdate(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    amount_paid: Optional[float] = Field(default=None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    validation_notes: Optional[str] = None


class TenantPaymentUpdate(BaseModel):
    # The only fields a tenant may change; payment_method is free text and
    # normalised by the service.
    payment_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None


class PaymentReview(BaseModel):
    notes: Optional[str] = None
    reason: Optional[str] = None


class PaymentOut(BaseModel):
    id: int
    contract_id: int
    month: str
    amount: float
    amount_paid: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[date] = None
    due_date: date
    status: PaymentStatus
    validation_status: ValidationStatus
    late_fee: float
    proof_urls: List[str] = Field(default_factory=list)
    validation_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    validated_by: Optional[int] = None
    validated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Maintenance --------------------

class MaintenanceCreate(BaseModel):
    property_id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    urgency: Urgency = Urgency.MEDIUM
    tenant_id: Optional[int] = None


class MaintenanceUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    urgency: Optional[Urgency] = None
    status: Optional[MaintenanceStatus] = None


class MaintenanceOut(BaseModel):
    id: int
    property_id: int
    tenant_id: Optional[int] = None
    reported_by: Optional[int] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    urgency: Urgency
    status: MaintenanceStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Notifications / Documents --------------------

class NotificationOut(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    is_read: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DocumentOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    document_type: str
    file_name: Optional[str] = None
    file_url: str
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Billing --------------------

class BillingRunOut(BaseModel):
    paymentsCreated: int
    lateFeesApplied: int
    errors: List[str] = Field(default_factory=list)
