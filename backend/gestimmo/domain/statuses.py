# backend/gestimmo/domain/statuses.py
from __future__ import annotations

from enum import Enum


class _StrEnum(str, Enum):
    @classmethod
    def parse(cls, value: object):
        """Strict lookup: unknown values raise ValueError instead of defaulting."""
        if isinstance(value, cls):
            return value
        return cls(str(value or "").strip().lower())

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


class Role(_StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    TENANT = "tenant"
    GUEST = "guest"


class PropertyStatus(_StrEnum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"


class ContractStatus(_StrEnum):
    DRAFT = "draft"
    PENDING = "pending"
    REQUESTED = "requested"
    SUBMITTED = "submitted"
    AWAITING_APPROVAL = "awaiting_approval"
    UNDER_REVIEW = "under_review"
    SIGNED = "signed"
    ACTIVE = "active"
    TERMINATED = "terminated"
    EXPIRED = "expired"


class PaymentStatus(_StrEnum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    PARTIAL = "partial"


class ValidationStatus(_StrEnum):
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class MaintenanceStatus(_StrEnum):
    REPORTED = "reported"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Urgency(_StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PaymentMethod(_StrEnum):
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CASH = "cash"


BACKOFFICE_ROLES = frozenset({Role.ADMIN, Role.MANAGER})
STAFF_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.STAFF})
PUBLIC_REGISTRATION_ROLES = frozenset({Role.TENANT, Role.MANAGER, Role.ADMIN})

# Statuses that still occupy the property. Only draft and active are produced
# by the current workflows; the others are kept so rows written by older
# approval flows still count as occupied.
OPEN_CONTRACT_STATUSES = frozenset(
    {
        ContractStatus.DRAFT,
        ContractStatus.PENDING,
        ContractStatus.ACTIVE,
        ContractStatus.SUBMITTED,
        ContractStatus.AWAITING_APPROVAL,
        ContractStatus.UNDER_REVIEW,
        ContractStatus.SIGNED,
        ContractStatus.REQUESTED,
    }
)


def is_backoffice(role: Role) -> bool:
    return role in BACKOFFICE_ROLES
