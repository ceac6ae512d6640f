# backend/tests/factories.py
from __future__ import annotations

from datetime import date

from gestimmo.auth import create_access_token, hash_password
from gestimmo.db import SessionLocal
from gestimmo.domain.statuses import ContractStatus, PaymentStatus, PropertyStatus, Role, ValidationStatus
from gestimmo.models import Contract, Payment, Profile, Property, Tenant


def _save(row):
    db = SessionLocal()
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    finally:
        db.close()


def make_profile(email: str, role: Role | None = Role.TENANT, full_name: str = "Test User", password: str = "secret123") -> Profile:
    return _save(Profile(email=email, role=role, full_name=full_name, password_hash=hash_password(password)))


def auth_headers(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(profile)}"}


def make_property(owner_id: int | None = None, status: PropertyStatus = PropertyStatus.AVAILABLE, price: float = 500.0, charges: float = 50.0, title: str = "T2 centre") -> Property:
    return _save(
        Property(
            owner_id=owner_id,
            title=title,
            address="12 rue des Lilas",
            city="Lyon",
            property_type="apartment",
            price=price,
            charges=charges,
            status=status,
            photo_urls=[],
        )
    )


def make_tenant(email: str, user_id: int | None = None, full_name: str = "Camille Martin") -> Tenant:
    return _save(Tenant(email=email, user_id=user_id, full_name=full_name))


def make_contract(
    property_id: int,
    tenant_id: int,
    status: ContractStatus = ContractStatus.ACTIVE,
    monthly_rent: float = 500.0,
    charges: float = 50.0,
    landlord_id: int | None = None,
) -> Contract:
    return _save(
        Contract(
            property_id=property_id,
            tenant_id=tenant_id,
            landlord_id=landlord_id,
            monthly_rent=monthly_rent,
            charges=charges,
            status=status,
            start_date=date(2026, 1, 1),
        )
    )


def make_payment(
    contract_id: int,
    month: str,
    due_date: date,
    amount: float = 550.0,
    status: PaymentStatus = PaymentStatus.PENDING,
    validation_status: ValidationStatus = ValidationStatus.NOT_SUBMITTED,
) -> Payment:
    return _save(
        Payment(
            contract_id=contract_id,
            month=month,
            amount=amount,
            due_date=due_date,
            status=status,
            validation_status=validation_status,
            late_fee=0.0,
            proof_urls=[],
        )
    )


def leased_tenant(email: str = "locataire@test.local"):
    """Tenant profile with an active lease on a fresh property: (profile, tenant, property, contract)."""
    manager = make_profile(f"owner-{email}", role=Role.MANAGER, full_name="Owner")
    profile = make_profile(email)
    tenant = make_tenant(email, user_id=profile.id)
    prop = make_property(owner_id=manager.id, status=PropertyStatus.RENTED)
    contract = make_contract(prop.id, tenant.id, landlord_id=manager.id)
    return profile, tenant, prop, contract


def load_profile(user_id: int) -> Profile:
    db = SessionLocal()
    try:
        return db.get(Profile, int(user_id))
    finally:
        db.close()
