"""
Seed Example Data for Atelier ERP

This script seeds the database with:
1. One account per role (super admin, admin, staff, customer)
2. A measurement profile for the example customer
3. Two bespoke orders with production plans, one already in production

Orders and tasks go through the workflow services, so numbering, history
and task ordering match what the API would produce.

Run with: python backend/scripts/seed_example_data.py
"""
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import date, timedelta
from decimal import Decimal
from typing import Dict

from sqlalchemy.orm import Session

from atelier.core.permissions import Actor, UserRole
from atelier.db.session import SessionLocal, init_models
from atelier.models.bespoke_order import BespokeOrder
from atelier.models.measurement import MeasurementProfile
from atelier.models.user import User
from atelier.services import bespoke_workflow, production_tasks


EXAMPLE_USERS = [
    {"email": "owner@atelier.local", "name": "Atelier Owner", "role": UserRole.SUPER_ADMIN.value},
    {"email": "manager@atelier.local", "name": "Workshop Manager", "role": UserRole.ADMIN.value},
    {"email": "tailor@atelier.local", "name": "Head Tailor", "role": UserRole.STAFF.value},
    {"email": "customer@example.com", "name": "Amara Okafor", "role": UserRole.CUSTOMER.value},
]


def get_or_create_user(db: Session, email: str, name: str, role: str) -> User:
    """Get existing user or create if it doesn't exist"""
    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, name=name, role=role, is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def seed_users(db: Session) -> Dict[str, User]:
    print("\n👤 Seeding accounts...")
    users = {}
    for account in EXAMPLE_USERS:
        users[account["role"]] = get_or_create_user(db, **account)
        print(f"  ✓ {account['role']:<12} {account['email']}")
    return users


def seed_measurements(db: Session, customer: User) -> MeasurementProfile:
    print("\n📏 Seeding measurement profile...")
    profile = (
        db.query(MeasurementProfile)
        .filter(MeasurementProfile.user_id == customer.id, MeasurementProfile.label == "Wedding Agbada")
        .first()
    )
    if not profile:
        profile = MeasurementProfile(
            user_id=customer.id,
            label="Wedding Agbada",
            chest=Decimal("104.0"),
            shoulder=Decimal("47.5"),
            sleeve_length=Decimal("64.0"),
            neck=Decimal("41.0"),
            waist=Decimal("88.0"),
            hip=Decimal("102.0"),
            inseam=Decimal("81.0"),
            height=Decimal("183.0"),
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
    print(f"  ✓ {profile.label}")
    return profile


def seed_orders(db: Session, users: Dict[str, User]) -> int:
    """Create the example orders unless any order already exists. Returns how many were created."""
    print("\n🧵 Seeding bespoke orders...")
    if db.query(BespokeOrder).count():
        print("  ↷ Orders already present, skipping")
        return 0

    tailor = users[UserRole.STAFF.value]
    customer = users[UserRole.CUSTOMER.value]
    actor = Actor(user_id=tailor.id, role=tailor.role)

    wedding = bespoke_workflow.create_order(db, actor, {
        "customer_name": customer.name,
        "customer_email": customer.email,
        "customer_phone": "+2348012345678",
        "user_id": customer.id,
        "measurement_label": "Wedding Agbada",
        "design_description": "Three-piece agbada with gold hand embroidery at the neckline",
        "fabric_details": "Ivory silk brocade, gold thread",
        "estimated_price": Decimal("450.00"),
        "deposit_amount": Decimal("150.00"),
        "estimated_completion_date": date.today() + timedelta(days=28),
    })
    for status in ("QUOTED", "CONFIRMED", "IN_PRODUCTION"):
        bespoke_workflow.advance_status(db, actor, wedding.id, status)

    plan = [
        {"title": "Cut body and sleeve panels", "stage": "CUTTING", "priority": 1},
        {"title": "Neckline embroidery", "stage": "EMBROIDERY", "priority": 2,
         "due_date": date.today() + timedelta(days=10)},
        {"title": "Assemble agbada", "stage": "SEWING", "priority": 1},
        {"title": "Final press", "stage": "PRESSING"},
    ]
    task_ids = [production_tasks.create_task(db, actor, wedding.id, task) for task in plan]
    production_tasks.update_task(db, actor, task_ids[0], {"status": "COMPLETED", "actual_hours": Decimal("3.5")})
    production_tasks.update_task(db, actor, task_ids[1], {"status": "IN_PROGRESS", "assigned_to_id": tailor.id})
    print(f"  ✓ {wedding.order_number} ({len(plan)} tasks, in production)")

    walk_in = bespoke_workflow.create_order(db, actor, {
        "customer_name": "Tunde Bello",
        "customer_phone": "+2348098765432",
        "design_description": "Navy kaftan, minimal trim",
        "internal_notes": "Walk-in, prefers phone contact",
    })
    print(f"  ✓ {walk_in.order_number} (inquiry)")
    return 2


def seed_all(db: Session) -> Dict[str, int]:
    users = seed_users(db)
    seed_measurements(db, users[UserRole.CUSTOMER.value])
    created = seed_orders(db, users)
    return {"users": len(users), "orders": created}


def main():
    """Main seed function"""
    print("=" * 60)
    print("Atelier ERP Example Data Seeder")
    print("=" * 60)

    init_models()
    db = SessionLocal()
    try:
        summary = seed_all(db)
    finally:
        db.close()

    print("\n" + "=" * 60)
    print(f"✅ Done: {summary['users']} accounts, {summary['orders']} new orders")
    print("=" * 60)


if __name__ == "__main__":
    main()
