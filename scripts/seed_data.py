#!/usr/bin/env python
"""
Seed script to populate the database with sample data for local development.

Usage:
    python scripts/seed_data.py --residents 5
"""

import argparse
from datetime import timedelta

from backend.auth.jwt import get_password_hash
from backend.config import Base, SessionLocal, engine
from backend.constants import ROLE_ADMIN, ROLE_GUARD, ROLE_RESIDENT
from backend.models.models import Parcel, User, Visitor, utcnow
from backend.services.lifecycle import ParcelStatus, VisitorStatus

DEFAULT_PASSWORD = "changeme"


def get_or_create_user(session, email: str, full_name: str, role: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user:
        return user

    user = User(
        email=email,
        full_name=full_name,
        hashed_password=get_password_hash(DEFAULT_PASSWORD),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.flush()
    return user


def create_resident_bundle(session, index: int) -> None:
    resident = get_or_create_user(
        session,
        email=f"resident{index}@example.com",
        full_name=f"Test Resident {index}",
        role=ROLE_RESIDENT,
    )
    now = utcnow()
    session.add(
        Visitor(
            resident_id=resident.id,
            visitor_name=f"Guest of Resident {index}",
            purpose="Social visit",
            status=VisitorStatus.NEW.value,
            expected_at=now + timedelta(hours=index),
        )
    )
    session.add(
        Parcel(
            resident_id=resident.id,
            parcel_number=f"PKG-{index:05d}",
            sender_name="Sample Courier",
            status=ParcelStatus.RECEIVED.value,
            received_at=now,
        )
    )


def seed_database(residents: int) -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        get_or_create_user(session, "admin@example.com", "Site Administrator", ROLE_ADMIN)
        get_or_create_user(session, "guard@example.com", "Front Gate Guard", ROLE_GUARD)

        existing = session.query(User).filter(User.role == ROLE_RESIDENT).count()
        targets = max(residents, 0)
        start_index = existing + 1

        for offset in range(targets):
            create_resident_bundle(session, start_index + offset)

        session.commit()
        print(f"Seed complete. Created {targets} resident accounts (password: '{DEFAULT_PASSWORD}').")


def main():
    parser = argparse.ArgumentParser(description="Seed the VPMS database with sample data.")
    parser.add_argument("--residents", type=int, default=5, help="Number of resident accounts to create")
    args = parser.parse_args()
    seed_database(args.residents)


if __name__ == "__main__":
    main()
