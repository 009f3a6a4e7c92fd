"""Create the initial admin user for the VPMS platform.

Self-registration can only produce residents and guards, so the first admin is
created here.

Run: `python -m backend.manage_create_admin --email admin@example.com --password changeme`
"""

import argparse
from contextlib import contextmanager

from backend.auth.jwt import get_password_hash
from backend.config import Base, SessionLocal, engine
from backend.constants import MIN_PASSWORD_LENGTH, ROLE_ADMIN
from backend.models.models import User


@contextmanager
def session_scope():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="Create the initial admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default="Initial Administrator")
    parser.add_argument("--phone", default=None)
    args = parser.parse_args()

    if len(args.password) < MIN_PASSWORD_LENGTH:
        parser.error(f"--password must be at least {MIN_PASSWORD_LENGTH} characters long")

    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        existing_user = db.query(User).filter(User.email == args.email.lower()).first()
        if existing_user:
            print("User already exists with that email.")
            return

        user = User(
            email=args.email.lower(),
            full_name=args.full_name,
            phone=args.phone,
            hashed_password=get_password_hash(args.password),
            role=ROLE_ADMIN,
            is_active=True,
        )
        db.add(user)
        db.flush()
        print(f"Created admin user with id {user.id}")


if __name__ == "__main__":
    main()
