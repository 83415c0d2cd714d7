#!/usr/bin/env python3
"""Create the database tables and the administrator account."""

import sys
from pathlib import Path

# Make the slotmanager package importable when run from a checkout
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from sqlmodel import Session, select

from slotmanager.config import settings
from slotmanager.core.security import get_password_hash
from slotmanager.database import create_db_and_tables, sync_engine
from slotmanager.models import User


def seed_admin(username: str = None, password: str = None) -> bool:
    """
    Create the admin user unless it already exists.

    Returns:
        True when a user was created, False when it was already present
    """
    username = username or settings.ADMIN_USERNAME
    password = password or settings.ADMIN_PASSWORD

    create_db_and_tables()

    with Session(sync_engine) as session:
        existing = session.exec(select(User).where(User.username == username)).first()
        if existing:
            print(f"User '{username}' already exists (ID: {existing.id}), skipping")
            return False

        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            is_active=True,
        )
        session.add(user)
        session.commit()
        session.refresh(user)

    print("=" * 60)
    print("✅ Admin user created")
    print("=" * 60)
    print(f"  ID:          {user.id}")
    print(f"  Username:    {user.username}")
    print("=" * 60)
    if password == "admin123":
        print("⚠️  Default password in use, change it via /auth/change-password")
    return True


if __name__ == "__main__":
    try:
        seed_admin()
    except KeyboardInterrupt:
        print("\n\n❌ Cancelled")
        sys.exit(1)
