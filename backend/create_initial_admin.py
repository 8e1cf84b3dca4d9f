# backend/create_initial_admin.py
import argparse
import getpass
import os
from typing import Optional, Sequence

from airlinedb.config import get_settings
from airlinedb.database import SessionLocal, init_db
from airlinedb.security import get_password_hasher
from airlinedb.apps.accounts import models
from airlinedb.apps.accounts.store import CredentialStore


def create_admin(
    db,
    *,
    name: str,
    email: str,
    password: str,
    hasher,
    phone: Optional[str] = None,
) -> tuple:
    """
    Create a verified admin account unless the email is already taken.

    Returns (account, created).
    """
    store = CredentialStore(db)
    email = email.strip().lower()
    with store.transaction():
        existing = store.find_account_by_email(email)
        if existing:
            return existing, False

        account = store.create_account(
            models.Account(
                name=name,
                email=email,
                phone=phone,
                role=models.AccountRole.ADMIN,
                is_verified=True,
                password_hash=hasher.hash(password),
            )
        )
        store.record_security_event(
            account=account,
            event_type="ADMIN_BOOTSTRAPPED",
            description="Created by create_initial_admin.",
        )
    return account, True


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Create the first admin account.")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@airline.local"))
    parser.add_argument("--name", default="Airline Admin")
    parser.add_argument("--phone", help="Optional phone number for the admin.")
    args = parser.parse_args(argv)

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    minimum = get_settings().min_password_length
    if len(password) < minimum:
        parser.error(f"password must be at least {minimum} characters long")

    init_db()
    db = SessionLocal()
    try:
        account, created = create_admin(
            db,
            name=args.name,
            email=args.email,
            password=password,
            hasher=get_password_hasher(),
            phone=args.phone,
        )
        if not created:
            print(f"[INFO] Account already exists: id={account.id}, email={account.email}")
            return

        print("[OK] Created admin account:")
        print(f"  id:      {account.id}")
        print(f"  email:   {account.email}")
        print(f"  role:    {account.role.value}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
