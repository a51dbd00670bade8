#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample data for demos.

!! NOT FOR PRODUCTION !!
This script creates test users with known passwords and fake wallet
activity. It is intended ONLY for local demos and frontend development.

It never contacts PayNecta or Statum: balances come from admin adjustments
and manually verified deposits, which go through the same ledger as real
M-Pesa payments.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┬────────┐
    │ Email                        │ Password          │ Role   │
    ├──────────────────────────────┼───────────────────┼────────┤
    │ admin@airtimedemo.co.ke      │ AdminDemo123!     │ ADMIN  │
    │ wanjiku@example.com          │ WanjikuDemo123!   │ MEMBER │
    │ otieno@example.com           │ OtienoDemo123!    │ MEMBER │
    │ achieng@example.com          │ AchiengDemo123!   │ MEMBER │
    │ kamau@example.com            │ KamauDemo123!     │ MEMBER │
    └──────────────────────────────┴───────────────────┴────────┘
"""

import argparse
import asyncio
import os
import random
import string
import sys

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

ADMIN = {
    "email": "admin@airtimedemo.co.ke",
    "password": "AdminDemo123!",
    "username": "admin",
    "phone": "0700000001",
}

MEMBERS = [
    {
        "email": "wanjiku@example.com",
        "password": "WanjikuDemo123!",
        "username": "wanjiku",
        "phone": "0712345678",
        "credits": [500_00, 120_00],
        "verified_deposits": [250_00],
    },
    {
        "email": "otieno@example.com",
        "password": "OtienoDemo123!",
        "username": "otieno",
        "phone": "0722345678",
        "credits": [80_00],
        "verified_deposits": [60_00],
    },
    {
        "email": "achieng@example.com",
        "password": "AchiengDemo123!",
        "username": "achieng",
        "phone": "0733345678",
        "credits": [1_000_00],
        "verified_deposits": [],
    },
    {
        "email": "kamau@example.com",
        "password": "KamauDemo123!",
        "username": "kamau",
        "phone": "0745345678",
        "credits": [],
        "verified_deposits": [45_00],
    },
]

CREDIT_REASONS = [
    "Launch promotion", "Goodwill credit", "Referral reward", "Support refund",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def cents_to_kes(cents: int) -> str:
    return f"KES {cents / 100:,.2f}"


def fake_receipt_code() -> str:
    """Something shaped like an M-Pesa confirmation code."""
    return "QK" + "".join(random.choices(string.ascii_uppercase + string.digits, k=8))


async def signup(client: httpx.AsyncClient, user: dict) -> dict:
    """Sign up a user, return the signup response (token, account_id, ...)."""
    resp = await client.post(f"{BASE_URL}/auth/signup", json={
        "email": user["email"],
        "password": user["password"],
        "username": user["username"],
        "phone": user["phone"],
    })
    resp.raise_for_status()
    return resp.json()


async def login(client: httpx.AsyncClient, user: dict) -> str:
    resp = await client.post(f"{BASE_URL}/auth/login", json={
        "email": user["email"],
        "password": user["password"],
    })
    resp.raise_for_status()
    return resp.json()["token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def adjust(client: httpx.AsyncClient, admin_token: str, account_id: str,
                 amount_cents: int, reason: str) -> dict:
    resp = await client.put(
        f"{BASE_URL}/admin/users/{account_id}/balance",
        json={"amount_cents": amount_cents, "reason": reason},
        headers=auth_header(admin_token),
    )
    resp.raise_for_status()
    return resp.json()


async def verified_deposit(client: httpx.AsyncClient, token: str, admin_token: str,
                           phone: str, amount_cents: int) -> dict:
    """Submit a receipt code as the member, then approve it as the admin."""
    resp = await client.post(
        f"{BASE_URL}/payments/deposits/verify",
        json={"receipt_code": fake_receipt_code(), "phone": phone},
        headers=auth_header(token),
    )
    resp.raise_for_status()
    verification = resp.json()

    resp = await client.put(
        f"{BASE_URL}/admin/verifications/{verification['id']}/approve",
        json={"amount_cents": amount_cents},
        headers=auth_header(admin_token),
    )
    resp.raise_for_status()
    return resp.json()


async def get_balance(client: httpx.AsyncClient, token: str) -> int:
    resp = await client.get(f"{BASE_URL}/accounts/me/balance", headers=auth_header(token))
    resp.raise_for_status()
    return resp.json()["balance_cents"]


async def promote_to_admin(admin_email: str) -> None:
    """Directly update the user's role to ADMIN in the database.

    This bypasses the API since there's no admin-promotion endpoint
    (by design — admin provisioning is an operator action, not self-service).
    """
    from sqlalchemy import update
    from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
    from airtime_api.config import settings
    from airtime_api.models.user import User, UserType

    engine = create_async_engine(settings.DATABASE_URL)
    session_factory = async_sessionmaker(engine, class_=AsyncSession)

    async with session_factory() as session:
        await session.execute(
            update(User)
            .where(User.email == admin_email)
            .values(user_type=UserType.ADMIN)
        )
        await session.commit()

    await engine.dispose()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn airtime_api.main:app --reload\n")
            sys.exit(1)

        # --- Admin ---
        print("Creating admin user...")
        await signup(client, ADMIN)
        await promote_to_admin(ADMIN["email"])
        admin_token = await login(client, ADMIN)
        log(f"Admin: {ADMIN['email']} / {ADMIN['password']}")

        # --- Members ---
        for member in MEMBERS:
            print(f"\nCreating {member['username']}...")
            body = await signup(client, member)
            token = body["token"]
            account_id = body["account_id"]
            log(f"Login: {member['email']} / {member['password']}")

            for amount in member["credits"]:
                await adjust(client, admin_token, account_id, amount,
                             random.choice(CREDIT_REASONS))
                log(f"Credit: {cents_to_kes(amount)}")

            for amount in member["verified_deposits"]:
                await verified_deposit(client, token, admin_token, member["phone"], amount)
                log(f"Verified M-Pesa deposit: {cents_to_kes(amount)}")

            balance = await get_balance(client, token)
            log(f"Balance: {cents_to_kes(balance)}")

        # --- One pending verification for the admin queue ---
        print("\nLeaving a deposit verification for the admin to review...")
        token = await login(client, MEMBERS[1])
        resp = await client.post(
            f"{BASE_URL}/payments/deposits/verify",
            json={"receipt_code": fake_receipt_code(), "phone": MEMBERS[1]["phone"]},
            headers=auth_header(token),
        )
        resp.raise_for_status()
        log(f"Pending receipt: {resp.json()['receipt_code']}")

        # --- Broadcast ---
        await client.post(
            f"{BASE_URL}/admin/notifications",
            json={
                "title": "Karibu!",
                "message": "Deposit KES 50 or more and get a KES 6 bonus.",
                "level": "info",
            },
            headers=auth_header(admin_token),
        )
        log("Broadcast notification sent")

    # --- Summary ---
    print("\n========================================")
    print("  SEED COMPLETE — Login Credentials")
    print("========================================")
    print(f"\n  {'Email':<30s} {'Password':<20s} {'Role'}")
    print(f"  {'─' * 30} {'─' * 20} {'─' * 6}")
    print(f"  {ADMIN['email']:<30s} {ADMIN['password']:<20s} ADMIN")
    for m in MEMBERS:
        print(f"  {m['email']:<30s} {m['password']:<20s} MEMBER")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "airtime.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample users, balances and deposits for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
