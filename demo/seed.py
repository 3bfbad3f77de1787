#!/usr/bin/env python3
"""
Demo script — generates a sample accounts file and walks through the API.

!! NOT FOR PRODUCTION !!
The generated records are random, and the walkthrough logs in with the
default admin credentials.

Usage:
    # Write data/accounts.txt with 50 random records (the server imports it
    # on its next start, provided the database is empty):
    python demo/seed.py generate --count 50

    # Delete the SQLite database so the next start re-imports the file:
    python demo/seed.py reset

    # With the API server running on localhost:8000, exercise the endpoints,
    # including a deliberate version conflict:
    python demo/seed.py walkthrough --base-url http://localhost:8000
"""

import argparse
import asyncio
import os
import random
from datetime import datetime, timedelta
from decimal import Decimal

import httpx

HEADER = "accountNumber|transactionAmount|description|transactionDate|transactionTime|customerId"

DESCRIPTIONS = [
    "FUND TRANSFER",
    "ATM WITHDRAWAL",
    "BILL PAYMENT",
    "POS PURCHASE",
    "SALARY CREDIT",
    "INTEREST CREDIT",
    "CHEQUE DEPOSIT",
    "",
]

ADMIN = {"username": "admin", "password": "password"}

DATA_DIR = os.path.normpath(os.path.join(os.path.dirname(__file__), "..", "data"))


def log(msg: str) -> None:
    print(f"  ✓ {msg}")


# ---------------------------------------------------------------------------
# File generation
# ---------------------------------------------------------------------------

def generate_lines(count: int, customers: int, seed: int | None = None) -> list[str]:
    """Build `count` random data lines (plus the header) in the import format."""
    rng = random.Random(seed)
    start = datetime(2019, 9, 1)
    lines = [HEADER]
    used_numbers: set[str] = set()

    while len(lines) <= count:
        account_number = "".join(rng.choices("0123456789", k=10))
        if account_number in used_numbers:
            continue
        used_numbers.add(account_number)

        amount = Decimal(rng.randint(1_00, 5_000_00)) / 100
        when = start + timedelta(
            days=rng.randint(0, 365),
            seconds=rng.randint(0, 86_399),
        )
        lines.append(
            "|".join([
                account_number,
                f"{amount:.2f}",
                rng.choice(DESCRIPTIONS),
                when.strftime("%Y-%m-%d"),
                when.strftime("%H:%M:%S"),
                str(rng.randint(1, customers) * 111),
            ])
        )
    return lines


def write_accounts_file(path: str, count: int, customers: int, seed: int | None) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as out:
        out.write("\n".join(generate_lines(count, customers, seed)) + "\n")
    log(f"Wrote {count} records to {path}")


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates and re-imports on restart."""
    db_path = os.path.join(DATA_DIR, "accounts.db")

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate tables and re-import accounts.txt.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# API walkthrough
# ---------------------------------------------------------------------------

async def walkthrough(base_url: str) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        try:
            response = await client.post("/auth/login", json=ADMIN)
            response.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError) as exc:
            print(f"\n  Could not log in as admin at {base_url}: {exc}\n")
            return
        client.headers["Authorization"] = f"Bearer {response.json()['token']}"
        log("Logged in as admin")

        runs = (await client.get("/admin/import-runs")).json()
        for run in runs:
            log(f"Import {run['run_id']}: {run['status']}, {run['records_written']} written")

        page = (await client.get("/accounts", params={"size": 5, "sort": "balance,desc"})).json()
        log(f"{page['total_items']} records in {page['total_pages']} pages")
        if not page["items"]:
            print("\n  No records yet — run `generate`, `reset`, and restart the server.\n")
            return

        record = page["items"][0]
        number = record["account_number"]
        log(f"Top balance: {number} ({record['balance']}) version {record['version']}")

        same_customer = (await client.get(f"/accounts/by-customer/{record['customer_id']}")).json()
        log(f"Customer {record['customer_id']} has {same_customer['total_items']} records")

        transfers = (await client.get("/accounts/by-description", params={"description": "transfer"})).json()
        log(f"{transfers['total_items']} records mention 'transfer'")

        # Two edits based on the same version: the second one must be rejected
        first = await client.put(
            f"/accounts/{number}",
            json={"description": "Reviewed by demo", "version": record["version"]},
        )
        log(f"First update -> {first.status_code}, version {first.json()['version']}")
        second = await client.put(
            f"/accounts/{number}",
            json={"description": "Stale edit", "version": record["version"]},
        )
        log(f"Second update with stale version -> {second.status_code} ({second.json()['error_type']})")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo script — NOT FOR PRODUCTION",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Write a random accounts import file")
    gen.add_argument("--output", default=os.path.join(DATA_DIR, "accounts.txt"))
    gen.add_argument("--count", type=int, default=50)
    gen.add_argument("--customers", type=int, default=8)
    gen.add_argument("--seed", type=int, default=None, help="Random seed for repeatable files")

    sub.add_parser("reset", help="Delete the SQLite database file")

    walk = sub.add_parser("walkthrough", help="Exercise the API of a running server")
    walk.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )

    args = parser.parse_args()

    if args.command == "generate":
        write_accounts_file(args.output, args.count, args.customers, args.seed)
    elif args.command == "reset":
        reset_database()
    else:
        asyncio.run(walkthrough(args.base_url))


if __name__ == "__main__":
    main()
