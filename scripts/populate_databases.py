#!/usr/bin/env python3
"""
Populate a demo facility database for the notification engine.

Creates the facility tables and seeds one organization with data that
triggers every notification rule, relative to the current time.

Usage:
    python scripts/populate_databases.py [--org demo-facility]
"""
import argparse
import os
import sqlite3
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Base directory (project root)
BASE_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BASE_DIR / "src"))

from care_notifications.config import get_settings  # noqa: E402
from care_notifications.database import create_facility_schema  # noqa: E402


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def _id() -> str:
    return str(uuid.uuid4())


def build_seed_rows(org: str, now: datetime) -> dict[str, list[dict]]:
    """Demo rows keyed by table name."""
    today = now.date()
    residents = [
        {"id": "res-1", "name": "Maria Silva", "health_status": "critical"},
        {"id": "res-2", "name": "João Santos", "health_status": "stable"},
        {"id": "res-3", "name": "Ana Costa", "health_status": "attention"},
    ]
    return {
        "residents": [{**r, "organization_id": org} for r in residents],
        "intercurrences": [
            {
                "id": _id(), "organization_id": org, "resident_id": "res-1",
                "description": "Fall in the bathroom", "severity": "critical",
                "occurred_at": _iso(now - timedelta(hours=2)),
            },
            {
                "id": _id(), "organization_id": org, "resident_id": "res-2",
                "description": "Refused breakfast", "severity": "low",
                "occurred_at": _iso(now - timedelta(hours=5)),
            },
        ],
        "vital_signs": [
            {
                "id": _id(), "organization_id": org, "resident_id": "res-3",
                "systolic_pressure": 190, "oxygen_saturation": 88,
                "temperature": 36.8, "heart_rate": 80,
                "recorded_at": _iso(now - timedelta(hours=1)),
            },
        ],
        "elimination_records": [
            {
                "id": _id(), "organization_id": org, "resident_id": "res-2",
                "type": "urine", "recorded_at": _iso(now - timedelta(hours=3)),
            },
        ],
        "medications": [
            {
                "id": _id(), "organization_id": org, "resident_id": "res-2",
                "name": "Amoxicillin", "status": "active",
                "end_date": _iso(now + timedelta(days=3)),
            },
        ],
        "family_messages": [
            {
                "id": _id(), "organization_id": org, "resident_id": "res-1",
                "sender": "Carlos Silva", "message": "Please call me as soon as possible",
                "type": "emergency", "date": today.isoformat(), "read": 0,
            },
            {
                "id": _id(), "organization_id": org, "resident_id": "res-2",
                "sender": "Paula Santos", "message": "Visiting on Sunday",
                "type": "general", "date": today.isoformat(), "read": 0,
            },
        ],
        "monthly_fees": [
            {
                "id": _id(), "organization_id": org, "resident_id": "res-1",
                "amount": 850.0, "late_fee": 20.0,
                "due_date": (today - timedelta(days=10)).isoformat(), "status": "overdue",
            },
        ],
        "accounts_payable": [
            {
                "id": _id(), "organization_id": org, "description": "Pharmacy supplier",
                "amount": 1200.0, "due_date": (today + timedelta(days=2)).isoformat(),
                "status": "pending",
            },
            {
                "id": _id(), "organization_id": org, "description": "Electricity",
                "amount": 430.5, "due_date": (today - timedelta(days=4)).isoformat(),
                "status": "overdue",
            },
        ],
        "accounts_receivable": [],
        "caregivers": [
            {"id": _id(), "organization_id": org, "name": "Lucia", "status": "active"},
            {"id": _id(), "organization_id": org, "name": "Pedro", "status": "active"},
            {"id": _id(), "organization_id": org, "name": "Rita", "status": "vacation"},
        ],
    }


def populate_database(db_path: Path, org: str) -> int:
    """
    Create the facility schema and insert the demo rows.

    Returns:
        Number of rows inserted
    """
    if db_path.exists():
        os.remove(db_path)
        print(f"  Removed existing: {db_path.name}")

    conn = sqlite3.connect(db_path)
    create_facility_schema(conn)

    total = 0
    for table, rows in build_seed_rows(org, datetime.now(timezone.utc)).items():
        for row in rows:
            columns = ", ".join(row)
            placeholders = ", ".join(["?"] * len(row))
            conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                list(row.values()),
            )
        print(f"  {table}: {len(rows)} rows")
        total += len(rows)

    conn.commit()
    conn.close()
    return total


def main():
    parser = argparse.ArgumentParser(description="Seed a demo facility database")
    parser.add_argument("--org", default="demo-facility", help="Organization id to seed")
    args = parser.parse_args()

    db_path = Path(get_settings().facility_db_path)

    print("=" * 60)
    print("Care Notifications Facility Database Population Script")
    print("=" * 60)
    print(f"\nDatabase: {db_path}\nOrganization: {args.org}\n")

    total_rows = populate_database(db_path, args.org)

    print()
    print("=" * 60)
    print(f"Complete! Total rows inserted: {total_rows}")
    print("=" * 60)


if __name__ == "__main__":
    main()
