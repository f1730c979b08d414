"""
Seed script for Civic Desk (mock DB or Firestore).

Usage:
  - Dry run (default): python -m scripts.seed_db
  - Apply to configured DB: python -m scripts.seed_db --apply
  - Force mock DB even if Firestore is configured: python -m scripts.seed_db --apply --force-mock
  - Also create an admin: python -m scripts.seed_db --apply --admin-email admin@city.gov.in --admin-password ...

Behavior:
  - Creates the default municipal departments that do not exist yet (matched by name, case-insensitive).
  - Optionally creates an admin account (skipped if the e-mail is taken).
  - Uses the same services as the API, so codes, stats and password hashes match.

NOTE: For real Firestore set FIREBASE_CREDENTIALS_PATH and USE_MOCK_DB=false in `.env`.
"""

import argparse

from app.core.settings import settings

DEFAULT_DEPARTMENTS = [
    {"name": "Roads & Transport", "icon": "road", "description": "Potholes, damaged roads, broken signals and footpaths"},
    {"name": "Water Supply", "icon": "droplet", "description": "Leakages, contamination and supply interruptions"},
    {"name": "Sanitation", "icon": "trash", "description": "Garbage collection, drains and public toilets"},
    {"name": "Electricity", "icon": "zap", "description": "Streetlights, exposed wiring and outages"},
    {"name": "Parks & Gardens", "icon": "tree", "description": "Public parks, fallen trees and green spaces"},
    {"name": "Public Health", "icon": "heart", "description": "Mosquito breeding, stray animals and hygiene"},
]

SEED_USER_ID = "seed-script"


def seed_departments(apply: bool) -> None:
    from app.models.department import DepartmentCreate
    from app.services.department_service import derive_department_code, get_department_service

    department_service = get_department_service()
    existing = {d["name"].lower() for d in department_service.list_departments(limit=settings.MAX_PAGE_LIMIT)["items"]}

    for entry in DEFAULT_DEPARTMENTS:
        if entry["name"].lower() in existing:
            print(f"Exists:    departments/{entry['name']}")
            continue
        print(f"Preparing: departments/{entry['name']} ({derive_department_code(entry['name'])})")
        if apply:
            created = department_service.create_department(DepartmentCreate(**entry), SEED_USER_ID)
            print(f"Wrote:     departments/{created['id']}")


def seed_admin(email: str, password: str, apply: bool) -> None:
    from app.services.user_service import get_user_service

    print(f"Preparing: admin account {email}")
    if not apply:
        return
    admin = get_user_service().ensure_admin(email, password)
    print(f"Wrote:     users/{admin['id']}" if admin else f"Exists:    users/{email}")


def main():
    parser = argparse.ArgumentParser(description="Seed Civic Desk departments and an admin account")
    parser.add_argument("--apply", action="store_true", help="Write to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of the mock DB even if Firestore is configured")
    parser.add_argument("--admin-email", default=settings.BOOTSTRAP_ADMIN_EMAIL)
    parser.add_argument("--admin-password", default=settings.BOOTSTRAP_ADMIN_PASSWORD)
    args = parser.parse_args()

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    seed_departments(args.apply)
    if args.admin_email and args.admin_password:
        seed_admin(args.admin_email, args.admin_password, args.apply)

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
