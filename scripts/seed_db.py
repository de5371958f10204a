"""Seed script to populate the database with sample data.

Usage:
    python scripts/seed_db.py            # Run interactive (asks before seeding)
    python scripts/seed_db.py --yes      # Seed without confirmation

This script inserts:
    - An admin profile (the only way admins are created)
    - A sample student
    - One complaint from that student, with an admin reply

Idempotency:
    - Profiles are checked by email before creation
    - The sample complaint is only created if the student has none

Environment:
    Ensure database settings are correctly loaded via `.env` before running.
    ADMIN_EMAIL / ADMIN_PASSWORD override the default admin credentials.
"""

import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.database import AsyncSessionLocal, init_db
from app.models.complaint import ComplaintCategory
from app.models.profile import Profile
from app.schemas.profile import StudentRegister
from app.services.complaint_service import get_complaint_service
from app.services.message_service import get_message_service
from app.services.profile_service import get_profile_service

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin12345")

SAMPLE_STUDENT = StudentRegister(
    name="Anu Joseph",
    student_id="BRO2024-117",
    batch="BCR54",
    phone="9876543210",
    email="student@example.com",
    password="student12345",
)


async def get_profile(session, email: str):
    result = await session.execute(select(Profile).where(Profile.email == email))
    return result.scalar_one_or_none()


async def seed_admin(session) -> Profile:
    admin = await get_profile(session, ADMIN_EMAIL)
    if admin:
        return admin
    admin = await get_profile_service().provision_admin(ADMIN_EMAIL, "Admin User", ADMIN_PASSWORD, session)
    print(f"  Admin created: {ADMIN_EMAIL}")
    return admin


async def seed_student(session) -> Profile:
    student = await get_profile(session, SAMPLE_STUDENT.email)
    if student:
        return student
    student = await get_profile_service().register_student(SAMPLE_STUDENT, session)
    print(f"  Student created: {student.student_id}")
    return student


async def seed_complaint(session, student: Profile, admin: Profile) -> None:
    existing = await get_complaint_service().list_complaints(student, session)
    if existing:
        print("  Sample complaint already present, skipping")
        return
    complaint = await get_complaint_service().create_complaint(
        student, ComplaintCategory.ELECTRICAL, "Room lights not working", False, session
    )
    await get_message_service().post_message(
        admin, complaint.id, "Technician will visit tomorrow morning", session
    )
    print(f"  Complaint created: {complaint.id}")


async def main(auto_yes: bool = False):
    print("=" * 60)
    print("ComplaintDesk Sample Data")
    print("=" * 60)

    if not auto_yes:
        response = input("Seed sample admin, student and complaint? (y/n): ")
        if response.lower() != "y":
            print("Aborted.")
            return

    await init_db()
    async with AsyncSessionLocal() as session:
        print("Seeding profiles...")
        admin = await seed_admin(session)
        student = await seed_student(session)
        print("Seeding complaints...")
        await seed_complaint(session, student, admin)

    print("\n" + "=" * 60)
    print("Credentials:")
    print("=" * 60)
    print(f"Admin:   {ADMIN_EMAIL} / {ADMIN_PASSWORD}")
    print(f"Student: {SAMPLE_STUDENT.student_id} / {SAMPLE_STUDENT.password}")
    print("=" * 60)
    print("✅ Seeding complete!")


if __name__ == "__main__":
    asyncio.run(main(auto_yes="--yes" in sys.argv))
