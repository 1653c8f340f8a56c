"""
Seed demo users into the SQL registry (admin plus one verified borrower per sample country).
Run: python -m scripts.seed_demo (from the project root, with REGISTRY_BACKEND=sql).
"""
import asyncio

from config import settings
from database import make_engine
from schemas.user import UserCreate
from services.registry import SqlRegistry
from services.users import StaticOtpVerifier, UserService

DEMO_PASSWORD = "demo1234"

BORROWERS_DATA = [
    {"mobile": "+60123456789", "national_id": "900101-14-5566", "name": "Aisyah Rahman", "country": "MY"},
    {"mobile": "+6591234567", "national_id": "S1234567D", "name": "Tan Wei Ming", "country": "SG"},
    {"mobile": "+919876543210", "national_id": "1234-5678-9012", "name": "Priya Sharma", "country": "IN"},
]


async def seed():
    registry = SqlRegistry(make_engine(settings.database_url))
    await registry.create_schema()
    users = UserService(registry, StaticOtpVerifier(settings.otp_code))
    try:
        await users.ensure_admin(settings.admin_mobile, settings.admin_password, settings.admin_name)
        for data in BORROWERS_DATA:
            if await registry.find_user(mobile=data["mobile"], national_id=data["national_id"]):
                print(f"User {data['mobile']} already exists, skipping")
                continue
            user = await users.register(UserCreate(**data))
            await users.verify_otp(user.id, settings.otp_code)
            await users.set_password(user.id, DEMO_PASSWORD)
            print(f"Seeded borrower: {data['name']} ({user.id})")
    finally:
        await registry.close()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
