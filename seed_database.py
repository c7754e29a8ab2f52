#!/usr/bin/env python3
"""
Script to seed the database with the default family, units and app config
"""

import asyncio

from sqlalchemy import select, func

from app.db import AsyncSessionLocal, engine, init_db
from app.models import Caretaker, Family, Unit
from app.services.seed import DEFAULT_ADMIN_PASS, seed_defaults


async def seed_database():
    print("Creating tables...")
    await init_db()

    async with AsyncSessionLocal() as session:
        print("Seeding default family, settings, units and app config...")
        await seed_defaults(session)

        families = await session.scalar(select(func.count()).select_from(Family))
        caretakers = await session.scalar(select(func.count()).select_from(Caretaker))
        units = await session.scalar(select(func.count()).select_from(Unit))
        first = await session.scalar(select(Family).order_by(Family.created_at).limit(1))

    print("\nDatabase seeded successfully!")
    print(f"\nSummary:")
    print(f"- {families} families")
    print(f"- {caretakers} caretakers")
    print(f"- {units} units")

    print("\nYou can now log in with:")
    print(f"- Family URL: /{first.slug}, PIN: 111222")
    print(f"- System administrator password: {DEFAULT_ADMIN_PASS}")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(seed_database())
