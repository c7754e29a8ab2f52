"""
Datos de referencia: unidades, familia por defecto y configuración global.
Todas las funciones son idempotentes.
"""
from __future__ import annotations

import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Family, Settings, Unit, AppConfig
from app.security import encrypt
from app.services.family_service import new_settings, new_system_caretaker, DEFAULT_FAMILY_SLUG

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_PASS = "admin"

# (abreviatura, nombre, tipos de actividad)
UNITS = [
    ("OZ", "Ounces", "weight,feed,medicine"),
    ("ML", "Milliliters", "medicine,feed"),
    ("TBSP", "Tablespoon", "medicine,feed"),
    ("LB", "Pounds", "weight"),
    ("IN", "Inches", "height"),
    ("CM", "Centimeters", "height"),
    ("G", "Grams", "weight,feed,medicine"),
    ("KG", "Kilograms", "weight"),
    ("F", "Fahrenheit", "temp"),
    ("C", "Celsius", "temp"),
    ("MG", "Milligrams", "medicine"),
    ("MCG", "Micrograms", "medicine"),
    ("L", "Liters", "medicine"),
    ("CC", "Cubic Centimeters", "medicine"),
    ("MOL", "Moles", "medicine"),
    ("MMOL", "Millimoles", "medicine"),
    ("DROP", "Drops", "medicine"),
    ("DOSE", "Dose", "medicine"),
    ("PILL", "Pill", "medicine"),
    ("CAP", "Cap", "medicine"),
    ("TAB", "Tab", "medicine"),
    ("SPRAY", "Spray", "medicine"),
    ("INHALER", "Inhaler", "medicine"),
    ("INJECTION", "Injection", "medicine"),
    ("PATCH", "Patch", "medicine"),
    ("CREAM", "Cream", "medicine"),
    ("OINTMENT", "Ointment", "medicine"),
    ("SUPPOSITORY", "Suppository", "medicine"),
]


async def seed_units(db: AsyncSession) -> int:
    """Inserta las unidades que falten y actualiza sus tipos de actividad."""
    existing = {u.unit_abbr: u for u in (await db.execute(select(Unit))).scalars().all()}
    added = 0
    for abbr, name, activity_types in UNITS:
        unit = existing.get(abbr)
        if unit is None:
            db.add(Unit(unit_abbr=abbr, unit_name=name, activity_types=activity_types))
            added += 1
        elif unit.activity_types != activity_types:
            unit.activity_types = activity_types
    await db.commit()
    if added:
        logger.info("Units seeded", extra={"added": added})
    return added


async def seed_defaults(db: AsyncSession) -> None:
    """Familia "My Family" con su cuidador de sistema, Settings y AppConfig."""
    family = await db.scalar(select(Family).order_by(Family.created_at).limit(1))
    if family is None:
        family = Family(name="My Family", slug=DEFAULT_FAMILY_SLUG, is_active=True)
        db.add(family)
        await db.flush()
        db.add(new_system_caretaker(family.id))
        logger.info("Default family created", extra={"slug": family.slug})

    if not await db.scalar(select(func.count()).select_from(Settings)):
        db.add(new_settings(family.id, family.name))

    if await db.scalar(select(AppConfig).limit(1)) is None:
        db.add(AppConfig(admin_pass=encrypt(DEFAULT_ADMIN_PASS), root_domain="localhost:3000", enable_https=False))

    await db.commit()
    await seed_units(db)
