"""
Servicio centralizado para validación de permisos y pertenencia a familia
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status
from app.models import Baby, Caretaker, Medicine, SYSTEM_LOGIN_ID
from app.schemas import AuthContext


class PermissionService:
    """Servicio para gestionar permisos y acceso a datos de una familia"""

    @staticmethod
    def is_family_admin(ctx: AuthContext) -> bool:
        """Administrador de familia: rol ADMIN o sysadmin"""
        return ctx.is_sys_admin or ctx.caretaker_role == "ADMIN"

    @staticmethod
    def can_manage_caretakers(ctx: AuthContext) -> bool:
        """Quién puede dar de alta o editar cuidadores"""
        if ctx.is_sys_admin or ctx.is_setup_auth or ctx.is_account_auth:
            return True
        return ctx.caretaker_role == "ADMIN"

    @staticmethod
    def must_supply_family(ctx: AuthContext) -> bool:
        """sysadmin, setup y cuentas sin familia indican la familia destino"""
        return (ctx.is_sys_admin or ctx.is_setup_auth or ctx.is_account_auth) and not ctx.family_id

    @staticmethod
    def can_see_all_families(ctx: AuthContext) -> bool:
        return ctx.is_sys_admin

    @staticmethod
    async def get_baby_in_family(db: AsyncSession, baby_id: Optional[str], family_id: str) -> Baby:
        """Bebé no eliminado de la familia o 404"""
        baby = None
        if baby_id:
            baby = await db.scalar(
                select(Baby).where(
                    Baby.id == baby_id,
                    Baby.family_id == family_id,
                    Baby.deleted_at.is_(None),
                )
            )
        if baby is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Baby not found in this family")
        return baby

    @staticmethod
    async def get_medicine_in_family(db: AsyncSession, medicine_id: Optional[str], family_id: str) -> Medicine:
        medicine = None
        if medicine_id:
            medicine = await db.scalar(
                select(Medicine).where(
                    Medicine.id == medicine_id,
                    Medicine.family_id == family_id,
                    Medicine.deleted_at.is_(None),
                )
            )
        if medicine is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found in this family")
        return medicine

    @staticmethod
    async def validate_login_id(
        db: AsyncSession,
        family_id: str,
        login_id: str,
        exclude_caretaker_id: Optional[str] = None,
    ) -> None:
        """loginId "00" reservado y único por familia entre cuidadores no eliminados"""
        if login_id == SYSTEM_LOGIN_ID:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Login ID 00 is reserved for the system caretaker")
        stmt = select(Caretaker.id).where(
            Caretaker.family_id == family_id,
            Caretaker.login_id == login_id,
            Caretaker.deleted_at.is_(None),
        )
        if exclude_caretaker_id:
            stmt = stmt.where(Caretaker.id != exclude_caretaker_id)
        if await db.scalar(stmt) is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Login ID is already in use in this family")
