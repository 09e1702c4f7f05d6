"""
Account routes - the signed-in user's own profile and password.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from aiquiz.api.deps import get_users
from aiquiz.auth.context import AuthContext
from aiquiz.auth.passwords import (
    MIN_PASSWORD_LENGTH,
    hash_password_async,
    is_strong_enough,
    verify_password_async,
)
from aiquiz.auth.policies import require_auth, require_professor
from aiquiz.auth.users import UserStore
from aiquiz.core.utils import is_valid_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/account", tags=["account"])


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    faculty: str | None = None
    department: str | None = None


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")


@router.get("")
async def get_account(
    ctx: AuthContext = Depends(require_auth()),
    users: UserStore = Depends(get_users),
):
    user = await users.get(ctx.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return {"success": True, "user": user.public()}


@router.put("")
async def update_account(
    data: UpdateProfileRequest,
    ctx: AuthContext = Depends(require_auth()),
    users: UserStore = Depends(get_users),
):
    """Update profile fields. Empty values leave the field unchanged."""
    user = await users.get(ctx.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    updates = {
        field: value.strip()
        for field, value in data.model_dump().items()
        if value and value.strip()
    }
    if "email" in updates and not is_valid_email(updates["email"]):
        raise HTTPException(status_code=400, detail="Formato de email inválido")

    if updates:
        # Raises DuplicateEmailError when the address belongs to someone else
        await users.update(user.id, updates)
        logger.info(f"User {user.id} updated profile fields: {sorted(updates)}")

    updated = await users.get(user.id)
    return {
        "success": True,
        "message": "Perfil actualizado correctamente",
        "user": updated.public(),
    }


@router.put("/password")
async def change_password(
    data: ChangePasswordRequest,
    ctx: AuthContext = Depends(require_professor()),
    users: UserStore = Depends(get_users),
):
    """Change password, proving knowledge of the current one."""
    if not data.current_password or not data.new_password:
        raise HTTPException(status_code=400, detail="Todos los campos son obligatorios")
    if not is_strong_enough(data.new_password):
        raise HTTPException(
            status_code=400,
            detail=f"La nueva contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres",
        )

    user = await users.get(ctx.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    if not await verify_password_async(data.current_password, user.password_hash):
        logger.info(f"Password change rejected for user {user.id}: wrong current password")
        raise HTTPException(status_code=401, detail="La contraseña actual es incorrecta")

    if data.current_password == data.new_password:
        raise HTTPException(
            status_code=400,
            detail="La nueva contraseña debe ser diferente a la actual",
        )

    await users.update(user.id, {"password_hash": await hash_password_async(data.new_password)})
    logger.info(f"User {user.id} changed their password")
    return {"success": True, "message": "Contraseña actualizada correctamente"}
