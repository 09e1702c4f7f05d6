# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints (prefix /api/manager/auth):
#   POST /login                 - Check credentials, issue session token + cookie
#   POST /logout                - Clear the session cookie
#   GET  /me                    - Current user
#   POST /accept-invitation     - Set first password with an invitation token
#   POST /recovery              - Email a password reset link
#   POST /validate-reset-token  - Check a reset token before showing the form
#   POST /reset-password        - Set a new password with a reset token
#
# Every body field is optional at the schema level so that missing values
# get the same 400 messages the manager UI expects.
#
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field

from aiquiz.api.deps import get_app_settings, get_email_service, get_users
from aiquiz.auth.context import AuthContext
from aiquiz.auth.jwt import create_session_token
from aiquiz.auth.passwords import (
    MIN_PASSWORD_LENGTH,
    hash_password_async,
    is_strong_enough,
    verify_password_async,
)
from aiquiz.auth.policies import require_auth
from aiquiz.auth.tokens import (
    TokenPurpose,
    clear_token_fields,
    find_user_by_token,
    issue_token,
    token_ttl,
)
from aiquiz.auth.users import UserStore
from aiquiz.config import Settings
from aiquiz.core.utils import is_valid_email, utc_now
from aiquiz.integrations.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager/auth", tags=["auth"])

RECOVERY_MESSAGE = "Si el email existe en nuestro sistema, recibirás un enlace de recuperación"
SHORT_PASSWORD_MESSAGE = f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"


# =============================================================================
# Request Models
# =============================================================================

class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class AcceptInvitationRequest(BaseModel):
    token: str | None = None
    password: str | None = None


class RecoveryRequest(BaseModel):
    email: str | None = None


class ValidateResetTokenRequest(BaseModel):
    token: str | None = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str | None = None
    new_password: str | None = Field(default=None, alias="newPassword")


# =============================================================================
# Session
# =============================================================================

@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    users: UserStore = Depends(get_users),
):
    """
    Authenticate with email and password.

    Unknown email, wrong password and inactive account all get the same
    401 so the response does not reveal which one it was.
    """
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Email y contraseña son obligatorios")
    if not is_valid_email(data.email):
        raise HTTPException(status_code=400, detail="Formato de email inválido")

    user = await users.get_by_email(data.email)
    if user is None or not user.is_active:
        logger.info("Login rejected: unknown or inactive account")
        raise HTTPException(status_code=401, detail="Credenciales inválidas")

    if not await verify_password_async(data.password, user.password_hash):
        logger.info(f"Login rejected: wrong password for user {user.id}")
        raise HTTPException(status_code=401, detail="Credenciales inválidas")

    await users.update(user.id, {"last_login": utc_now()})
    token = create_session_token(user, settings)

    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.session_max_age,
        path="/",
    )

    logger.info(f"User {user.id} logged in")
    return {
        "success": True,
        "message": "Inicio de sesión exitoso",
        "token": token,
        "user": user.public(),
    }


@router.post("/logout")
async def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    """Drop the session cookie. Header tokens simply stop being sent."""
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"success": True, "message": "Sesión cerrada correctamente"}


@router.get("/me")
async def me(
    ctx: AuthContext = Depends(require_auth()),
    users: UserStore = Depends(get_users),
):
    user = await users.get(ctx.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return {"success": True, "user": user.public()}


# =============================================================================
# Invitation
# =============================================================================

@router.post("/accept-invitation")
async def accept_invitation(
    data: AcceptInvitationRequest,
    users: UserStore = Depends(get_users),
):
    """
    Activate an invited account by choosing its first password.

    Password, activation and token removal are written together, so the
    invitation cannot be used twice.
    """
    if not data.token or not data.password:
        raise HTTPException(status_code=400, detail="Token y contraseña son obligatorios")
    if not is_strong_enough(data.password):
        raise HTTPException(status_code=400, detail=SHORT_PASSWORD_MESSAGE)

    user = await find_user_by_token(users, data.token, TokenPurpose.INVITATION)
    if user is None:
        logger.info("Invitation acceptance rejected: invalid or expired token")
        raise HTTPException(status_code=404, detail="Token de invitación inválido o expirado")

    await users.update(user.id, {
        "password_hash": await hash_password_async(data.password),
        "is_active": True,
        **clear_token_fields(TokenPurpose.INVITATION),
    })

    logger.info(f"User {user.id} accepted invitation")
    accepted = await users.get(user.id)
    return {
        "success": True,
        "message": "Invitación aceptada correctamente",
        "user": accepted.public() if accepted else None,
    }


# =============================================================================
# Password Recovery
# =============================================================================

@router.post("/recovery")
async def recovery(
    data: RecoveryRequest,
    settings: Settings = Depends(get_app_settings),
    users: UserStore = Depends(get_users),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Send a password reset link.

    The response is the same whether or not the address belongs to an
    account.
    """
    if not data.email:
        raise HTTPException(status_code=400, detail="Email no proporcionado")
    if not is_valid_email(data.email):
        raise HTTPException(status_code=400, detail="Formato de email inválido")

    user = await users.get_by_email(data.email)
    if user is not None and user.is_active:
        token = await issue_token(
            users, user.id, TokenPurpose.RESET, token_ttl(TokenPurpose.RESET, settings)
        )
        try:
            sent = await email_service.send_password_recovery(user.email, user.name, token)
        except Exception:
            logger.exception(f"Recovery email to user {user.id} raised")
            sent = False
        if not sent:
            logger.warning(f"Recovery email to user {user.id} was not delivered")
    else:
        logger.info("Recovery requested for unknown or inactive account")

    return {"success": True, "message": RECOVERY_MESSAGE}


@router.post("/validate-reset-token")
async def validate_reset_token(
    data: ValidateResetTokenRequest,
    users: UserStore = Depends(get_users),
):
    if not data.token:
        raise HTTPException(status_code=400, detail="Token no proporcionado")

    user = await find_user_by_token(users, data.token, TokenPurpose.RESET)
    if user is None:
        raise HTTPException(status_code=404, detail="Token de recuperación inválido o expirado")

    return {"success": True, "valid": True, "message": "Token válido"}


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    users: UserStore = Depends(get_users),
):
    """Set a new password with a reset token. The token is consumed."""
    if not data.token or not data.new_password:
        raise HTTPException(status_code=400, detail="Token y nueva contraseña son obligatorios")
    if not is_strong_enough(data.new_password):
        raise HTTPException(status_code=400, detail=SHORT_PASSWORD_MESSAGE)

    user = await find_user_by_token(users, data.token, TokenPurpose.RESET)
    if user is None:
        logger.info("Password reset rejected: invalid or expired token")
        raise HTTPException(status_code=404, detail="Token inválido o expirado")

    await users.update(user.id, {
        "password_hash": await hash_password_async(data.new_password),
        **clear_token_fields(TokenPurpose.RESET),
    })

    logger.info(f"User {user.id} reset their password")
    return {"success": True, "message": "Contraseña restablecida correctamente"}
