"""Password reset tokens.

A reset token is a signed JWT carrying the user's email. The signature and
``exp`` claim are necessary but not sufficient: the token must also be the
exact string stored in ``users.reset_token``. Issuing a new token overwrites
that pointer, which revokes every earlier token even while the signer would
still accept it, and a successful reset clears it so the token is single use.
"""
from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.core.config import settings
from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import ExpiredError, InvalidCredentialError, NotFoundError
from footiedrop.core.security import hash_password, sign_token, verify_token
from footiedrop.db import crud
from footiedrop.models.user import User
from footiedrop.schemas.auth import ResetTokenCheck
from footiedrop.services.email import notify

log = logging.getLogger(__name__)


def _user_not_found() -> NotFoundError:
    return NotFoundError(error_code=ErrorCode.USER_NOT_FOUND, user_message="User not found")


def _pointer_mismatch() -> InvalidCredentialError:
    return InvalidCredentialError(
        error_code=ErrorCode.PASSWORD_RESET_INVALID,
        user_message="Invalid token",
        details={"valid": False},
    )


def reset_link(token: str) -> str:
    return f"{settings.FRONTEND_BASE_URL.rstrip('/')}/reset-password/{token}"


async def request_password_reset(db: AsyncSession, email: str) -> None:
    user = await crud.get_user_by_email(db, email)
    if not user:
        raise _user_not_found()
    await issue_reset_token(db, email)


async def issue_reset_token(db: AsyncSession, email: str) -> None:
    user = await crud.get_user_by_email(db, email)
    if not user:
        raise _user_not_found()

    token = sign_token(
        {"email": user.email},
        settings.JWT_SECRET,
        timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
    )
    # last write wins: whatever was stored before is no longer accepted
    await crud.set_reset_token(db, user.id, token)
    await db.commit()
    log.info("Issued password reset token for user %s", user.id)

    await notify(
        "team",
        user.email,
        "Password Reset",
        f"Hi {user.first_name},<br/><br/>"
        "You requested to reset your password. Please click the link below to reset your password:<br/><br/>"
        f'<a href="{reset_link(token)}" target="_blank" rel="noopener noreferrer">Reset your password</a>'
        f"<br/><br/>The link is valid for {settings.RESET_TOKEN_TTL_MINUTES} minutes. "
        "If you did not request this change, please ignore this email.",
    )


async def _resolve_token(db: AsyncSession, token: str) -> User:
    """Run every check a reset token must pass and return its owner."""
    try:
        claims = verify_token(token, settings.JWT_SECRET)
    except ExpiredSignatureError:
        raise ExpiredError(error_code=ErrorCode.PASSWORD_RESET_EXPIRED, user_message="Reset link expired")
    except JWTError:
        raise InvalidCredentialError(error_code=ErrorCode.TOKEN_INVALID, user_message="Invalid token")

    email = claims.get("email")
    if not isinstance(email, str):
        raise InvalidCredentialError(error_code=ErrorCode.TOKEN_INVALID, user_message="Invalid token")

    user = await crud.get_user_by_email(db, email)
    if not user:
        raise _user_not_found()

    if user.reset_token is None or not secrets.compare_digest(user.reset_token, token):
        log.info("Rejected stale or replayed reset token for user %s", user.id)
        raise _pointer_mismatch()
    return user


async def verify_reset_token(db: AsyncSession, token: str) -> ResetTokenCheck:
    await _resolve_token(db, token)
    return ResetTokenCheck(valid=True)


async def consume_reset_token(db: AsyncSession, token: str, new_password: str) -> User:
    """Set a new password with `token`, which stops being valid afterwards."""
    user = await _resolve_token(db, token)

    swapped = await crud.swap_password_for_reset_token(db, user.id, token, hash_password(new_password))
    if not swapped:
        # consumed or replaced between the check and the write
        raise _pointer_mismatch()
    await db.commit()
    log.info("Password reset completed for user %s", user.id)

    await notify(
        "security",
        user.email,
        "Password Updated",
        f"Dear {user.first_name},<br/><br/>Your password has been updated successfully."
        "<br/><br/>If you did not request this change, please contact us immediately.",
    )
    return user
