"""Email verification one-time passcodes.

A user has at most one live OTP. Issuance replaces the stored record inside
one transaction and the unique constraint on ``verification_otps.user_id``
rejects a concurrent second insert. Verification flips the user's verified
flag and deletes the consumed record in the same transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.core.clock import as_utc, utcnow
from footiedrop.core.config import settings
from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import (
    AlreadyInStateError,
    ConflictError,
    ExpiredError,
    InvalidCredentialError,
    NotFoundError,
)
from footiedrop.core.security import gen_otp
from footiedrop.db import crud
from footiedrop.schemas.auth import OtpIssued
from footiedrop.services.email import notify

log = logging.getLogger(__name__)


def _user_not_found() -> NotFoundError:
    return NotFoundError(error_code=ErrorCode.USER_NOT_FOUND, user_message="User not found")


async def issue_otp(db: AsyncSession, email: str, resend: bool = False) -> OtpIssued:
    """Create a verification code for `email` and mail it to the user.

    Without `resend`, an existing live code is left alone and the call fails
    with ConflictError; an expired one is replaced. With `resend` the previous
    code is always revoked.
    """
    user = await crud.get_user_by_email(db, email, for_update=True)
    if not user:
        raise _user_not_found()

    now = utcnow()
    existing = await crud.get_otp_by_user_id(db, user.id)
    if existing:
        if not resend and as_utc(existing.expires_at) >= now:
            raise ConflictError(
                error_code=ErrorCode.OTP_ALREADY_ISSUED,
                user_message="A verification code was already sent, request a resend instead",
            )
        await crud.delete_otp(db, existing.id)

    code = gen_otp()
    expires_at = now + timedelta(minutes=settings.OTP_TTL_MINUTES)
    try:
        otp = await crud.save_otp(db, user.id, code, expires_at)
        await db.commit()
    except IntegrityError:
        # a concurrent issuance inserted first
        await db.rollback()
        raise ConflictError(
            error_code=ErrorCode.OTP_ALREADY_ISSUED,
            user_message="A verification code was already sent, request a resend instead",
        )
    log.info("Issued verification code for user %s (resend=%s)", user.id, resend)

    await notify(
        "team",
        user.email,
        "Verification Code",
        f"Your verification code is {code}.<br/>This code expires in {settings.OTP_TTL_MINUTES} minutes.",
    )
    return OtpIssued(user_id=user.id, expires_at=as_utc(otp.expires_at))


async def verify_otp(db: AsyncSession, email: str, code: str) -> None:
    user = await crud.get_user_by_email(db, email, for_update=True)
    if not user:
        raise _user_not_found()

    if await crud.is_verified(db, user.id):
        raise AlreadyInStateError(
            error_code=ErrorCode.EMAIL_ALREADY_VERIFIED, user_message="User is already verified"
        )

    otp = await crud.get_otp_by_user_id_and_code(db, user.id, code)
    if not otp:
        raise InvalidCredentialError(error_code=ErrorCode.VERIFICATION_CODE_INVALID, user_message="Invalid code")

    if as_utc(otp.expires_at) < utcnow():
        raise ExpiredError(error_code=ErrorCode.VERIFICATION_CODE_EXPIRED, user_message="Code expired")

    # both writes are conditional so a concurrent verifier cannot apply either twice
    if not await crud.mark_verified(db, user.id):
        raise AlreadyInStateError(
            error_code=ErrorCode.EMAIL_ALREADY_VERIFIED, user_message="User is already verified"
        )
    if not await crud.delete_otp(db, otp.id):
        # the flag flip above must not survive on its own
        await db.rollback()
        raise InvalidCredentialError(error_code=ErrorCode.VERIFICATION_CODE_INVALID, user_message="Invalid code")
    await db.commit()
    log.info("User %s verified their email", user.id)


async def purge_expired_otps(db: AsyncSession, now: datetime | None = None) -> int:
    removed = await crud.delete_expired_otps(db, now or utcnow())
    await db.commit()
    if removed:
        log.info("Purged %d expired verification code(s)", removed)
    return removed
