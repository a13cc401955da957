# Credential store: the only place that talks SQL for users, settings and OTPs.
# Nothing here commits; the calling service owns the transaction.
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.models.enums import UserStatus
from footiedrop.models.settings import UserSettings
from footiedrop.models.user import User
from footiedrop.models.verification import VerificationOtp


async def get_user_by_email(db: AsyncSession, email: str, *, for_update: bool = False) -> Optional[User]:
    q = select(User).where(User.email == email)
    if for_update:
        # a locked read must not be served from stale identity-map state
        q = q.with_for_update().execution_options(populate_existing=True)
    res = await db.execute(q)
    return res.scalars().first()

async def get_user_by_id(db: AsyncSession, user_id: int, *, for_update: bool = False) -> Optional[User]:
    q = select(User).where(User.id == user_id)
    if for_update:
        # a locked read must not be served from stale identity-map state
        q = q.with_for_update().execution_options(populate_existing=True)
    res = await db.execute(q)
    return res.scalars().first()

async def get_user_by_phone(db: AsyncSession, phone: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.phone == phone))
    return res.scalars().first()

async def update_user(db: AsyncSession, user_id: int, **fields) -> int:
    res = await db.execute(update(User).where(User.id == user_id).values(**fields))
    return res.rowcount

async def is_verified(db: AsyncSession, user_id: int) -> bool:
    res = await db.execute(select(UserSettings.verified).where(UserSettings.user_id == user_id))
    return bool(res.scalar())

async def mark_verified(db: AsyncSession, user_id: int) -> bool:
    """Flip the verified flag; False when it was already set (or no settings row)."""
    res = await db.execute(
        update(UserSettings)
        .where(UserSettings.user_id == user_id, UserSettings.verified.is_(False))
        .values(verified=True)
    )
    return res.rowcount == 1


# --- verification OTPs ---

async def get_otp_by_user_id(db: AsyncSession, user_id: int) -> Optional[VerificationOtp]:
    res = await db.execute(select(VerificationOtp).where(VerificationOtp.user_id == user_id))
    return res.scalars().first()

async def get_otp_by_user_id_and_code(db: AsyncSession, user_id: int, code: str) -> Optional[VerificationOtp]:
    res = await db.execute(
        select(VerificationOtp).where(VerificationOtp.user_id == user_id, VerificationOtp.code == code)
    )
    return res.scalars().first()

async def delete_otp(db: AsyncSession, otp_id: int) -> int:
    res = await db.execute(delete(VerificationOtp).where(VerificationOtp.id == otp_id))
    return res.rowcount

async def save_otp(db: AsyncSession, user_id: int, code: str, expires_at: datetime) -> VerificationOtp:
    otp = VerificationOtp(user_id=user_id, code=code, expires_at=expires_at)
    db.add(otp)
    # flush so the unique constraint fires inside the caller's transaction
    await db.flush()
    return otp

async def delete_expired_otps(db: AsyncSession, now: datetime) -> int:
    res = await db.execute(
        delete(VerificationOtp)
        .where(VerificationOtp.expires_at < now)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount


# --- reset token pointer ---

async def set_reset_token(db: AsyncSession, user_id: int, token: str) -> int:
    return await update_user(db, user_id, reset_token=token)

async def swap_password_for_reset_token(db: AsyncSession, user_id: int, token: str, password_hash: str) -> bool:
    """Set the new password and clear the pointer, only if `token` is still the stored one."""
    res = await db.execute(
        update(User)
        .where(User.id == user_id, User.reset_token == token)
        .values(password_hash=password_hash, reset_token=None)
    )
    return res.rowcount == 1


# --- presence ---

async def set_status_if(db: AsyncSession, user_id: int, expected: UserStatus, new: UserStatus) -> bool:
    res = await db.execute(
        update(User).where(User.id == user_id, User.status == expected).values(status=new)
    )
    return res.rowcount == 1
