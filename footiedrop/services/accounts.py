import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import AppException, ConflictError, InvalidCredentialError, NotFoundError
from footiedrop.core.security import hash_password, verify_password
from footiedrop.db import crud
from footiedrop.models.settings import UserSettings
from footiedrop.models.user import User
from footiedrop.schemas.auth import RegisterIn
from footiedrop.services.email import notify
from footiedrop.services.otp import issue_otp

log = logging.getLogger(__name__)


async def register(db: AsyncSession, data: RegisterIn) -> User:
    """Create an unverified account and send its first verification code."""
    if data.password != data.confirm_password:
        raise AppException(error_code=ErrorCode.PASSWORDS_DO_NOT_MATCH, user_message="Passwords do not match")
    if await crud.get_user_by_email(db, data.email):
        raise ConflictError(error_code=ErrorCode.EMAIL_ALREADY_REGISTERED, user_message="User with email already exists")
    if await crud.get_user_by_phone(db, data.phone):
        raise ConflictError(
            error_code=ErrorCode.PHONE_ALREADY_REGISTERED, user_message="User with phone number already exists"
        )

    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        settings=UserSettings(),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # lost a race against another registration with the same email/phone
        await db.rollback()
        raise ConflictError(error_code=ErrorCode.CONFLICT, user_message="User with email or phone already exists")
    log.info("Registered user %s", user.id)

    await notify("team", user.email, "Welcome to Footiedrop!", f"Welcome to our platform, {user.first_name}!")
    await issue_otp(db, user.email)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    user = await crud.get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


async def change_password(db: AsyncSession, user_id: int, current_password: str, new_password: str) -> None:
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError(error_code=ErrorCode.USER_NOT_FOUND, user_message="User not found")
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentialError(
            error_code=ErrorCode.INVALID_CREDENTIALS, user_message="Current password is incorrect"
        )
    # a direct change also retires any outstanding reset link
    await crud.update_user(db, user.id, password_hash=hash_password(new_password), reset_token=None)
    await db.commit()
    log.info("Password changed for user %s", user.id)
