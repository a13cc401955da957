"""Online/offline presence, gated on email verification.

Going online requires every entry of ``ONLINE_PRECONDITIONS`` to pass, in
order; the first failing one aborts the toggle with its message. Going
offline is always allowed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import AlreadyInStateError, NotFoundError, PreconditionFailedError
from footiedrop.db import crud
from footiedrop.models.enums import UserStatus
from footiedrop.models.user import User
from footiedrop.schemas.user import StatusOut

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Precondition:
    name: str
    check: Callable[[User], bool]
    message: str
    error_code: ErrorCode = ErrorCode.BAD_REQUEST


def _is_verified(user: User) -> bool:
    return bool(user.settings and user.settings.verified)


ONLINE_PRECONDITIONS: list[Precondition] = [
    Precondition(
        name="verified",
        check=_is_verified,
        message="Email must be verified to come online.",
        error_code=ErrorCode.EMAIL_NOT_VERIFIED,
    ),
]


def check_online_conditions(user: User, preconditions: list[Precondition] | None = None) -> None:
    for condition in ONLINE_PRECONDITIONS if preconditions is None else preconditions:
        if not condition.check(user):
            raise PreconditionFailedError(
                error_code=condition.error_code,
                user_message=condition.message,
                details={"precondition": condition.name},
            )


async def _load_user(db: AsyncSession, user_id: int, *, for_update: bool = False) -> User:
    user = await crud.get_user_by_id(db, user_id, for_update=for_update)
    if not user:
        raise NotFoundError(error_code=ErrorCode.USER_NOT_FOUND, user_message="User not found.")
    return user


async def toggle_status(db: AsyncSession, user_id: int) -> StatusOut:
    user = await _load_user(db, user_id, for_update=True)
    current = user.status
    if current == UserStatus.offline:
        check_online_conditions(user)
        target = UserStatus.online
    else:
        target = UserStatus.offline

    if not await crud.set_status_if(db, user.id, current, target):
        raise AlreadyInStateError(
            error_code=ErrorCode.STATUS_ALREADY_CHANGED,
            user_message="Status was changed by another request, please retry.",
        )
    await db.commit()
    log.info("User %s is now %s", user.id, target.value)
    return StatusOut(status=target)


async def get_status(db: AsyncSession, user_id: int) -> StatusOut:
    user = await _load_user(db, user_id)
    return StatusOut(status=user.status)
