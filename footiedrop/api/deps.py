import logging

from fastapi import Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import raise_error
from footiedrop.core.redis import delete_session, extend_session, get_session_user_id
from footiedrop.db import crud
from footiedrop.db.session import get_db
from footiedrop.models.user import User

log = logging.getLogger(__name__)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    x_session_token: str | None = Header(default=None, alias="X-Session-Token"),
) -> User:
    """Resolve the caller from the session id in ``X-Session-Token``."""
    if not x_session_token:
        raise_error(ErrorCode.TOKEN_MISSING, status.HTTP_401_UNAUTHORIZED, "Missing session token")
    user_id = await get_session_user_id(x_session_token)
    if not user_id:
        raise_error(ErrorCode.SESSION_INVALID, status.HTTP_401_UNAUTHORIZED, "Invalid session")

    user = await crud.get_user_by_id(db, user_id)
    if not user:
        # account is gone, the session must not outlive it
        log.info("Dropping session of missing user %s", user_id)
        await delete_session(x_session_token)
        raise_error(ErrorCode.SESSION_INVALID, status.HTTP_401_UNAUTHORIZED, "Invalid session")

    await extend_session(x_session_token)
    return user
