from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.api.deps import get_current_user
from footiedrop.core.config import settings
from footiedrop.core.redis import create_session, delete_session, delete_all_sessions
from footiedrop.core import rate_limit
from footiedrop.db.session import get_db
from footiedrop.models.user import User
from footiedrop.schemas.auth import (
    RegisterIn,
    IssueOtpIn,
    OtpIssued,
    VerifyOtpIn,
    LoginIn,
    SessionOut,
    ForgotPasswordIn,
    ResetTokenCheck,
    ResetPasswordIn,
    ChangePasswordIn,
)
from footiedrop.schemas.user import UserOut
from footiedrop.schemas.common import Message
from footiedrop.services import accounts, otp, password_reset
from footiedrop.core.exceptions import AppException, InvalidCredentialError, raise_error
from footiedrop.core.error_codes import ErrorCode
from footiedrop.schemas.openapi import error_responses

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, responses=error_responses(400, 409, 502))
async def register(data: RegisterIn, db: AsyncSession = Depends(get_db)):
    return await accounts.register(db, data)


@router.post("/otp", response_model=OtpIssued, responses=error_responses(404, 409, 429, 502))
async def issue_otp(data: IssueOtpIn, db: AsyncSession = Depends(get_db)):
    ok = await rate_limit.set_cooldown(rate_limit.OTP, data.email, settings.OTP_RESEND_COOLDOWN_SECONDS)
    if not ok:
        raise_error(
            ErrorCode.VERIFICATION_RESEND_TOO_SOON,
            status.HTTP_429_TOO_MANY_REQUESTS,
            user_message="Please wait before requesting another code",
        )
    try:
        return await otp.issue_otp(db, data.email, resend=data.resend)
    except AppException:
        # nothing was sent, so the slot goes back
        await rate_limit.clear_cooldown(rate_limit.OTP, data.email)
        raise


@router.post("/otp/verify", response_model=Message, responses=error_responses(400, 404, 409, 429))
async def verify_otp(data: VerifyOtpIn, db: AsyncSession = Depends(get_db)):
    if await rate_limit.is_blocked(rate_limit.OTP, data.email):
        ttl = await rate_limit.block_ttl(rate_limit.OTP, data.email)
        raise_error(
            ErrorCode.VERIFICATION_ATTEMPTS_BLOCKED,
            status.HTTP_429_TOO_MANY_REQUESTS,
            user_message="Too many attempts. Try later.",
            details={"retry_after_seconds": ttl},
        )
    try:
        await otp.verify_otp(db, data.email, data.code)
    except InvalidCredentialError:
        # only wrong codes count towards the block
        await rate_limit.register_failure(
            rate_limit.OTP,
            data.email,
            settings.OTP_ATTEMPT_WINDOW_SECONDS,
            settings.OTP_MAX_ATTEMPTS,
            settings.OTP_BLOCK_SECONDS,
        )
        raise
    await rate_limit.reset_failures(rate_limit.OTP, data.email)
    return {"message": "OTP verified successfully"}


@router.post("/login", response_model=SessionOut, responses=error_responses(401, 429))
async def login(data: LoginIn, db: AsyncSession = Depends(get_db)):
    if await rate_limit.is_blocked(rate_limit.LOGIN, data.email):
        ttl = await rate_limit.block_ttl(rate_limit.LOGIN, data.email)
        raise_error(
            ErrorCode.LOGIN_BLOCKED,
            status.HTTP_429_TOO_MANY_REQUESTS,
            user_message="Too many attempts. Try later.",
            details={"retry_after_seconds": ttl},
        )

    user = await accounts.authenticate(db, data.email, data.password)
    if not user:
        await rate_limit.register_failure(
            rate_limit.LOGIN,
            data.email,
            settings.LOGIN_ATTEMPT_WINDOW_SECONDS,
            settings.LOGIN_MAX_ATTEMPTS,
            settings.LOGIN_BLOCK_SECONDS,
        )
        raise_error(ErrorCode.INVALID_CREDENTIALS, status.HTTP_401_UNAUTHORIZED, "Invalid email or password")

    await rate_limit.reset_failures(rate_limit.LOGIN, data.email)

    return SessionOut(session_token=await create_session(user.id))


@router.post("/logout", response_model=Message, responses=error_responses(401))
async def logout(
    x_session_token: str | None = Header(default=None, alias="X-Session-Token"),
):
    if not x_session_token:
        raise_error(ErrorCode.TOKEN_MISSING, status.HTTP_401_UNAUTHORIZED, "Missing session token")
    await delete_session(x_session_token)
    return {"message": "Logged out"}


@router.post("/forgot-password", response_model=Message, responses=error_responses(404, 502))
async def forgot_password(data: ForgotPasswordIn, db: AsyncSession = Depends(get_db)):
    await password_reset.request_password_reset(db, data.email)
    return {"message": "Password reset email sent successfully"}


@router.get("/reset-password/{token}", response_model=ResetTokenCheck, responses=error_responses(400, 404))
async def verify_reset_token(token: str, db: AsyncSession = Depends(get_db)):
    return await password_reset.verify_reset_token(db, token)


@router.post("/reset-password", response_model=Message, responses=error_responses(400, 404, 502))
async def reset_password(data: ResetPasswordIn, db: AsyncSession = Depends(get_db)):
    user = await password_reset.consume_reset_token(db, data.token, data.new_password)
    # Invalidate all sessions for safety
    await delete_all_sessions(user.id)
    return {"message": "Password updated successfully"}


@router.post("/change-password", response_model=SessionOut, responses=error_responses(400, 401))
async def change_password(
    payload: ChangePasswordIn,
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await accounts.change_password(db, current.id, payload.current_password, payload.new_password)

    # every session, the caller's included, is replaced by a fresh one
    await delete_all_sessions(current.id)
    return SessionOut(session_token=await create_session(current.id))
