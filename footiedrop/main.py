import logging

import sentry_sdk
from fastapi import FastAPI, Request, status
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from footiedrop.schemas.common import ErrorResponse
from footiedrop.core.exceptions import AppException
from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.logging_config import setup_logging

from footiedrop.api.routes import auth, users
from footiedrop.core.config import settings
from footiedrop.db.session import async_session

setup_logging()
log = logging.getLogger(__name__)

if settings.SENTRY_DSN:
    # FastAPI and Starlette integrations are enabled automatically
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.2,
        environment=settings.ENV,
        release=settings.GIT_SHA,
    )

app = FastAPI(title="Footiedrop API", version="0.1.0")

@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_detail(exc.detail).model_dump(mode="json"),
    )

@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error_code=ErrorCode.VALIDATION_ERROR,
            user_message="Invalid request data",
            details={"errors": jsonable_encoder(exc.errors())},
        ).model_dump(mode="json"),
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Map plain HTTPExceptions (if any) into our envelope
    code_map = {
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.CONFLICT,
        429: ErrorCode.RATE_LIMITED,
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error_code=code_map.get(exc.status_code, ErrorCode.BAD_REQUEST),
            user_message=str(exc.detail) if exc.detail else None,
        ).model_dump(mode="json"),
    )

@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # driver messages stay in the log, never in the response
    log.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    msg = str(exc.orig).lower() if exc.orig else ""
    if "unique" in msg or "duplicate" in msg:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=ErrorResponse(
                error_code=ErrorCode.UNIQUE_CONSTRAINT_VIOLATION,
                user_message="Unique constraint violated",
            ).model_dump(mode="json"),
        )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error_code=ErrorCode.DATABASE_ERROR,
            user_message="Database error",
        ).model_dump(mode="json"),
    )

@app.exception_handler(SQLAlchemyError)
async def sa_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception("Database error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error_code=ErrorCode.DATABASE_ERROR,
            user_message="Database error",
        ).model_dump(mode="json"),
    )

@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error_code=ErrorCode.INTERNAL_ERROR,
            user_message="Internal server error",
        ).model_dump(mode="json"),
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # tighten in prod (or read from env)
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)

scheduler: AsyncIOScheduler | None = None

@app.on_event("startup")
async def on_startup():
    # expiry is enforced lazily on verify; this only keeps the table small
    global scheduler
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _purge_otps_job,
        IntervalTrigger(minutes=settings.OTP_PURGE_INTERVAL_MINUTES, timezone="UTC"),
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()

@app.on_event("shutdown")
async def on_shutdown():
    if scheduler:
        scheduler.shutdown(wait=False)

async def _purge_otps_job():
    from footiedrop.services.otp import purge_expired_otps
    async with async_session() as db:
        await purge_expired_otps(db)
