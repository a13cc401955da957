"""Verification code issuance and consumption."""

import smtplib
from datetime import timedelta

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from footiedrop.core.clock import as_utc, utcnow
from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import (
    AlreadyInStateError,
    ConflictError,
    DependencyFailureError,
    ExpiredError,
    InvalidCredentialError,
    NotFoundError,
)
from footiedrop.db import crud
from footiedrop.models.verification import VerificationOtp
from footiedrop.services.otp import issue_otp, purge_expired_otps, verify_otp


async def _otp_count(db, user_id) -> int:
    res = await db.execute(select(func.count()).select_from(VerificationOtp).where(VerificationOtp.user_id == user_id))
    return res.scalar_one()


async def _expire_all(db):
    await db.execute(update(VerificationOtp).values(expires_at=utcnow() - timedelta(seconds=1)))
    await db.commit()


class TestIssueOtp:
    async def test_issue_persists_and_notifies(self, db, make_user, outbox):
        user = await make_user("a@x.com")
        before = utcnow()

        issued = await issue_otp(db, "a@x.com")

        assert issued.user_id == user.id
        assert before + timedelta(minutes=5) <= issued.expires_at <= utcnow() + timedelta(minutes=5)
        stored = await crud.get_otp_by_user_id(db, user.id)
        assert stored is not None
        assert len(stored.code) == 4 and 1000 <= int(stored.code) <= 9999
        assert len(outbox.to("a@x.com")) == 1
        assert outbox[-1]["subject"] == "Verification Code"
        assert outbox.last_otp("a@x.com") == stored.code

    async def test_unknown_email_is_not_found(self, db, outbox):
        with pytest.raises(NotFoundError) as exc:
            await issue_otp(db, "nobody@x.com")
        assert exc.value.error_code == ErrorCode.USER_NOT_FOUND
        assert outbox == []

    async def test_reissue_without_resend_is_rejected_while_live(self, db, make_user, outbox):
        user = await make_user()
        await issue_otp(db, "a@x.com")
        first = outbox.last_otp("a@x.com")

        with pytest.raises(ConflictError) as exc:
            await issue_otp(db, "a@x.com")

        assert exc.value.error_code == ErrorCode.OTP_ALREADY_ISSUED
        assert await _otp_count(db, user.id) == 1
        assert (await crud.get_otp_by_user_id(db, user.id)).code == first
        assert len(outbox) == 1

    async def test_reissue_without_resend_replaces_expired_code(self, db, make_user, outbox):
        user = await make_user()
        await issue_otp(db, "a@x.com")
        await _expire_all(db)

        await issue_otp(db, "a@x.com")

        assert await _otp_count(db, user.id) == 1
        otp = await crud.get_otp_by_user_id(db, user.id)
        assert as_utc(otp.expires_at) > utcnow()

    async def test_resend_revokes_previous_code(self, db, make_user, outbox, monkeypatch):
        user = await make_user()
        codes = iter(["1111", "2222"])
        monkeypatch.setattr("footiedrop.services.otp.gen_otp", lambda: next(codes))

        await issue_otp(db, "a@x.com")
        await issue_otp(db, "a@x.com", resend=True)

        assert await _otp_count(db, user.id) == 1
        with pytest.raises(InvalidCredentialError) as exc:
            await verify_otp(db, "a@x.com", "1111")
        assert exc.value.error_code == ErrorCode.VERIFICATION_CODE_INVALID
        await verify_otp(db, "a@x.com", "2222")

    async def test_store_rejects_second_live_record(self, db, make_user):
        user = await make_user()
        expires = utcnow() + timedelta(minutes=5)
        await crud.save_otp(db, user.id, "1234", expires)
        await db.commit()

        with pytest.raises(IntegrityError):
            await crud.save_otp(db, user.id, "5678", expires)
        await db.rollback()

    async def test_concurrent_insert_maps_to_conflict(self, db, make_user, outbox, monkeypatch):
        user = await make_user()

        async def lost_race(*args, **kwargs):
            raise IntegrityError("INSERT INTO verification_otps", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(crud, "save_otp", lost_race)

        with pytest.raises(ConflictError) as exc:
            await issue_otp(db, "a@x.com")

        assert exc.value.error_code == ErrorCode.OTP_ALREADY_ISSUED
        assert await _otp_count(db, user.id) == 0
        assert outbox == []

    async def test_notifier_failure_is_best_effort_by_default(self, db, make_user, monkeypatch, caplog):
        user = await make_user()

        async def broken(*args, **kwargs):
            raise smtplib.SMTPException("relay down")

        monkeypatch.setattr("footiedrop.services.email.send_email", broken)

        issued = await issue_otp(db, "a@x.com")

        assert issued.user_id == user.id
        assert await _otp_count(db, user.id) == 1
        assert "relay down" in caplog.text

    async def test_notifier_failure_is_surfaced_when_strict(self, db, make_user, monkeypatch, strict_notify):
        user = await make_user()

        async def broken(*args, **kwargs):
            raise smtplib.SMTPException("relay down")

        monkeypatch.setattr("footiedrop.services.email.send_email", broken)

        with pytest.raises(DependencyFailureError) as exc:
            await issue_otp(db, "a@x.com")

        assert exc.value.error_code == ErrorCode.EMAIL_SEND_FAILED
        assert exc.value.status_code == 502
        # the store write is not rolled back
        assert await _otp_count(db, user.id) == 1


class TestVerifyOtp:
    async def test_issue_then_verify_succeeds_once(self, db, make_user, outbox):
        user = await make_user()
        await issue_otp(db, "a@x.com")
        code = outbox.last_otp("a@x.com")

        await verify_otp(db, "a@x.com", code)

        assert await crud.is_verified(db, user.id)
        assert await crud.get_otp_by_user_id(db, user.id) is None

        with pytest.raises(AlreadyInStateError) as exc:
            await verify_otp(db, "a@x.com", code)
        assert exc.value.error_code == ErrorCode.EMAIL_ALREADY_VERIFIED

    async def test_wrong_code(self, db, make_user, outbox, monkeypatch):
        user = await make_user()
        monkeypatch.setattr("footiedrop.services.otp.gen_otp", lambda: "4321")
        await issue_otp(db, "a@x.com")

        with pytest.raises(InvalidCredentialError):
            await verify_otp(db, "a@x.com", "1234")
        assert not await crud.is_verified(db, user.id)
        # a wrong guess does not burn the real code
        await verify_otp(db, "a@x.com", "4321")

    async def test_expired_code_never_verifies(self, db, make_user, outbox):
        user = await make_user()
        await issue_otp(db, "a@x.com")
        code = outbox.last_otp("a@x.com")
        await _expire_all(db)

        with pytest.raises(ExpiredError) as exc:
            await verify_otp(db, "a@x.com", code)

        assert exc.value.error_code == ErrorCode.VERIFICATION_CODE_EXPIRED
        assert not await crud.is_verified(db, user.id)
        assert await _otp_count(db, user.id) == 1

    async def test_flag_flip_is_undone_when_code_vanishes(self, db, make_user, outbox, monkeypatch):
        user = await make_user()
        await issue_otp(db, "a@x.com")
        code = outbox.last_otp("a@x.com")

        async def already_deleted(*args, **kwargs):
            return 0

        monkeypatch.setattr(crud, "delete_otp", already_deleted)

        with pytest.raises(InvalidCredentialError) as exc:
            await verify_otp(db, "a@x.com", code)

        assert exc.value.error_code == ErrorCode.VERIFICATION_CODE_INVALID
        assert not await crud.is_verified(db, user.id)

    async def test_unknown_email(self, db):
        with pytest.raises(NotFoundError):
            await verify_otp(db, "nobody@x.com", "1234")

    async def test_already_verified_user_short_circuits(self, db, make_user):
        await make_user(verified=True)
        with pytest.raises(AlreadyInStateError):
            await verify_otp(db, "a@x.com", "1234")

    async def test_verification_is_visible_to_other_sessions(self, db, session_factory, make_user, outbox):
        user = await make_user()
        await issue_otp(db, "a@x.com")
        await verify_otp(db, "a@x.com", outbox.last_otp("a@x.com"))

        async with session_factory() as other:
            assert await crud.is_verified(other, user.id)
            assert await crud.get_otp_by_user_id(other, user.id) is None


class TestPurgeExpiredOtps:
    async def test_removes_only_expired_records(self, db, make_user):
        stale = await make_user("stale@x.com")
        live = await make_user("live@x.com")
        now = utcnow()
        await crud.save_otp(db, stale.id, "1111", now - timedelta(minutes=1))
        await crud.save_otp(db, live.id, "2222", now + timedelta(minutes=4))
        await db.commit()

        removed = await purge_expired_otps(db, now)

        assert removed == 1
        assert await crud.get_otp_by_user_id(db, stale.id) is None
        assert await crud.get_otp_by_user_id(db, live.id) is not None
