"""Verification-gated presence toggle."""

import pytest

from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import AlreadyInStateError, NotFoundError, PreconditionFailedError
from footiedrop.db import crud
from footiedrop.models.enums import UserStatus
from footiedrop.services import presence
from footiedrop.services.otp import issue_otp, verify_otp


class TestToggle:
    async def test_unverified_user_cannot_go_online(self, db, make_user):
        user = await make_user()

        with pytest.raises(PreconditionFailedError) as exc:
            await presence.toggle_status(db, user.id)

        assert exc.value.error_code == ErrorCode.EMAIL_NOT_VERIFIED
        assert exc.value.user_message == "Email must be verified to come online."
        assert exc.value.details == {"precondition": "verified"}
        assert (await presence.get_status(db, user.id)).status == UserStatus.offline

    async def test_user_goes_online_after_verification(self, db, make_user, outbox):
        user = await make_user()
        with pytest.raises(PreconditionFailedError):
            await presence.toggle_status(db, user.id)

        await issue_otp(db, "a@x.com")
        await verify_otp(db, "a@x.com", outbox.last_otp("a@x.com"))

        assert (await presence.toggle_status(db, user.id)).status == UserStatus.online
        assert (await presence.get_status(db, user.id)).status == UserStatus.online

    async def test_going_offline_is_unconditional(self, db, make_user):
        user = await make_user(status=UserStatus.online)

        result = await presence.toggle_status(db, user.id)

        assert result.status == UserStatus.offline

    async def test_round_trip(self, db, make_user):
        user = await make_user(verified=True)

        assert (await presence.toggle_status(db, user.id)).status == UserStatus.online
        assert (await presence.toggle_status(db, user.id)).status == UserStatus.offline

    async def test_missing_user(self, db):
        with pytest.raises(NotFoundError):
            await presence.toggle_status(db, 404)
        with pytest.raises(NotFoundError):
            await presence.get_status(db, 404)

    async def test_lost_race_reports_already_in_state(self, db, make_user, monkeypatch):
        user = await make_user(verified=True)

        async def concurrent_winner(*args, **kwargs):
            return False

        monkeypatch.setattr(crud, "set_status_if", concurrent_winner)

        with pytest.raises(AlreadyInStateError) as exc:
            await presence.toggle_status(db, user.id)
        assert exc.value.error_code == ErrorCode.STATUS_ALREADY_CHANGED

    async def test_status_flip_is_conditional_on_current_state(self, db, make_user):
        user = await make_user()

        assert not await crud.set_status_if(db, user.id, UserStatus.online, UserStatus.offline)
        assert await crud.set_status_if(db, user.id, UserStatus.offline, UserStatus.online)
        await db.rollback()


class TestPreconditions:
    async def test_first_failing_precondition_wins(self, db, make_user):
        user = await make_user(verified=True)
        rules = [
            presence.Precondition("verified", lambda u: True, "unused"),
            presence.Precondition("has_phone", lambda u: False, "Add a phone number first."),
            presence.Precondition("never_reached", lambda u: False, "unreachable"),
        ]

        with pytest.raises(PreconditionFailedError) as exc:
            presence.check_online_conditions(user, rules)

        assert exc.value.user_message == "Add a phone number first."
        assert exc.value.details == {"precondition": "has_phone"}

    async def test_extra_rule_blocks_toggle(self, db, make_user, monkeypatch):
        user = await make_user(verified=True)
        monkeypatch.setattr(
            presence,
            "ONLINE_PRECONDITIONS",
            presence.ONLINE_PRECONDITIONS + [presence.Precondition("closed", lambda u: False, "Shop is closed.")],
        )

        with pytest.raises(PreconditionFailedError) as exc:
            await presence.toggle_status(db, user.id)

        assert exc.value.user_message == "Shop is closed."
        assert (await presence.get_status(db, user.id)).status == UserStatus.offline
