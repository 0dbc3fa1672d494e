"""Account lifecycle at the service layer: atomicity and races."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from freelancehub.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    InternalError,
    RefreshTokenExpired,
    StorageUnavailable,
    TokenNotFound,
    VerificationTokenExpired,
)
from freelancehub.core.security import utcnow
from freelancehub.models import EmailVerificationToken, Profile, RefreshToken, User
from freelancehub.schemas.user import SignupRequest
from freelancehub.services.accounts import AccountService
from freelancehub.services.tokens import TokenService

from conftest import PASSWORD


def _signup(email="bob@example.com", **extra) -> SignupRequest:
    return SignupRequest(email=email, password=PASSWORD, **extra)


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


async def test_signup_creates_user_token_and_session(session):
    result = await AccountService(session).signup(_signup(email="Bob@Example.com"))

    assert result.user.email == "bob@example.com"
    assert result.user.is_verified is False
    assert await _count(session, User) == 1
    assert await _count(session, EmailVerificationToken) == 1
    assert await _count(session, RefreshToken) == 1
    # No name given, no seed profile
    assert await _count(session, Profile) == 0


async def test_signup_with_name_seeds_incomplete_profile(session):
    result = await AccountService(session).signup(_signup(full_name="Bob Builder"))

    profile = await session.scalar(select(Profile).where(Profile.user_id == result.user.id))
    assert profile.full_name == "Bob Builder"
    assert profile.completed_at is None


async def test_signup_failure_before_commit_leaves_nothing(session, monkeypatch):
    """A failure after the user insert rolls back the whole signup."""

    def explode(self, user_id, now=None):
        raise RuntimeError("mail queue down")

    monkeypatch.setattr(TokenService, "issue_verification_token", explode)

    with pytest.raises(RuntimeError):
        await AccountService(session).signup(_signup(full_name="Bob Builder"))

    assert await _count(session, User) == 0
    assert await _count(session, EmailVerificationToken) == 0
    assert await _count(session, Profile) == 0
    assert await _count(session, RefreshToken) == 0


async def test_signup_duplicate_email_is_case_insensitive(session):
    await AccountService(session).signup(_signup(email="bob@example.com"))
    with pytest.raises(DuplicateEmail):
        await AccountService(session).signup(_signup(email="BOB@example.com"))
    assert await _count(session, User) == 1


async def test_signup_constraint_violation_maps_to_duplicate_email(database, monkeypatch):
    """Force the race: the pre-check misses a row that the constraint then catches."""
    async with database.session() as first:
        await AccountService(first).signup(_signup())

    async def email_free(self, email):
        return False

    monkeypatch.setattr(AccountService, "_email_taken", email_free)
    async with database.session() as second:
        with pytest.raises(DuplicateEmail):
            await AccountService(second).signup(_signup())

    async with database.session() as check:
        assert await _count(check, User) == 1
        assert await _count(check, EmailVerificationToken) == 1


async def test_concurrent_signups_exactly_one_wins(database):
    async def attempt():
        async with database.session() as s:
            return await AccountService(s).signup(_signup(full_name="Bob Builder"))

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], DuplicateEmail)

    async with database.session() as check:
        assert await _count(check, User) == 1
        assert await _count(check, Profile) == 1
        assert await _count(check, EmailVerificationToken) == 1


async def test_login_failures_are_indistinguishable(session):
    await AccountService(session).signup(_signup())

    with pytest.raises(InvalidCredentials) as wrong_password:
        await AccountService(session).login("bob@example.com", "Wrong1234")
    with pytest.raises(InvalidCredentials) as unknown_user:
        await AccountService(session).login("nobody@example.com", PASSWORD)

    assert wrong_password.value.message == unknown_user.value.message
    assert wrong_password.value.status_code == unknown_user.value.status_code


async def test_login_opens_another_session(session):
    await AccountService(session).signup(_signup())
    result = await AccountService(session).login("BOB@example.com", PASSWORD)

    assert result.user.email == "bob@example.com"
    assert await _count(session, RefreshToken) == 2


async def test_verification_token_is_single_use(session):
    signed_up = await AccountService(session).signup(_signup())
    token = await session.scalar(select(EmailVerificationToken.token))

    assert await AccountService(session).verify_email(token) == signed_up.user.id
    user = await session.scalar(
        select(User).where(User.id == signed_up.user.id).execution_options(populate_existing=True)
    )
    assert user.is_verified is True

    with pytest.raises(TokenNotFound):
        await AccountService(session).verify_email(token)


async def test_expired_verification_token_is_kept(session):
    await AccountService(session).signup(_signup())
    token = await session.scalar(select(EmailVerificationToken.token))

    with pytest.raises(VerificationTokenExpired):
        await AccountService(session).verify_email(token, now=utcnow() + timedelta(hours=25))
    assert await _count(session, EmailVerificationToken) == 1


async def test_refresh_issues_access_token_without_rotation(session):
    signed_up = await AccountService(session).signup(_signup())
    service = AccountService(session)

    access = await service.refresh_access_token(signed_up.refresh_token)
    claims = service.tokens.verify_access_token(access)
    assert claims.user_id == signed_up.user.id
    assert await _count(session, RefreshToken) == 1

    with pytest.raises(RefreshTokenExpired):
        await service.refresh_access_token(
            signed_up.refresh_token, now=utcnow() + timedelta(days=31)
        )


async def test_logout_is_idempotent(session):
    signed_up = await AccountService(session).signup(_signup())
    service = AccountService(session)

    await service.logout(signed_up.refresh_token)
    await service.logout(signed_up.refresh_token)
    await service.logout(None)
    assert await _count(session, RefreshToken) == 0


async def test_unexpected_storage_error_becomes_internal_error(session, monkeypatch):
    from sqlalchemy.exc import ProgrammingError

    async def broken(*args, **kwargs):
        raise ProgrammingError("SELECT", {}, Exception("relation does not exist"))

    monkeypatch.setattr(session, "scalar", broken)
    with pytest.raises(InternalError):
        await AccountService(session).login("bob@example.com", PASSWORD)


async def test_signup_storage_outage_commits_nothing(session, monkeypatch):
    from sqlalchemy.exc import OperationalError

    async def connection_refused():
        raise OperationalError("INSERT", {}, Exception("connection refused"))

    monkeypatch.setattr(session, "flush", connection_refused)
    with pytest.raises(StorageUnavailable):
        await AccountService(session).signup(_signup(full_name="Bob Builder"))

    monkeypatch.undo()
    assert await _count(session, User) == 0
    assert await _count(session, EmailVerificationToken) == 0
    assert await _count(session, Profile) == 0


async def test_login_pool_timeout_is_storage_unavailable(session, monkeypatch):
    from sqlalchemy.exc import TimeoutError as PoolTimeoutError

    async def pool_exhausted(*args, **kwargs):
        raise PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached")

    monkeypatch.setattr(session, "scalar", pool_exhausted)
    with pytest.raises(StorageUnavailable):
        await AccountService(session).login("bob@example.com", PASSWORD)


async def test_login_unknown_account_hashes_off_the_event_loop(session, monkeypatch):
    import threading

    from freelancehub.core import security

    seen = []
    original = security.dummy_password_hash

    def record(rounds):
        seen.append((rounds, threading.current_thread() is threading.main_thread()))
        return original(rounds)

    monkeypatch.setattr(security, "dummy_password_hash", record)
    service = AccountService(session)
    with pytest.raises(InvalidCredentials):
        await service.login("nobody@example.com", PASSWORD)

    assert seen == [(service.settings.BCRYPT_ROUNDS, False)]
    assert original(4).startswith("$2b$04$")
