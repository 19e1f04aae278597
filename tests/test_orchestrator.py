"""
Tests for the login orchestrator.
"""

import asyncio
from datetime import timedelta

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from otp_gate.config import OtpGateConfig
from otp_gate.credentials import PasswordCredentialVerifier
from otp_gate.exceptions import (
    AuthError,
    DeliveryError,
    DeliveryFailed,
    InvalidCredentials,
    InvalidLoginState,
    NotFound,
    OtpAlreadyConsumed,
    OtpExpired,
    OtpMismatch,
    OtpRetryLimitExceeded,
)
from otp_gate.models import LoginAttempt, LoginState, User
from otp_gate.notifier import QueuedNotifier
from otp_gate.orchestrator import LoginOrchestrator
from otp_gate.password import hash_password
from otp_gate.sessions import InMemorySessionManager
from otp_gate.store import InMemoryChallengeStore
from otp_gate.users import InMemoryUserRepository

PASSWORD = "correct horse"


class StubVerifier:
    """Accepts PASSWORD for any known email."""

    def __init__(self, users):
        self.users = users

    async def verify(self, identifier, secret):
        user = await self.users.find_by_identifier(identifier)
        if user is None or secret != PASSWORD:
            raise AuthError("nope")
        return user


class FailingNotifier:
    async def send(self, user, code):
        raise DeliveryError("smtp queue unavailable")


class UnavailableStore(InMemoryChallengeStore):
    async def put(self, user_id, code, ttl):
        raise RedisConnectionError("connection refused")


class RacingStore(InMemoryChallengeStore):
    """A concurrent login writes a fresh challenge right after every read."""

    replacement = None

    async def get(self, user_id):
        snapshot = await super().get(user_id)
        if snapshot is not None:
            self.replacement = await self.put(user_id, "999999", ttl=300)
        return snapshot


class RecordingAttempts:
    """Stands in for LoginAttempt so tests can inspect attempts begin() creates."""

    def __init__(self):
        self.created = []

    def __call__(self, **fields):
        attempt = LoginAttempt(**fields)
        self.created.append(attempt)
        return attempt


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def notifier():
    return QueuedNotifier(asyncio.Queue(maxsize=10))


@pytest.fixture
def sessions():
    return InMemorySessionManager()


@pytest.fixture
def make_gate(users, notifier, sessions, store, clock):
    def _make(config=None, notifier_override=None, store_override=None):
        return LoginOrchestrator(
            verifier=StubVerifier(users),
            notifier=notifier_override or notifier,
            sessions=sessions,
            store=store if store_override is None else store_override,
            config=config or OtpGateConfig(),
            users=users,
            clock=clock,
        )
    return _make


async def add_user(users, **fields):
    return await users.create(
        name="Admin User", email="admin@example.com", credential_hash="x", **fields
    )


def delivered_code(notifier):
    return notifier.queue.get_nowait().code


class TestPrimaryCredentials:
    @pytest.mark.asyncio
    async def test_wrong_password(self, make_gate, users):
        await add_user(users)

        with pytest.raises(InvalidCredentials) as wrong_secret:
            await make_gate().begin("admin@example.com", "guess")

        with pytest.raises(InvalidCredentials) as unknown_user:
            await make_gate().begin("ghost@example.com", PASSWORD)

        # Same message either way so accounts cannot be enumerated
        assert str(wrong_secret.value) == str(unknown_user.value)
        assert wrong_secret.value.code == unknown_user.value.code


class TestOtpFlow:
    @pytest.mark.asyncio
    async def test_otp_required_for_first_login(self, make_gate, users, notifier, store):
        user = await add_user(users)

        attempt = await make_gate().begin("admin@example.com", PASSWORD)

        assert attempt.state == LoginState.AWAITING_OTP
        assert attempt.session_token is None
        assert notifier.queue.qsize() == 1
        assert await store.get(user.id) is not None

    @pytest.mark.asyncio
    async def test_correct_code_authenticates(self, make_gate, users, notifier, sessions, clock):
        user = await add_user(users)
        gate = make_gate()
        attempt = await gate.begin("admin@example.com", PASSWORD)

        clock.advance(30)
        attempt = await gate.submit_otp(attempt, delivered_code(notifier))

        assert attempt.state == LoginState.AUTHENTICATED
        assert attempt.is_authenticated
        assert sessions.resolve(attempt.session_token) == user.id
        stored = await users.get(user.id)
        assert stored.last_full_login_at == clock()

    @pytest.mark.asyncio
    async def test_replayed_code_reports_reuse(self, make_gate, users, notifier):
        user = await add_user(users)
        gate = make_gate()
        attempt = await gate.begin("admin@example.com", PASSWORD)
        code = delivered_code(notifier)
        await gate.submit_otp(attempt, code)

        with pytest.raises(OtpAlreadyConsumed):
            await gate.generator.validate(user.id, code)

    @pytest.mark.asyncio
    async def test_wrong_code_can_be_retried(self, make_gate, users, notifier):
        await add_user(users)
        gate = make_gate()
        attempt = await gate.begin("admin@example.com", PASSWORD)
        code = delivered_code(notifier)
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(OtpMismatch):
            await gate.submit_otp(attempt, wrong)

        assert attempt.state == LoginState.AWAITING_OTP
        assert attempt.failed_otp_attempts == 1

        await gate.submit_otp(attempt, code)
        assert attempt.is_authenticated

    @pytest.mark.asyncio
    async def test_retry_limit_rejects(self, make_gate, users, notifier, store):
        user = await add_user(users)
        gate = make_gate(OtpGateConfig(max_otp_attempts=3))
        attempt = await gate.begin("admin@example.com", PASSWORD)
        code = delivered_code(notifier)
        wrong = "000000" if code != "000000" else "111111"

        for _ in range(2):
            with pytest.raises(OtpMismatch):
                await gate.submit_otp(attempt, wrong)

        with pytest.raises(OtpRetryLimitExceeded):
            await gate.submit_otp(attempt, wrong)

        assert attempt.is_rejected
        assert await store.get(user.id) is None

        with pytest.raises(InvalidLoginState):
            await gate.submit_otp(attempt, code)

    @pytest.mark.asyncio
    async def test_expired_code(self, make_gate, users, notifier, clock):
        await add_user(users)
        gate = make_gate(OtpGateConfig(ttl_seconds=300))
        attempt = await gate.begin("admin@example.com", PASSWORD)

        clock.advance(400)

        with pytest.raises(OtpExpired):
            await gate.submit_otp(attempt, delivered_code(notifier))
        assert attempt.state == LoginState.AWAITING_OTP

    @pytest.mark.asyncio
    async def test_new_login_invalidates_previous_code(self, make_gate, users, notifier):
        await add_user(users)
        gate = make_gate()
        first = await gate.begin("admin@example.com", PASSWORD)
        old_code = delivered_code(notifier)
        second = await gate.begin("admin@example.com", PASSWORD)
        new_code = delivered_code(notifier)

        if old_code != new_code:
            with pytest.raises(OtpMismatch):
                await gate.submit_otp(first, old_code)

        await gate.submit_otp(second, new_code)
        assert second.is_authenticated

    @pytest.mark.asyncio
    async def test_submit_before_begin(self, make_gate):
        with pytest.raises(InvalidLoginState):
            await make_gate().submit_otp(LoginAttempt(), "123456")

    @pytest.mark.asyncio
    async def test_missing_challenge_counts_as_failure(self, make_gate, users, store):
        user = await add_user(users)
        gate = make_gate()
        attempt = await gate.begin("admin@example.com", PASSWORD)
        await store.delete(user.id)

        with pytest.raises(NotFound):
            await gate.submit_otp(attempt, "123456")
        assert attempt.failed_otp_attempts == 1


class TestDelivery:
    @pytest.mark.asyncio
    async def test_delivery_failure_rejects(self, make_gate, users, store):
        user = await add_user(users)
        gate = make_gate(notifier_override=FailingNotifier())

        with pytest.raises(DeliveryFailed):
            await gate.begin("admin@example.com", PASSWORD)

        assert await store.get(user.id) is None

    @pytest.mark.asyncio
    async def test_full_queue_fails_fast(self, make_gate, users):
        await add_user(users)
        full = QueuedNotifier(asyncio.Queue(maxsize=1))
        full.queue.put_nowait(object())
        gate = make_gate(notifier_override=full)

        with pytest.raises(DeliveryFailed):
            await gate.begin("admin@example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_slow_notifier_times_out(self, make_gate, users):
        await add_user(users)

        class StuckNotifier:
            async def send(self, user, code):
                await asyncio.sleep(10)

        gate = make_gate(
            OtpGateConfig(delivery_timeout_seconds=0.05),
            notifier_override=StuckNotifier(),
        )

        with pytest.raises(DeliveryFailed):
            await gate.begin("admin@example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_store_failure_rejects_attempt(self, make_gate, users, notifier, clock, monkeypatch):
        await add_user(users)
        attempts = RecordingAttempts()
        monkeypatch.setattr("otp_gate.orchestrator.LoginAttempt", attempts)
        gate = make_gate(store_override=UnavailableStore(clock=clock))

        with pytest.raises(RedisConnectionError):
            await gate.begin("admin@example.com", PASSWORD)

        [attempt] = attempts.created
        assert attempt.state == LoginState.REJECTED
        assert attempt.session_token is None
        assert notifier.queue.empty()


class TestBypass:
    @pytest.mark.asyncio
    async def test_exempt_user_skips_otp(self, make_gate, users, notifier, clock):
        user = await add_user(users, exempt_flag=True)

        attempt = await make_gate().begin("admin@example.com", PASSWORD)

        assert attempt.is_authenticated
        assert attempt.session_token
        assert notifier.queue.empty()
        assert (await users.get(user.id)).last_full_login_at == clock()

    @pytest.mark.asyncio
    async def test_recent_login_skips_otp(self, make_gate, users, notifier, clock):
        await add_user(users, last_full_login_at=clock() - timedelta(seconds=1199))

        attempt = await make_gate().begin("admin@example.com", PASSWORD)

        assert attempt.is_authenticated
        assert notifier.queue.empty()

    @pytest.mark.asyncio
    async def test_stale_login_requires_otp(self, make_gate, users, clock):
        await add_user(users, last_full_login_at=clock() - timedelta(seconds=1201))

        attempt = await make_gate().begin("admin@example.com", PASSWORD)

        assert attempt.state == LoginState.AWAITING_OTP

    @pytest.mark.asyncio
    async def test_bypass_without_refreshing_timestamp(self, make_gate, users, clock):
        last = clock() - timedelta(seconds=600)
        user = await add_user(users, last_full_login_at=last)
        gate = make_gate(OtpGateConfig(update_last_login_on_bypass=False))

        attempt = await gate.begin("admin@example.com", PASSWORD)

        assert attempt.is_authenticated
        assert (await users.get(user.id)).last_full_login_at == last

    @pytest.mark.asyncio
    async def test_otp_login_enables_bypass(self, make_gate, users, notifier, clock):
        await add_user(users)
        gate = make_gate()
        attempt = await gate.begin("admin@example.com", PASSWORD)
        await gate.submit_otp(attempt, delivered_code(notifier))

        clock.advance(600)
        again = await gate.begin("admin@example.com", PASSWORD)

        assert again.is_authenticated
        assert notifier.queue.empty()

    @pytest.mark.asyncio
    async def test_bypass_clears_residual_challenge(self, make_gate, users, store, clock):
        user = await add_user(users)
        gate = make_gate()
        await gate.begin("admin@example.com", PASSWORD)
        assert await store.get(user.id) is not None

        stored = await users.get(user.id)
        stored.exempt_flag = True
        await users.save(stored)

        attempt = await gate.begin("admin@example.com", PASSWORD)

        assert attempt.is_authenticated
        assert await store.get(user.id) is None

    @pytest.mark.asyncio
    async def test_residual_cleanup_keeps_newer_challenge(self, make_gate, users, clock):
        """A challenge written by a concurrent login survives the cleanup."""
        user = await add_user(users)
        racing = RacingStore(clock=clock)
        gate = make_gate(store_override=racing)
        await gate.begin("admin@example.com", PASSWORD)

        stored = await users.get(user.id)
        stored.exempt_flag = True
        await users.save(stored)

        attempt = await gate.begin("admin@example.com", PASSWORD)

        assert attempt.is_authenticated
        assert len(racing) == 1
        kept = await racing.consume(user.id, racing.replacement.challenge_id)
        assert kept.challenge_id == racing.replacement.challenge_id

    @pytest.mark.asyncio
    async def test_bypass_window_with_password_verifier(self, users, notifier, sessions, store, clock):
        """The verifier hands out copies, so the login time must be saved through the repository."""
        await users.create(
            name="Admin User",
            email="admin@example.com",
            credential_hash=await hash_password(PASSWORD),
        )
        gate = LoginOrchestrator(
            PasswordCredentialVerifier(users), notifier, sessions, store, users, clock=clock
        )
        attempt = await gate.begin("admin@example.com", PASSWORD)
        await gate.submit_otp(attempt, delivered_code(notifier))

        clock.advance(60)
        again = await gate.begin("admin@example.com", PASSWORD)

        assert again.state == LoginState.AUTHENTICATED
        assert notifier.queue.empty()

    def test_user_repository_is_required(self, users, notifier, sessions, store):
        with pytest.raises(TypeError):
            LoginOrchestrator(
                verifier=StubVerifier(users),
                notifier=notifier,
                sessions=sessions,
                store=store,
            )


class TestSessions:
    @pytest.mark.asyncio
    async def test_previous_session_is_rotated(self, make_gate, users, sessions):
        user = await add_user(users, exempt_flag=True)
        planted = await sessions.establish(User(id="anon", credential_hash=""))

        attempt = await make_gate().begin(
            "admin@example.com", PASSWORD, previous_session_token=planted
        )

        assert attempt.session_token != planted
        assert sessions.resolve(planted) is None
        assert sessions.resolve(attempt.session_token) == user.id
