from datetime import datetime, timedelta

import pytest
from app.application.errors.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.application.services.auth_service import AuthService
from app.domain.models.user import User, UserStatus

pytestmark = pytest.mark.anyio


class FakeEmailQueue:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.users: list[User] = []

    async def enqueue_verification_email(self, user: User) -> str:
        if self.fail:
            raise ConnectionError("redis unavailable")
        self.users.append(user)
        return "job-1"


@pytest.fixture
def email_queue() -> FakeEmailQueue:
    return FakeEmailQueue()


@pytest.fixture
def service(uow_factory, email_queue) -> AuthService:
    return AuthService(uow_factory=uow_factory, email_queue=email_queue)


async def _registered(service: AuthService, store) -> User:
    user = await service.register("alice", "Alice@Example.com", "secret123")
    return store.users[user.id]


async def test_register_creates_unverified_user_and_queues_email(
    service, store, email_queue
) -> None:
    user = await service.register("alice", "Alice@Example.com", "secret123")

    saved = store.users[user.id]
    assert saved.email == "alice@example.com"
    assert saved.is_email_verified is False
    assert saved.email_verification_token.isdigit()
    assert len(saved.email_verification_token) == 6
    assert saved.email_verification_expires > datetime.now()
    assert saved.password_hash != "secret123"
    assert [u.id for u in email_queue.users] == [user.id]


async def test_register_rejects_duplicates(service, store) -> None:
    await service.register("alice", "alice@example.com", "secret123")

    with pytest.raises(ConflictError):
        await service.register("alice", "other@example.com", "secret123")
    with pytest.raises(ConflictError):
        await service.register("alice2", "ALICE@example.com", "secret123")


async def test_register_rejects_invalid_input(service, store) -> None:
    with pytest.raises(ValidationError):
        await service.register("alice", "alice@example.com", "123")
    with pytest.raises(ValidationError):
        await service.register("al", "alice@example.com", "secret123")
    with pytest.raises(ValidationError):
        await service.register("alice", "not-an-email", "secret123")

    assert store.users == {}


async def test_register_succeeds_when_email_queue_fails(uow_factory, store) -> None:
    service = AuthService(uow_factory=uow_factory, email_queue=FakeEmailQueue(fail=True))

    user = await service.register("alice", "alice@example.com", "secret123")

    assert user.id in store.users


async def test_login_requires_verified_email(service, store) -> None:
    await _registered(service, store)

    with pytest.raises(ForbiddenError) as exc:
        await service.login("alice", "secret123")

    assert exc.value.data["requires_email_verification"] is True
    assert exc.value.data["email"] == "alice@example.com"


async def test_login_rejects_wrong_password(service, store) -> None:
    await _registered(service, store)

    with pytest.raises(UnauthorizedError):
        await service.login("alice", "wrong-password")
    with pytest.raises(UnauthorizedError):
        await service.login("nobody", "secret123")


async def test_verify_email_then_login_with_email(service, store) -> None:
    saved = await _registered(service, store)

    with pytest.raises(BadRequestError):
        await service.verify_email("alice@example.com", "wrong")

    user, tokens = await service.verify_email("alice@example.com", saved.email_verification_token)

    assert user.is_email_verified is True
    assert tokens["token_type"] == "bearer"
    assert store.users[user.id].email_verification_token is None

    again_user, again_tokens = await service.verify_email("alice@example.com", "whatever")
    assert again_user.id == user.id
    assert again_tokens is None

    logged_in, login_tokens = await service.login("alice@example.com", "secret123")
    assert logged_in.id == user.id
    assert login_tokens["access_token"]


async def test_verify_email_rejects_expired_code(service, store) -> None:
    saved = await _registered(service, store)
    store.users[saved.id].email_verification_expires = datetime.now() - timedelta(minutes=1)

    with pytest.raises(BadRequestError):
        await service.verify_email("alice@example.com", saved.email_verification_token)


async def test_verify_email_unknown_address(service) -> None:
    with pytest.raises(BadRequestError):
        await service.verify_email("ghost@example.com", "123456")


async def test_resend_verification(service, store, email_queue) -> None:
    with pytest.raises(NotFoundError):
        await service.resend_verification("ghost@example.com")

    saved = await _registered(service, store)
    store.users[saved.id].email_verification_expires = datetime.now() - timedelta(minutes=1)

    await service.resend_verification("alice@example.com")

    refreshed = store.users[saved.id]
    assert refreshed.email_verification_expires > datetime.now()
    assert len(email_queue.users) == 2

    await service.verify_email("alice@example.com", refreshed.email_verification_token)
    with pytest.raises(BadRequestError):
        await service.resend_verification("alice@example.com")


async def test_refresh_token_requires_refresh_type(service, store) -> None:
    saved = await _registered(service, store)
    _, tokens = await service.verify_email("alice@example.com", saved.email_verification_token)

    with pytest.raises(UnauthorizedError):
        await service.refresh_token(tokens["access_token"])

    new_tokens = await service.refresh_token(tokens["refresh_token"])
    assert new_tokens["access_token"]

    user = await service.get_current_user(new_tokens["access_token"])
    assert user.id == saved.id


async def test_get_current_user_rejects_inactive_account(service, store) -> None:
    saved = await _registered(service, store)
    _, tokens = await service.verify_email("alice@example.com", saved.email_verification_token)
    store.users[saved.id].status = UserStatus.BANNED

    with pytest.raises(ForbiddenError):
        await service.get_current_user(tokens["access_token"])

    with pytest.raises(UnauthorizedError):
        await service.get_current_user("not-a-jwt")
