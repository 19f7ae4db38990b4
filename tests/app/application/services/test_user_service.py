from typing import Optional

import pytest
from app.application.errors.exceptions import ConflictError, NotFoundError, ValidationError
from app.application.services.user_service import UserService
from app.domain.models.memo import Memo
from app.domain.models.user import User, UserRole

pytestmark = pytest.mark.anyio


class FakeUserCache:
    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.items: dict[str, User] = {}
        self.deleted: list[str] = []

    async def get(self, user_id: str) -> Optional[User]:
        if self.broken:
            raise ConnectionError("redis down")
        return self.items.get(user_id)

    async def set(self, user: User) -> None:
        if self.broken:
            raise ConnectionError("redis down")
        self.items[user.id] = user

    async def delete(self, user_id: str) -> None:
        if self.broken:
            raise ConnectionError("redis down")
        self.deleted.append(user_id)
        self.items.pop(user_id, None)


@pytest.fixture
def cache() -> FakeUserCache:
    return FakeUserCache()


@pytest.fixture
def service(uow_factory, cache) -> UserService:
    return UserService(uow_factory=uow_factory, user_cache=cache)


def _add_user(store, user_id: str, username: str) -> User:
    user = User(id=user_id, username=username, email=f"{username}@example.com")
    store.users[user_id] = user
    return user


async def test_get_user_reads_through_cache(service, store, cache) -> None:
    _add_user(store, "u1", "alice")

    user = await service.get_user("u1")

    assert user.username == "alice"
    assert "u1" in cache.items

    # 数据库中删除后仍能命中缓存
    del store.users["u1"]
    assert (await service.get_user("u1")).username == "alice"


async def test_get_user_missing(service) -> None:
    with pytest.raises(NotFoundError):
        await service.get_user("ghost")


async def test_broken_cache_falls_back_to_database(uow_factory, store) -> None:
    _add_user(store, "u1", "alice")
    service = UserService(uow_factory=uow_factory, user_cache=FakeUserCache(broken=True))

    assert (await service.get_user("u1")).id == "u1"
    updated = await service.update_user("u1", username="alice2")
    assert updated.username == "alice2"


async def test_create_user_is_verified(service, store) -> None:
    user = await service.create_user("bobby", "Bobby@Example.com", "secret123", role=UserRole.SUPER_ADMIN)

    saved = store.users[user.id]
    assert saved.is_email_verified is True
    assert saved.email == "bobby@example.com"
    assert saved.is_admin()

    with pytest.raises(ConflictError):
        await service.create_user("bobby", "other@example.com", "secret123")
    with pytest.raises(ValidationError):
        await service.create_user("carol", "carol@example.com", "123")


async def test_update_user_invalidates_cache(service, store, cache) -> None:
    _add_user(store, "u1", "alice")
    _add_user(store, "u2", "bobby")
    await service.get_user("u1")

    updated = await service.update_user("u1", email="Alice.New@Example.com")

    assert updated.email == "alice.new@example.com"
    assert store.users["u1"].email == "alice.new@example.com"
    assert cache.deleted == ["u1"]
    assert "u1" not in cache.items

    with pytest.raises(ConflictError):
        await service.update_user("u1", username="bobby")
    with pytest.raises(ValidationError):
        await service.update_user("u1", username="x")
    with pytest.raises(NotFoundError):
        await service.update_user("ghost", username="ghost")


async def test_delete_user(service, store, cache) -> None:
    _add_user(store, "u1", "alice")

    await service.delete_user("u1")

    assert "u1" not in store.users
    assert cache.deleted == ["u1"]
    with pytest.raises(NotFoundError):
        await service.delete_user("u1")


async def test_list_users_and_memos(service, store) -> None:
    _add_user(store, "u1", "alice")
    _add_user(store, "u2", "bobby")
    store.memos["m1"] = Memo(id="m1", title="t", content="c", template_id="t1", user_id="u1")
    store.memos["m2"] = Memo(id="m2", title="t", content="c", template_id="t1", user_id="u2")

    users, total = await service.list_users(page=1, limit=1, search="ali")
    assert total == 1
    assert users[0].id == "u1"

    memos, memo_total = await service.list_user_memos("u1")
    assert memo_total == 1
    assert [m.id for m in memos] == ["m1"]

    with pytest.raises(NotFoundError):
        await service.list_user_memos("ghost")
