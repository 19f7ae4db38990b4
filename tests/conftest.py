from collections import defaultdict
from datetime import datetime
from typing import Generator, Optional

import pytest
from app.domain.models.design_template import DesignTemplate
from app.domain.models.file import (
    DomainStats,
    FileAsset,
    FileDomain,
    FileMetadata,
    FileStats,
    FileStatus,
)
from app.domain.models.memo import Memo, MemoQuery, TemplateMemoCount
from app.domain.models.user import User
from app.main import app
from fastapi.testclient import TestClient


@pytest.fixture(scope="session")
def client() -> Generator[TestClient, None, None]:
    """
    创建一个可供所有测试用例使用的 TestClient 客户端。
    不进入 with 上下文，避免触发连接数据库/Redis的lifespan，依赖由各用例覆盖。
    """
    yield TestClient(app)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class InMemoryStore:
    """内存版数据存储，保存的是对象副本，模拟真实持久化"""

    def __init__(self) -> None:
        self.files: dict[str, FileAsset] = {}
        self.users: dict[str, User] = {}
        self.memos: dict[str, Memo] = {}
        self.templates: dict[str, DesignTemplate] = {}
        self.fail_file_save = False
        self.fail_file_delete = False
        self.fail_next_variant_saves = 0
        self.file_saves: list[FileAsset] = []


class InMemoryFileRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def save(self, file: FileAsset) -> None:
        if self._store.fail_file_save:
            raise RuntimeError("database unavailable")
        snapshot = file.model_copy(deep=True)
        self._store.files[file.id] = snapshot
        self._store.file_saves.append(snapshot)

    async def get_by_id(self, file_id: str) -> Optional[FileAsset]:
        file = self._store.files.get(file_id)
        return file.model_copy(deep=True) if file else None

    async def delete(self, file_id: str) -> bool:
        if self._store.fail_file_delete:
            raise RuntimeError("database unavailable")
        return self._store.files.pop(file_id, None) is not None

    async def update_variant_state(
        self,
        file_id: str,
        metadata: FileMetadata,
        status: FileStatus,
        updated_at: datetime,
    ) -> bool:
        if self._store.fail_file_save:
            raise RuntimeError("database unavailable")
        if self._store.fail_next_variant_saves > 0:
            self._store.fail_next_variant_saves -= 1
            raise RuntimeError("database unavailable")
        current = self._store.files.get(file_id)
        if current is None or current.status == FileStatus.DELETED:
            return False
        current.metadata = metadata.model_copy(deep=True)
        current.status = status
        current.updated_at = updated_at
        self._store.file_saves.append(current.model_copy(deep=True))
        return True

    async def mark_deleted(self, file_id: str, updated_at: datetime) -> bool:
        if self._store.fail_file_save:
            raise RuntimeError("database unavailable")
        current = self._store.files.get(file_id)
        if current is None:
            return False
        current.status = FileStatus.DELETED
        current.updated_at = updated_at
        return True

    async def increment_access(
        self, file_id: str, download: bool, accessed_at: datetime
    ) -> Optional[FileStats]:
        if self._store.fail_file_save:
            raise RuntimeError("database unavailable")
        current = self._store.files.get(file_id)
        if current is None:
            return None
        if download:
            current.mark_downloaded(accessed_at)
        else:
            current.mark_viewed(accessed_at)
        return current.stats.model_copy()

    def _active(self) -> list[FileAsset]:
        return [f for f in self._store.files.values() if f.status == FileStatus.ACTIVE]

    async def list_by_domain(self, domain: FileDomain, reference_id: str) -> list[FileAsset]:
        return [
            f.model_copy(deep=True)
            for f in self._active()
            if f.domain == domain and f.reference_id == reference_id
        ]

    def _by_uploader(self, uploader_id: str, domain: Optional[FileDomain]) -> list[FileAsset]:
        return [
            f
            for f in self._active()
            if f.uploaded_by == uploader_id and (domain is None or f.domain == domain)
        ]

    async def list_by_uploader(
        self,
        uploader_id: str,
        skip: int = 0,
        limit: int = 20,
        domain: Optional[FileDomain] = None,
    ) -> list[FileAsset]:
        files = sorted(
            self._by_uploader(uploader_id, domain),
            key=lambda f: f.created_at,
            reverse=True,
        )
        return [f.model_copy(deep=True) for f in files[skip : skip + limit]]

    async def count_by_uploader(
        self, uploader_id: str, domain: Optional[FileDomain] = None
    ) -> int:
        return len(self._by_uploader(uploader_id, domain))

    async def aggregate_active_by_domain(self) -> list[DomainStats]:
        sizes: dict[FileDomain, list[int]] = defaultdict(list)
        for f in self._active():
            sizes[f.domain].append(f.metadata.original.size)
        result = [
            DomainStats(
                domain=domain,
                count=len(values),
                total_size=sum(values),
                avg_size=sum(values) / len(values),
            )
            for domain, values in sizes.items()
        ]
        return sorted(result, key=lambda item: item.count, reverse=True)


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create(self, user: User) -> User:
        self._store.users[user.id] = user.model_copy(deep=True)
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        user = self._store.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_username(self, username: str) -> Optional[User]:
        for user in self._store.users.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    async def get_by_email(self, email: str) -> Optional[User]:
        for user in self._store.users.values():
            if user.email == email.strip().lower():
                return user.model_copy(deep=True)
        return None

    async def update(self, user: User) -> User:
        self._store.users[user.id] = user.model_copy(deep=True)
        return user

    async def delete(self, user_id: str) -> bool:
        return self._store.users.pop(user_id, None) is not None

    def _filtered(self, search: Optional[str]) -> list[User]:
        users = list(self._store.users.values())
        if search:
            keyword = search.lower()
            users = [
                u for u in users if keyword in u.username.lower() or keyword in u.email
            ]
        return users

    async def list_all(
        self, skip: int = 0, limit: int = 10, search: Optional[str] = None
    ) -> list[User]:
        return self._filtered(search)[skip : skip + limit]

    async def count(self, search: Optional[str] = None) -> int:
        return len(self._filtered(search))

    async def list_emails(self) -> list[tuple[str, str]]:
        return [(u.id, str(u.email)) for u in self._store.users.values()]

    async def exists_by_role(self, role: str) -> bool:
        return any(u.role.value == role for u in self._store.users.values())


class InMemoryTemplateRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def save(self, template: DesignTemplate) -> DesignTemplate:
        self._store.templates[template.id] = template.model_copy(deep=True)
        return template

    async def get_by_id(self, template_id: str) -> Optional[DesignTemplate]:
        template = self._store.templates.get(template_id)
        return template.model_copy(deep=True) if template else None

    async def get_many(self, template_ids: list[str]) -> list[DesignTemplate]:
        return [
            self._store.templates[tid] for tid in template_ids if tid in self._store.templates
        ]

    async def delete(self, template_id: str) -> bool:
        return self._store.templates.pop(template_id, None) is not None

    async def list_all(
        self, skip: int = 0, limit: int = 20, search: Optional[str] = None
    ) -> list[DesignTemplate]:
        templates = [
            t
            for t in self._store.templates.values()
            if not search or search.lower() in t.name.lower()
        ]
        return templates[skip : skip + limit]

    async def count(self, search: Optional[str] = None) -> int:
        return len(await self.list_all(limit=10**6, search=search))


class InMemoryMemoRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def save(self, memo: Memo) -> Memo:
        self._store.memos[memo.id] = memo.model_copy(deep=True)
        return memo

    async def get_by_id(self, memo_id: str) -> Optional[Memo]:
        memo = self._store.memos.get(memo_id)
        return memo.model_copy(deep=True) if memo else None

    async def delete(self, memo_id: str) -> bool:
        return self._store.memos.pop(memo_id, None) is not None

    def _filtered(self, query: MemoQuery) -> list[Memo]:
        memos = list(self._store.memos.values())
        if query.user_id:
            memos = [m for m in memos if m.user_id == query.user_id]
        if query.template_id:
            memos = [m for m in memos if m.template_id == query.template_id]
        if query.search:
            keyword = query.search.lower()
            memos = [
                m
                for m in memos
                if keyword in m.title.lower() or keyword in m.content.lower()
            ]
        return memos

    async def search(self, query: MemoQuery) -> list[Memo]:
        memos = sorted(
            self._filtered(query),
            key=lambda m: getattr(m, query.sort_by),
            reverse=query.sort_order == "desc",
        )
        skip = (query.page - 1) * query.limit
        return memos[skip : skip + query.limit]

    async def count(self, query: Optional[MemoQuery] = None) -> int:
        return len(self._filtered(query or MemoQuery()))

    async def count_by_template(self) -> list[TemplateMemoCount]:
        counts: dict[str, int] = defaultdict(int)
        for memo in self._store.memos.values():
            counts[memo.template_id] += 1
        result = [
            TemplateMemoCount(
                template_id=tid,
                count=count,
                template_name=(
                    self._store.templates[tid].name
                    if tid in self._store.templates
                    else None
                ),
            )
            for tid, count in counts.items()
        ]
        return sorted(result, key=lambda item: item.count, reverse=True)


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore) -> None:
        self.file = InMemoryFileRepository(store)
        self.user = InMemoryUserRepository(store)
        self.memo = InMemoryMemoRepository(store)
        self.template = InMemoryTemplateRepository(store)

    async def commit(self):
        return None

    async def rollback(self):
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


class InMemoryBlobStorage:
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.fail_delete_paths: set[str] = set()
        self.deleted: list[str] = []

    async def write(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        self.blobs[path] = data

    async def read(self, path: str) -> bytes:
        if path not in self.blobs:
            raise FileNotFoundError(path)
        return self.blobs[path]

    async def delete(self, path: str) -> None:
        if path in self.fail_delete_paths:
            raise OSError(f"cannot delete {path}")
        self.deleted.append(path)
        self.blobs.pop(path, None)

    async def stat(self, path: str) -> int:
        return len(await self.read(path))

    def get_url(self, path: str) -> str:
        return f"/uploads/{path}"


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store: InMemoryStore):
    def factory() -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(store)

    return factory


@pytest.fixture
def blob_storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()
