import asyncio
from datetime import datetime, timedelta

import pytest
from app.application.services import file_service as file_service_module
from app.application.errors.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    ValidationError,
    VariantGenerationError,
)
from app.application.services.file_service import (
    FileService,
    build_storage_path,
    build_stored_filename,
)
from app.domain.external.variant_generator import ResizedImage
from app.domain.models.file import (
    Dimensions,
    FileDomain,
    FileStatus,
    RawFile,
    RegisterOptions,
    VariantName,
    VariantSpec,
)
from app.domain.models.user import User, UserRole

pytestmark = pytest.mark.anyio


class FakeVariantGenerator:
    def __init__(self, fail_on: VariantName | None = None, probe_error: bool = False) -> None:
        self.fail_on = fail_on
        self.probe_error = probe_error
        self.calls: list[VariantName] = []

    async def probe_dimensions(self, data: bytes) -> Dimensions:
        if self.probe_error:
            raise ValueError("cannot identify image file")
        return Dimensions(width=800, height=600)

    async def resize(self, data: bytes, spec: VariantSpec, extension: str) -> ResizedImage:
        self.calls.append(spec.name)
        if spec.name == self.fail_on:
            raise OSError("decoder failed")
        return ResizedImage(
            data=f"{spec.name.value}-bytes".encode(),
            dimensions=Dimensions(width=min(spec.width, 800), height=min(spec.height, 600)),
        )


class HookedVariantGenerator(FakeVariantGenerator):
    """在生成每个变体之前回调，用于模拟并发的其他请求"""

    def __init__(self, on_resize) -> None:
        super().__init__()
        self.on_resize = on_resize

    async def resize(self, data: bytes, spec: VariantSpec, extension: str) -> ResizedImage:
        await self.on_resize(spec.name)
        return await super().resize(data, spec, extension)


def _raw_image(name: str = "photo.jpg", mime_type: str = "image/jpeg") -> RawFile:
    stored = f"memo_u1_1700000000000_photo.{name.rsplit('.', 1)[-1]}"
    return RawFile(
        original_name=name,
        stored_filename=stored,
        stored_path=f"memo/2026/10/{stored}",
        size=2048,
        mime_type=mime_type,
    )


def _user(user_id: str, admin: bool = False) -> User:
    return User(
        id=user_id,
        username=f"user-{user_id}",
        email=f"{user_id}@example.com",
        role=UserRole.SUPER_ADMIN if admin else UserRole.USER,
    )


@pytest.fixture
def generator() -> FakeVariantGenerator:
    return FakeVariantGenerator()


@pytest.fixture
def service(uow_factory, blob_storage, generator) -> FileService:
    return FileService(
        uow_factory=uow_factory,
        blob_storage=blob_storage,
        variant_generator=generator,
    )


async def _register(service: FileService, blob_storage, raw: RawFile | None = None, **kwargs):
    raw = raw or _raw_image()
    blob_storage.blobs[raw.stored_path] = b"original-bytes"
    return await service.register_asset(
        raw,
        kwargs.pop("domain", "memo"),
        kwargs.pop("reference_id", "memo-1"),
        kwargs.pop("uploader_id", "u1"),
        kwargs.pop("options", None),
    )


def test_build_stored_filename_sanitizes_stem() -> None:
    filename = build_stored_filename(FileDomain.MEMO, "u1", "my photo!.PNG", 1700000000000)

    assert filename == "memo_u1_1700000000000_my_photo_.png"


def test_build_stored_filename_keeps_korean_characters() -> None:
    filename = build_stored_filename(FileDomain.ATTACHMENT, "u1", "사진 1.jpg", 1)

    assert filename == "attachment_u1_1_사진_1.jpg"


def test_build_storage_path_groups_by_year_and_month() -> None:
    path = build_storage_path(FileDomain.PROFILE_IMAGE, "a.png", datetime(2026, 3, 5))

    assert path == "profile-image/2026/03/a.png"


async def test_register_asset_persists_active_record(service, blob_storage, store) -> None:
    asset = await _register(
        service,
        blob_storage,
        options=RegisterOptions(tags=[" Travel", "travel", "Sea "], is_public=True),
    )

    saved = store.files[asset.id]
    assert saved.status == FileStatus.ACTIVE
    assert saved.domain == FileDomain.MEMO
    assert saved.reference_id == "memo-1"
    assert saved.uploaded_by == "u1"
    assert saved.metadata.original.dimensions == Dimensions(width=800, height=600)
    assert saved.metadata.original.extension == "jpg"
    assert saved.metadata.resized == {}
    assert saved.tags == ["travel", "sea"]
    assert saved.stats.view_count == 0


async def test_register_asset_rejects_unknown_domain(service, blob_storage, store) -> None:
    with pytest.raises(ValidationError):
        await _register(service, blob_storage, domain="avatar")

    assert store.files == {}


async def test_register_asset_requires_reference_and_uploader(
    service, blob_storage, store
) -> None:
    with pytest.raises(ValidationError):
        await _register(service, blob_storage, reference_id="  ")
    with pytest.raises(ValidationError):
        await _register(service, blob_storage, uploader_id=None)

    assert store.files == {}


async def test_register_asset_tolerates_probe_failure(
    uow_factory, blob_storage, store
) -> None:
    service = FileService(
        uow_factory=uow_factory,
        blob_storage=blob_storage,
        variant_generator=FakeVariantGenerator(probe_error=True),
    )

    asset = await _register(service, blob_storage)

    assert store.files[asset.id].metadata.original.dimensions is None


async def test_register_asset_wraps_storage_failure(service, blob_storage, store) -> None:
    store.fail_file_save = True

    with pytest.raises(PersistenceError) as exc:
        await _register(service, blob_storage)

    assert isinstance(exc.value.cause, RuntimeError)


async def test_upload_asset_writes_blob_and_registers(service, blob_storage, store) -> None:
    asset = await service.upload_asset(
        filename="cat.png",
        content_type="image/png",
        data=b"\x89PNG-data",
        domain="memo",
        reference_id="memo-9",
        uploader_id="u1",
    )

    path = asset.metadata.original.path
    assert path.startswith("memo/")
    assert asset.metadata.original.filename.startswith("memo_u1_")
    assert asset.metadata.original.filename.endswith("_cat.png")
    assert blob_storage.blobs[path] == b"\x89PNG-data"
    assert asset.metadata.original.url == f"/uploads/{path}"
    assert asset.id in store.files


@pytest.mark.parametrize(
    ("filename", "content_type"),
    [("notes.txt", "text/plain"), ("fake.png", "application/pdf"), ("x.bmp", "image/bmp")],
)
async def test_upload_asset_rejects_non_images(
    service, blob_storage, filename, content_type
) -> None:
    with pytest.raises(BadRequestError):
        await service.upload_asset(
            filename=filename,
            content_type=content_type,
            data=b"data",
            domain="memo",
            reference_id="memo-1",
            uploader_id="u1",
        )

    assert blob_storage.blobs == {}


async def test_upload_asset_rejects_oversized_file(service, blob_storage) -> None:
    data = b"x" * (5 * 1024 * 1024 + 1)

    with pytest.raises(BadRequestError):
        await service.upload_asset(
            filename="big.jpg",
            content_type="image/jpeg",
            data=data,
            domain="memo",
            reference_id="memo-1",
            uploader_id="u1",
        )

    assert blob_storage.blobs == {}


async def test_upload_asset_removes_blob_when_registration_fails(
    service, blob_storage, store
) -> None:
    store.fail_file_save = True

    with pytest.raises(PersistenceError):
        await service.upload_asset(
            filename="cat.jpg",
            content_type="image/jpeg",
            data=b"jpeg",
            domain="memo",
            reference_id="memo-1",
            uploader_id="u1",
        )

    assert blob_storage.blobs == {}


async def test_generate_variants_persists_each_variant(
    service, blob_storage, store, generator
) -> None:
    asset = await _register(service, blob_storage)
    store.file_saves.clear()

    result = await service.generate_variants(asset)

    assert generator.calls == [
        VariantName.THUMBNAIL,
        VariantName.SMALL,
        VariantName.MEDIUM,
        VariantName.LARGE,
    ]
    assert result.status == FileStatus.ACTIVE
    assert set(result.metadata.resized) == set(VariantName)

    # 处理中 -> 每个变体一次 -> 恢复活跃
    statuses = [snapshot.status for snapshot in store.file_saves]
    assert statuses[0] == FileStatus.PROCESSING
    assert statuses[-1] == FileStatus.ACTIVE
    assert [len(s.metadata.resized) for s in store.file_saves[1:5]] == [1, 2, 3, 4]

    thumbnail = store.files[asset.id].metadata.resized[VariantName.THUMBNAIL]
    assert thumbnail.filename == "memo_u1_1700000000000_photo_thumbnail.jpg"
    assert thumbnail.path == "memo/2026/10/memo_u1_1700000000000_photo_thumbnail.jpg"
    assert thumbnail.dimensions == Dimensions(width=150, height=150)
    assert blob_storage.blobs[thumbnail.path] == b"thumbnail-bytes"


async def test_generate_variants_marks_failed_and_keeps_completed(
    uow_factory, blob_storage, store
) -> None:
    service = FileService(
        uow_factory=uow_factory,
        blob_storage=blob_storage,
        variant_generator=FakeVariantGenerator(fail_on=VariantName.MEDIUM),
    )
    asset = await _register(service, blob_storage)

    with pytest.raises(VariantGenerationError) as exc:
        await service.generate_variants(asset)

    assert isinstance(exc.value.cause, OSError)
    assert exc.value.variant == "medium"
    saved = store.files[asset.id]
    assert saved.status == FileStatus.FAILED
    assert set(saved.metadata.resized) == {VariantName.THUMBNAIL, VariantName.SMALL}


async def test_generate_variants_skips_non_images(service, blob_storage, store, generator) -> None:
    asset = await _register(
        service,
        blob_storage,
        raw=_raw_image(name="doc.pdf", mime_type="application/pdf"),
    )
    store.file_saves.clear()

    result = await service.generate_variants(asset)

    assert generator.calls == []
    assert result.status == FileStatus.ACTIVE
    assert store.file_saves == []


async def test_generate_variants_without_generator_is_noop(
    uow_factory, blob_storage, store
) -> None:
    service = FileService(uow_factory=uow_factory, blob_storage=blob_storage)
    asset = await _register(service, blob_storage)
    store.file_saves.clear()

    result = await service.generate_variants(asset)

    assert result.metadata.resized == {}
    assert store.file_saves == []


async def test_soft_delete_is_idempotent_and_keeps_blobs(service, blob_storage, store) -> None:
    asset = await _register(service, blob_storage)

    await service.soft_delete(asset.id)
    again = await service.soft_delete(asset.id)

    assert again.status == FileStatus.DELETED
    assert store.files[asset.id].status == FileStatus.DELETED
    assert asset.metadata.original.path in blob_storage.blobs


async def test_soft_delete_unknown_asset_raises_not_found(service) -> None:
    with pytest.raises(NotFoundError):
        await service.soft_delete("missing")


async def test_hard_delete_removes_record_even_if_blob_delete_fails(
    service, blob_storage, store
) -> None:
    asset = await _register(service, blob_storage)
    asset = await service.generate_variants(asset)
    failing = asset.metadata.resized[VariantName.SMALL].path
    blob_storage.fail_delete_paths.add(failing)

    await service.hard_delete(asset.id)

    assert asset.id not in store.files
    assert set(blob_storage.deleted) == set(asset.blob_paths()) - {failing}


async def test_hard_delete_unknown_asset_raises_not_found(service) -> None:
    with pytest.raises(NotFoundError):
        await service.hard_delete("missing")


async def test_hard_delete_record_failure_raises_persistence_error(
    service, blob_storage, store
) -> None:
    asset = await _register(service, blob_storage)
    store.fail_file_delete = True

    with pytest.raises(PersistenceError):
        await service.hard_delete(asset.id)


async def test_query_by_domain_returns_only_active(service, blob_storage) -> None:
    kept = await _register(service, blob_storage)
    removed = await _register(service, blob_storage)
    await _register(service, blob_storage, reference_id="memo-2")
    await service.soft_delete(removed.id)

    result = await service.query_by_domain("memo", "memo-1")

    assert [item.id for item in result] == [kept.id]


async def test_query_by_domain_rejects_unknown_domain(service) -> None:
    with pytest.raises(ValidationError):
        await service.query_by_domain("video", "memo-1")


async def test_query_by_uploader_pages_newest_first(service, blob_storage, store) -> None:
    ids = []
    for offset in range(3):
        asset = await _register(service, blob_storage)
        store.files[asset.id].created_at = datetime(2026, 1, 1) + timedelta(days=offset)
        ids.append(asset.id)
    await _register(service, blob_storage, uploader_id="someone-else")

    first_page = await service.query_by_uploader("u1", page=1, limit=2)
    second_page = await service.query_by_uploader("u1", page=2, limit=2)

    assert [item.id for item in first_page] == [ids[2], ids[1]]
    assert [item.id for item in second_page] == [ids[0]]
    assert await service.count_by_uploader("u1") == 3


async def test_query_by_uploader_rejects_invalid_paging(service) -> None:
    with pytest.raises(ValidationError):
        await service.query_by_uploader("u1", page=0)


async def test_record_view_and_download_increment_counters(
    service, blob_storage, store
) -> None:
    asset = await _register(service, blob_storage)

    await service.record_view(asset)
    await service.record_view(asset)
    await service.record_download(asset)

    stats = store.files[asset.id].stats
    assert stats.view_count == 2
    assert stats.download_count == 1
    assert stats.last_accessed_at is not None
    assert asset.stats.view_count == 2


async def test_record_view_swallows_persistence_failure(service, blob_storage, store) -> None:
    asset = await _register(service, blob_storage)
    store.fail_file_save = True

    await service.record_view(asset)

    assert store.files[asset.id].stats.view_count == 0


async def test_aggregate_stats_counts_active_files_by_domain(service, blob_storage) -> None:
    await _register(service, blob_storage)
    await _register(service, blob_storage)
    await _register(service, blob_storage, domain="profile-image", reference_id="u1")
    deleted = await _register(service, blob_storage, domain="attachment")
    await service.soft_delete(deleted.id)

    overview = await service.aggregate_stats()

    assert overview.total_files == 3
    assert overview.total_size == 3 * 2048
    assert [item.domain for item in overview.by_domain] == [
        FileDomain.MEMO,
        FileDomain.PROFILE_IMAGE,
    ]
    assert overview.by_domain[0].avg_size == 2048


async def test_aggregate_stats_empty_store(service) -> None:
    overview = await service.aggregate_stats()

    assert overview.total_files == 0
    assert overview.by_domain == []


async def test_private_asset_requires_owner_or_admin(service, blob_storage) -> None:
    asset = await _register(service, blob_storage, options=RegisterOptions(is_public=False))

    with pytest.raises(UnauthorizedError):
        await service.get_accessible_asset(asset.id, None)
    with pytest.raises(ForbiddenError):
        await service.get_accessible_asset(asset.id, _user("visitor"))

    assert (await service.get_accessible_asset(asset.id, _user("u1"))).id == asset.id
    assert (await service.get_accessible_asset(asset.id, _user("root", admin=True))).id == asset.id


async def test_deleted_asset_is_not_accessible(service, blob_storage) -> None:
    asset = await _register(service, blob_storage, options=RegisterOptions(is_public=True))
    await service.soft_delete(asset.id)

    with pytest.raises(NotFoundError):
        await service.get_accessible_asset(asset.id, _user("u1"))


async def test_filter_visible_hides_private_assets(service, blob_storage) -> None:
    public = await _register(service, blob_storage, options=RegisterOptions(is_public=True))
    private = await _register(service, blob_storage)

    assets = [public, private]

    assert [a.id for a in FileService.filter_visible(assets, None)] == [public.id]
    assert [a.id for a in FileService.filter_visible(assets, _user("u1"))] == [
        public.id,
        private.id,
    ]


async def test_open_asset_reads_original_and_variant(service, blob_storage) -> None:
    asset = await _register(service, blob_storage)
    asset = await service.generate_variants(asset)

    data, filename = await service.open_asset(asset)
    variant_data, variant_filename = await service.open_asset(asset, VariantName.LARGE)

    assert data == b"original-bytes"
    assert filename == asset.metadata.original.filename
    assert variant_data == b"large-bytes"
    assert variant_filename.endswith("_large.jpg")


async def test_open_asset_missing_variant_raises_not_found(service, blob_storage) -> None:
    asset = await _register(service, blob_storage)

    with pytest.raises(NotFoundError):
        await service.open_asset(asset, VariantName.SMALL)


async def test_open_asset_missing_blob_raises_not_found(service, blob_storage) -> None:
    asset = await _register(service, blob_storage)
    blob_storage.blobs.clear()

    with pytest.raises(NotFoundError):
        await service.open_asset(asset)


async def test_views_recorded_during_generation_are_kept(
    uow_factory, blob_storage, store
) -> None:
    async def view_while_resizing(name: VariantName) -> None:
        if name == VariantName.THUMBNAIL:
            for _ in range(3):
                await service.record_view(await service.get_asset(asset.id))

    service = FileService(
        uow_factory=uow_factory,
        blob_storage=blob_storage,
        variant_generator=HookedVariantGenerator(view_while_resizing),
    )
    asset = await _register(service, blob_storage)

    result = await service.generate_variants(asset)

    saved = store.files[asset.id]
    assert result.status == FileStatus.ACTIVE
    assert saved.status == FileStatus.ACTIVE
    assert saved.stats.view_count == 3
    assert set(saved.metadata.resized) == set(VariantName)


async def test_soft_delete_during_generation_stays_deleted(
    uow_factory, blob_storage, store
) -> None:
    async def delete_while_resizing(name: VariantName) -> None:
        if name == VariantName.SMALL:
            await service.soft_delete(asset.id)

    generator = HookedVariantGenerator(delete_while_resizing)
    service = FileService(
        uow_factory=uow_factory,
        blob_storage=blob_storage,
        variant_generator=generator,
    )
    asset = await _register(service, blob_storage)
    small_path = asset.variant_path(VariantName.SMALL)

    result = await service.generate_variants(asset)

    saved = store.files[asset.id]
    assert result.status == FileStatus.DELETED
    assert saved.status == FileStatus.DELETED
    assert generator.calls == [VariantName.THUMBNAIL, VariantName.SMALL]
    assert set(saved.metadata.resized) == {VariantName.THUMBNAIL}
    assert small_path not in blob_storage.blobs
    assert await service.query_by_domain("memo", "memo-1") == []


async def test_generate_variants_leaves_deleted_asset_untouched(
    service, blob_storage, store, generator
) -> None:
    asset = await _register(service, blob_storage)
    await service.soft_delete(asset.id)
    store.file_saves.clear()

    result = await service.generate_variants(await service.get_asset(asset.id))

    assert result.status == FileStatus.DELETED
    assert generator.calls == []
    assert store.file_saves == []
    assert store.files[asset.id].status == FileStatus.DELETED
    with pytest.raises(NotFoundError):
        await service.get_asset(asset.id, include_deleted=False)


async def test_variant_save_failure_marks_asset_failed(
    uow_factory, blob_storage, store
) -> None:
    async def break_next_save(name: VariantName) -> None:
        if name == VariantName.SMALL:
            store.fail_next_variant_saves = 1

    generator = HookedVariantGenerator(break_next_save)
    service = FileService(
        uow_factory=uow_factory,
        blob_storage=blob_storage,
        variant_generator=generator,
    )
    asset = await _register(service, blob_storage)

    with pytest.raises(PersistenceError):
        await service.generate_variants(asset)

    assert generator.calls == [VariantName.THUMBNAIL, VariantName.SMALL]
    assert store.files[asset.id].status == FileStatus.FAILED


async def test_interleaved_access_counts_every_call(
    service, blob_storage, store, monkeypatch
) -> None:
    class TickingClock(datetime):
        ticks = 0

        @classmethod
        def now(cls, tz=None):
            cls.ticks += 1
            return datetime(2026, 1, 1) + timedelta(seconds=cls.ticks)

    asset = await _register(service, blob_storage)
    monkeypatch.setattr(file_service_module, "datetime", TickingClock)

    await asyncio.gather(
        *[
            service.record_view(asset) if i % 2 == 0 else service.record_download(asset)
            for i in range(10)
        ]
    )

    stats = store.files[asset.id].stats
    assert stats.view_count == 5
    assert stats.download_count == 5
    assert TickingClock.ticks == 10
    assert stats.last_accessed_at == datetime(2026, 1, 1) + timedelta(seconds=10)
