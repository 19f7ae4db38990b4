from datetime import datetime

from app.domain.models.file import (
    FileAsset,
    FileDomain,
    FileMetadata,
    OriginalFile,
    VariantFile,
    VariantName,
    extension_of,
)


def _asset(**kwargs) -> FileAsset:
    return FileAsset(
        original_name="Beach.JPG",
        domain=FileDomain.MEMO,
        reference_id="m1",
        uploaded_by="u1",
        metadata=FileMetadata(
            original=OriginalFile(
                filename="memo_u1_1700000000000_Beach.JPG",
                path="memo/2026/10/memo_u1_1700000000000_Beach.JPG",
                url="/uploads/memo/2026/10/memo_u1_1700000000000_Beach.JPG",
                size=10,
                mime_type="image/jpeg",
                extension="jpg",
            )
        ),
        **kwargs,
    )


def test_tags_are_normalized() -> None:
    asset = _asset(tags=[" Travel", "travel", "", "SEA"])

    assert asset.tags == ["travel", "sea"]


def test_variant_paths_live_next_to_original() -> None:
    asset = _asset()

    assert asset.variant_filename(VariantName.THUMBNAIL) == "memo_u1_1700000000000_Beach_thumbnail.jpg"
    assert asset.variant_path(VariantName.SMALL) == "memo/2026/10/memo_u1_1700000000000_Beach_small.jpg"


def test_blob_paths_include_variants() -> None:
    asset = _asset()
    path = asset.variant_path(VariantName.MEDIUM)
    asset.add_variant(VariantName.MEDIUM, VariantFile(filename="m.jpg", path=path, url="/uploads/m.jpg"))

    assert asset.blob_paths() == [asset.metadata.original.path, path]


def test_access_counters() -> None:
    asset = _asset()
    seen = datetime(2026, 10, 1, 12, 0)

    asset.mark_viewed(seen)
    asset.mark_viewed(seen)
    asset.mark_downloaded(seen)

    assert (asset.stats.view_count, asset.stats.download_count) == (2, 1)
    assert asset.stats.last_accessed_at == seen


def test_kind_helpers_and_extension() -> None:
    asset = _asset()

    assert asset.is_image and not asset.is_video and not asset.is_document
    assert asset.is_active
    assert extension_of("archive.TAR.GZ") == "gz"
    assert extension_of("README") == ""
