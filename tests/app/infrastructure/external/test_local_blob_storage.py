import pytest
from app.infrastructure.external.blob_storage.local_blob_storage import LocalBlobStorage

pytestmark = pytest.mark.anyio


async def test_write_read_stat_and_delete(tmp_path) -> None:
    storage = LocalBlobStorage(str(tmp_path), public_base_url="/uploads/")

    await storage.write("memo/2026/10/a.png", b"png-bytes")

    assert (tmp_path / "memo" / "2026" / "10" / "a.png").read_bytes() == b"png-bytes"
    assert await storage.read("memo/2026/10/a.png") == b"png-bytes"
    assert await storage.stat("memo/2026/10/a.png") == 9
    assert storage.get_url("memo/2026/10/a.png") == "/uploads/memo/2026/10/a.png"

    await storage.delete("memo/2026/10/a.png")

    with pytest.raises(FileNotFoundError):
        await storage.read("memo/2026/10/a.png")


async def test_rejects_path_traversal(tmp_path) -> None:
    storage = LocalBlobStorage(str(tmp_path / "uploads"))

    with pytest.raises(ValueError):
        await storage.write("../escape.txt", b"x")
