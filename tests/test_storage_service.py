import pytest

from maintbot.services.storage_service import LocalBlobStorage, safe_filename


def test_safe_filename():
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("my file (1).pdf") == "my_file_1_.pdf"
    assert safe_filename("...") == "file"


@pytest.mark.asyncio
async def test_save_and_delete(tmp_path):
    storage = LocalBlobStorage(root=str(tmp_path), base_url="https://files.example.com/media/")

    url = await storage.save("req-1", "invoice.pdf", b"%PDF-1.4")

    assert url.startswith("https://files.example.com/media/req-1/")
    assert url.endswith("_invoice.pdf")
    stored = list((tmp_path / "req-1").iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"%PDF-1.4"

    assert await storage.delete(url) is True
    assert await storage.delete(url) is False
    assert await storage.delete("https://elsewhere.example.com/x.pdf") is False


@pytest.mark.asyncio
async def test_empty_upload_rejected(tmp_path):
    storage = LocalBlobStorage(root=str(tmp_path), base_url="/media")

    with pytest.raises(ValueError):
        await storage.save("req-1", "empty.txt", b"")


@pytest.mark.asyncio
async def test_delete_stays_inside_media_root(tmp_path):
    root = tmp_path / "media"
    outside = tmp_path / "keep.txt"
    outside.write_bytes(b"keep")
    storage = LocalBlobStorage(root=str(root), base_url="/media")

    assert await storage.delete("/media/../keep.txt") is False
    assert await storage.delete("/media/req-1/../../keep.txt") is False
    assert await storage.delete("/media/") is False
    assert outside.read_bytes() == b"keep"
