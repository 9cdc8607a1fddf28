"""
Tests for blob storage and the operation log.
"""

import base64

import pytest

from pixelcanvas import storage


@pytest.fixture
def log(tmp_path):
    yield storage.OperationLog(storage.get_engine("sqlite:///" + str(tmp_path / "ops.db")))
    storage.dispose_engines()


@pytest.fixture
def blobs(tmp_path):
    return storage.BlobStore(str(tmp_path / "blobs"), "https://cdn.example.com/img/")


def _payload(**overrides):
    payload = {
        "image_name": "cat.png",
        "operation": "scale: 1.5x",
        "original_width": "10",
        "original_height": 8,
        "new_width": 15,
        "new_height": 12,
        "image_data_url": "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode(),
    }
    payload.update(overrides)
    return payload


def test_decode_data_url():
    encoded = base64.b64encode(b"hello").decode()
    assert storage.decode_data_url("data:image/png;base64," + encoded) == b"hello"
    assert storage.decode_data_url(encoded) == b"hello"
    with pytest.raises(storage.InvalidPayload):
        storage.decode_data_url("data:image/png;base64,@@@")


def test_decode_data_url_line_wrapped():
    encoded = base64.encodebytes(b"hello world, wrapped" * 10).decode()
    assert "\n" in encoded
    assert storage.decode_data_url("data:image/png;base64," + encoded) == b"hello world, wrapped" * 10


def test_blob_filename():
    assert storage.blob_filename("holiday pic.png", now=1700000000.5) == "1700000000500-holiday_pic.png.png"
    assert "/" not in storage.blob_filename("../../etc/passwd", now=1)
    assert storage.blob_filename("   ", now=2) == "2000-image.png"


def test_engine_is_reused(tmp_path):
    url = "sqlite:///" + str(tmp_path / "a.db")
    try:
        assert storage.get_engine(url) is storage.get_engine(url)
    finally:
        storage.dispose_engines()


def test_blob_store_put(blobs, tmp_path):
    url = blobs.put("1-a.png", b"data")
    assert url == "https://cdn.example.com/img/1-a.png"
    assert (tmp_path / "blobs" / "1-a.png").read_bytes() == b"data"


def test_blob_store_never_overwrites(blobs):
    blobs.put("1-a.png", b"one")
    with pytest.raises(storage.StorageError):
        blobs.put("1-a.png", b"two")


def test_operation_log(log):
    first = log.record("a.png", "download", "u1", 1, 2, 3, 4)
    second = log.record("b.png", "reset", "u2")
    assert second > first
    rows = log.recent()
    assert [r["image_name"] for r in rows] == ["b.png", "a.png"]
    assert rows[1]["new_height"] == 4
    assert rows[0]["original_width"] is None
    assert len(log.recent(limit=1)) == 1


def test_save_processed_image(blobs, log):
    url = storage.save_processed_image(_payload(), blobs, log)
    assert url.startswith("https://cdn.example.com/img/")
    rows = log.recent()
    assert len(rows) == 1
    assert rows[0]["blob_url"] == url
    assert rows[0]["operation_type"] == "scale: 1.5x"
    assert rows[0]["original_width"] == 10


@pytest.mark.parametrize("overrides", [
    {"image_name": ""},
    {"operation": None},
    {"new_width": "wide"},
    {"new_height": -1},
    {"image_data_url": 12345},
])
def test_save_rejects_bad_payload(blobs, log, overrides, tmp_path):
    with pytest.raises(storage.InvalidPayload):
        storage.save_processed_image(_payload(**overrides), blobs, log)
    assert log.recent() == []
    assert not (tmp_path / "blobs").exists()


def test_save_rejects_non_dict(blobs, log):
    with pytest.raises(storage.InvalidPayload):
        storage.save_processed_image(None, blobs, log)


def test_failed_upload_writes_no_log(blobs, log, monkeypatch):
    def broken_put(filename, data):
        raise storage.StorageError("bucket unavailable")

    monkeypatch.setattr(blobs, "put", broken_put)
    with pytest.raises(storage.StorageError):
        storage.save_processed_image(_payload(), blobs, log)
    assert log.recent() == []
