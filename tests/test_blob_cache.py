import os

import pytest

from conftest import add_photo
from models.image_blob import ImageBlob
from utils.blob_cache import BlobCache
from utils.cleanup import purge_orphan_blobs


def test_put_get_evict(app, tmp_path):
    folder = tmp_path / "blobs"
    with app.app_context():
        cache = BlobCache(str(folder), max_entries=2)
        cache.put("photo_a", "image/png", b"aaa")

        assert cache.get("photo_a") == ("image/png", b"aaa")
        assert "photo_a" in cache
        assert (folder / "photo_a").read_bytes() == b"aaa"
        assert ImageBlob.query.filter_by(key="photo_a").one().byte_size == 3

        assert cache.evict("photo_a") is True
        assert cache.get("photo_a") is None
        assert not (folder / "photo_a").exists()
        assert cache.evict("photo_a") is False


def test_blobs_survive_new_instance(app, tmp_path):
    folder = str(tmp_path / "blobs")
    with app.app_context():
        BlobCache(folder).put("photo_b", "image/jpeg", b"bbbb")

        fresh = BlobCache(folder)
        assert fresh.memory_entries == 0
        assert fresh.get("photo_b") == ("image/jpeg", b"bbbb")
        assert fresh.memory_entries == 1


def test_memory_is_bounded(app, tmp_path):
    with app.app_context():
        cache = BlobCache(str(tmp_path / "blobs"), max_entries=2)
        for key in ("photo_1", "photo_2", "photo_3"):
            cache.put(key, "image/png", key.encode())

        assert cache.memory_entries == 2
        assert cache.get("photo_1") == ("image/png", b"photo_1")
        assert sorted(cache.keys()) == ["photo_1", "photo_2", "photo_3"]


def test_put_overwrites_existing_key(app, tmp_path):
    with app.app_context():
        cache = BlobCache(str(tmp_path / "blobs"))
        cache.put("photo_c", "image/png", b"one")
        cache.put("photo_c", "image/gif", b"three")

        assert cache.get("photo_c") == ("image/gif", b"three")
        assert ImageBlob.query.filter_by(key="photo_c").count() == 1


@pytest.mark.parametrize("key", ["../etc/passwd", "a/b", "", "x" * 65])
def test_unsafe_keys_rejected(app, tmp_path, key):
    with app.app_context():
        cache = BlobCache(str(tmp_path / "blobs"))
        with pytest.raises(KeyError):
            cache.put(key, "image/png", b"data")
        assert cache.get(key) is None


def test_purge_orphan_blobs(app, auth_client):
    add_photo(auth_client)
    with app.app_context():
        cache = app.extensions["blob_cache"]
        cache.put("photo_orphan", "image/png", b"orphan")

        assert purge_orphan_blobs() == 1
        assert cache.get("photo_orphan") is None
        assert len(cache.keys()) == 1
        assert not os.path.exists(os.path.join(cache.folder, "photo_orphan"))
