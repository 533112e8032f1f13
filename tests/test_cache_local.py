"""Tests for the local directory cache."""

import io

import pytest

from npmcache.adapters import LocalCacheAdapter
from npmcache.core import ConfigError


@pytest.fixture
def cache(tmp_path):
    return LocalCacheAdapter(tmp_path)


def test_put_then_get(cache, tmp_path):
    assert not cache.has("key-1")

    cache.put("key-1", io.BytesIO(b"archive bytes"))

    assert cache.has("key-1")
    assert (tmp_path / "key-1").read_bytes() == b"archive bytes"
    with cache.get("key-1") as f:
        assert f.read() == b"archive bytes"


def test_put_overwrites(cache):
    cache.put("key", io.BytesIO(b"old"))
    cache.put("key", io.BytesIO(b"new"))
    with cache.get("key") as f:
        assert f.read() == b"new"


def test_put_leaves_no_temp_files(cache, tmp_path):
    cache.put("key", io.BytesIO(b"data"))
    assert sorted(p.name for p in tmp_path.iterdir()) == ["key"]


class BrokenStream(io.RawIOBase):
    def readinto(self, b):
        raise OSError("disk full")


def test_failed_put_keeps_previous_entry(cache, tmp_path):
    cache.put("key", io.BytesIO(b"good"))

    with pytest.raises(OSError, match="disk full"):
        cache.put("key", BrokenStream())

    assert (tmp_path / "key").read_bytes() == b"good"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["key"]


def test_has_ignores_directories(cache, tmp_path):
    (tmp_path / "dir-key").mkdir()
    assert not cache.has("dir-key")


def test_get_missing_key(cache):
    with pytest.raises(FileNotFoundError):
        cache.get("missing")


@pytest.mark.parametrize("key", ["", ".", "..", "a/b", "../escape"])
def test_rejects_unsafe_keys(cache, key):
    with pytest.raises(ValueError):
        cache.has(key)


def test_missing_directory(tmp_path):
    with pytest.raises(ConfigError, match="not a valid directory"):
        LocalCacheAdapter(tmp_path / "missing")


def test_directory_is_a_file(tmp_path):
    path = tmp_path / "file"
    path.write_text("x")
    with pytest.raises(ConfigError):
        LocalCacheAdapter(path)


def test_empty_directory_name():
    with pytest.raises(ConfigError, match="no cache directory"):
        LocalCacheAdapter("")
