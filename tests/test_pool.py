"""Test module for the process-wide default pool."""

import os
import pytest
from filepool import pool
from filepool.fileid import is_valid
from filepool.filepool_exceptions import ConfigurationError, InvalidFileId, NotFound
from filepool.localfilepool import LocalFilePool


def _read(path):
    with open(path, "rb") as file:
        return file.read()


def test_not_set_up():
    """Check that calls before setup raise ConfigurationError."""
    with pytest.raises(ConfigurationError):
        pool.get_pool()
    with pytest.raises(ConfigurationError):
        pool.path("61e9b2d1-1738-440d-9b3d-e3c64876f2b0")
    with pytest.raises(ConfigurationError):
        pool.stat()


def test_not_set_up_try_variants(files):
    """Check that the non-throwing variants return sentinels before setup."""
    assert pool.try_add(files["a"]) is None
    assert pool.try_remove("61e9b2d1-1738-440d-9b3d-e3c64876f2b0") is False


def test_setup(root):
    """Check that setup creates the default pool."""
    default = pool.setup(root, copy_source=True)
    assert isinstance(default, LocalFilePool)
    assert pool.get_pool() is default
    assert default.config.copy_source


def test_setup_replaces_pool(root, tmp_path, files):
    """Check that setup again replaces the configuration for later calls."""
    pool.setup(root)
    file_id = pool.add(files["a"])
    other_root = (tmp_path / "other_root").as_posix()
    pool.setup(other_root)
    assert pool.get_pool().root == other_root
    assert not pool.exists(file_id)


def test_round_trip(root, files):
    """Check add, path, remove through the module functions."""
    pool.setup(root)
    file_id = pool.add(files["a"])
    assert is_valid(file_id)
    assert _read(pool.path(file_id)) == b"hello"
    assert pool.path_raw(file_id) == pool.path(file_id)
    assert pool.exists(file_id)
    assert not pool.is_encrypted(file_id)
    assert pool.stat().file_count == 1
    pool.remove(file_id)
    assert not os.path.exists(pool.path(file_id))
    with pytest.raises(NotFound):
        pool.remove(file_id)
    with pytest.raises(InvalidFileId):
        pool.remove("invalid-id")


def test_round_trip_encrypted(root, secrets_file, files):
    """Check add and path through the module functions in encryption mode."""
    pool.setup(root, secrets_file=secrets_file)
    file_id = pool.add(files["b"])
    assert pool.is_encrypted(file_id)
    assert _read(pool.path(file_id)) == _read(files["b"])
    assert _read(pool.path(file_id, decrypt=False)) != _read(files["b"])


def test_try_variants(root, files):
    """Check the non-throwing module functions."""
    pool.setup(root)
    file_id = pool.try_add(files["a"])
    assert is_valid(file_id)
    assert pool.try_add("/not/here/foo.png") is None
    assert pool.try_remove(file_id)
    assert not pool.try_remove(file_id)


def test_background(root, files):
    """Check a background add through the module functions."""
    pool.setup(root)
    pending = pool.add(files["a"], background=True)
    assert pending.result(timeout=10) == pending.file_id
    assert pool.exists(pending.file_id)
