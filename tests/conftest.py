"""Pytest overall configuration file for fixtures"""

import pytest
from filepool.localfilepool import LocalFilePool
from filepool import pool as default_pool


@pytest.fixture(name="root")
def init_root(tmp_path):
    """Root directory of the pool under test."""
    return (tmp_path / "fp_root").as_posix()


@pytest.fixture(name="secrets_file")
def init_secrets_file(tmp_path):
    """Path of a secrets file that does not exist yet."""
    return (tmp_path / "file_pool_cfg.yml").as_posix()


@pytest.fixture(name="store")
def init_store(root):
    """Create a plain LocalFilePool instance."""
    store = LocalFilePool(root)
    yield store
    store.close()


@pytest.fixture(name="secured_store")
def init_secured_store(root, secrets_file):
    """Create an encrypting LocalFilePool instance."""
    store = LocalFilePool(root, {"secrets_file": secrets_file})
    yield store
    store.close()


@pytest.fixture(name="files")
def init_files(tmp_path):
    """Shared test harness data: sample files keyed by name.
    - a: short text
    - b: binary content larger than one cipher block
    - c: exactly one AES block
    - d: empty file
    """
    contents = {
        "a": b"hello",
        "b": bytes(range(256)) * 40,
        "c": b"0123456789abcdef",
        "d": b"",
    }
    directory = tmp_path / "files"
    directory.mkdir()
    test_files = {}
    for name, content in contents.items():
        path = directory / name
        path.write_bytes(content)
        test_files[name] = path.as_posix()
    return test_files


@pytest.fixture(autouse=True)
def reset_default_pool():
    """Make sure no default pool leaks between tests."""
    yield
    if default_pool._default_pool is not None:
        default_pool._default_pool.close()
    default_pool._default_pool = None
