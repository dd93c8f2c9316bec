"""Test module for the sharded directory layout."""

import os
import pytest
from filepool import sharding

FILE_ID = "61e9b2d1-1738-440d-9b3d-e3c64876f2b0"


def test_shard():
    """Check that ids are sharded into three one character levels."""
    assert sharding.shard(FILE_ID) == ["6", "1", "e"]


def test_shard_depth_width():
    """Check sharding with a custom depth and width."""
    assert sharding.shard(FILE_ID, depth=2, width=2) == ["61", "e9"]


def test_bucket_path():
    """Check the bucket directory of an id."""
    assert sharding.bucket_path("/var/fp", FILE_ID) == "/var/fp/6/1/e"


def test_entry_path():
    """Check the full entry path of an id."""
    assert sharding.entry_path("/var/fp", FILE_ID) == "/var/fp/6/1/e/" + FILE_ID


def test_secured_root():
    """Check the secured tree is parallel to the root."""
    assert sharding.secured_root("/var/fp") == "/var/fp_secured"
    assert sharding.secured_root("/var/fp/") == "/var/fp_secured"


def test_ensure_bucket(tmp_path):
    """Check bucket creation is recursive and idempotent."""
    bucket = sharding.bucket_path(tmp_path.as_posix(), FILE_ID)
    sharding.ensure_bucket(bucket)
    assert os.path.isdir(bucket)
    sharding.ensure_bucket(bucket)
    assert os.path.isdir(bucket)


def test_ensure_bucket_file_in_the_way(tmp_path):
    """Check that a file occupying the bucket path is reported."""
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(NotADirectoryError):
        sharding.ensure_bucket(blocker.as_posix())
