"""FilePool is a file storage pool that addresses files by randomly generated
identifiers and uses the file system itself as its only index.

FilePool is meant for applications that keep the identifier of a file in their
own records and only need the pool to hold the bytes. Some properties:

- Files are named by a random version 4 UUID minted when they are added
- Files are stored in a three level directory structure taken from the first
    three characters of their identifier
- Files are hardlinked into the pool when possible, copied otherwise
- Stored files are immutable; they are only ever added and removed
- Files can be encrypted at rest (AES-256-CBC) with key material kept in a
    secrets file, in a parallel `<root>_secured` tree
"""

from filepool.filepool import FilePool, FilePoolFactory, PendingAdd, PoolStats
from filepool.filepool_exceptions import (
    ConfigurationError,
    FilePoolError,
    InvalidFileId,
    NotFound,
)
from filepool.localfilepool import LocalFilePool, PoolConfig

__all__ = (
    "FilePool",
    "FilePoolFactory",
    "LocalFilePool",
    "PoolConfig",
    "PoolStats",
    "PendingAdd",
    "FilePoolError",
    "InvalidFileId",
    "NotFound",
    "ConfigurationError",
)
__version__ = "1.0.0"
