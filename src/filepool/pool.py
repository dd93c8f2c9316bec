"""Process-wide default pool.

`setup` configures a default `LocalFilePool`; the module-level functions delegate
to it. Calling `setup` again replaces the default pool for all later calls. It
must not be called while other calls are in flight. Code that needs more than one
pool should create `LocalFilePool` instances directly.
"""

import logging
from filepool.filepool_exceptions import ConfigurationError
from filepool.localfilepool import LocalFilePool

_default_pool = None


def setup(root, **options):
    """Set up the default pool with root directory `root`.

    :param str root: Root directory of the pool.
    :param options: Options of `LocalFilePool`, ex. `secrets_file`, `copy_source`.

    :return: The new default pool.
    :rtype: LocalFilePool
    """
    global _default_pool
    new_pool = LocalFilePool(root, options)
    previous_pool, _default_pool = _default_pool, new_pool
    if previous_pool is not None:
        previous_pool.close()
    return new_pool


def get_pool():
    """Return the default pool.

    :raises ConfigurationError: If `setup` has not been called.
    """
    if _default_pool is None:
        exception_string = "FilePool - get_pool: No root directory defined. Use setup()."
        logging.error(exception_string)
        raise ConfigurationError(exception_string)
    return _default_pool


def add(source, background=False):
    """See `LocalFilePool.add`."""
    return get_pool().add(source, background=background)


def try_add(source, background=False):
    """See `FilePool.try_add`. Also returns None when no pool is set up."""
    try:
        pool = get_pool()
    except ConfigurationError:
        return None
    return pool.try_add(source, background=background)


def path(file_id, decrypt=True):
    """See `LocalFilePool.path`."""
    return get_pool().path(file_id, decrypt=decrypt)


def path_raw(file_id):
    """See `LocalFilePool.path_raw`."""
    return get_pool().path_raw(file_id)


def exists(file_id):
    """See `LocalFilePool.exists`."""
    return get_pool().exists(file_id)


def is_encrypted(file_id):
    """See `LocalFilePool.is_encrypted`."""
    return get_pool().is_encrypted(file_id)


def remove(file_id):
    """See `LocalFilePool.remove`."""
    get_pool().remove(file_id)


def try_remove(file_id):
    """See `FilePool.try_remove`. Also returns False when no pool is set up."""
    try:
        pool = get_pool()
    except ConfigurationError:
        return False
    return pool.try_remove(file_id)


def stat():
    """See `LocalFilePool.stat`."""
    return get_pool().stat()
