"""FilePool Interface"""
from abc import ABC, abstractmethod
from collections import namedtuple
import importlib.metadata
import importlib.util
import logging


class FilePool(ABC):
    """FilePool is a file storage pool that addresses files by a random identifier
    (a version 4 UUID) minted when the file is added."""

    @staticmethod
    def version():
        """Return the version number"""
        __version__ = importlib.metadata.version("filepool")
        return __version__

    @abstractmethod
    def add(self, source, background=False):
        """Store the file at `source` in the pool and return its new file id.

        A new random file id is minted for every call, so the same file added twice
        is stored twice under two ids. In encryption mode the file is encrypted first
        and stored in the secured tree, otherwise it is stored in the plain tree.
        The file is hardlinked into the pool when it lives on the same file system
        and the pool is not configured to copy sources, otherwise it is copied.

        When `background` is True, placement runs in a worker and a `PendingAdd`
        is returned right away. Its `file_id` is usable once `future` completes;
        `future.result()` returns the file id or re-raises the placement error.

        :param str source: Path of the file to add.
        :param bool background: Place the file asynchronously.

        :raises NotFound: If `source` is not an existing file.

        :return: str - The new file id, or a `PendingAdd` in background mode.
        """
        raise NotImplementedError()

    @abstractmethod
    def path(self, file_id, decrypt=True):
        """Return the path of the file stored under `file_id`, whether it exists or
        not. An encrypted entry is decrypted to a temporary file and that file's path
        is returned, unless `decrypt` is False. The caller is responsible for deleting
        decrypted temporary files.

        :param str file_id: File id returned by a previous `add`.
        :param bool decrypt: Decrypt an encrypted entry. Defaults to True.

        :raises InvalidFileId: If `file_id` is malformed.

        :return: str - Absolute path of the entry, or of its decrypted copy.
        """
        raise NotImplementedError()

    @abstractmethod
    def path_raw(self, file_id):
        """Return the on-disk path of `file_id` without decrypting.

        :param str file_id: File id returned by a previous `add`.

        :return: str - Absolute path of the entry.
        """
        raise NotImplementedError()

    @abstractmethod
    def remove(self, file_id):
        """Delete the entry stored under `file_id`.

        :param str file_id: File id returned by a previous `add`.

        :raises InvalidFileId: If `file_id` is malformed.
        :raises NotFound: If no entry exists for `file_id`.
        """
        raise NotImplementedError()

    @abstractmethod
    def stat(self):
        """Compute statistics over every entry of the pool. This walks the whole
        pool and may be slow for pools holding very many files.

        :return: PoolStats - Total size, median size, file count and last add time.
        """
        raise NotImplementedError()

    def try_add(self, source, background=False):
        """Same as `add`, but returns None instead of raising on failure.

        :param str source: Path of the file to add.
        :param bool background: Place the file asynchronously.

        :return: str - The new file id (or `PendingAdd`), None on failure.
        """
        try:
            return self.add(source, background=background)
        # pylint: disable=W0718
        except Exception as err:
            logging.warning("FilePool - try_add: Could not add %s: %s", source, err)
            return None

    def try_remove(self, file_id):
        """Same as `remove`, but returns False instead of raising on failure.

        :param str file_id: File id returned by a previous `add`.

        :return: bool - True if the entry was removed.
        """
        try:
            self.remove(file_id)
            return True
        # pylint: disable=W0718
        except Exception as err:
            logging.warning(
                "FilePool - try_remove: Could not remove %s: %s", file_id, err
            )
            return False


class FilePoolFactory:
    """A factory class for creating `FilePool`-like objects.

    The `FilePoolFactory` class provides a method to retrieve a `FilePool` object
    based on a given module (e.g., "filepool.localfilepool") and class name
    (e.g., "LocalFilePool").
    """

    @staticmethod
    def get_filepool(module_name, class_name, root, options=None):
        """Get a `FilePool`-like object based on the specified `module_name` and
        `class_name`.

        :param str module_name: Name of the package (e.g., "filepool.localfilepool").
        :param str class_name: Name of the class in the given module
            (e.g., "LocalFilePool").
        :param str root: Root directory of the pool.
        :param dict options: Pool options (optional). Example Options Dictionary:
            {
                "secrets_file": "/etc/filepool/secrets.yaml",
                "encryption_block_size": 1048576,
                "copy_source": False,
                "mode": 0o640,
            }

        :return: FilePool - A pool object based on the given `module_name` and
            `class_name`.

        :raises ModuleNotFoundError: If the module is not found.
        :raises AttributeError: If the class does not exist within the module.
        """
        # Validate module
        if importlib.util.find_spec(module_name) is None:
            raise ModuleNotFoundError(f"No module found for '{module_name}'")

        imported_module = importlib.import_module(module_name)

        # If class is not part of module, raise error
        if hasattr(imported_module, class_name):
            filepool_class = getattr(imported_module, class_name)
            return filepool_class(root, options=options)
        raise AttributeError(
            f"Class name '{class_name}' is not an attribute of module '{module_name}'"
        )


class PoolStats(
    namedtuple("PoolStats", ["total_size", "median_size", "file_count", "last_add"])
):
    """Statistics over the entries of a pool.

    :param int total_size: Sum of the sizes of all entries in bytes.
    :param float median_size: Median entry size in bytes.
    :param int file_count: Number of entries in the plain and secured trees.
    :param datetime last_add: Latest change time of any entry, None if empty.
    """


class PendingAdd(namedtuple("PendingAdd", ["file_id", "future"])):
    """A file id handed out before its entry has been placed.

    :param str file_id: The minted file id.
    :param concurrent.futures.Future future: Resolves to `file_id` once the entry
        is placed, or raises the error that stopped placement.
    """

    def result(self, timeout=None):
        """Block until the entry is placed and return its file id."""
        return self.future.result(timeout=timeout)

    def done(self):
        """Return True if placement has finished (successfully or not)."""
        return self.future.done()
