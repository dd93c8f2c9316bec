"""Core module for LocalFilePool"""

import errno
import logging
import os
import shutil
import threading
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from filepool import filepool_config, sharding, stats
from filepool.encryption import PoolCipher, load_or_create_secrets
from filepool.fileid import check_id, new_id
from filepool.filepool import FilePool, PendingAdd
from filepool.filepool_exceptions import ConfigurationError, NotFound


class PoolConfig(
    namedtuple(
        "PoolConfig",
        [
            "root",
            "secured_root",
            "secrets_file",
            "encryption_block_size",
            "copy_source",
            "mode",
            "owner",
            "group",
            "passphrase",
            "tmp_dir",
        ],
    )
):
    """Settings of a single pool, fixed for the lifetime of a `LocalFilePool`.

    :param str root: Absolute path of the plain tree.
    :param str secured_root: Absolute path of the secured (encrypted) tree.
    :param str secrets_file: Path of the secrets file, None disables encryption.
    :param int encryption_block_size: Bytes per chunk when streaming the cipher.
    :param bool copy_source: Always copy instead of hardlinking.
    :param int mode: File mode applied to new entries (optional).
    :param mixed owner: User name or uid applied to new entries (optional).
    :param mixed group: Group name or gid applied to new entries (optional).
    :param str passphrase: Selects the passphrase-derived key scheme (optional).
    :param str tmp_dir: Directory for temporary files (optional).
    """

    @property
    def encrypted(self):
        """True if the pool encrypts new entries."""
        return self.secrets_file is not None


class LocalFilePool(FilePool):
    """LocalFilePool stores files on a local (or mounted) file system below a root
    directory. Every file added gets a new random file id which is also its file
    name; the first three characters of the id name three nested bucket
    directories, ex. `root/6/1/e/61e9b2d1-1738-440d-9b3d-e3c64876f2b0`.

    When a secrets file is configured, entries are encrypted and kept in a parallel
    tree `root_secured` with the same layout. Entries are never modified once
    placed, only added and removed, so concurrent calls need no locking.

    :param str root: Root directory of the pool.
    :param dict options: A Python dictionary with any of the following keys:
        - encryption_block_size (int): Chunk size for the cipher. Defaults to 1 MiB.
        - secrets_file (str): Path of the secrets file; enables encryption. The file
          is created with a new random key and IV if it does not exist.
        - passphrase (str): Derive the key from a passphrase instead (legacy scheme).
        - copy_source (bool): Copy files even when they could be hardlinked.
        - mode (int): File mode to apply to new entries.
        - owner (str|int): Owner to apply to new entries.
        - group (str|int): Group to apply to new entries.
        - tmp_dir (str): Directory for temporary files.
    """

    def __init__(self, root, options=None):
        self.config = self._build_config(root, options or {})
        self.root = self.config.root
        self.secured_root = self.config.secured_root

        sharding.ensure_bucket(self.root)
        self.cipher = None
        if self.config.encrypted:
            secrets = load_or_create_secrets(
                self.config.secrets_file, self.config.passphrase
            )
            self.cipher = PoolCipher(
                secrets, self.config.encryption_block_size, self.config.tmp_dir
            )
            sharding.ensure_bucket(self.secured_root)

        # Worker for background adds, created on first use
        self._executor = None
        self._executor_lock = threading.Lock()
        logging.debug(
            "LocalFilePool - Initialization success. Pool root: %s, encrypted: %s",
            self.root,
            self.config.encrypted,
        )

    # Configuration and Related Methods

    @staticmethod
    def _build_config(root, options):
        """Validate the pool root and options and return the pool's configuration.

        Unknown options are ignored with a warning.

        :param str root: Root directory of the pool.
        :param dict options: Pool options.

        :raises ConfigurationError: If the root is missing or an option is invalid.

        :return: The validated configuration.
        :rtype: PoolConfig
        """
        if root is None or str(root).strip() == "":
            exception_string = (
                f"LocalFilePool - _build_config: No root directory given. Root: {root}"
            )
            logging.error(exception_string)
            raise ConfigurationError(exception_string)
        if not isinstance(options, dict):
            exception_string = (
                "LocalFilePool - _build_config: Invalid argument - expected a dictionary."
            )
            logging.error(exception_string)
            raise ConfigurationError(exception_string)

        unknown = sorted(set(options) - set(filepool_config.KNOWN_OPTIONS))
        if unknown:
            logging.warning(
                "LocalFilePool - _build_config: Ignoring unknown option(s): %s", unknown
            )

        block_size = options.get("encryption_block_size")
        if block_size is None:
            block_size = filepool_config.ENCRYPTION_BLOCK_SIZE
        if (
            isinstance(block_size, bool)
            or not isinstance(block_size, int)
            or block_size < 1
        ):
            exception_string = (
                "LocalFilePool - _build_config: encryption_block_size must be a positive"
                + f" integer. Value: {block_size}"
            )
            logging.error(exception_string)
            raise ConfigurationError(exception_string)

        mode = options.get("mode")
        if mode is not None and (isinstance(mode, bool) or not isinstance(mode, int)):
            exception_string = (
                f"LocalFilePool - _build_config: mode must be an integer. Value: {mode}"
            )
            logging.error(exception_string)
            raise ConfigurationError(exception_string)

        secrets_file = options.get("secrets_file")
        passphrase = options.get("passphrase")
        if passphrase is not None and secrets_file is None:
            exception_string = (
                "LocalFilePool - _build_config: A passphrase requires a secrets_file"
                + " to hold the salt."
            )
            logging.error(exception_string)
            raise ConfigurationError(exception_string)

        root = os.path.abspath(os.fspath(root))
        return PoolConfig(
            root=root,
            secured_root=sharding.secured_root(root),
            secrets_file=os.fspath(secrets_file) if secrets_file is not None else None,
            encryption_block_size=block_size,
            copy_source=bool(options.get("copy_source", False)),
            mode=mode,
            owner=options.get("owner"),
            group=options.get("group"),
            passphrase=passphrase,
            tmp_dir=options.get("tmp_dir"),
        )

    # Public API / FilePool Interface Methods

    def add(self, source, background=False):
        logging.debug("LocalFilePool - add: Request to add file: %s", source)
        source = self._check_source(source)
        file_id = new_id()

        if background:
            future = self._get_executor().submit(self._place, file_id, source)
            logging.debug(
                "LocalFilePool - add: Submitted background add for file id: %s", file_id
            )
            return PendingAdd(file_id, future)

        return self._place(file_id, source)

    def path(self, file_id, decrypt=True):
        check_id(file_id, "LocalFilePool - path")

        secured_path = sharding.entry_path(self.secured_root, file_id)
        if os.path.isfile(secured_path):
            if self.cipher is not None and decrypt:
                return self.cipher.decrypt_to_temp(secured_path)
            return secured_path

        plain_path = sharding.entry_path(self.root, file_id)
        if os.path.isfile(plain_path):
            return plain_path

        logging.debug("LocalFilePool - path: No entry found for file id: %s", file_id)
        if self.config.encrypted:
            return secured_path
        return plain_path

    def path_raw(self, file_id):
        return self.path(file_id, decrypt=False)

    def exists(self, file_id):
        """Check whether an entry is stored for `file_id` in either tree.

        :param str file_id: File id returned by a previous `add`.

        :return: True if the entry exists.
        :rtype: bool
        """
        return os.path.isfile(self.path_raw(file_id))

    def is_encrypted(self, file_id):
        """Check whether `file_id` is stored in the secured tree. Whether the content
        really is encrypted can't be told from the file itself.

        :param str file_id: File id returned by a previous `add`.

        :return: True if the entry is in the secured tree.
        :rtype: bool
        """
        check_id(file_id, "LocalFilePool - is_encrypted")
        return os.path.isfile(sharding.entry_path(self.secured_root, file_id))

    def remove(self, file_id):
        logging.debug("LocalFilePool - remove: Request to remove file id: %s", file_id)
        entry_path = self.path_raw(file_id)
        try:
            os.remove(entry_path)
        except FileNotFoundError as err:
            exception_string = (
                f"LocalFilePool - remove: No entry found for file id: {file_id}"
                + f" at: {entry_path}"
            )
            logging.error(exception_string)
            raise NotFound(exception_string, err) from err
        logging.info("LocalFilePool - remove: Removed file id: %s", file_id)

    def stat(self):
        return stats.collect(self.secured_root, self.root)

    def close(self):
        """Wait for pending background adds and release the worker."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # LocalFilePool Core Methods

    def _place(self, file_id, source):
        """Store `source` under `file_id`, encrypting it first in encryption mode.

        :param str file_id: Newly minted file id.
        :param str source: Path of the file to add.

        :return: The file id.
        :rtype: str
        """
        try:
            original_source = source
            tree = self.root
            if self.cipher is not None:
                source = self.cipher.encrypt_to_temp(source)
                tree = self.secured_root

            bucket = sharding.bucket_path(tree, file_id)
            sharding.ensure_bucket(bucket)
            target = os.path.join(bucket, file_id)
            self._link_or_copy(source, target)
            self._apply_permissions(target, original_source)
        except Exception as err:
            exception_string = (
                f"LocalFilePool - _place: Failed to add {source} as file id: {file_id}."
                + f" Unexpected {err=}, {type(err)=}"
            )
            logging.error(exception_string)
            raise err

        logging.info(
            "LocalFilePool - add: Added %s as file id: %s", original_source, file_id
        )
        return file_id

    def _link_or_copy(self, source, target):
        """Hardlink `source` to `target` when both are on the same file system and
        the pool does not force copying, otherwise copy the content.

        :param str source: Path of the file to place.
        :param str target: Path of the new entry.
        """
        if not self.config.copy_source and self._same_device(source, target):
            try:
                os.link(source, target)
                logging.debug("LocalFilePool - _link_or_copy: Linked %s", target)
                return
            except OSError as err:
                if err.errno != errno.EXDEV:
                    raise
        shutil.copyfile(source, target)
        logging.debug("LocalFilePool - _link_or_copy: Copied %s", target)

    def _apply_permissions(self, target, original_source):
        """Apply the configured mode, owner and group to a new entry.

        Skipped for an entry that is a hardlink of the caller's file, since that
        would change the caller's file too. If this fails the entry stays in the
        pool as placed.

        :param str target: Path of the new entry.
        :param str original_source: Path of the file given to `add`.
        """
        config = self.config
        if config.mode is None and config.owner is None and config.group is None:
            return
        if os.path.samefile(target, original_source):
            logging.debug(
                "LocalFilePool - _apply_permissions: %s is a hardlink of %s,"
                + " leaving permissions unchanged.",
                target,
                original_source,
            )
            return
        if config.mode is not None:
            os.chmod(target, config.mode)
        if config.owner is not None or config.group is not None:
            shutil.chown(target, user=config.owner, group=config.group)

    def _get_executor(self):
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(thread_name_prefix="filepool-add")
            return self._executor

    # Other Static Methods

    @staticmethod
    def _same_device(source, target):
        """Check whether `source` and the directory of `target` are on the same
        file system."""
        return os.stat(source).st_dev == os.stat(os.path.dirname(target)).st_dev

    @staticmethod
    def _check_source(source):
        """Check that `source` is an existing, readable file.

        :param str source: Path to check.

        :raises NotFound: If it is not.

        :return: The source as a string path.
        :rtype: str
        """
        if source is not None:
            try:
                source = os.fspath(source)
            except TypeError as err:
                exception_string = (
                    f"LocalFilePool - add: Source is not a file path: {source!r}"
                )
                logging.error(exception_string)
                raise NotFound(exception_string, err) from err
        if (
            source is None
            or not os.path.isfile(source)
            or not os.access(source, os.R_OK)
        ):
            exception_string = (
                f"LocalFilePool - add: Source is not a readable file: {source}"
            )
            logging.error(exception_string)
            raise NotFound(exception_string)
        return source
