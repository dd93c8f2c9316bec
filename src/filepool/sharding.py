"""Maps file ids onto the sharded directory layout of a pool."""

import os
from filepool import filepool_config


def shard(file_id, depth=filepool_config.DIR_DEPTH, width=filepool_config.DIR_WIDTH):
    """Generates a list of `depth` tokens of `width` characters taken from the
    start of the file id.

    Example:
        ['6', '1', 'e']

    :param str file_id: The file id to divide into tokens.
    :param int depth: Number of tokens.
    :param int width: Characters per token.

    :return: A list containing the tokens of fixed width.
    :rtype: list
    """
    return [file_id[i * width : width * (i + 1)] for i in range(depth)]


def secured_root(root):
    """Return the root of the tree holding encrypted entries for `root`."""
    return root.rstrip(os.sep) + filepool_config.SECURED_SUFFIX


def bucket_path(root, file_id):
    """Return the directory a file id is stored in, ex. `root/6/1/e`."""
    return os.path.join(root, *shard(file_id))


def entry_path(root, file_id):
    """Return the full path of a file id's entry below `root`."""
    return os.path.join(bucket_path(root, file_id), file_id)


def ensure_bucket(path, dmode=filepool_config.DIR_MODE):
    """Physically create the folder path (and all intermediate ones) on disk.

    :param str path: The path to create.
    :param int dmode: Mode of the created directories.

    :raises NotADirectoryError: If the path already exists but is not a directory.
    """
    try:
        os.makedirs(path, dmode)
    except FileExistsError:
        if not os.path.isdir(path):
            raise NotADirectoryError(f"expected {path} to be a directory")
