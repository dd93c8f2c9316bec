"""Aggregate statistics over the entries of a pool."""

import os
from datetime import datetime
from filepool.filepool import PoolStats
from filepool import filepool_config


def median(sizes):
    """Return the median of `sizes` as the mean of the two middle values of the
    sorted sequence (both are the same value for an odd count).

    :param list sizes: File sizes in bytes.

    :return: Median, 0.0 for an empty sequence.
    :rtype: float
    """
    if not sizes:
        return 0.0
    sorted_sizes = sorted(sizes)
    count = len(sorted_sizes)
    return (sorted_sizes[(count - 1) // 2] + sorted_sizes[count // 2]) / 2


def iter_entries(root):
    """Yield the path of every entry stored in the tree at `root`.

    Entries are the files found exactly `DIR_DEPTH` directories below `root`.

    :param str root: Root of a plain or secured tree, may not exist.
    """
    if not os.path.isdir(root):
        return
    for dirpath, dirnames, filenames in os.walk(root):
        relpath = os.path.relpath(dirpath, root)
        depth = 0 if relpath == os.curdir else len(relpath.split(os.sep))
        if depth >= filepool_config.DIR_DEPTH:
            # Buckets hold no further levels
            dirnames[:] = []
        if depth == filepool_config.DIR_DEPTH:
            for filename in filenames:
                yield os.path.join(dirpath, filename)


def collect(*roots):
    """Walk the given trees and compute statistics over all their entries.

    Every call reads the metadata of every entry; nothing is cached.

    :param str roots: Tree roots to include.

    :return: Total size, median size, number of files and time of the last add.
    :rtype: PoolStats
    """
    stats = []
    for root in roots:
        for path in iter_entries(root):
            try:
                stats.append(os.stat(path))
            except FileNotFoundError:
                # Removed since the walk listed it
                continue
    if not stats:
        return PoolStats(0, 0.0, 0, None)
    sizes = [file_stat.st_size for file_stat in stats]
    last_add = max(file_stat.st_ctime for file_stat in stats)
    return PoolStats(
        total_size=sum(sizes),
        median_size=median(sizes),
        file_count=len(stats),
        last_add=datetime.fromtimestamp(last_add),
    )
