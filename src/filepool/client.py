"""FilePool Command Line App"""
import logging
import os
from argparse import ArgumentParser
from pathlib import Path
from filepool import FilePoolFactory


class FilePoolParser:
    """Class to setup client arguments"""

    PROGRAM_NAME = "FilePool Command Line Client"
    DESCRIPTION = (
        "A command-line tool to add files to a file pool, resolve their ids"
        + " to paths, remove them and show statistics about the pool."
    )

    def __init__(self):
        """Initialize the argparse 'parser'."""
        self.parser = ArgumentParser(
            prog=self.PROGRAM_NAME,
            description=self.DESCRIPTION,
        )

        # Add positional argument
        self.parser.add_argument("pool_root", help="Root directory of the FilePool")

        # Pool configuration
        self.parser.add_argument(
            "-secrets",
            dest="secrets_file",
            help="Path of the secrets file, enables encryption",
        )
        self.parser.add_argument(
            "-copy",
            dest="copy_source",
            action="store_true",
            help="Copy files into the pool instead of hardlinking them",
        )
        self.parser.add_argument(
            "-mode",
            dest="mode",
            help="File mode (octal, ex. 640) to apply to added files",
        )
        self.parser.add_argument(
            "-logfile",
            dest="log_file",
            help="Log file, defaults to 'python_filepool.log' in the pool root",
        )

        # Public API flags
        self.parser.add_argument(
            "-add",
            dest="client_add",
            metavar="PATH",
            help="Add the file at PATH to the pool and print its file id",
        )
        self.parser.add_argument(
            "-path",
            dest="client_path",
            metavar="FILE_ID",
            help="Print the path of a file id (decrypted copy in encryption mode)",
        )
        self.parser.add_argument(
            "-raw",
            dest="raw",
            action="store_true",
            help="With -path, print the path of the stored (encrypted) file",
        )
        self.parser.add_argument(
            "-remove",
            dest="client_remove",
            metavar="FILE_ID",
            help="Remove a file id from the pool",
        )
        self.parser.add_argument(
            "-stat",
            dest="client_stat",
            action="store_true",
            help="Print statistics about the pool",
        )

    def get_parser_args(self, args=None):
        """Get command line arguments."""
        return self.parser.parse_args(args)


def get_pool_options(args):
    """Build the pool options dictionary from parsed arguments.

    :param argparse.Namespace args: Parsed command line arguments.

    :return: Pool options.
    :rtype: dict
    """
    options = {"copy_source": args.copy_source}
    if args.secrets_file is not None:
        options["secrets_file"] = args.secrets_file
    if args.mode is not None:
        options["mode"] = int(args.mode, 8)
    return options


def setup_logging(pool_root, log_file=None):
    """Log to `log_file`, or to 'python_filepool.log' in the pool root."""
    if log_file is None:
        log_file = os.path.join(pool_root, "python_filepool.log")
    python_log_file_path = Path(log_file)
    python_log_file_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=python_log_file_path,
        level=logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main(argv=None):
    """Main function of the FilePool client."""
    parser = FilePoolParser()
    args = parser.get_parser_args(argv)

    pool_root = args.pool_root
    setup_logging(pool_root, args.log_file)

    pool = FilePoolFactory.get_filepool(
        "filepool.localfilepool", "LocalFilePool", pool_root, get_pool_options(args)
    )

    with pool:
        if args.client_add is not None:
            file_id = pool.add(args.client_add)
            print(file_id)
        elif args.client_path is not None:
            if args.raw:
                print(pool.path_raw(args.client_path))
            else:
                print(pool.path(args.client_path))
        elif args.client_remove is not None:
            pool.remove(args.client_remove)
            print(f"File id: {args.client_remove} has been removed.")
        elif args.client_stat:
            pool_stats = pool.stat()
            last_add = pool_stats.last_add
            print(f"total_size: {pool_stats.total_size}")
            print(f"median_size: {pool_stats.median_size}")
            print(f"file_count: {pool_stats.file_count}")
            print(f"last_add: {last_add.isoformat() if last_add else None}")
        else:
            parser.parser.print_help()


if __name__ == "__main__":
    main()
