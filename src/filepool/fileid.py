"""Generation and validation of FilePool file ids (random version 4 UUIDs)."""

import logging
import uuid
from filepool.filepool_exceptions import InvalidFileId


def new_id():
    """Return a new random version 4 UUID as its canonical 36 character string."""
    return str(uuid.uuid4())


def is_valid(file_id):
    """Check whether `file_id` is a version 4 UUID in canonical lower-case
    hyphenated form, the form `new_id` returns and entries are named by.

    Never raises; anything that is not such a string yields `False`.

    :param mixed file_id: Value to check.

    :return: True if valid.
    :rtype: bool
    """
    if not isinstance(file_id, str) or len(file_id) != 36:
        return False
    try:
        parsed = uuid.UUID(file_id)
    except (TypeError, ValueError):
        return False
    # uuid.UUID also accepts upper case, braces, urn prefixes and missing hyphens
    if str(parsed) != file_id:
        return False
    return parsed.version == 4 and parsed.variant == uuid.RFC_4122


def check_id(file_id, caller="FilePool - check_id"):
    """Raise `InvalidFileId` if the given file id is not valid.

    :param str file_id: File id to check.
    :param str caller: Prefix of the error message, ex. "LocalFilePool - path".
    """
    if not is_valid(file_id):
        exception_string = f"{caller}: Invalid file id: {file_id!r}"
        logging.error(exception_string)
        raise InvalidFileId(exception_string)
