"""FilePool custom exception module."""


class FilePoolError(Exception):
    """Base class for the exceptions raised by FilePool."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors


class InvalidFileId(FilePoolError, ValueError):
    """Custom exception thrown when a file id is not a syntactically valid
    version 4 UUID."""


class NotFound(FilePoolError, FileNotFoundError):
    """Custom exception thrown when the source file given to `add` does not exist,
    or when no stored entry exists at the location resolved for a file id."""


class ConfigurationError(FilePoolError):
    """Custom exception thrown when a pool is used before it has been set up,
    when an option is invalid, or when the secrets file cannot be read or does not
    match the requested encryption scheme."""
