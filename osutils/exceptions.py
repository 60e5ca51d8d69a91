"""Custom exception hierarchy for osutils."""


class OsUtilsError(Exception):
    """Base for all osutils errors."""


class NotAbsolutePathError(OsUtilsError):
    """A path argument required to be absolute was not."""


class NilError(OsUtilsError):
    """A required argument vector or stage list was not given."""


class EmptyError(OsUtilsError):
    """An argument vector or stage list was empty."""


class NotMultipleCommandsError(OsUtilsError):
    """A pipeline was given fewer than two stages."""


class FileDoesNotExistError(OsUtilsError):
    """No filesystem entry exists at the path."""


class NotRegularFileError(OsUtilsError):
    """The entry exists but is not a regular file."""


class NotDirError(OsUtilsError):
    """The entry exists but is not a directory."""


class ResolutionError(OsUtilsError):
    """A path could not be canonicalized (missing component or symlink loop)."""


class HandleConsumedError(OsUtilsError):
    """wait() was already called on this process handle."""
