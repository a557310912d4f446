"""
Typed failures raised by the DSSAT file readers
"""


class DssatReadError(Exception):
    """Base class for terminal read failures of a single reader call."""

    def __init__(self, message: str, file_path: str = ""):
        super().__init__(message)
        self.file_path = file_path


class DssatFileNotFoundError(DssatReadError, FileNotFoundError):
    """The file does not exist."""


class FileUnreadableError(DssatReadError, OSError):
    """The file exists but could not be opened or decoded."""


class NoHeaderFoundError(DssatReadError):
    """The file was read but no '@' header line was found."""


class NoDataFoundError(DssatReadError):
    """Headers were found but no usable data rows."""


class NoDataTablesError(NoDataFoundError):
    """The multi-section reader produced zero data sections."""
