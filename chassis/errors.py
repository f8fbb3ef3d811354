"""Exceptions raised by the chassis tracker."""


class ChassisError(Exception):
    """Base class for all tracker errors."""


class ImportRejectedError(ChassisError):
    """An import was aborted; nothing was applied to the fleet."""


class HeadersNotDetectedError(ImportRejectedError):
    def __init__(self, message: str = "Could not detect headers. Expected columns: unit/plate/VIN."):
        super().__init__(message)


class MissingColumnError(ImportRejectedError):
    def __init__(self, missing=None):
        self.missing = list(missing or [])
        message = "Missing required columns. Need: unit, plate, vin."
        if self.missing:
            message += f" Not found: {', '.join(self.missing)}."
        super().__init__(message)


class NoUsableRowsError(ImportRejectedError):
    def __init__(self, message: str = "No usable rows found."):
        super().__init__(message)


class UnsupportedFileError(ImportRejectedError):
    """The file type cannot be decoded into rows."""


class RecordValidationError(ChassisError):
    """A chassis record failed validation on save."""


class PersistenceError(ChassisError):
    """The persistence collaborator rejected a load or save.

    The underlying exception is available as ``__cause__``.
    """


class ConfigurationError(ChassisError, ValueError):
    """An environment setting could not be interpreted."""
