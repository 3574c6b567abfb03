class AnalysisError(Exception):
    """Base class for failures in the label-to-record pipeline."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class TransportFailure(AnalysisError):
    """The analysis service could not be reached or did not answer in time."""


class DecodeFailure(AnalysisError):
    """The service answer was not valid JSON or did not match the response schema."""


class ServiceReportedError(AnalysisError):
    """The service answered with an explicit {"error": "..."} payload."""


class ValidationFailure(AnalysisError):
    """A single narrative item could not be parsed."""


class StorageFailure(Exception):
    """A read or write against the product store failed."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
