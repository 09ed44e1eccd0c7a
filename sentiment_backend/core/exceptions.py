"""Errors raised by the sentiment pipeline."""


class PipelineError(Exception):
    """Base exception for pipeline failures."""


class FatalFetchError(PipelineError):
    """Raised when posts could not be fetched; the run is aborted."""

    def __init__(self, query: str, message: str):
        self.query = query
        super().__init__(message)
