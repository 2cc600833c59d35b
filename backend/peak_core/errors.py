"""Error taxonomy for the analysis pipeline."""


class PeakAnalysisError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PeakAnalysisError):
    """A required setting (e.g. the completion API key) is missing."""


class TransportError(PeakAnalysisError):
    """An external call failed (network error or non-success response)."""


class RequestTimeoutError(TransportError, TimeoutError):
    """An external call exceeded its deadline."""


class NoStructuredOutputError(PeakAnalysisError):
    """No JSON object could be extracted from the completion text."""


class ValidationError(PeakAnalysisError):
    """The extracted object does not have the required shape."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class StoreUnavailableError(PeakAnalysisError):
    """The durable store could not be reached."""


class TemplateError(PeakAnalysisError):
    """A prompt template is missing or could not be filled."""


class RunInProgressError(PeakAnalysisError):
    """Another pipeline run is already in flight."""
