"""Error kinds raised by the caption pipeline.

Every stage raises a subclass of :class:`PipelineError`. The batch
orchestrator turns those into per-item failures, so the ``reason`` must be
readable by an end user: no tracebacks, no raw upstream payloads.
"""
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_REFERENCE = "InvalidReference"
    TOKEN_NOT_FOUND = "TokenNotFound"
    NO_CAPTIONS_AVAILABLE = "NoCaptionsAvailable"
    LANGUAGE_NOT_AVAILABLE = "LanguageNotAvailable"
    MALFORMED_CAPTION_DOCUMENT = "MalformedCaptionDocument"
    NETWORK_FAILURE = "NetworkFailure"
    SUMMARIZATION_FAILED = "SummarizationFailed"
    UNEXPECTED = "Unexpected"


class PipelineError(Exception):
    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidReference(PipelineError):
    kind = ErrorKind.INVALID_REFERENCE


class TokenNotFound(PipelineError):
    kind = ErrorKind.TOKEN_NOT_FOUND


class NoCaptionsAvailable(PipelineError):
    kind = ErrorKind.NO_CAPTIONS_AVAILABLE


class LanguageNotAvailable(PipelineError):
    kind = ErrorKind.LANGUAGE_NOT_AVAILABLE


class MalformedCaptionDocument(PipelineError):
    kind = ErrorKind.MALFORMED_CAPTION_DOCUMENT


class NetworkFailure(PipelineError):
    kind = ErrorKind.NETWORK_FAILURE


class PipelineCancelled(NetworkFailure):
    def __init__(self, reason: str = "Request was cancelled before this video finished"):
        super().__init__(reason)


class SummarizationFailed(PipelineError):
    kind = ErrorKind.SUMMARIZATION_FAILED


def raise_if_cancelled(cancel_event) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PipelineCancelled()


class EmptyBatchError(ValueError):
    """Raised when a batch is submitted without any URL."""


class BatchCancelled(Exception):
    """Raised when the caller cancels a running batch."""
