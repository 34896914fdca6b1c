"""Exception hierarchy for the producer service."""

from typing import Optional


class ProducerError(Exception):
    """Base class for producer errors."""


class EncodingError(ProducerError):
    """Raised when a sample cannot be serialized or deserialized."""


class SubmissionError(ProducerError):
    """Raised when the stream sink rejects a record or cannot be reached."""

    def __init__(self, message: str, stream_name: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.stream_name = stream_name
        self.error_code = error_code


class StartupError(ProducerError):
    """Raised when the service cannot initialize its stream client."""
