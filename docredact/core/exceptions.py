# docredact/core/exceptions.py

"""Custom exception hierarchy for the document redaction system.

This module defines the specific error types used throughout the application
to differentiate between configuration, initialization, recognizer and
runtime errors.
"""


class RedactionError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigurationError(RedactionError):
    """Raised when configuration loading or validation fails."""

    pass


class InitializationError(RedactionError):
    """Raised when the engine or external resources fail to initialize."""

    pass


class PipelineError(RedactionError):
    """Raised when a specific processing step in the pipeline fails."""

    pass


class ValidationError(RedactionError):
    """Raised when input validation fails (e.g., invalid text input)."""

    pass


class RecognizerError(RedactionError):
    """Base class for failures of the asynchronous entity recognizer."""

    pass


class ModelUnavailableError(RecognizerError):
    """Raised when detection is requested before the model is ready."""

    pass


class DetectionTimeoutError(RecognizerError):
    """Raised when a detection call exceeds its timeout."""

    pass


class WorkerCrashedError(RecognizerError):
    """Raised when the recognizer worker terminated unexpectedly."""

    pass


class ChunkProcessingError(RecognizerError):
    """Raised when scoring a single chunk fails."""

    pass
