"""Error kinds raised by the verification engine.

All of them are local, recoverable conditions. The HTTP layer maps them to
status codes; nothing in the engine swallows them.
"""


class EngineError(Exception):
    """Base class for every error the engine signals to its caller."""


class ValidationError(EngineError):
    """Malformed input, e.g. an unknown document type."""


class InvalidScoreError(ValidationError):
    """Fraud score outside [0, 100] or not an integer."""


class InvalidTransitionError(EngineError):
    """Status machine violation."""


class NotFoundError(EngineError):
    """Unknown record or alert id."""


class ExtractionError(EngineError):
    """The external extraction service failed."""
