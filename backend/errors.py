"""Exception types for the answer suggestion backend."""

from typing import Optional


class AnswerEngineError(Exception):
    """Base class for errors raised by the suggestion engine and library."""


class NotFoundError(AnswerEngineError):
    """A question or library entry id does not resolve."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationError(AnswerEngineError):
    """Malformed library entry input, with the offending field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class GeneratorFailure(AnswerEngineError):
    """A single suggestion generator errored or timed out.

    Only used inside the engine to log and discard the failed source.
    """

    def __init__(self, source: str, cause: Optional[BaseException] = None):
        self.source = source
        self.cause = cause
        reason = "timed out" if isinstance(cause, TimeoutError) else repr(cause)
        super().__init__(f"{source} generator failed: {reason}")


class CapabilityUnavailableError(AnswerEngineError):
    """The generative text backend is not configured or unreachable."""
