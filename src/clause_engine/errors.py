"""Typed errors raised by the decision pipeline.

Every error carries a `user_message` that a host UI can display as-is. The
core never substitutes a default decision when one of these is raised.
"""

from __future__ import annotations


class ClauseEngineError(Exception):
    """Base class for all pipeline errors."""

    user_message = "The claim could not be analyzed."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class InputValidationError(ClauseEngineError):
    """Missing document text or a blank query."""

    user_message = "Please provide both a document and a query."


class ConfigurationError(ClauseEngineError, ValueError):
    """Invalid settings or a missing credential."""

    user_message = "The analysis service is not configured correctly."


class ModelRequestError(ClauseEngineError):
    """Non-retryable transport failure talking to the model endpoint."""

    user_message = "The analysis service returned an error."

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ModelOverloadedError(ClauseEngineError):
    """Retryable failures persisted past the retry budget."""

    user_message = "The analysis service is overloaded. Please try again shortly."

    def __init__(self, message: str, *, attempts: int, last_status: int) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_status = last_status


class ModelCancelledError(ClauseEngineError):
    """The caller cancelled the request while it was backing off."""

    user_message = "The analysis was cancelled."


class EmptyResponseError(ClauseEngineError):
    """The endpoint answered successfully but produced no candidate."""

    user_message = "No content was received from the analysis service."


class MalformedResponseError(ClauseEngineError):
    """The candidate text is not a valid decision document."""

    user_message = "The analysis service returned an unreadable decision."

    def __init__(self, message: str, *, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text
