"""
Error taxonomy for document submission.

Every failure reaches the caller as its own exception type:
- Configuration problems are rejected at construction time
- Serialization and admission failures never touch the network
- Transport failures wrap the underlying httpx error
- Malformed responses are reported, never coerced into a result

Auth failures and business-rule rejections are *results*, not exceptions
(see ``truesign.models``); ``AuthenticationError`` and ``ApiResponseError``
are only raised by ``unwrap_result`` for callers that prefer exceptions.
"""

from __future__ import annotations


class SubmissionError(Exception):
    """Base submission error with response context."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body


class ConfigurationError(SubmissionError, ValueError):
    """Invalid rate limit, window, token or configuration file."""
    pass


class SerializationError(SubmissionError):
    """Outbound payload could not be encoded."""
    pass


class ThrottleWaitInterrupted(SubmissionError):
    """Caller was cancelled while waiting for a rate limit slot."""

    def __init__(self, message: str, waited_ms: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.waited_ms = waited_ms


class TransportError(SubmissionError):
    """Network-level failure: connection refused, timeout and the like."""
    pass


class ProtocolViolation(SubmissionError):
    """Response body does not match the shape expected for its status code."""
    pass


class AuthenticationError(SubmissionError):
    """Access token rejected; credentials must be refreshed out of band."""
    pass


class ApiResponseError(SubmissionError):
    """Structured rejection from the remote service."""

    def __init__(
        self,
        message: str,
        code: str,
        description: str,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.code = code
        self.description = description
