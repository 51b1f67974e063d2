"""
Rate-limited client for submitting product introduction documents.

This package provides:
- A thread-safe sliding-window rate limiter
- Blocking and asyncio submission clients
- Typed results for success, auth failure and API errors
- pydantic models for the document contract
"""

from __future__ import annotations

from .client import (
    DEFAULT_BASE_URL,
    SUBMIT_PATH,
    AsyncSubmissionClient,
    SubmissionClient,
    classify_response,
)
from .exceptions import (
    ApiResponseError,
    AuthenticationError,
    ConfigurationError,
    ProtocolViolation,
    SerializationError,
    SubmissionError,
    ThrottleWaitInterrupted,
    TransportError,
)
from .models import (
    ApiError,
    AuthFailure,
    CertificateDocumentType,
    Description,
    IntroductionDocument,
    Product,
    ProductionType,
    SubmissionRequest,
    SubmissionResult,
    Success,
    unwrap_result,
)
from .rate_limiting import RateLimitConfig, RateLimiter, TimeWindow

__all__ = [
    "DEFAULT_BASE_URL",
    "SUBMIT_PATH",
    # Results
    "ApiError",
    # Exceptions
    "ApiResponseError",
    # Clients
    "AsyncSubmissionClient",
    "AuthFailure",
    "AuthenticationError",
    # Document models
    "CertificateDocumentType",
    "ConfigurationError",
    "Description",
    "IntroductionDocument",
    "Product",
    "ProductionType",
    "ProtocolViolation",
    # Rate limiting
    "RateLimitConfig",
    "RateLimiter",
    "SerializationError",
    "SubmissionClient",
    "SubmissionError",
    "SubmissionRequest",
    "SubmissionResult",
    "Success",
    "ThrottleWaitInterrupted",
    "TimeWindow",
    "TransportError",
    "classify_response",
    "unwrap_result",
]
