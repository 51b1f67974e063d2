"""
HTTP clients that submit introduction documents under a shared rate limit.

Each submission runs Admitting -> Sending -> Classifying -> Done. Only
admission is retried internally; every other failure propagates.
"""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx
from pydantic import ValidationError

from .exceptions import (
    ConfigurationError,
    ProtocolViolation,
    SerializationError,
    TransportError,
)
from .logging_utils import ContextualLogger, SubmissionErrorHandler, log_operation
from .models import (
    ApiError,
    AuthFailure,
    CreatedDocument,
    FailedResponse,
    IntroductionDocument,
    SubmissionRequest,
    SubmissionResult,
    Success,
    unwrap_result,
)
from .rate_limiting import RateLimitConfig, RateLimiter
from .rate_limiting.models import DEFAULT_POLL_CAP_MS

DEFAULT_BASE_URL = "https://ismp.crpt.ru/api/v3"
SUBMIT_PATH = "/lk/documents/commissioning/contract/create"
DEFAULT_TIMEOUT = 30.0


def classify_response(status_code: int, body: str) -> SubmissionResult:
    """
    Turn an HTTP status and body into a submission result.

    Raises:
        ProtocolViolation: If the body does not match the shape expected
            for its status code
    """
    if status_code == 200:
        try:
            created = CreatedDocument.model_validate_json(body)
        except ValidationError as e:
            raise ProtocolViolation(
                f"Malformed success body: {e.error_count()} validation error(s)",
                status_code=status_code,
                response_body=body,
            ) from e
        return Success(value=created.value)

    if status_code == 401:
        return AuthFailure(status_code=status_code, body=body)

    try:
        failed = FailedResponse.model_validate_json(body)
    except ValidationError as e:
        raise ProtocolViolation(
            f"Malformed error body for HTTP {status_code}",
            status_code=status_code,
            response_body=body,
        ) from e
    return ApiError(
        code=failed.code,
        error_message=failed.error_message,
        description=failed.description,
        status_code=status_code,
    )


class _SubmissionBase:
    """Request building and outcome logging shared by both clients."""

    def __init__(
        self,
        access_token: str,
        rate_limit: RateLimitConfig | None,
        base_url: str,
        limiter: RateLimiter | None,
    ):
        if not access_token:
            raise ConfigurationError("access_token must not be empty")

        if limiter is None:
            if rate_limit is None:
                raise ConfigurationError("Either rate_limit or limiter must be given")
            limiter = RateLimiter.from_config(rate_limit)
        elif rate_limit is not None and (
            rate_limit.request_limit != limiter.request_limit
            or rate_limit.window_ms != limiter.window_ms
        ):
            raise ConfigurationError(
                f"rate_limit ({rate_limit.request_limit} per {rate_limit.window_ms}ms) "
                f"contradicts the shared limiter "
                f"({limiter.request_limit} per {limiter.window_ms}ms)"
            )

        self.base_url = base_url.rstrip("/")
        self.limiter = limiter
        self.poll_cap_ms = rate_limit.poll_cap_ms if rate_limit else DEFAULT_POLL_CAP_MS
        self._access_token = access_token
        self._log = ContextualLogger({"endpoint": SUBMIT_PATH})

    @property
    def url(self) -> str:
        return self.base_url + SUBMIT_PATH

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _encode(document: IntroductionDocument | dict[str, Any], signature: str) -> str:
        """Serialize the request body; nothing is sent if this fails."""
        try:
            if not isinstance(document, IntroductionDocument):
                document = IntroductionDocument.model_validate(document)
            request = SubmissionRequest(document=document, signature=signature)
            return json.dumps(request.to_payload(), ensure_ascii=False)
        except (ValidationError, TypeError, ValueError) as e:
            raise SerializationError(f"Document processing error: {e}") from e

    def _transport_error(self, error: httpx.HTTPError) -> TransportError:
        return TransportError(f"Request to {self.url} failed: {error}")

    def _classify(self, response: httpx.Response, waited_ms: int) -> SubmissionResult:
        log = self._log.bind(status_code=response.status_code, waited_ms=waited_ms)
        try:
            result = classify_response(response.status_code, response.text)
        except ProtocolViolation as e:
            log.error(
                "Unexpected response shape",
                error_category=SubmissionErrorHandler.classify_error(e),
            )
            raise

        if isinstance(result, Success):
            log.info("Document accepted", document_id=result.value)
        elif isinstance(result, AuthFailure):
            log.warning("Access token rejected")
        else:
            log.warning(
                "Document rejected",
                code=result.code,
                error_message=result.error_message,
            )
        return result


class SubmissionClient(_SubmissionBase):
    """
    Blocking client, safe to share between threads.

    Network I/O happens outside the limiter lock, so a slow request never
    delays other callers' admission checks.
    """

    def __init__(
        self,
        access_token: str,
        rate_limit: RateLimitConfig | None = None,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        limiter: RateLimiter | None = None,
    ):
        super().__init__(access_token, rate_limit, base_url, limiter)
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(timeout=timeout)

    @log_operation("submit_document")
    def submit(
        self,
        document: IntroductionDocument | dict[str, Any],
        signature: str,
        cancel_event: threading.Event | None = None,
    ) -> SubmissionResult:
        """
        Submit one document and classify the response.

        Args:
            document: Document model or a dict in wire format
            signature: Detached signature of the document
            cancel_event: Setting this event aborts the admission wait

        Returns:
            Success, AuthFailure or ApiError

        Raises:
            ThrottleWaitInterrupted: Cancelled before a slot was granted
            SerializationError: Payload could not be encoded
            TransportError: Network-level failure
            ProtocolViolation: Malformed response body
        """
        body = self._encode(document, signature)
        waited_ms = self.limiter.wait_for_slot(self.poll_cap_ms, cancel_event)

        try:
            response = self.http_client.post(self.url, content=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e

        return self._classify(response, waited_ms)

    def create_introduction_document(
        self,
        document: IntroductionDocument | dict[str, Any],
        signature: str,
    ) -> str:
        """Submit and return the created document id, raising on any other outcome."""
        return unwrap_result(self.submit(document, signature))

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> SubmissionClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class AsyncSubmissionClient(_SubmissionBase):
    """asyncio client; task cancellation during admission raises ThrottleWaitInterrupted."""

    def __init__(
        self,
        access_token: str,
        rate_limit: RateLimitConfig | None = None,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        limiter: RateLimiter | None = None,
    ):
        super().__init__(access_token, rate_limit, base_url, limiter)
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @log_operation("submit_document")
    async def submit(
        self,
        document: IntroductionDocument | dict[str, Any],
        signature: str,
    ) -> SubmissionResult:
        """
        Awaitable counterpart of ``SubmissionClient.submit``.

        Any cancellation that lands during the admission wait, including one
        delivered by ``asyncio.timeout`` or ``asyncio.wait_for``, surfaces as
        ThrottleWaitInterrupted rather than CancelledError or TimeoutError.
        Cancellation after admission (while the request is in flight)
        propagates unchanged.

        Raises:
            ThrottleWaitInterrupted: Cancelled before a slot was granted
            SerializationError: Payload could not be encoded
            TransportError: Network-level failure
            ProtocolViolation: Malformed response body
        """
        body = self._encode(document, signature)
        waited_ms = await self.limiter.wait_for_slot_async(self.poll_cap_ms)

        try:
            response = await self.http_client.post(
                self.url, content=body, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e

        return self._classify(response, waited_ms)

    async def create_introduction_document(
        self,
        document: IntroductionDocument | dict[str, Any],
        signature: str,
    ) -> str:
        return unwrap_result(await self.submit(document, signature))

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> AsyncSubmissionClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
