"""
Introduction document payload, wire envelopes and submission results.

This module provides:
- pydantic models for the document contract (field names are fixed by the
  remote service and serialized through aliases verbatim)
- Response envelopes for success and error bodies
- The SubmissionResult tagged union every caller must handle
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ApiResponseError, AuthenticationError


class ProductionType(Enum):
    """How the goods were produced."""
    OWN_PRODUCTION = "OWN_PRODUCTION"
    CONTRACT_PRODUCTION = "CONTRACT_PRODUCTION"


class CertificateDocumentType(Enum):
    """Kind of conformity document attached to a product."""
    CONFORMITY_CERTIFICATE = "CONFORMITY_CERTIFICATE"
    CONFORMITY_DECLARATION = "CONFORMITY_DECLARATION"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class Description(_WireModel):
    participant_inn: str | None = Field(default=None, alias="participantInn")


class Product(_WireModel):
    certificate_document: CertificateDocumentType | None = None
    certificate_document_date: str | None = None
    certificate_document_number: str | None = None
    owner_inn: str | None = None
    producer_inn: str | None = None
    production_date: str | None = None
    tnved_code: str | None = None
    uit_code: str | None = None
    uitu_code: str | None = None


class IntroductionDocument(_WireModel):
    """
    Product introduction (commissioning) document.

    All fields are optional; absent ones go over the wire as null.
    """
    description: Description | None = None
    doc_id: str | None = None
    doc_status: str | None = None
    doc_type: str | None = None
    import_request: bool | None = Field(default=None, alias="importRequest")
    owner_inn: str | None = None
    participant_inn: str | None = None
    producer_inn: str | None = None
    production_date: str | None = None
    production_type: ProductionType | None = None
    products: list[Product] | None = None
    reg_date: str | None = None
    reg_number: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the remote service's field names."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class SubmissionRequest:
    """A document paired with its detached signature."""
    document: IntroductionDocument
    signature: str

    def to_payload(self) -> dict[str, Any]:
        return {"document": self.document.to_wire(), "signature": self.signature}


class CreatedDocument(BaseModel):
    """HTTP 200 body."""
    value: str


class FailedResponse(BaseModel):
    """Error envelope for every status other than 200 and 401."""
    code: str
    error_message: str
    description: str


@dataclass(frozen=True)
class Success:
    """The document was accepted; ``value`` is the created document id."""
    value: str
    kind: Literal["success"] = field(default="success", init=False)


@dataclass(frozen=True)
class AuthFailure:
    """HTTP 401: credentials must be refreshed out of band."""
    status_code: int = 401
    body: str = ""
    kind: Literal["auth_failure"] = field(default="auth_failure", init=False)


@dataclass(frozen=True)
class ApiError:
    """Structured business-rule rejection."""
    code: str
    error_message: str
    description: str
    status_code: int | None = None
    kind: Literal["api_error"] = field(default="api_error", init=False)


SubmissionResult = Success | AuthFailure | ApiError


def unwrap_result(result: SubmissionResult) -> str:
    """
    Return the created document id or raise for any other outcome.

    Raises:
        AuthenticationError: For AuthFailure
        ApiResponseError: For ApiError
    """
    match result:
        case Success(value=value):
            return value
        case AuthFailure(status_code=status_code, body=body):
            raise AuthenticationError(
                "Authorization failed: re-authenticate or refresh the access token",
                status_code=status_code,
                response_body=body,
            )
        case ApiError():
            raise ApiResponseError(
                f"API error: {result.error_message} (code: {result.code}) "
                f"- {result.description}",
                code=result.code,
                description=result.description,
                status_code=result.status_code,
            )
    raise TypeError(f"Unknown submission result: {result!r}")
