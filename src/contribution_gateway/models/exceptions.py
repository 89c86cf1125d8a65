"""Custom exceptions for the Contribution Gateway."""

from enum import Enum
from typing import Any


class GatewayErrorKind(str, Enum):
    """Closed set of remote-gateway failure variants."""

    DECLINED = "declined"
    CONFLICT = "conflict"
    FAULT = "fault"
    TRANSPORT = "transport"


class GatewayError(Exception):
    """
    Base exception for every failed gateway call.

    Each subclass pins ``kind`` so callers can match on the variant tag
    instead of the class. ``body`` keeps the gateway's full structured error
    payload for diagnosis.
    """

    kind: GatewayErrorKind = GatewayErrorKind.FAULT

    def __init__(
        self,
        message: str,
        *,
        type: str | None = None,
        code: str | None = None,
        operation: str | None = None,
        body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.type = type
        self.code = code
        self.operation = operation
        self.body = body or {}


class DeclinedError(GatewayError):
    """
    Raised when the card is rejected.

    Always user-facing and always final; never retried.
    """

    kind = GatewayErrorKind.DECLINED


class ConflictError(GatewayError):
    """
    Raised when the remote resource already exists.

    Recoverable only when the caller pre-declared it ignorable.
    """

    kind = GatewayErrorKind.CONFLICT


class GatewayFault(GatewayError):
    """Raised for any other structured error reported by the gateway."""

    kind = GatewayErrorKind.FAULT


class TransportFailure(GatewayError):
    """
    Raised when no response was received from the gateway.

    Always fatal. The payer is pointed at the gateway dashboard instead of
    being invited to retry blindly, since the call may have succeeded remotely.
    """

    kind = GatewayErrorKind.TRANSPORT


class FatalLocalError(Exception):
    """
    Raised for local preconditions that make a payment impossible.

    Examples:
    - No single-use payment token was supplied
    - No gateway customer could be created
    - Transfer checkout was requested
    """

    pass


class PaymentAborted(Exception):
    """
    Raised to end a payment request and bounce the payer.

    Carries the user-facing message and the URL the payer should be sent
    back to in order to retry manually.
    """

    def __init__(
        self,
        message: str,
        redirect_url: str,
        cause_kind: GatewayErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.redirect_url = redirect_url
        self.cause_kind = cause_kind
