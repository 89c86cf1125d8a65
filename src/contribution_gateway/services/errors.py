"""
Classification of gateway failures.

Every remote call made by the charge and recurring flows goes through
ErrorClassifier.call(). A failure ends in one of three ways:

- IGNORED: matches a caller-declared IgnoreRule; the call counts as success
- DECLINED / FAULT: formatted "Payment Response" message, payer bounced
- TRANSPORT: no response at all; payer told to check the gateway dashboard
"""

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

import structlog

from contribution_gateway.collaborators import Router
from contribution_gateway.config import RoutingSettings, settings
from contribution_gateway.models import (
    Classification,
    GatewayError,
    GatewayErrorKind,
    IgnoreRule,
    PaymentAborted,
    PaymentRequest,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSPORT_FAILURE_MESSAGE = (
    "Stripe transaction response not received! "
    "Check the Logs section of your stripe.com account."
)

# Only these variants may be declared ignorable
_IGNORABLE_KINDS = (GatewayErrorKind.CONFLICT, GatewayErrorKind.FAULT)


def format_payment_response(error: GatewayError) -> str:
    """Build the user-facing message for a declined or faulted call."""
    return (
        "Oops! Looks like there was an error. Payment Response:\n"
        f"Type: {error.type or ''}\n"
        f"Code: {error.code or ''}\n"
        f"Message: {error.message}"
    )


class ErrorClassifier:
    """Decides whether a gateway error is ignorable, user-facing or fatal."""

    def __init__(self, router: Router, routing: RoutingSettings | None = None) -> None:
        self.router = router
        self.routing = routing or settings.routing

    def classify(
        self,
        error: GatewayError,
        ignores: Iterable[IgnoreRule] = (),
    ) -> Classification:
        """Classify ``error`` against an ordered ignore-list."""
        if error.kind in _IGNORABLE_KINDS:
            for rule in ignores:
                if (
                    rule.kind == error.kind
                    and rule.type == error.type
                    and rule.message == error.message
                ):
                    return Classification.IGNORED

        if error.kind == GatewayErrorKind.DECLINED:
            return Classification.DECLINED
        if error.kind == GatewayErrorKind.TRANSPORT:
            return Classification.TRANSPORT
        return Classification.FAULT

    def retry_url(self, request: PaymentRequest) -> str:
        """Where to send the payer to try again."""
        if request.is_event_registration:
            route = self.routing.event_retry_route
        else:
            route = self.routing.contribution_retry_route
        return self.router.build_url(
            route,
            {"_qf_Main_display": "1", "cancel": "1", "qfKey": request.form_key},
        )

    def handle(
        self,
        error: GatewayError,
        request: PaymentRequest,
        ignores: Iterable[IgnoreRule] = (),
    ) -> None:
        """
        Act on a gateway error.

        Returns normally only when the error is ignorable.

        Raises:
            PaymentAborted: For every other error, with the retry destination
        """
        classification = self.classify(error, ignores)

        if classification == Classification.IGNORED:
            logger.info(
                "gateway_error_ignored",
                operation=error.operation,
                error_type=error.type,
                message=error.message,
            )
            return

        redirect_url = self.retry_url(request)

        if classification == Classification.TRANSPORT:
            logger.error(
                "gateway_no_response",
                operation=error.operation,
                invoice_id=request.invoice_id,
            )
            raise PaymentAborted(TRANSPORT_FAILURE_MESSAGE, redirect_url, error.kind) from error

        if classification == Classification.FAULT:
            logger.error(
                "gateway_fault",
                operation=error.operation,
                error_type=error.type,
                code=error.code,
                error_body=error.body,
                invoice_id=request.invoice_id,
            )
        else:
            logger.info(
                "payment_declined",
                operation=error.operation,
                code=error.code,
                invoice_id=request.invoice_id,
            )

        raise PaymentAborted(format_payment_response(error), redirect_url, error.kind) from error

    def call(
        self,
        request: PaymentRequest,
        fn: Callable[..., T],
        *args: Any,
        ignores: Iterable[IgnoreRule] = (),
        **kwargs: Any,
    ) -> T | None:
        """
        Run a gateway operation, routing any failure through ``handle``.

        Returns:
            The operation's result, or None when the failure was ignored
        """
        try:
            return fn(*args, **kwargs)
        except GatewayError as e:
            self.handle(e, request, ignores)
            return None
