"""
Stripe gateway client.

Wraps Stripe's resource API (customers, charges, plans, subscriptions and
balance transactions) and translates every SDK failure into the gateway
error taxonomy. Keep MockGateway (mock_gateway.py) in step with changes to
the normalized return values and error translation here.

Reference:
- https://docs.stripe.com/api
- https://docs.stripe.com/error-handling
"""

from collections.abc import Callable
from typing import Any, TypeVar

import stripe
import structlog

from contribution_gateway.gateway.base import PaymentGateway
from contribution_gateway.models import (
    ChargeRequest,
    ConflictError,
    DeclinedError,
    GatewayBalanceTransaction,
    GatewayCharge,
    GatewayCustomer,
    GatewayError,
    GatewayFault,
    GatewayPlan,
    GatewaySubscription,
    PlanSpec,
    TransportFailure,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RESOURCE_ALREADY_EXISTS = "resource_already_exists"

# Subscription states whose first invoice was not paid
UNPAID_SUBSCRIPTION_STATUSES = ("incomplete", "incomplete_expired")


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read an attribute from a Stripe object, tolerating absent fields."""
    value = getattr(obj, name, default)
    return default if value is None else value


def _error_body(exc: stripe.StripeError) -> dict[str, Any]:
    body = exc.json_body if isinstance(exc.json_body, dict) else {}
    return body.get("error") or {}


class StripeGateway(PaymentGateway):
    """
    Stripe implementation of the gateway client.

    Each gateway owns a ``stripe.StripeClient`` carrying its own API key,
    timeout and retry setting. Nothing is set on the ``stripe`` module, so
    gateways for live and test accounts can coexist in one process.
    """

    name = "stripe"

    def __init__(self, api_key: str, timeout_seconds: int = 30) -> None:
        """
        Initialize the Stripe gateway.

        Args:
            api_key: Stripe secret API key (sk_test_... or sk_live_...)
            timeout_seconds: Per-call request timeout in seconds
        """
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        # Stripe calls take no timeout argument; it lives on the HTTP client
        self.http_client = stripe.RequestsClient(timeout=timeout_seconds)
        self.client = stripe.StripeClient(
            api_key,
            http_client=self.http_client,
            max_network_retries=0,  # Retries are the caller's decision
        )

    def _call(self, operation: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run one SDK call, logging and translating any failure."""
        try:
            return fn(*args, **kwargs)

        except stripe.CardError as e:
            err = _error_body(e)
            self._log_failure(operation, e)
            raise DeclinedError(
                err.get("message") or e.user_message or "Card was declined",
                type=err.get("type", "card_error"),
                code=err.get("code") or e.code,
                operation=operation,
                body=e.json_body,
            ) from e

        except stripe.InvalidRequestError as e:
            err = _error_body(e)
            self._log_failure(operation, e)
            message = err.get("message") or e.user_message or str(e)
            code = err.get("code") or e.code
            error_cls: type[GatewayError] = GatewayFault
            if code == RESOURCE_ALREADY_EXISTS or message.endswith("already exists."):
                error_cls = ConflictError
            raise error_cls(
                message,
                type=err.get("type", "invalid_request_error"),
                code=code,
                operation=operation,
                body=e.json_body,
            ) from e

        except stripe.APIConnectionError as e:
            self._log_failure(operation, e)
            raise TransportFailure(
                f"No response from Stripe: {e.user_message or e}",
                type="api_connection_error",
                operation=operation,
            ) from e

        except stripe.StripeError as e:
            err = _error_body(e)
            self._log_failure(operation, e)
            raise GatewayFault(
                err.get("message") or e.user_message or str(e),
                type=err.get("type", "api_error"),
                code=err.get("code") or e.code,
                operation=operation,
                body=e.json_body,
            ) from e

        except Exception as e:
            logger.error(
                "gateway_call_unexpected_error",
                operation=operation,
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            raise GatewayFault(
                f"Unexpected Stripe error: {e}",
                type="unexpected_error",
                operation=operation,
            ) from e

    def _log_failure(self, operation: str, exc: stripe.StripeError) -> None:
        logger.error(
            "gateway_call_failed",
            operation=operation,
            error_type=type(exc).__name__,
            http_status=exc.http_status,
            request_id=exc.request_id,
            error_body=exc.json_body,
        )

    def create_customer(self, email: str, source: str, description: str) -> GatewayCustomer:
        customer = self._call(
            "create_customer",
            self.client.customers.create,
            params={"email": email, "source": source, "description": description},
        )
        logger.info("stripe_customer_created", customer_id=customer.id)
        return self._to_customer(customer)

    def retrieve_customer(self, customer_id: str) -> GatewayCustomer:
        customer = self._call(
            "retrieve_customer",
            self.client.customers.retrieve,
            customer_id,
            params={"expand": ["subscriptions"]},
        )
        return self._to_customer(customer)

    def update_customer(self, customer_id: str, source: str) -> GatewayCustomer:
        customer = self._call(
            "update_customer",
            self.client.customers.update,
            customer_id,
            params={"source": source},
        )
        return self._to_customer(customer)

    def create_charge(self, charge: ChargeRequest) -> GatewayCharge:
        params: dict[str, Any] = {
            "amount": charge.amount,
            "currency": charge.currency.lower(),
            "description": charge.description,
        }
        # Prefer the customer; a bare token is the degraded fallback
        if charge.customer_id:
            params["customer"] = charge.customer_id
        else:
            params["source"] = charge.source

        response = self._call("create_charge", self.client.charges.create, params=params)
        logger.info(
            "stripe_charge_created",
            charge_id=response.id,
            amount=response.amount,
            status=_field(response, "status"),
        )
        return GatewayCharge(
            id=response.id,
            amount=response.amount,
            currency=response.currency,
            balance_transaction_id=_field(response, "balance_transaction"),
            status=_field(response, "status"),
        )

    def retrieve_balance_transaction(self, balance_transaction_id: str) -> GatewayBalanceTransaction:
        txn = self._call(
            "retrieve_balance_transaction",
            self.client.balance_transactions.retrieve,
            balance_transaction_id,
        )
        return GatewayBalanceTransaction(id=txn.id, fee=txn.fee, net=txn.net)

    def create_plan(self, plan: PlanSpec) -> GatewayPlan:
        # Stripe infers livemode from the key; the flag is kept in metadata
        response = self._call(
            "create_plan",
            self.client.plans.create,
            params={
                "id": plan.plan_key,
                "amount": plan.amount,
                "interval": plan.interval,
                "interval_count": plan.interval_count,
                "currency": plan.currency.lower(),
                "product": {"name": plan.name},
                "metadata": {"livemode": str(plan.livemode).lower()},
            },
        )
        logger.info("stripe_plan_created", plan_id=response.id)
        return GatewayPlan(
            id=response.id,
            amount=response.amount,
            interval=response.interval,
            interval_count=response.interval_count,
            currency=response.currency,
        )

    def update_subscription(self, customer_id: str, plan_key: str) -> GatewaySubscription:
        """
        Attach the customer to ``plan_key`` and charge the first installment now.

        Raises:
            DeclinedError: If the first installment is not paid
        """
        response = self._call(
            "update_subscription",
            self.client.subscriptions.create,
            params={
                "customer": customer_id,
                "items": [{"plan": plan_key}],
                "proration_behavior": "none",
                # A declined first payment is a 402 card error, not an incomplete subscription
                "payment_behavior": "error_if_incomplete",
            },
        )

        status = _field(response, "status")
        if status in UNPAID_SUBSCRIPTION_STATUSES:
            logger.error(
                "stripe_subscription_unpaid",
                subscription_id=response.id,
                customer_id=customer_id,
                status=status,
            )
            raise DeclinedError(
                "The first payment for this subscription did not succeed.",
                type="card_error",
                code="subscription_payment_incomplete",
                operation="update_subscription",
                body={"subscription": response.id, "status": status},
            )

        logger.info(
            "stripe_subscription_attached",
            subscription_id=response.id,
            customer_id=customer_id,
            plan_id=plan_key,
        )
        return self._to_subscription(response, customer_id)

    def cancel_subscription(self, subscription_id: str) -> GatewaySubscription:
        response = self._call(
            "cancel_subscription",
            self.client.subscriptions.cancel,
            subscription_id,
        )
        logger.info("stripe_subscription_cancelled", subscription_id=subscription_id)
        return self._to_subscription(response, _field(response, "customer", ""))

    def _to_customer(self, customer: Any) -> GatewayCustomer:
        active_subscription_id = None
        subscriptions = _field(customer, "subscriptions")
        for subscription in _field(subscriptions, "data", []):
            if _field(subscription, "status") == "active":
                active_subscription_id = subscription.id
                break

        return GatewayCustomer(
            id=customer.id,
            email=_field(customer, "email"),
            deleted=bool(_field(customer, "deleted", False)),
            active_subscription_id=active_subscription_id,
        )

    def _to_subscription(self, subscription: Any, customer_id: str) -> GatewaySubscription:
        plan = _field(subscription, "plan")
        return GatewaySubscription(
            id=subscription.id,
            customer_id=customer_id,
            plan_id=_field(plan, "id"),
            status=_field(subscription, "status", "active"),
            fee=int(_field(subscription, "fee", 0)),
        )
