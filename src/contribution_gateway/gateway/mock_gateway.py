"""
In-memory gateway for end-to-end testing.

MockGateway implements the PaymentGateway interface and keeps customers,
plans, subscriptions and charges in dictionaries. It is structured to match
StripeGateway (see stripe_gateway.py) so flows exercised against it behave
the way they would against Stripe's test mode.

Keep these in step with StripeGateway:
1. Normalized return values (GatewayCustomer, GatewayCharge, ...)
2. Error translation (card declines, "already exists" conflicts, missing resources)
3. Fee arithmetic on balance transactions

STRIPE TEST TOKENS REFERENCE:
https://docs.stripe.com/testing#cards
"""

import itertools
from typing import Any

import structlog

from contribution_gateway.gateway.base import PaymentGateway
from contribution_gateway.models import (
    ChargeRequest,
    ConflictError,
    DeclinedError,
    GatewayBalanceTransaction,
    GatewayCharge,
    GatewayCustomer,
    GatewayFault,
    GatewayPlan,
    GatewaySubscription,
    PlanSpec,
    TransportFailure,
)

logger = structlog.get_logger(__name__)

# Token behaviours - mirrors Stripe's test tokens
TEST_TOKEN_BEHAVIORS: dict[str, dict[str, str]] = {
    "tok_chargeDeclined": {
        "type": "decline",
        "code": "card_declined",
        "message": "Your card was declined.",
    },
    "tok_chargeDeclinedInsufficientFunds": {
        "type": "decline",
        "code": "card_declined",
        "message": "Your card has insufficient funds.",
    },
    "tok_chargeDeclinedExpiredCard": {
        "type": "decline",
        "code": "expired_card",
        "message": "Your card has expired.",
    },
    # Not a Stripe token: simulates a request that never got a response
    "tok_timeout": {
        "type": "transport",
        "code": "",
        "message": "Request timed out",
    },
}

# Standard card pricing: 2.9% + 30 cents
FEE_PERCENT = 0.029
FEE_FIXED_CENTS = 30


def calculate_fee(amount: int) -> int:
    """Fee in minor units for a charge of ``amount`` minor units."""
    return int(round(amount * FEE_PERCENT)) + FEE_FIXED_CENTS


class MockGateway(PaymentGateway):
    """
    In-memory gateway with Stripe-like behaviour.

    ``calls`` records each operation name in order so tests can assert that a
    flow made no remote calls, or exactly which ones.
    """

    name = "mock"

    def __init__(self) -> None:
        self.customers: dict[str, dict[str, Any]] = {}
        self.plans: dict[str, GatewayPlan] = {}
        self.subscriptions: dict[str, GatewaySubscription] = {}
        self.charges: dict[str, GatewayCharge] = {}
        self.balance_transactions: dict[str, GatewayBalanceTransaction] = {}
        self.calls: list[str] = []
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_mock{next(self._ids):06d}"

    def _check_source(self, operation: str, source: str | None) -> None:
        behavior = TEST_TOKEN_BEHAVIORS.get(source or "")
        if behavior is None:
            return
        if behavior["type"] == "transport":
            logger.warning("mock_transport_failure", operation=operation)
            raise TransportFailure(
                "No response from Stripe: Request timed out",
                type="api_connection_error",
                operation=operation,
            )
        body = {
            "error": {
                "type": "card_error",
                "code": behavior["code"],
                "message": behavior["message"],
            }
        }
        logger.info("mock_card_declined", operation=operation, code=behavior["code"])
        raise DeclinedError(
            behavior["message"],
            type="card_error",
            code=behavior["code"],
            operation=operation,
            body=body,
        )

    def _missing(self, operation: str, kind: str, object_id: str) -> GatewayFault:
        message = f"No such {kind}: '{object_id}'"
        return GatewayFault(
            message,
            type="invalid_request_error",
            code="resource_missing",
            operation=operation,
            body={"error": {"type": "invalid_request_error", "code": "resource_missing", "message": message}},
        )

    def _to_customer(self, record: dict[str, Any]) -> GatewayCustomer:
        active = next(
            (
                sub.id
                for sub in self.subscriptions.values()
                if sub.customer_id == record["id"] and sub.status == "active"
            ),
            None,
        )
        return GatewayCustomer(
            id=record["id"],
            email=record["email"],
            deleted=record.get("deleted", False),
            active_subscription_id=active,
        )

    def delete_customer(self, customer_id: str) -> None:
        """Simulate a customer deleted from the Stripe dashboard."""
        self.customers[customer_id]["deleted"] = True

    def create_customer(self, email: str, source: str, description: str) -> GatewayCustomer:
        self.calls.append("create_customer")
        self._check_source("create_customer", source)
        record = {
            "id": self._next_id("cus"),
            "email": email,
            "description": description,
            "source": source,
        }
        self.customers[record["id"]] = record
        return self._to_customer(record)

    def retrieve_customer(self, customer_id: str) -> GatewayCustomer:
        self.calls.append("retrieve_customer")
        record = self.customers.get(customer_id)
        if record is None:
            raise self._missing("retrieve_customer", "customer", customer_id)
        return self._to_customer(record)

    def update_customer(self, customer_id: str, source: str) -> GatewayCustomer:
        self.calls.append("update_customer")
        record = self.customers.get(customer_id)
        if record is None or record.get("deleted"):
            raise self._missing("update_customer", "customer", customer_id)
        self._check_source("update_customer", source)
        record["source"] = source
        return self._to_customer(record)

    def create_charge(self, charge: ChargeRequest) -> GatewayCharge:
        self.calls.append("create_charge")
        source = charge.source
        if charge.customer_id:
            record = self.customers.get(charge.customer_id)
            if record is None:
                raise self._missing("create_charge", "customer", charge.customer_id)
            source = record["source"]
        self._check_source("create_charge", source)

        fee = calculate_fee(charge.amount)
        txn = GatewayBalanceTransaction(
            id=self._next_id("txn"),
            fee=fee,
            net=charge.amount - fee,
        )
        self.balance_transactions[txn.id] = txn
        result = GatewayCharge(
            id=self._next_id("ch"),
            amount=charge.amount,
            currency=charge.currency.lower(),
            balance_transaction_id=txn.id,
            status="succeeded",
        )
        self.charges[result.id] = result
        return result

    def retrieve_balance_transaction(self, balance_transaction_id: str) -> GatewayBalanceTransaction:
        self.calls.append("retrieve_balance_transaction")
        txn = self.balance_transactions.get(balance_transaction_id)
        if txn is None:
            raise self._missing("retrieve_balance_transaction", "balance transaction", balance_transaction_id)
        return txn

    def create_plan(self, plan: PlanSpec) -> GatewayPlan:
        self.calls.append("create_plan")
        if plan.plan_key in self.plans:
            message = "Plan already exists."
            raise ConflictError(
                message,
                type="invalid_request_error",
                code="resource_already_exists",
                operation="create_plan",
                body={"error": {"type": "invalid_request_error", "message": message}},
            )
        result = GatewayPlan(
            id=plan.plan_key,
            amount=plan.amount,
            interval=plan.interval,
            interval_count=plan.interval_count,
            currency=plan.currency.lower(),
        )
        self.plans[result.id] = result
        return result

    def update_subscription(self, customer_id: str, plan_key: str) -> GatewaySubscription:
        self.calls.append("update_subscription")
        record = self.customers.get(customer_id)
        if record is None:
            raise self._missing("update_subscription", "customer", customer_id)
        plan = self.plans.get(plan_key)
        if plan is None:
            raise self._missing("update_subscription", "plan", plan_key)
        self._check_source("update_subscription", record["source"])

        subscription = GatewaySubscription(
            id=self._next_id("sub"),
            customer_id=customer_id,
            plan_id=plan_key,
            status="active",
            fee=calculate_fee(plan.amount),
        )
        self.subscriptions[subscription.id] = subscription
        return subscription

    def cancel_subscription(self, subscription_id: str) -> GatewaySubscription:
        self.calls.append("cancel_subscription")
        subscription = self.subscriptions.get(subscription_id)
        if subscription is None:
            raise self._missing("cancel_subscription", "subscription", subscription_id)
        cancelled = GatewaySubscription(
            id=subscription.id,
            customer_id=subscription.customer_id,
            plan_id=subscription.plan_id,
            status="canceled",
            fee=subscription.fee,
        )
        self.subscriptions[subscription_id] = cancelled
        return cancelled
