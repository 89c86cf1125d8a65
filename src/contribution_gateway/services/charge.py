"""
One-time charge orchestration.

Workflow for a single payment request:
1. Short-circuit zero/absent amounts
2. Resolve the payer's gateway customer (mirror lookup, create or refresh)
3. Build the charge
4. Hand recurring requests to RecurringSubscriptionManager
5. Submit the charge and pull fee/net from its balance transaction
"""

from dataclasses import replace

import structlog

from contribution_gateway.gateway.base import PaymentGateway
from contribution_gateway.infrastructure.repository import MirrorStore
from contribution_gateway.models import (
    ChargeRequest,
    ChargeResult,
    CustomerMapping,
    FatalLocalError,
    GatewayCustomer,
    GatewayError,
    GatewayErrorKind,
    PaymentRequest,
    minor_to_major_units,
)
from contribution_gateway.services.errors import ErrorClassifier
from contribution_gateway.services.recurring import RecurringSubscriptionManager

logger = structlog.get_logger(__name__)

CUSTOMER_DESCRIPTION = "Donor from contribution page"


def charge_description(request: PaymentRequest) -> str:
    """Description sent with the charge, always ending in the invoice id."""
    if request.description:
        base = f"Donation Page # {request.description}"
    else:
        base = "Backend contribution"
    return f"{base} # Invoice ID # {request.invoice_id}"


class ChargeOrchestrator:
    """Drives a payment from form submission to gateway charge."""

    def __init__(
        self,
        gateway: PaymentGateway,
        store: MirrorStore,
        classifier: ErrorClassifier,
        recurring: RecurringSubscriptionManager,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.classifier = classifier
        self.recurring = recurring

    def do_direct_payment(self, request: PaymentRequest) -> PaymentRequest:
        """
        Charge the payer, or establish their recurring contribution.

        Args:
            request: Payment submitted by the contribution form

        Returns:
            ``request`` itself when there is nothing to charge; otherwise a
            copy with ``trxn_id`` (and, when known, ``fee_amount`` and
            ``net_amount``) set.

        Raises:
            FatalLocalError: If the payment token or email is missing
            PaymentAborted: If the gateway declines or fails
        """
        # Let a zero-amount transaction pass
        if not request.amount_cents or request.amount_cents <= 0:
            logger.info("zero_amount_payment_skipped", invoice_id=request.invoice_id)
            return request

        if not request.payment_token:
            raise FatalLocalError(
                "Payment token was not passed! Is the client-side tokenization script enabled?"
            )
        if not request.email:
            raise FatalLocalError("An email address is required to identify the payer.")

        log = logger.bind(invoice_id=request.invoice_id)
        log.info(
            "payment_started",
            amount_cents=request.amount_cents,
            currency=request.currency,
            recurring=request.recurring is not None,
        )

        customer = self.resolve_customer(request)
        charge = self.build_charge(request, customer)

        if request.recurring is not None:
            return self.recurring.subscribe(request, customer, charge.amount)

        result = self.submit_charge(request, charge)
        return replace(
            request,
            trxn_id=result.trxn_id,
            fee_amount=result.fee_amount,
            net_amount=result.net_amount,
        )

    def resolve_customer(self, request: PaymentRequest) -> GatewayCustomer:
        """
        Find or create the payer's gateway customer.

        A stale mapping (customer deleted on the gateway side) is replaced in
        the same request, and only once the replacement customer exists.
        """
        mapping = self.store.find_customer_by_email(request.email)
        if mapping is None:
            return self._create_customer(request)

        customer = self._retrieve_live_customer(request, mapping)
        if customer is None:
            logger.warning(
                "stale_customer_mapping",
                gateway_customer_id=mapping.gateway_customer_id,
            )
            return self._create_customer(request, replace_stale=True)

        if request.is_repeat_membership_charge:
            logger.debug("customer_source_update_skipped", customer_id=customer.id)
        else:
            # Tokens are single-use; attach the new one for this charge
            self.classifier.call(
                request, self.gateway.update_customer, customer.id, request.payment_token
            )
        return customer

    def build_charge(
        self, request: PaymentRequest, customer: GatewayCustomer | None
    ) -> ChargeRequest:
        """Build the charge parameters; a bare token is used only without a customer."""
        return ChargeRequest(
            amount=request.amount_cents,
            currency=request.currency.lower(),
            description=charge_description(request),
            customer_id=customer.id if customer else None,
            source=None if customer else request.payment_token,
        )

    def submit_charge(self, request: PaymentRequest, charge: ChargeRequest) -> ChargeResult:
        """
        Submit a one-time charge and look up its fees.

        Fee and net come from the balance transaction and are left empty if
        that lookup fails; the charge itself has already succeeded by then.
        """
        response = self.classifier.call(request, self.gateway.create_charge, charge)
        logger.info(
            "charge_submitted",
            charge_id=response.id,
            amount=charge.amount,
            invoice_id=request.invoice_id,
        )

        if not response.balance_transaction_id:
            return ChargeResult(trxn_id=response.id)

        try:
            txn = self.gateway.retrieve_balance_transaction(response.balance_transaction_id)
        except GatewayError as e:
            logger.warning(
                "balance_transaction_unavailable",
                charge_id=response.id,
                classification=self.classifier.classify(e).value,
                error_body=e.body,
            )
            return ChargeResult(trxn_id=response.id)

        # Minor units to major units assumes a 2-decimal currency
        return ChargeResult(
            trxn_id=response.id,
            fee_amount=minor_to_major_units(txn.fee),
            net_amount=minor_to_major_units(txn.net),
        )

    def _retrieve_live_customer(
        self, request: PaymentRequest, mapping: CustomerMapping
    ) -> GatewayCustomer | None:
        try:
            customer = self.gateway.retrieve_customer(mapping.gateway_customer_id)
        except GatewayError as e:
            if e.kind == GatewayErrorKind.FAULT and e.code == "resource_missing":
                return None
            self.classifier.handle(e, request)
            raise
        if customer.deleted:
            return None
        return customer

    def _create_customer(
        self, request: PaymentRequest, replace_stale: bool = False
    ) -> GatewayCustomer:
        customer = self.classifier.call(
            request,
            self.gateway.create_customer,
            email=request.email,
            source=request.payment_token,
            description=CUSTOMER_DESCRIPTION,
        )
        if customer is None:
            raise FatalLocalError(
                "There was an error saving new customer within Stripe. Is Stripe down?"
            )

        # The stale row is dropped only once its replacement exists
        if replace_stale:
            self.store.delete_customer_mapping(request.email)
        self.store.save_customer_mapping(request.email, customer.id)
        logger.info("customer_created", customer_id=customer.id)
        return customer
