"""
Payment gateway integrations.

- base.PaymentGateway: Abstract interface that all gateways implement
- stripe_gateway.StripeGateway: Production Stripe integration
- mock_gateway.MockGateway: In-memory gateway for testing (mirrors Stripe behavior)
- factory: Gateway factory for configuration-based selection

When changing StripeGateway's normalized results or error translation,
review MockGateway so the two stay aligned.
"""

from contribution_gateway.gateway.base import PaymentGateway
from contribution_gateway.gateway.factory import GatewayFactory, get_gateway
from contribution_gateway.gateway.mock_gateway import MockGateway
from contribution_gateway.gateway.stripe_gateway import StripeGateway

__all__ = [
    "PaymentGateway",
    "StripeGateway",
    "MockGateway",
    "GatewayFactory",
    "get_gateway",
]
