"""Billing orchestration services."""

from contribution_gateway.services.charge import ChargeOrchestrator
from contribution_gateway.services.errors import ErrorClassifier
from contribution_gateway.services.recurring import (
    RecurringSubscriptionManager,
    compute_end_time,
    derive_plan_key,
)

__all__ = [
    "ChargeOrchestrator",
    "ErrorClassifier",
    "RecurringSubscriptionManager",
    "compute_end_time",
    "derive_plan_key",
]
