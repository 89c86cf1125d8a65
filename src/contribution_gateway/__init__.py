"""Stripe charge and recurring-billing orchestration for contribution pages."""

__version__ = "0.1.0"
