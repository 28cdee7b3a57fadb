"""Exceptions raised by the reconciliation pipeline."""
from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for reconciliation failures."""


class SignatureError(ReconciliationError):
    """The delivery could not be proven to originate from the payment provider."""


class MalformedEventError(ReconciliationError):
    """A verified delivery does not carry a usable event envelope."""


class DependencyError(ReconciliationError):
    """A downstream dependency (database or provider API) failed.

    Surfaced to the provider as a server error so the delivery is retried.
    """


__all__ = ["DependencyError", "MalformedEventError", "ReconciliationError", "SignatureError"]
