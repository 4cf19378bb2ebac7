"""
Error taxonomy for trigger administration and storage.

Deleting a rule that does not exist is not an error: repository deletes
return the affected row count and callers treat ``0`` as a successful no-op.
"""

from __future__ import annotations


class TriggerError(Exception):
    """Base class for all trigger subsystem errors."""


class ValidationError(TriggerError):
    """Administration input is malformed (empty channels, keywords, or response)."""


class StoreError(TriggerError):
    """The rule store is unreachable or rejected a query."""
