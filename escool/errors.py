"""
Error taxonomy for the storage layer.

A missing record is not an error: lookups return ``None`` and deletes
return ``False``. The exceptions below cover everything else.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base class for all storage-layer errors."""


class ValidationFailure(StorageError):
    """Malformed input, e.g. an unknown filter or patch field."""


class BackendUnavailable(StorageError):
    """The durable backend could not be reached during backend selection."""


class ProvisioningRace(StorageError):
    """Another process created a table while we were provisioning it."""

    def __init__(self, table_name: str):
        super().__init__(f"Table {table_name} is already being created")
        self.table_name = table_name


class StorageFailure(StorageError):
    """Unexpected backend error surfaced from an individual storage call."""
