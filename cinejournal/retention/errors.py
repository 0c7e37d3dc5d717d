"""Errors raised by the trending retention policy."""

from typing import Any


class RetentionError(Exception):
    """Base class for retention failures."""


class StoreQueryError(RetentionError):
    """The record store could not run a candidate query.

    Fatal for the sweep invocation that hit it. Per-record delete failures
    are reported in the sweep result instead.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class EntryNotFoundError(RetentionError):
    """No trending entry exists with the given identifier."""

    def __init__(self, entry_id: Any):
        self.entry_id = entry_id
        super().__init__(f"Trending entry '{entry_id}' not found")
