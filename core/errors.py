# core/errors.py
from typing import Optional


class StorefrontError(Exception):
    """Base class for storefront errors."""


class ProviderError(StorefrontError):
    """Transport, auth or rate-limit failure from the content provider."""


class MalformedRecord(StorefrontError):
    """A single provider record could not be normalized."""

    def __init__(self, reason: str, record_id: Optional[str] = None):
        self.reason = reason
        self.record_id = record_id
        if record_id:
            super().__init__(f"{reason} (record {record_id})")
        else:
            super().__init__(reason)
