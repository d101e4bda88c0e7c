"""Errors raised inside provider adapters.

These never leave an adapter: ``QuoteProvider.fetch`` converts them to a
``None`` result so the engine simply moves on to the next provider.
"""

from __future__ import annotations


class ProviderError(Exception):
    """A single provider call produced no usable quote."""


class ProviderUnavailableError(ProviderError):
    """Network failure, timeout or non-2xx response."""


class RateLimitedError(ProviderError):
    """The upstream reported that our request budget is exhausted."""


class MalformedResponseError(ProviderError):
    """The response did not have the shape the adapter expects."""


class InvalidQuoteError(ProviderError):
    """The response parsed but the quote failed validation (e.g. price <= 0)."""
