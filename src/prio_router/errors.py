"""
prio-router: Exception taxonomy.

Providers raise ProviderError subclasses; the router recovers from all of
them and only reports UnsupportedRequestType back to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prio_router.models import RequestType


class RouterError(Exception):
    """Base class for all prio-router errors."""


class ProviderError(RouterError):
    """A provider failed to produce an answer."""

    def __init__(self, message: str, provider_id: str | None = None) -> None:
        super().__init__(message)
        self.provider_id = provider_id


class ProviderUnavailable(ProviderError):
    """The provider is not ready (no model loaded, service unreachable, ...)."""


class ProviderTimeout(ProviderError):
    """The provider call exceeded its time budget."""


class ProviderNotSupported(ProviderError):
    """The provider has no handler for the request type."""

    def __init__(self, request_type: RequestType, provider_id: str | None = None) -> None:
        super().__init__(
            f"{provider_id or 'provider'} does not support {request_type.value}",
            provider_id,
        )
        self.request_type = request_type


class MalformedProviderOutput(ProviderError):
    """Raw model output could not be parsed into the expected structure."""


class UnsupportedRequestType(RouterError):
    """No provider in the chain can answer this request type."""

    def __init__(self, request_type: RequestType) -> None:
        super().__init__(f"No provider can handle request type {request_type.value}")
        self.request_type = request_type
