"""
prio-router: Provider protocol.

Every backend the router can ask (rule engine, native LLM, platform AI
service) implements this protocol. Custom providers only need to match it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from prio_router.models import AiRequest, AiResponse, RequestType
    from prio_router.signals import Observable


@runtime_checkable
class Provider(Protocol):
    """Protocol defining the interface for AI providers.

    Example::

        class EchoProvider:
            provider_id = "echo"
            supported_types = frozenset({RequestType.GENERAL_GENERATE})

            def __init__(self) -> None:
                self.is_available = Observable(True)

            async def initialize(self) -> bool:
                return True

            async def complete(self, request: AiRequest) -> AiResponse:
                return AiResponse(
                    request_id=request.id,
                    success=True,
                    result=GeneralText(request.input),
                    metadata=ResponseMetadata(provider_id=self.provider_id, confidence_score=1.0),
                )

            async def release(self) -> None:
                pass
    """

    provider_id: str
    supported_types: frozenset[RequestType]
    is_available: Observable[bool]

    async def initialize(self) -> bool:
        """Prepare the provider (load a model, probe a service).

        Returns:
            True if the provider is ready to answer requests.
        """
        ...

    async def complete(self, request: AiRequest) -> AiResponse:
        """Answer a request.

        Raises:
            ProviderUnavailable: The provider is not ready.
            ProviderNotSupported: No handler exists for ``request.request_type``.
            ProviderTimeout: The call exceeded the provider's own time budget.
            ProviderError: Any other backend failure.
        """
        ...

    async def release(self) -> None:
        """Free resources (models, HTTP sessions)."""
        ...
