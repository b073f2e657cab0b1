"""
prio-router hybrid routing: native llama.cpp model plus a platform AI service.

Low-confidence rule answers are escalated, platform service first, then
the bundled model, with the rule engine as the last resort.

Prerequisites:
    pip install prio-router[native]
    ollama serve               # acts as the platform AI service
    # plus a GGUF model file, e.g. models/phi-3-mini-q4.gguf
"""

import asyncio
import logging

from prio_router import (
    AiRequest,
    AiRouter,
    Downloadable,
    LlamaCppEngine,
    NativeLlmProvider,
    OllamaPlatformClient,
    PlatformAiProvider,
    RequestType,
    RouterConfig,
    RoutingMode,
)


async def main():
    logging.basicConfig(level=logging.INFO)

    native = NativeLlmProvider(
        LlamaCppEngine(context_size=2048, threads=4),
        model_path="models/phi-3-mini-q4.gguf",
    )
    platform = PlatformAiProvider(
        OllamaPlatformClient(model="gemma2:2b", default_options={"num_thread": 4}),
    )
    router = AiRouter(
        native=native,
        platform=platform,
        config=RouterConfig(provider_timeout=8.0),
    )

    router.stats.subscribe(
        lambda s: print(f"  [stats] total={s.total_requests} escalated={s.escalated}"),
        emit_current=False,
    )

    async with router:
        # The router never downloads on its own.
        if isinstance(platform.availability.value, Downloadable):
            print("Downloading platform model...")
            await platform.download_model()

        router.set_routing_mode(RoutingMode.HYBRID_PLATFORM_FIRST)

        for text in ["Think about updating the thing", "URGENT: client demo crashed"]:
            response = await router.complete(AiRequest(RequestType.CLASSIFY_PRIORITY, text))
            meta = response.metadata
            print(
                f"{text!r} -> {response.result.quadrant.name} via {meta.provider_id} "
                f"(tried {list(meta.attempted_providers)}, {meta.latency_ms:.0f}ms)"
            )
            if meta.fallback_reason:
                print(f"  fell back: {meta.fallback_reason}")

        notes = await router.complete(
            AiRequest(
                RequestType.EXTRACT_ACTION_ITEMS,
                "Ana will send the minutes. Ben books the room for Friday.",
            )
        )
        if notes.success:
            for item in notes.result.items:
                print(f"- {item.description} ({item.assignee or 'unassigned'})")
        else:
            print(f"Action items unavailable: {notes.error}")

        print(f"\nRouter stats: {router.get_stats()}")
        print(f"\nProvider status: {router.get_provider_status()}")


if __name__ == "__main__":
    asyncio.run(main())
