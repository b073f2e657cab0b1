"""
prio-router quickstart: rule engine only, no model required.

Prerequisites:
    pip install prio-router
"""

import asyncio
from prio_router import AiRequest, AiRouter, RequestType


async def main():
    router = AiRouter()

    async with router:
        response = await router.complete(
            AiRequest(RequestType.CLASSIFY_PRIORITY, "URGENT: production server down")
        )
        result = response.result
        print(f"Quadrant: {result.quadrant.name} (confidence {result.confidence:.2f})")
        print(f"Why: {result.explanation}")

        response = await router.complete(
            AiRequest(RequestType.PARSE_TASK, "remind me to call mom tomorrow at 5pm #family")
        )
        task = response.result
        print(f"Task: {task.title!r} due {task.due_date} {task.due_time}, tags {task.tags}")

        print(f"Provider: {response.metadata.provider_id}")
        print(f"Latency: {response.metadata.latency_ms:.1f}ms")


if __name__ == "__main__":
    asyncio.run(main())
