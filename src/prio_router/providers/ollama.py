"""
prio-router: Ollama client for the platform AI provider.

Treats a local Ollama service as the platform's generative AI capability:
- /api/tags tells whether the service is up and the model is pulled
- /api/pull streams download progress as newline-delimited JSON
- /api/chat runs generation, with keep_alive so the model stays resident
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import aiohttp

from prio_router.errors import ProviderError
from prio_router.providers.platform import (
    AvailabilityState,
    Available,
    Downloadable,
    Unavailable,
)

logger = logging.getLogger(__name__)


class OllamaPlatformClient:
    """PlatformClient backed by the native Ollama API.

    Example::

        client = OllamaPlatformClient(base_url="http://localhost:11434", model="gemma2:2b")
        state = await client.check_status()
        text = await client.generate("Be brief.", "Hello", max_tokens=32, temperature=0.2, timeout=10)
        await client.close()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "gemma2:2b",
        default_options: dict[str, Any] | None = None,
        keep_alive: int = -1,
        status_timeout: float = 5.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Ollama server URL (without /api path).
            model: Model the platform service runs.
            default_options: Ollama options applied to every generation
                (e.g., {"num_thread": 4}).
            keep_alive: Model residency time in seconds. -1 = permanent.
            status_timeout: Timeout for status checks, in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.default_options = default_options or {}
        self.keep_alive = keep_alive
        self.status_timeout = status_timeout
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Lazily create and return the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _has_model(self, names: list[str]) -> bool:
        wanted = self.model if ":" in self.model else f"{self.model}:latest"
        return self.model in names or wanted in names

    async def check_status(self) -> AvailabilityState:
        session = await self._get_session()
        try:
            timeout = aiohttp.ClientTimeout(total=self.status_timeout)
            async with session.get(f"{self.base_url}/api/tags", timeout=timeout) as resp:
                if resp.status != 200:
                    return Unavailable(f"HTTP {resp.status} from {self.base_url}")
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return Unavailable(f"Service unreachable: {type(e).__name__}: {e}")

        names = [m.get("name", "") for m in data.get("models", [])]
        if self._has_model(names):
            return Available()
        return Downloadable()

    async def download(self) -> AsyncIterator[int]:
        url = f"{self.base_url}/api/pull"
        session = await self._get_session()
        async with session.post(url, json={"model": self.model, "stream": True}) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise ProviderError(f"HTTP {resp.status}: {text[:200]}")
            async for line in resp.content:
                if not line.strip():
                    continue
                event = json.loads(line)
                if "error" in event:
                    raise ProviderError(f"Pull failed: {event['error']}")
                total = event.get("total")
                if total:
                    yield int(event.get("completed", 0) * 100 / total)
                if event.get("status") == "success":
                    logger.info(f"Ollama model pulled: {self.model}")
                    yield 100

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        options: dict[str, Any] = {}
        options.update(self.default_options)
        options["temperature"] = temperature
        options["num_predict"] = max_tokens

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "options": options,
            "keep_alive": self.keep_alive,
            "stream": False,
        }

        session = await self._get_session()
        try:
            client_timeout = aiohttp.ClientTimeout(total=timeout)
            async with session.post(
                f"{self.base_url}/api/chat", json=payload, timeout=client_timeout
            ) as resp:
                if resp.status != 200:
                    error_text = await resp.text()
                    raise ProviderError(f"HTTP {resp.status}: {error_text[:200]}")
                data = await resp.json()
        except aiohttp.ClientError as e:
            raise ProviderError(f"Connection error: {e}") from e

        return data.get("message", {}).get("content", "")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
