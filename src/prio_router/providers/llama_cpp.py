"""
prio-router: llama.cpp engine for the native provider.

Thin blocking wrapper over llama-cpp-python, the default NativeEngine.

Requires optional dependency::

    pip install prio-router[native]
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_llama_cpp: Any = None


def _import_llama_cpp():  # type: ignore[return]
    global _llama_cpp
    if _llama_cpp is None:
        try:
            import llama_cpp

            _llama_cpp = llama_cpp
        except ImportError as err:
            raise ImportError(
                "llama-cpp-python is required for the native LLM engine. "
                "Install with: pip install prio-router[native]"
            ) from err
    return _llama_cpp


class LlamaCppEngine:
    """Runs GGUF models in-process through llama.cpp.

    A single llama.cpp context is not safe for concurrent use, so loads,
    generations and unloads are serialized with a lock.

    Example::

        engine = LlamaCppEngine(context_size=2048, threads=4)
        engine.load("models/phi-3-mini-4k-instruct-q4.gguf")
        text = engine.generate("You are terse.", "Say hi", max_tokens=8, temperature=0.0)
    """

    def __init__(
        self,
        context_size: int = 2048,
        threads: int | None = None,
        gpu_layers: int = 0,
        chat_format: str | None = None,
        verbose: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            context_size: Token context window (n_ctx).
            threads: CPU threads for inference; None lets llama.cpp decide.
            gpu_layers: Layers offloaded to the GPU (n_gpu_layers).
            chat_format: llama.cpp chat template name; None reads it from the model.
            verbose: Forward llama.cpp's own logging to stderr.
        """
        self.context_size = context_size
        self.threads = threads
        self.gpu_layers = gpu_layers
        self.chat_format = chat_format
        self.verbose = verbose
        self._lock = threading.Lock()
        self._model: Any = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self, model_path: str) -> None:
        path = Path(model_path)
        if not path.is_file():
            raise FileNotFoundError(f"Model file not found: {model_path}")
        llama_cpp = _import_llama_cpp()

        with self._lock:
            self._close_model()
            self._model = llama_cpp.Llama(
                model_path=str(path),
                n_ctx=self.context_size,
                n_threads=self.threads,
                n_gpu_layers=self.gpu_layers,
                chat_format=self.chat_format,
                verbose=self.verbose,
            )
        logger.info(f"llama.cpp model loaded: {path.name} (n_ctx={self.context_size})")

    def generate(
        self, system_prompt: str, user_prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        with self._lock:
            if self._model is None:
                raise RuntimeError("No model loaded")
            output = self._model.create_chat_completion(
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        return output["choices"][0]["message"].get("content") or ""

    def unload(self) -> None:
        with self._lock:
            self._close_model()

    def _close_model(self) -> None:
        # Caller holds the lock.
        if self._model is None:
            return
        close = getattr(self._model, "close", None)
        if callable(close):
            close()
        self._model = None
