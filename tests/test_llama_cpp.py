"""Tests for the llama.cpp engine with a stand-in llama_cpp module."""

from types import SimpleNamespace

import pytest

from prio_router.providers import llama_cpp as llama_cpp_engine
from prio_router.providers.llama_cpp import LlamaCppEngine


class FakeLlama:
    instances: list["FakeLlama"] = []

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.closed = False
        self.messages: list[dict] = []
        FakeLlama.instances.append(self)

    def create_chat_completion(self, messages, max_tokens, temperature):
        self.messages = messages
        return {"choices": [{"message": {"role": "assistant", "content": "hello"}}]}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_llama_cpp(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    FakeLlama.instances = []
    module = SimpleNamespace(Llama=FakeLlama)
    monkeypatch.setattr(llama_cpp_engine, "_llama_cpp", module)
    return module


class TestLlamaCppEngine:
    """Loading, generation and unloading."""

    def test_missing_file(self, fake_llama_cpp: SimpleNamespace, tmp_path) -> None:
        engine = LlamaCppEngine()
        with pytest.raises(FileNotFoundError):
            engine.load(str(tmp_path / "missing.gguf"))
        assert engine.is_loaded is False

    def test_load_and_generate(self, fake_llama_cpp: SimpleNamespace, tmp_path) -> None:
        model = tmp_path / "tiny.gguf"
        model.write_bytes(b"GGUF")
        engine = LlamaCppEngine(context_size=512, threads=2)

        engine.load(str(model))
        text = engine.generate("Be terse.", "Say hi", max_tokens=8, temperature=0.0)

        assert engine.is_loaded
        assert text == "hello"
        llama = FakeLlama.instances[0]
        assert llama.kwargs["n_ctx"] == 512
        assert llama.kwargs["n_threads"] == 2
        assert llama.messages[0] == {"role": "system", "content": "Be terse."}

    def test_reload_closes_previous_model(self, fake_llama_cpp: SimpleNamespace, tmp_path) -> None:
        model = tmp_path / "tiny.gguf"
        model.write_bytes(b"GGUF")
        engine = LlamaCppEngine()

        engine.load(str(model))
        engine.load(str(model))
        engine.unload()

        assert [llama.closed for llama in FakeLlama.instances] == [True, True]
        assert engine.is_loaded is False

    def test_generate_without_model(self, fake_llama_cpp: SimpleNamespace) -> None:
        with pytest.raises(RuntimeError):
            LlamaCppEngine().generate("s", "u", max_tokens=1, temperature=0.0)
