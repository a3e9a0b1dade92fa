"""Tests for the transport layer (no network, no subprocess)."""

import json

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from llmgen.llm import (
    ChatTransport,
    ConfigError,
    LlamaCppTransport,
    TransportError,
    build_schema,
    get_embedding,
    get_transport,
    resolve,
)
from llmgen.llm import client as client_module
from llmgen.schemas import BackendConfig, FieldSpec, GenerationRequest, Message, Multiplicity


def _request(config, prompt="hello", history=(), forced=None):
    return GenerationRequest(prompt=prompt, history=tuple(history), config=resolve(config), forced_schema=forced)


def test_transport_per_backend(compatible_config, openai_config):
    llama = BackendConfig(backend="Local llama.cpp", llama_dir="/opt/llama", model_path="m.gguf")
    assert isinstance(get_transport(resolve(compatible_config)), ChatTransport)
    assert isinstance(get_transport(resolve(openai_config)), ChatTransport)
    assert isinstance(get_transport(resolve(llama)), LlamaCppTransport)


def test_chat_client_strips_endpoint_and_sets_bearer(compatible_config):
    llm = client_module.get_chat_client(resolve(compatible_config))
    assert llm.openai_api_base == "http://127.0.0.1:8080/v1"
    assert llm.default_headers == {"Authorization": "Bearer base-bearer"}
    assert llm.model_name == "base-model"


def test_ollama_default_base_url():
    llm = client_module.get_chat_client(resolve(BackendConfig(backend="Local Ollama", model="llama3")))
    assert llm.openai_api_base == f"{client_module.OLLAMA_URL}/v1"


def test_history_becomes_langchain_messages():
    history = (
        Message(role="user", content="make one"),
        Message(role="assistant", content={"title": "Hi"}),
    )
    messages = client_module.to_langchain_messages(history, "again")
    assert [type(m) for m in messages] == [HumanMessage, AIMessage, HumanMessage]
    assert json.loads(messages[1].content) == {"title": "Hi"}
    assert messages[-1].content == "again"


def test_ai_message_raw_tool_calls_kept_verbatim():
    raw_args = '{"result": {"title": "Hi"}}'
    message = AIMessage(
        content="",
        additional_kwargs={"tool_calls": [
            {"id": "call_1", "type": "function", "function": {"name": "result", "arguments": raw_args}},
        ]},
    )
    response = client_module.from_ai_message(message)
    assert response.content is None
    assert response.tool_calls[0].function.name == "result"
    assert response.tool_calls[0].function.arguments == raw_args


def test_ai_message_parsed_tool_calls_fallback():
    message = AIMessage(
        content="",
        tool_calls=[{"name": "result", "args": {"result": {"n": 1}}, "id": "c1"}],
    )
    response = client_module.from_ai_message(message)
    assert json.loads(response.tool_calls[0].function.arguments) == {"result": {"n": 1}}


def test_ai_message_text():
    response = client_module.from_ai_message(AIMessage(content="Hello"))
    assert response.content == "Hello"
    assert response.tool_calls == []


@pytest.mark.asyncio
async def test_chat_failure_becomes_transport_error(compatible_config, monkeypatch):
    class FailingLLM:
        async def ainvoke(self, messages):
            raise ConnectionError("connection refused")

    monkeypatch.setattr(client_module, "get_chat_client", lambda config: FailingLLM())
    with pytest.raises(TransportError) as exc_info:
        await ChatTransport().complete(_request(compatible_config))
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert exc_info.value.backend == "OpenAI-compatible API"


@pytest.mark.asyncio
async def test_chat_client_construction_failure_becomes_transport_error(compatible_config, monkeypatch):
    def broken_client(config):
        raise ValueError("bad base url")

    monkeypatch.setattr(client_module, "get_chat_client", broken_client)
    with pytest.raises(TransportError) as exc_info:
        await ChatTransport().complete(_request(compatible_config))
    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_bind_tools_failure_becomes_transport_error(compatible_config, monkeypatch):
    class NoToolsLLM:
        def bind_tools(self, tools, tool_choice=None):
            raise NotImplementedError("tools unsupported")

    monkeypatch.setattr(client_module, "get_chat_client", lambda config: NoToolsLLM())
    forced = build_schema([FieldSpec(name="t", type="string")], Multiplicity.SINGLE, "result")
    with pytest.raises(TransportError):
        await ChatTransport().complete(_request(compatible_config, forced=forced))


@pytest.mark.asyncio
async def test_chat_binds_forced_tool(compatible_config, monkeypatch):
    bound = {}

    class RecordingLLM:
        def bind_tools(self, tools, tool_choice=None):
            bound["tools"] = tools
            bound["tool_choice"] = tool_choice
            return self

        async def ainvoke(self, messages):
            bound["messages"] = messages
            return AIMessage(content="", additional_kwargs={"tool_calls": [
                {"id": "c", "type": "function", "function": {"name": "result", "arguments": '{"result": {}}'}},
            ]})

    monkeypatch.setattr(client_module, "get_chat_client", lambda config: RecordingLLM())
    forced = build_schema([FieldSpec(name="t", type="string")], Multiplicity.SINGLE, "result")
    response = await ChatTransport().complete(_request(compatible_config, forced=forced))

    assert bound["tools"] == [forced.tool]
    assert bound["tool_choice"] == forced.tool_choice
    assert response.tool_calls[0].function.name == "result"


LLAMA = BackendConfig(backend="Local llama.cpp", llama_dir="/opt/llama", model_path="m.gguf")


class FakeLlama(LlamaCppTransport):
    def __init__(self, output):
        self.output = output
        self.prompts = []

    async def _run(self, config, prompt):
        self.prompts.append(prompt)
        return self.output


@pytest.mark.asyncio
async def test_llama_plain_text():
    transport = FakeLlama("Bonjour")
    response = await transport.complete(_request(LLAMA, prompt="Say hello in French"))
    assert response.content == "Bonjour"
    assert transport.prompts == ["Say hello in French"]


@pytest.mark.asyncio
async def test_llama_history_transcript():
    transport = FakeLlama("4")
    history = [Message(role="user", content="2+1?"), Message(role="assistant", content="3")]
    await transport.complete(_request(LLAMA, prompt="2+2?", history=history))
    assert transport.prompts[0] == "User: 2+1?\nAssistant: 3\nUser: 2+2?\nAssistant:"


@pytest.mark.asyncio
async def test_llama_emulates_tool_call():
    forced = build_schema([FieldSpec(name="title", type="string")], Multiplicity.SINGLE, "result")
    transport = FakeLlama('Sure:\n```json\n{"title": "Hi"}\n```')
    response = await transport.complete(_request(LLAMA, forced=forced))

    assert "JSON schema" in transport.prompts[0]
    call = response.tool_calls[0].function
    assert call.name == "result"
    assert json.loads(call.arguments) == {"result": {"title": "Hi"}}


@pytest.mark.asyncio
async def test_llama_no_json_gives_no_tool_call():
    forced = build_schema([FieldSpec(name="title", type="string")], Multiplicity.SINGLE, "result")
    response = await FakeLlama("I cannot do that").complete(_request(LLAMA, forced=forced))
    assert response.tool_calls == []
    assert response.content == "I cannot do that"


@pytest.mark.asyncio
async def test_llama_missing_binary():
    config = BackendConfig(backend="Local llama.cpp", llama_dir="/nonexistent/llama", model_path="m.gguf")
    with pytest.raises(TransportError):
        await LlamaCppTransport().complete(_request(config))


@pytest.mark.asyncio
async def test_llama_has_no_embeddings():
    with pytest.raises(ConfigError):
        await get_embedding(LLAMA, "text")


@pytest.mark.asyncio
async def test_ollama_embedding(monkeypatch):
    seen = {}

    async def fake_ollama(endpoint, model, prompt):
        seen.update(endpoint=endpoint, model=model, prompt=prompt)
        return [0.1, 0.2]

    monkeypatch.setattr(client_module, "_ollama_embedding", fake_ollama)
    config = BackendConfig(backend="Local Ollama", embed_model="nomic-embed-text")
    assert await get_embedding(config, "hello") == [0.1, 0.2]
    assert seen == {
        "endpoint": f"{client_module.OLLAMA_URL}/api/embeddings",
        "model": "nomic-embed-text",
        "prompt": "hello",
    }


@pytest.mark.asyncio
async def test_embedding_failure_becomes_transport_error(monkeypatch):
    async def broken(endpoint, model, prompt):
        raise OSError("refused")

    monkeypatch.setattr(client_module, "_ollama_embedding", broken)
    with pytest.raises(TransportError):
        await get_embedding(BackendConfig(backend="Local Ollama"), "hello")
