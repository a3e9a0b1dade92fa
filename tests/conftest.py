"""Shared fixtures: backend configs and a stub transport."""

import json

import pytest

from llmgen.schemas import BackendConfig, BackendResponse, FunctionCall, ToolCall


class StubTransport:
    """Records requests and answers with a canned response (or error)."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else BackendResponse(content="stub answer")
        self.error = error
        self.requests = []

    async def complete(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


def tool_response(name, payload):
    """Backend response carrying one tool call with JSON-encoded arguments."""
    return BackendResponse(tool_calls=[
        ToolCall(function=FunctionCall(name=name, arguments=json.dumps(payload))),
    ])


class MemoryTable:
    """In-memory RowStore."""

    pk_name = "id"

    def __init__(self):
        self.updates = []

    async def update_row(self, update, pk):
        self.updates.append((dict(update), pk))


@pytest.fixture
def compatible_config():
    return BackendConfig(
        backend="OpenAI-compatible API",
        model="base-model",
        endpoint="http://127.0.0.1:8080/v1/chat/completions",
        api_key="base-key",
        bearer_auth="base-bearer",
        altconfigs=[
            {"name": "fast", "model": "fast-model", "endpoint": "http://fast:8080/v1/chat/completions"},
            {"name": "keyed", "api_key": "alt-key", "model": ""},
            {"name": "", "model": "nameless"},
        ],
    )


@pytest.fixture
def openai_config():
    return BackendConfig(backend="OpenAI", model="gpt-4o-mini", api_key="sk-test", embed_model="text-embedding-3-small")


@pytest.fixture
def make_transport():
    def _make(response=None, error=None):
        return StubTransport(response=response, error=error)
    return _make


@pytest.fixture
def table():
    return MemoryTable()


@pytest.fixture
def make_tool_response():
    return tool_response
