"""Tests for the host actions (row and workflow mode)."""

import pytest

from llmgen.actions import (
    llm_generate_function,
    run_llm_generate,
    run_llm_generate_json,
)
from llmgen.llm import ConfigError, SchemaError, TransportError
from llmgen.schemas import BackendResponse


@pytest.mark.asyncio
async def test_row_mode_writes_update(compatible_config, make_transport, table):
    transport = make_transport(BackendResponse(content="A short summary."))
    row = {"id": 42, "body": "Summarize: ..."}

    update = await run_llm_generate(
        compatible_config,
        {"prompt_field": "body", "answer_field": "summary"},
        mode="row", row=row, table=table, transport=transport,
    )

    assert update == {"summary": "A short summary."}
    assert table.updates == [({"summary": "A short summary."}, 42)]


@pytest.mark.asyncio
async def test_row_mode_failure_writes_nothing(compatible_config, make_transport, table):
    transport = make_transport(error=TransportError("down"))
    with pytest.raises(TransportError):
        await run_llm_generate(
            compatible_config,
            {"prompt_field": "body", "answer_field": "summary", "chat_history_field": "hist"},
            mode="row", row={"id": 1, "body": "x"}, table=table, transport=transport,
        )
    assert table.updates == []


@pytest.mark.asyncio
async def test_row_mode_needs_table(compatible_config, make_transport):
    with pytest.raises(ConfigError):
        await run_llm_generate(
            compatible_config,
            {"prompt_field": "body", "answer_field": "summary"},
            mode="row", row={"id": 1, "body": "x"}, transport=make_transport(),
        )


@pytest.mark.asyncio
async def test_workflow_mode_returns_update(compatible_config, make_transport, table):
    transport = make_transport(BackendResponse(content="Bonjour"))
    update = await run_llm_generate(
        compatible_config,
        {
            "prompt_template": "Say hello in {{ lang }}",
            "answer_field": "greeting",
            "chat_history_field": "chat",
            "override_config": "fast",
        },
        mode="workflow", row={"lang": "French"}, table=table, transport=transport,
    )

    assert update["greeting"] == "Bonjour"
    assert update["chat"][0] == {"role": "user", "content": "Say hello in French"}
    assert table.updates == []
    assert transport.requests[0].config.model == "fast-model"


@pytest.mark.asyncio
async def test_blank_stored_options_are_unset(compatible_config, make_transport):
    transport = make_transport(BackendResponse(content="ok"))
    update = await run_llm_generate(
        compatible_config,
        {"prompt_template": "hi", "answer_field": "out", "chat_history_field": "", "override_config": ""},
        mode="workflow", row={}, transport=transport,
    )
    assert update == {"out": "ok"}
    assert transport.requests[0].config.override_name is None


@pytest.mark.asyncio
async def test_json_multiple_yields_array(compatible_config, make_transport, make_tool_response, table):
    people = [{"name": "Ada", "age": 36}, {"name": "Alan", "age": 41}]
    transport = make_transport(make_tool_response("people", {"people": people}))

    update = await run_llm_generate_json(
        compatible_config,
        {
            "prompt_template": "List people from: {{ notes }}",
            "answer_field": "people",
            "multiple": True,
            "gen_description": "People mentioned in the notes",
            "fields": [
                {"name": "name", "type": "string", "description": "Full name"},
                {"name": "age", "type": "integer"},
            ],
        },
        mode="row", row={"id": 3, "notes": "Ada and Alan"}, table=table, transport=transport,
    )

    assert update == {"people": people}
    assert table.updates == [({"people": people}, 3)]

    forced = transport.requests[0].forced_schema
    assert transport.requests[0].prompt == "List people from: Ada and Alan"
    assert forced.parameters["properties"]["people"]["type"] == "array"
    assert forced.tool["function"]["description"] == "People mentioned in the notes"


@pytest.mark.asyncio
async def test_json_single_by_default(compatible_config, make_transport, make_tool_response):
    transport = make_transport(make_tool_response("person", {"person": {"name": "Ada"}}))
    update = await run_llm_generate_json(
        compatible_config,
        {"prompt_template": "x", "answer_field": "person", "fields": [{"name": "name", "type": "string"}]},
        mode="workflow", row={}, transport=transport,
    )
    assert update == {"person": {"name": "Ada"}}
    assert transport.requests[0].forced_schema.parameters["properties"]["person"]["type"] == "object"


@pytest.mark.asyncio
async def test_invalid_action_config(compatible_config, make_transport):
    with pytest.raises(ConfigError):
        await run_llm_generate(compatible_config, {"prompt_field": "body"}, mode="workflow", row={},
                               transport=make_transport())


@pytest.mark.asyncio
async def test_generate_function(compatible_config, make_transport):
    transport = make_transport(BackendResponse(content="42"))
    text = await llm_generate_function(
        compatible_config, "What is six times seven?",
        chat=[{"role": "user", "content": "Let's do maths."}],
        transport=transport,
    )
    assert text == "42"
    assert len(transport.requests[0].history) == 1


@pytest.mark.asyncio
async def test_embedding_function_passes_options(openai_config, monkeypatch):
    import llmgen.actions as actions_module

    seen = {}

    async def fake_embedding(config, prompt, **opts):
        seen.update(prompt=prompt, **opts)
        return [1.0, 0.0]

    monkeypatch.setattr(actions_module, "get_embedding", fake_embedding)
    vector = await actions_module.llm_embedding_function(openai_config, "hi", model="text-embedding-3-large")
    assert vector == [1.0, 0.0]
    assert seen == {"prompt": "hi", "model": "text-embedding-3-large"}


@pytest.mark.asyncio
async def test_row_mode_text_ignores_template(compatible_config, make_transport, table):
    transport = make_transport(BackendResponse(content="done"))
    await run_llm_generate(
        compatible_config,
        {"prompt_field": "body", "prompt_template": "stale template", "answer_field": "summary"},
        mode="row", row={"id": 5, "body": "Summarize: real"}, table=table, transport=transport,
    )
    assert transport.requests[0].prompt == "Summarize: real"


@pytest.mark.asyncio
async def test_row_mode_without_primary_key(compatible_config, make_transport, table):
    transport = make_transport()
    with pytest.raises(ConfigError):
        await run_llm_generate(
            compatible_config,
            {"prompt_field": "body", "answer_field": "summary"},
            mode="row", row={"body": "x"}, table=table, transport=transport,
        )
    assert transport.requests == []
    assert table.updates == []


@pytest.mark.asyncio
async def test_json_action_unknown_field_type(compatible_config, make_transport, table):
    transport = make_transport()
    with pytest.raises(SchemaError):
        await run_llm_generate_json(
            compatible_config,
            {"prompt_template": "x", "answer_field": "event", "fields": [{"name": "when", "type": "date"}]},
            mode="row", row={"id": 9}, table=table, transport=transport,
        )
    assert transport.requests == []
    assert table.updates == []
