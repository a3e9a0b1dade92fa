"""Tests for backend response interpretation."""

import pytest

from llmgen.llm import (
    BackendResponseError,
    MalformedArgumentsError,
    ToolCallAmbiguousError,
    ToolCallMissingError,
    extract_structured,
    extract_text,
)
from llmgen.schemas import BackendResponse, FunctionCall, ToolCall


def _call(name, arguments):
    return ToolCall(function=FunctionCall(name=name, arguments=arguments))


def test_extract_text():
    assert extract_text(BackendResponse(content="A short summary.")) == "A short summary."


def test_extract_text_missing_content():
    with pytest.raises(BackendResponseError):
        extract_text(BackendResponse())


def test_extract_text_blank_content():
    with pytest.raises(BackendResponseError):
        extract_text(BackendResponse(content="  \n"))


def test_extract_structured_object():
    raw = BackendResponse(tool_calls=[_call("result", '{"result":{"title":"Hi"}}')])
    assert extract_structured(raw, "result") == {"title": "Hi"}


def test_extract_structured_array():
    raw = BackendResponse(tool_calls=[_call("items", '{"items":[{"n":1},{"n":2}]}')])
    assert extract_structured(raw, "items") == [{"n": 1}, {"n": 2}]


def test_no_tool_calls():
    with pytest.raises(ToolCallMissingError):
        extract_structured(BackendResponse(tool_calls=[]), "result")


def test_content_instead_of_tool_call():
    with pytest.raises(ToolCallMissingError):
        extract_structured(BackendResponse(content='{"result": {}}'), "result")


def test_wrong_function_name():
    raw = BackendResponse(tool_calls=[_call("other", '{"other": {}}')])
    with pytest.raises(ToolCallMissingError):
        extract_structured(raw, "result")


def test_multiple_calls_takes_first_match():
    raw = BackendResponse(tool_calls=[
        _call("result", '{"result": {"title": "first"}}'),
        _call("result", '{"result": {"title": "second"}}'),
    ])
    assert extract_structured(raw, "result") == {"title": "first"}


def test_multiple_calls_strict():
    raw = BackendResponse(tool_calls=[
        _call("result", '{"result": {}}'),
        _call("result", '{"result": {}}'),
    ])
    with pytest.raises(ToolCallAmbiguousError):
        extract_structured(raw, "result", strict=True)


def test_invalid_json_arguments():
    raw = BackendResponse(tool_calls=[_call("result", '{"result": {"title": "Hi"')])
    with pytest.raises(MalformedArgumentsError) as exc_info:
        extract_structured(raw, "result")
    assert exc_info.value.raw_output.startswith('{"result"')


def test_wrong_top_level_key():
    raw = BackendResponse(tool_calls=[_call("result", '{"title": "Hi"}')])
    with pytest.raises(MalformedArgumentsError):
        extract_structured(raw, "result")


def test_extra_top_level_key():
    raw = BackendResponse(tool_calls=[_call("result", '{"result": {}, "extra": 1}')])
    with pytest.raises(MalformedArgumentsError):
        extract_structured(raw, "result")


def test_arguments_not_an_object():
    raw = BackendResponse(tool_calls=[_call("result", '["result"]')])
    with pytest.raises(MalformedArgumentsError):
        extract_structured(raw, "result")


def test_values_are_not_type_checked():
    raw = BackendResponse(tool_calls=[_call("result", '{"result": {"count": "seven"}}')])
    assert extract_structured(raw, "result") == {"count": "seven"}


def test_taxonomy():
    assert issubclass(ToolCallMissingError, BackendResponseError)
    assert issubclass(ToolCallAmbiguousError, BackendResponseError)
    assert issubclass(MalformedArgumentsError, BackendResponseError)
