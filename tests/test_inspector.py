from webhook_chat.inspector import EMPTY_MESSAGE, inspect, render_section, render_value
from webhook_chat.models import ChatMessage
from webhook_chat.renderer import BadgeNode, GroupNode, TextNode


def _message(**kwargs) -> ChatMessage:
    return ChatMessage(id="m1", role="assistant", text="ok", timestamp=1, **kwargs)


def test_render_value_tree():
    assert render_value(None).text == "null"
    assert isinstance(render_value(True), BadgeNode)
    assert render_value(1234567).text == "1,234,567"
    assert render_value("short").style == "plain"
    assert render_value("x" * 201).style == "block"
    assert render_value([]).text == "[]"

    array = render_value(["a", {"b": None}])
    assert [field.label for field in array.children] == ["[0]", "[1]"]
    assert isinstance(array.children[1].value[0], GroupNode)


def test_section_excludes_usage_and_reasoning_details_from_fields():
    section = render_section(
        "Runtime Prompt Response [0]",
        {
            "content": "hi",
            "reasoning_details": [{"text": "r"}],
            "usage": {"prompt_tokens": 10, "cost": 0.0025, "latency_ms": 120},
        },
    )
    labels = [child.label for child in section.children if not isinstance(child, GroupNode)]
    assert labels == ["content"]
    subsections = {child.variant: child for child in section.children if isinstance(child, GroupNode)}
    assert set(subsections) == {"reasoning_details", "usage"}
    usage = {field.label: field.value[0].text for field in subsections["usage"].children}
    assert usage == {"prompt_tokens": "10", "cost": "$0.002500", "latency_ms": "120ms"}


def test_empty_inspector():
    assert inspect(None)["notice"] == EMPTY_MESSAGE
    assert inspect(_message())["empty"] is True


def test_inspect_runtime_steps_and_totals():
    message = _message(
        intent_analyzer={"MTX_SELECTED_AGENT": "Billing", "MTX_REASONING": "needs bills"},
        runtime_prompt=[
            {"content": "<think>look up</think>", "usage": {"total_tokens": 5, "cost": 0.1}},
            {
                "content": '{"type": "bill_widget", "props": {"Amount": 3}}',
                "tool_calls": [{"function": {"name": "get_bills"}}],
                "usage": {"total_tokens": 7},
            },
        ],
    )

    data = inspect(message)

    titles = [section["title"] for section in data["sections"]]
    assert titles == ["Intent Analyzer Response", "Runtime Prompt Response [0]", "Runtime Prompt Response [1]"]
    assert data["reasonings"] == ["look up"]
    assert data["tool_calls"] == [{"name": "get_bills", "arguments": "{}"}]
    assert data["total_usage"] == {"total_tokens": 12, "cost": 0.1}
    assert data["widget"]["title"] == "bill_widget"


def test_inspect_single_runtime_object():
    data = inspect(_message(runtime_prompt={"response": "legacy"}))
    assert [section["title"] for section in data["sections"]] == ["Runtime Prompt Response"]
    field = data["sections"][0]["children"][0]
    assert field["label"] == "response"
    assert field["value"][0] == {"text": "legacy", "style": "plain", "kind": "text"}


def test_bool_badge_tones():
    assert render_value(False).tone == "secondary"
    assert isinstance(render_value(3.5), TextNode)
