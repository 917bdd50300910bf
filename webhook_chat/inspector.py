"""Response inspector: intent analyzer and runtime prompt payloads as value trees."""

from dataclasses import asdict
from typing import Any

from webhook_chat.extractor import as_steps, extract, summarize_usage, total_usage
from webhook_chat.formatting import format_number, is_numeric
from webhook_chat.models import ChatMessage
from webhook_chat.renderer import BadgeNode, FieldNode, GroupNode, TextNode, render_widget

LONG_TEXT = 200
EMPTY_MESSAGE = "Select a message to view details"
SECTION_EXCLUDED = ("usage", "reasoning_details")


def render_value(value: Any):
    """Schema-less rendering of any JSON value."""
    if value is None:
        return TextNode("null", "muted")
    if isinstance(value, bool):
        return BadgeNode("true" if value else "false", "default" if value else "secondary")
    if is_numeric(value):
        return TextNode(format_number(value), "mono")
    if isinstance(value, str):
        return TextNode(value, "block" if len(value) > LONG_TEXT else "plain")
    if isinstance(value, list):
        if not value:
            return TextNode("[]", "muted")
        return GroupNode("array", None, [FieldNode(f"[{index}]", [render_value(item)]) for index, item in enumerate(value)])
    if isinstance(value, dict):
        return GroupNode("object", None, [FieldNode(key, [render_value(item)]) for key, item in value.items()])
    return TextNode(str(value))


def render_section(title: str, data: Any) -> GroupNode | None:
    if not data:
        return None
    if not isinstance(data, dict):
        return GroupNode("section", title, [render_value(data)])

    children = [
        FieldNode(key.replace("_", " "), [render_value(value)])
        for key, value in data.items()
        if key not in SECTION_EXCLUDED
    ]
    if data.get("reasoning_details") is not None:
        children.append(GroupNode("reasoning_details", "Reasoning Details", [render_value(data["reasoning_details"])]))
    if isinstance(data.get("usage"), dict):
        summary = summarize_usage(data["usage"])
        if summary:
            usage_fields = [FieldNode(key, [TextNode(text, "mono")]) for key, text in summary.items()]
            children.append(GroupNode("usage", "Usage & Cost", usage_fields))
    return GroupNode("section", title, children)


def inspect(message: ChatMessage | None) -> dict:
    """Inspector payload for one message, or the empty-state notice."""
    if message is None or not (message.intent_analyzer or message.runtime_prompt):
        return {"empty": True, "notice": EMPTY_MESSAGE, "sections": []}

    sections = [render_section("Intent Analyzer Response", message.intent_analyzer)]
    steps = as_steps(message.runtime_prompt)
    if isinstance(message.runtime_prompt, list):
        sections.extend(
            render_section(f"Runtime Prompt Response [{index}]", step) for index, step in enumerate(steps)
        )
    else:
        sections.append(render_section("Runtime Prompt Response", message.runtime_prompt))

    extraction = extract(message.runtime_prompt)
    return {
        "empty": False,
        "notice": None,
        "sections": [asdict(section) for section in sections if section is not None],
        "reasonings": extraction.reasonings,
        "tool_calls": [asdict(call) for call in extraction.tool_calls],
        "usages": [summarize_usage(usage) for usage in extraction.usages],
        "total_usage": total_usage(extraction.usages),
        "widget": asdict(render_widget(extraction.widget)) if extraction.widget else None,
        "final_content": extraction.final_content,
    }
