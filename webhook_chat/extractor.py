"""Reasoning, widget, tool call and usage extraction from runtime prompt steps.

The upstream runtime prompt payload is one object per internal generation
step. A single ordered pass over the steps collects:

- reasoning strings from `reasoning`, `reasoning_details` entries and
  <think> blocks in `content` / `message.content`, de-duplicated
- the first widget directive (an object whose `type` mentions "widget"),
  which may be embedded as JSON text or a fenced ```json block
- every function tool call, with arguments defaulting to "{}"
- each step's `usage` record
- the last non-empty visible content, read from `message.content` only
  when `content` is missing or empty

Malformed input never raises; it simply contributes nothing.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

from webhook_chat.formatting import is_numeric, strip_think

THINK_CONTENT = re.compile(r"<think>([\s\S]*?)</think>", re.IGNORECASE)
OPEN_THINK = re.compile(r"^\s*<think>", re.IGNORECASE)
CLOSE_THINK_AT_END = re.compile(r"</think>\s*$", re.IGNORECASE)
FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

DEDUP_PREFIX = 500
MAX_WIDGET_DEPTH = 8

USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens", "cost", "latency_ms")


@dataclass
class ToolCall:
    """A function call requested by one generation step."""
    name: str
    arguments: str = "{}"


@dataclass
class Extraction:
    widget: dict | None = None
    reasonings: list[str] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    usages: list[dict] = field(default_factory=list)
    final_content: str = ""


def as_steps(data: Any) -> list:
    """Normalize a runtime prompt payload to a list of steps."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


def dedup_key(text: str) -> str:
    return " ".join(text.split())[:DEDUP_PREFIX]


def think_segments(content: Any) -> list[str]:
    """Text inside <think> blocks, including an unterminated leading block."""
    if not isinstance(content, str):
        return []
    segments = [match.strip() for match in THINK_CONTENT.findall(content)]
    if not segments:
        opening = OPEN_THINK.match(content)
        if opening:
            remainder = CLOSE_THINK_AT_END.sub("", content[opening.end():])
            segments = [remainder.strip()]
    return [segment for segment in segments if segment]


def content_texts(content: Any) -> list[str]:
    """Strings carried by a content field: a string, or a list of strings/parts."""
    if isinstance(content, str):
        return [content]
    texts = []
    if isinstance(content, list):
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict):
                for key in ("text", "content"):
                    if isinstance(part.get(key), str):
                        texts.append(part[key])
                        break
    return texts


def _message_content(step: dict) -> Any:
    message = step.get("message")
    if isinstance(message, dict):
        return message.get("content")
    return None


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return None


def find_widget(value: Any, depth: int = 0) -> dict | None:
    """Search a content value for an object whose type contains "widget"."""
    if depth > MAX_WIDGET_DEPTH or value is None:
        return None
    if isinstance(value, dict):
        kind = value.get("type")
        if isinstance(kind, str) and "widget" in kind:
            return value
        for key in ("text", "content"):
            found = find_widget(value.get(key), depth + 1)
            if found is not None:
                return found
        return None
    if isinstance(value, list):
        for item in value:
            found = find_widget(item, depth + 1)
            if found is not None:
                return found
        return None
    if isinstance(value, str):
        text = strip_think(value)
        if not text:
            return None
        parsed = _parse_json(text)
        if isinstance(parsed, (dict, list)):
            return find_widget(parsed, depth + 1)
        for block in FENCED_JSON.findall(text):
            parsed = _parse_json(block)
            if isinstance(parsed, (dict, list)):
                found = find_widget(parsed, depth + 1)
                if found is not None:
                    return found
    return None


def _visible(content: Any) -> str:
    return strip_think(content) if isinstance(content, str) else ""


def _tool_calls(step: dict) -> list[ToolCall]:
    calls = []
    raw_calls = step.get("tool_calls")
    if not isinstance(raw_calls, list):
        return calls
    for raw in raw_calls:
        if not isinstance(raw, dict) or not isinstance(raw.get("function"), dict):
            continue
        function = raw["function"]
        name = function.get("name")
        if not isinstance(name, str) or not name:
            continue
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        elif not isinstance(arguments, str):
            arguments = json.dumps(arguments, ensure_ascii=False)
        calls.append(ToolCall(name=name, arguments=arguments))
    return calls


def _step_reasonings(step: dict) -> list[str]:
    found = []
    if isinstance(step.get("reasoning"), str):
        found.append(step["reasoning"])

    details = step.get("reasoning_details")
    if isinstance(details, list):
        for detail in details:
            if not isinstance(detail, dict):
                continue
            if isinstance(detail.get("text"), str):
                found.append(detail["text"])
            found.extend(content_texts(detail.get("content")))

    found.extend(think_segments(step.get("content")))
    found.extend(think_segments(_message_content(step)))
    return found


def extract(runtime_prompt_data: Any) -> Extraction:
    """Single ordered pass over the runtime prompt steps."""
    result = Extraction()
    seen = set()

    for step in as_steps(runtime_prompt_data):
        if not isinstance(step, dict):
            continue

        for reasoning in _step_reasonings(step):
            key = dedup_key(reasoning)
            if key and key not in seen:
                seen.add(key)
                result.reasonings.append(reasoning)

        content = step.get("content")
        if content is None or content == "":
            content = _message_content(step)

        if result.widget is None:
            result.widget = find_widget(content)

        result.tool_calls.extend(_tool_calls(step))

        if isinstance(step.get("usage"), dict):
            result.usages.append(step["usage"])

        visible = _visible(content)
        if visible:
            result.final_content = visible

    return result


def summarize_usage(usage: dict) -> dict[str, str]:
    """Display strings for the numeric usage/cost fields that are present."""
    summary = {}
    for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
        if is_numeric(usage.get(key)):
            summary[key] = f"{usage[key]:,}"
    if is_numeric(usage.get("cost")):
        summary["cost"] = f"${usage['cost']:.6f}"
    if is_numeric(usage.get("latency_ms")):
        summary["latency_ms"] = f"{usage['latency_ms']}ms"
    return summary


def total_usage(usages: list[dict]) -> dict[str, float]:
    """Sum each numeric usage field across generation steps."""
    totals = {}
    for usage in usages:
        for key in USAGE_FIELDS:
            if is_numeric(usage.get(key)):
                totals[key] = totals.get(key, 0) + usage[key]
    return totals
