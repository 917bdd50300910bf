"""Batch harness: test case selection, run payloads, summaries and evaluation reports."""

import json
import re
from typing import Any

FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
ANSWER_TAGS = re.compile(r"<answer>|</answer>")
FENCED_JSON_BLOCK = re.compile(r"```json[\s\S]*?```")


def _first_truthy(row: dict, *keys: str) -> Any:
    for key in keys:
        if row.get(key):
            return row[key]
    return None


def case_id(row: dict) -> str:
    raw = _first_truthy(row, "TESTCASE_NUMBER", "MTX_SESSION_ID")
    return str(raw) if raw is not None else ""


def case_input(row: dict) -> str:
    return _first_truthy(row, "INPUT", "USER_PROMPT", "MTX_USER_QUERY") or ""


def case_expected_output(row: dict) -> str:
    return row.get("EXPECTED_OUTPUT") or ""


def describe_case(row: dict) -> dict:
    """Id, input and expected output of one row, with their one-line summaries."""
    text_input = case_input(row)
    expected = case_expected_output(row)
    return {
        "id": case_id(row),
        "input": text_input,
        "expected_output": expected,
        "input_summary": summarize_content(text_input) if isinstance(text_input, str) else "",
        "expected_summary": summarize_content(expected) if isinstance(expected, str) else "",
    }


def normalize_test_cases(payload: Any) -> dict:
    """Coerce a provider payload into {sheetName, headers, testCases, totalCount}."""
    if isinstance(payload, dict) and isinstance(payload.get("testCases"), list):
        rows = payload["testCases"]
        sheet_name = payload.get("sheetName", "")
        headers = payload.get("headers")
    elif isinstance(payload, list):
        rows, sheet_name, headers = payload, "", None
    else:
        rows, sheet_name, headers = [], "", None

    test_cases = []
    for index, row in enumerate(row for row in rows if isinstance(row, dict)):
        if "rowIndex" not in row:
            row = {"rowIndex": index, **row}
        test_cases.append(row)

    if not isinstance(headers, list):
        headers = []
        for row in test_cases:
            for key in row:
                if key != "rowIndex" and key not in headers:
                    headers.append(key)

    return {
        "sheetName": sheet_name,
        "headers": headers,
        "testCases": test_cases,
        "totalCount": len(test_cases),
        "cases": [describe_case(row) for row in test_cases],
    }


def parse_limit(limit: Any) -> int | None:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def build_batch_payload(
    selected_ids: list[str], manual_ids: str = "", limit: Any = None, model: str | None = None
) -> dict:
    """Selected ids then typed ids, de-duplicated in order; limit only when positive."""
    typed = [part.strip() for part in manual_ids.split(",")] if manual_ids else []
    ids = []
    for test_id in [*selected_ids, *typed]:
        if test_id and test_id not in ids:
            ids.append(test_id)

    payload = {}
    if ids:
        payload["specific_ids"] = ids
    parsed_limit = parse_limit(limit)
    if parsed_limit is not None:
        payload["limit"] = parsed_limit
    if model:
        payload["model"] = model
    return payload


def current_run_id(results: list[dict]) -> str | None:
    if results and isinstance(results[0], dict) and results[0].get("TEST_RUN_ID"):
        return str(results[0]["TEST_RUN_ID"])
    return None


def widget_info(json_text: str) -> dict | None:
    """Widget type and a short summary of its props, if json_text is a widget."""
    try:
        parsed = json.loads(json_text)
    except ValueError:
        return None
    if not isinstance(parsed, dict) or not parsed.get("type") or not parsed.get("props"):
        return None
    props = parsed["props"]
    items = []
    if isinstance(props, dict):
        for key, value in props.items():
            if isinstance(value, list):
                items.append(f"{len(value)} {key}")
            elif isinstance(value, dict):
                items.append(key)
    return {"type": parsed["type"], "content_summary": ", ".join(items) or "object"}


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def summarize_content(content: str) -> str:
    """One-line summary of a test case input or expected output."""
    if not content:
        return ""
    try:
        parsed = json.loads(content)
    except ValueError:
        return _truncate(content, 100)

    if isinstance(parsed, dict):
        messages = parsed.get("messages")
        if isinstance(messages, list):
            for message in reversed(messages):
                if isinstance(message, dict) and message.get("role") == "user" and message.get("content"):
                    return f'User: "{_truncate(str(message["content"]), 100)}"'

        response = parsed.get("response")
        if isinstance(response, str) and response:
            match = FENCED_JSON.search(response)
            if match:
                info = widget_info(match.group(1))
                if info:
                    return f"Widget: {info['type']} | Content: {info['content_summary']}"
            cleaned = FENCED_JSON_BLOCK.sub("", ANSWER_TAGS.sub("", response)).strip()
            if cleaned:
                return _truncate(cleaned, 120)
            return "Response with widget data"

    return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False)[:100] + "..."


def format_detail(content: str) -> str:
    """Pretty JSON when content parses, the raw text otherwise."""
    if not content:
        return ""
    try:
        return json.dumps(json.loads(content), indent=2, ensure_ascii=False)
    except ValueError:
        return content


def score_band(score: Any) -> str:
    if not isinstance(score, (int, float)):
        return "red"
    if score >= 8:
        return "green"
    if score >= 6:
        return "yellow"
    if score >= 4:
        return "orange"
    return "red"


def build_report(results: list[dict], evaluations: list[dict]) -> dict:
    """Join each run result with its evaluation and count passes and failures."""
    by_case = {}
    for evaluation in evaluations:
        number = str(evaluation.get("testcase_number", ""))
        by_case.setdefault(number, evaluation)

    rows = []
    for result in results:
        number = str(result.get("TESTCASE_NUMBER", ""))
        evaluation = by_case.get(number)
        row = {
            "testcase_number": number,
            "response": result.get("TEST_RESPONSE", ""),
            "expected_output": result.get("EXPECTED_OUTPUT", ""),
            "evaluation": None,
        }
        if evaluation is not None:
            row["evaluation"] = {
                "passed": bool(evaluation.get("grade_pass")),
                "score": evaluation.get("grade_score"),
                "band": score_band(evaluation.get("grade_score")),
                "reason": evaluation.get("grade_reason", ""),
            }
        rows.append(row)

    return {
        "run_id": current_run_id(results),
        "results": rows,
        "passed": sum(1 for evaluation in evaluations if evaluation.get("grade_pass")),
        "failed": sum(1 for evaluation in evaluations if not evaluation.get("grade_pass")),
    }
