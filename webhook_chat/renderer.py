"""Structured rendering of tool and widget payloads into display nodes.

Each response variant has one transform that selects and formats the
fields worth showing. The result is a tree of plain dataclasses (text,
badge, currency, thumbnail, field, group) with no knowledge of HTML or
any other presentation; presentation.py draws them.

Every transform is total over arbitrary JSON: missing keys, wrong types
and unknown shapes fall back to the generic key/value rendering.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from webhook_chat.classifier import Variant, classify
from webhook_chat.extractor import extract
from webhook_chat.formatting import (
    DEFAULT_CURRENCY,
    bold_segments,
    format_currency,
    format_datetime,
    format_time,
    is_image_url,
    is_numeric,
    js_string,
    pretty_json,
    strip_think,
    to_number,
)
from webhook_chat.models import ChatMessage

PRIORITY_FIELDS = [
    "AccountId",
    "CustomerId",
    "TransactionId",
    "Amount",
    "Balance",
    "Status",
    "Name",
    "Email",
    "message",
]
_PRIORITY_INDEX = {name.lower(): index for index, name in enumerate(PRIORITY_FIELDS)}


@dataclass
class TextNode:
    text: str
    style: str = "plain"  # plain | strong | muted | mono | block
    kind: str = field(default="text", init=False)


@dataclass
class BadgeNode:
    text: str
    tone: str = "default"  # default | secondary | success | outline
    kind: str = field(default="badge", init=False)


@dataclass
class CurrencyNode:
    amount: float | None
    currency: str
    formatted: str
    tone: str = "neutral"  # neutral | credit | debit
    kind: str = field(default="currency", init=False)


@dataclass
class ThumbnailNode:
    src: str
    alt: str
    kind: str = field(default="thumbnail", init=False)


@dataclass
class FieldNode:
    label: str
    value: list
    kind: str = field(default="field", init=False)


@dataclass
class GroupNode:
    variant: str
    title: str | None = None
    children: list = field(default_factory=list)
    kind: str = field(default="group", init=False)


@dataclass
class MessageView:
    id: str
    role: str
    status: str
    time: str
    body: list[TextNode]
    tool_responses: list
    widget: GroupNode | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _currency_code(obj: dict) -> str:
    code = obj.get("Currency")
    return code if isinstance(code, str) and code else DEFAULT_CURRENCY


def _money(amount: Any, currency: str, tone: str = "neutral") -> CurrencyNode:
    return CurrencyNode(
        amount=to_number(amount),
        currency=currency,
        formatted=format_currency(amount, currency),
        tone=tone,
    )


def render_transaction(obj: dict) -> GroupNode:
    amount = obj.get("Amount")
    number = to_number(amount)
    if number is None:
        return render_generic(obj)
    credit = number > 0
    description = obj.get("Description") or obj.get("Subtype") or "Transaction"

    children = [TextNode(js_string(description), "strong")]
    if obj.get("DateTime"):
        children.append(TextNode(format_datetime(obj["DateTime"]), "muted"))
    children.append(_money(amount, _currency_code(obj), "credit" if credit else "debit"))
    children.append(TextNode(f"ID: {js_string(obj.get('TransactionId'))}", "mono"))
    return GroupNode(Variant.TRANSACTION.value, "Transaction", children)


def render_balance(obj: dict) -> GroupNode:
    if to_number(obj.get("CalculatedBalance")) is None:
        return render_generic(obj)
    return GroupNode(
        Variant.BALANCE.value,
        "Balance",
        [
            _money(obj.get("CalculatedBalance"), _currency_code(obj)),
            TextNode(f"Account: {js_string(obj.get('AccountId'))}", "mono"),
        ],
    )


def render_customer(obj: dict) -> GroupNode:
    name = " ".join(js_string(obj[key]) for key in ("FirstName", "LastName") if obj.get(key) is not None)
    children = [TextNode(name, "strong")]
    if obj.get("Email"):
        children.append(TextNode(js_string(obj["Email"]), "muted"))
    if obj.get("Status"):
        children.append(BadgeNode(js_string(obj["Status"]), "secondary"))
    children.append(TextNode(f"ID: {js_string(obj.get('CustomerId'))}", "mono"))
    return GroupNode(Variant.CUSTOMER.value, "Customer", children)


def render_bill(obj: dict) -> GroupNode:
    if to_number(obj.get("Amount")) is None:
        return render_generic(obj)
    children = [
        _money(obj.get("Amount"), _currency_code(obj)),
        TextNode(f"Due: {js_string(obj.get('DueDate'))}", "muted"),
    ]
    if obj.get("Status"):
        status = js_string(obj["Status"])
        children.append(BadgeNode(status, "success" if status == "Paid" else "default"))
    children.append(TextNode(f"ID: {js_string(obj.get('BillId'))}", "mono"))
    return GroupNode(Variant.BILL.value, "Bill", children)


def render_exchange_rate(obj: dict) -> GroupNode:
    children = [
        TextNode(f"{js_string(obj.get('FromCurrency'))} → {js_string(obj.get('ToCurrency'))}", "strong"),
        TextNode(js_string(obj.get("Rate")), "mono"),
    ]
    if obj.get("Example"):
        children.append(TextNode(js_string(obj["Example"]), "muted"))
    return GroupNode(Variant.EXCHANGE_RATE.value, "Exchange Rate", children)


def render_beneficiary(obj: dict) -> GroupNode:
    name = obj.get("BeneficiaryName") or obj.get("Name") or "Beneficiary"
    children = [TextNode(js_string(name), "strong")]
    if obj.get("AccountNumber"):
        children.append(TextNode(f"Account: {js_string(obj['AccountNumber'])}", "mono"))
    if obj.get("BankName"):
        children.append(TextNode(js_string(obj["BankName"]), "muted"))
    if obj.get("BeneficiaryId"):
        children.append(TextNode(f"ID: {js_string(obj['BeneficiaryId'])}", "mono"))
    if obj.get("Status"):
        children.append(BadgeNode(js_string(obj["Status"]), "secondary"))
    return GroupNode(Variant.BENEFICIARY.value, "Beneficiary", children)


def render_list(paginated: dict) -> GroupNode:
    """Render a PaginatedResponse: counters, then each item by its own variant."""
    items = paginated.get("items")
    if not isinstance(items, list):
        items = []
    children = [
        BadgeNode(f"{js_string(paginated.get('total'))} results", "secondary"),
        BadgeNode(
            f"Page {js_string(paginated.get('page'))} of {js_string(paginated.get('total_pages'))}",
            "outline",
        ),
    ]
    for item in items:
        if not isinstance(item, dict):
            continue
        if classify(item) is Variant.TRANSACTION:
            children.append(render_transaction(item))
        else:
            children.append(render_generic(item))
    return GroupNode(Variant.PAGINATED.value, "Results", children)


def _ordered_keys(obj: dict) -> list[str]:
    ranked = [key for key in obj if key.lower() in _PRIORITY_INDEX]
    ranked.sort(key=lambda key: _PRIORITY_INDEX[key.lower()])
    return ranked + [key for key in obj if key.lower() not in _PRIORITY_INDEX]


def render_field(key: str, value: Any) -> FieldNode | None:
    """Format one key/value pair of a generic object; None for null values."""
    if value is None:
        return None
    lower = key.lower()

    if isinstance(value, str) and (is_image_url(key) or is_image_url(value)):
        return FieldNode(key, [ThumbnailNode(value, key), TextNode(value)])
    if ("amount" in lower or "balance" in lower) and is_numeric(value):
        return FieldNode(key, [_money(value, DEFAULT_CURRENCY)])
    if ("date" in lower or "time" in lower) and isinstance(value, str):
        return FieldNode(key, [TextNode(format_datetime(value))])
    if lower == "currency":
        return FieldNode(key, [TextNode(js_string(value), "mono")])
    if isinstance(value, list) and value and isinstance(value[0], dict):
        nested = [render_object(item) if isinstance(item, dict) else TextNode(js_string(item)) for item in value]
        return FieldNode(key, [GroupNode("list", f"{len(value)} items", nested)])
    if isinstance(value, (dict, list)):
        return FieldNode(key, [TextNode(pretty_json(value), "block")])
    return FieldNode(key, [TextNode(js_string(value))])


def render_generic(obj: dict) -> GroupNode:
    children = []
    for key in _ordered_keys(obj):
        node = render_field(key, obj[key])
        if node is not None:
            children.append(node)
    return GroupNode(Variant.GENERIC.value, None, children)


RENDERERS = {
    Variant.TRANSACTION: render_transaction,
    Variant.BALANCE: render_balance,
    Variant.CUSTOMER: render_customer,
    Variant.BILL: render_bill,
    Variant.EXCHANGE_RATE: render_exchange_rate,
    Variant.BENEFICIARY: render_beneficiary,
    Variant.PAGINATED: render_list,
}


def render(variant: Variant, obj: dict) -> GroupNode:
    """Render an object with the transform for its variant, or generically."""
    renderer = RENDERERS.get(variant, render_generic)
    return renderer(obj)


def render_object(obj: dict) -> GroupNode:
    return render(classify(obj), obj)


def render_tool_item(item: Any):
    """Render one tool response item; each item is classified on its own."""
    if isinstance(item, dict):
        return render_object(item)
    if isinstance(item, list):
        children = [render_tool_item(element) for element in item if element is not None]
        return GroupNode("list", f"{len(children)} items", children)
    return TextNode(js_string(item))


def render_widget(widget: dict) -> GroupNode:
    """Render a widget directive: its props go through the variant pipeline."""
    props = widget.get("props")
    title = js_string(widget.get("type"))
    if not isinstance(props, dict):
        rest = {key: value for key, value in widget.items() if key != "type"}
        return GroupNode("widget", title, render_generic(rest).children)

    children = []
    for key, value in props.items():
        if value is None:
            continue
        if isinstance(value, dict):
            group = render_object(value)
            children.append(FieldNode(key, [group]))
        elif isinstance(value, list) and any(isinstance(item, dict) for item in value):
            nested = [render_tool_item(item) for item in value if item is not None]
            children.append(FieldNode(key, [GroupNode("list", f"{len(nested)} items", nested)]))
        else:
            node = render_field(key, value)
            if node is not None:
                children.append(node)
    return GroupNode("widget", title, children)


def render_body(text: str) -> list[TextNode]:
    """Assistant/user text with think blocks removed and **bold** runs emphasised."""
    return [TextNode(segment, "strong" if bold else "plain") for segment, bold in bold_segments(strip_think(text))]


def view_message(message: ChatMessage) -> MessageView:
    """Build the display tree for one chat turn."""
    widget = None
    if message.runtime_prompt is not None:
        found = extract(message.runtime_prompt).widget
        if found is not None:
            widget = render_widget(found)

    return MessageView(
        id=message.id,
        role=message.role,
        status=message.status,
        time=format_time(message.timestamp),
        body=render_body(message.text),
        tool_responses=[render_tool_item(item) for item in message.tool_response or [] if item is not None],
        widget=widget,
        error=message.error,
    )
