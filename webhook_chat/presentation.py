"""HTML presentation of display nodes and session transcripts."""

from html import escape

from webhook_chat.models import ChatSession
from webhook_chat.renderer import (
    BadgeNode,
    CurrencyNode,
    FieldNode,
    GroupNode,
    MessageView,
    TextNode,
    ThumbnailNode,
    view_message,
)

PAGE_STYLE = """
body { font-family: system-ui, sans-serif; max-width: 860px; margin: 2rem auto; color: #1f2328; }
.message { border-radius: 8px; padding: 0.75rem 1rem; margin: 0.75rem 0; }
.message.user { background: #eef4ff; margin-left: 15%; }
.message.assistant { background: #f6f8fa; margin-right: 15%; }
.message.failed { border: 1px solid #d1242f; }
.meta { font-size: 0.75rem; color: #59636e; }
.error { color: #d1242f; background: #fff0f0; padding: 0.5rem; border-radius: 4px; }
.group { border: 1px solid #d0d7de; border-radius: 6px; padding: 0.5rem; margin: 0.5rem 0; }
.field { display: flex; gap: 0.5rem; }
.label { color: #59636e; min-width: 8rem; }
.badge { border-radius: 999px; padding: 0 0.5rem; font-size: 0.75rem; background: #ddf4ff; }
.badge.success { background: #dafbe1; }
.badge.outline { background: none; border: 1px solid #d0d7de; }
.credit { color: #1a7f37; }
.debit { color: #d1242f; }
.mono { font-family: ui-monospace, monospace; }
.muted { color: #59636e; }
pre.block { white-space: pre-wrap; background: #f6f8fa; padding: 0.5rem; }
img.thumbnail { max-width: 64px; max-height: 64px; }
"""


def render_node(node) -> str:
    """Draw one display node (or a list of them) as HTML."""
    if isinstance(node, list):
        return "".join(render_node(child) for child in node)
    if isinstance(node, TextNode):
        if node.style == "block":
            return f'<pre class="block">{escape(node.text)}</pre>'
        if node.style == "strong":
            return f"<strong>{escape(node.text)}</strong>"
        return f'<span class="{node.style}">{escape(node.text)}</span>'
    if isinstance(node, BadgeNode):
        return f'<span class="badge {node.tone}">{escape(node.text)}</span>'
    if isinstance(node, CurrencyNode):
        return f'<span class="currency {node.tone}">{escape(node.formatted)}</span>'
    if isinstance(node, ThumbnailNode):
        return f'<img class="thumbnail" src="{escape(node.src)}" alt="{escape(node.alt)}" loading="lazy">'
    if isinstance(node, FieldNode):
        return (
            f'<div class="field"><span class="label">{escape(node.label)}</span>'
            f"<div>{render_node(node.value)}</div></div>"
        )
    if isinstance(node, GroupNode):
        title = f"<h4>{escape(node.title)}</h4>" if node.title else ""
        return f'<div class="group {escape(node.variant)}">{title}{render_node(node.children)}</div>'
    return escape(str(node))


def render_message(view: MessageView) -> str:
    parts = [f'<div class="body">{render_node(view.body)}</div>']
    if view.widget is not None:
        parts.append(render_node(view.widget))
    if view.tool_responses:
        parts.append(render_node(view.tool_responses))
    if view.error:
        parts.append(f'<div class="error">{escape(view.error)}</div>')
    parts.append(f'<div class="meta">{escape(view.time)}</div>')
    return f'<div class="message {view.role} {view.status}" id="{escape(view.id)}">{"".join(parts)}</div>'


def render_transcript(session: ChatSession | None) -> str:
    """Full HTML page for one session's conversation."""
    if session is None:
        title, body = "Chat", "<p>No active session</p>"
    else:
        title = session.title
        messages = "".join(render_message(view_message(message)) for message in session.messages)
        agent = f" · agent: {escape(session.current_agent)}" if session.current_agent else ""
        header = f'<p class="meta">model: {escape(session.model_id or "none")}{agent}</p>'
        body = header + (messages or '<p class="muted">Start a conversation</p>')
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{escape(title)}</title><style>{PAGE_STYLE}</style></head>"
        f"<body><h1>{escape(title)}</h1>{body}</body></html>"
    )
