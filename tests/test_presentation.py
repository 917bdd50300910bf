from webhook_chat.models import ChatMessage, ChatSession
from webhook_chat.presentation import render_node, render_transcript
from webhook_chat.renderer import render_object


def test_render_node_escapes_text():
    html = render_node(render_object({"note": "<script>alert(1)</script>"}))
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_currency_tone_is_a_css_class():
    html = render_node(render_object({"TransactionId": "T", "Amount": -3}))
    assert 'class="currency debit"' in html
    assert "-$3.00" in html


def test_transcript_renders_messages():
    session = ChatSession(
        id="s1",
        title="Balance",
        model_id="llama",
        current_agent="AccountsAgent",
        created_at=1,
        updated_at=2,
        messages=[
            ChatMessage(id="u1", role="user", text="What's my **balance**?", timestamp=1_700_000_000_000),
            ChatMessage(id="a1", role="assistant", text="Error processing request", timestamp=1_700_000_001_000, error="timeout"),
        ],
    )
    html = render_transcript(session)
    assert "<strong>balance</strong>" in html
    assert '<div class="error">timeout</div>' in html
    assert "agent: AccountsAgent" in html


def test_transcript_without_session():
    assert "No active session" in render_transcript(None)
