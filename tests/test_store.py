from webhook_chat.models import ChatMessage, ChatSession, SessionState
from webhook_chat.store import SessionStore, UiSignal, derive_title

from tests.fakes import InMemorySessionRepository


def _message(text: str, role: str = "user", timestamp: int = 0, id: str = "m") -> ChatMessage:
    return ChatMessage(id=id, role=role, text=text, timestamp=timestamp)


def test_empty_repository_bootstraps_one_session(store, repository):
    assert len(store.sessions) == 1
    assert store.active_session_id == store.sessions[0].id
    assert store.sessions[0].title == "New Chat"
    assert repository.saves == 1


def test_rehydrate_keeps_persisted_state(clock):
    state = SessionState(
        sessions=[ChatSession(id="a", created_at=1, updated_at=1), ChatSession(id="b", created_at=2, updated_at=2)],
        active_session_id="b",
    )
    store = SessionStore(InMemorySessionRepository(state), clock=clock)
    assert [s.id for s in store.sessions] == ["a", "b"]
    assert store.active_session_id == "b"


def test_rehydrate_with_dangling_active_id(clock):
    state = SessionState(sessions=[ChatSession(id="a", created_at=1, updated_at=1)], active_session_id="gone")
    store = SessionStore(InMemorySessionRepository(state), clock=clock)
    assert store.active_session_id == "a"


def test_failing_repository_does_not_break_the_store(clock):
    class BrokenRepository:
        def load(self):
            raise RuntimeError("disk on fire")

        def save(self, state):
            raise RuntimeError("disk on fire")

    store = SessionStore(BrokenRepository(), clock=clock)
    session_id = store.create_session()
    assert store.active_session_id == session_id


def test_create_session_activates_and_signals(store, signals):
    session_id = store.create_session()
    assert store.active_session_id == session_id
    assert signals[-1] == (UiSignal.RESET_SELECTION, None)


def test_delete_last_session_recreates_one(store):
    only = store.active_session_id
    store.delete_session(only)
    assert len(store.sessions) == 1
    assert store.sessions[0].id != only
    assert store.active_session_id == store.sessions[0].id


def test_delete_active_session_moves_pointer(store):
    first = store.active_session_id
    second = store.create_session()
    store.delete_session(second)
    assert store.active_session_id == first


def test_delete_inactive_session_keeps_pointer(store):
    first = store.active_session_id
    second = store.create_session()
    store.delete_session(first)
    assert store.active_session_id == second


def test_delete_unknown_session_is_noop(store, repository):
    saves = repository.saves
    store.delete_session("missing")
    assert repository.saves == saves


def test_select_session(store, signals):
    first = store.active_session_id
    store.create_session()
    signals.clear()
    store.select_session(first)
    assert store.active_session_id == first
    assert signals == [(UiSignal.RESET_SELECTION, None)]


def test_list_sessions_most_recent_first(store):
    first = store.active_session_id
    second = store.create_session()
    store.set_model(first, "llama")
    assert [s.id for s in store.list_sessions()] == [first, second]


def test_updated_at_never_decreases(repository):
    times = iter([100, 200, 150])
    store = SessionStore(repository, clock=lambda: next(times))
    session_id = store.active_session_id
    store.set_model(session_id, "a")
    assert store.get_session(session_id).updated_at == 200
    store.set_model(session_id, "b")
    assert store.get_session(session_id).updated_at == 200


def test_append_message_derives_title_and_advances_agent(store):
    session_id = store.active_session_id
    store.append_message(session_id, _message("What is my balance on the savings account?", id="u1"))
    session = store.get_session(session_id)
    assert session.title == "What is my balance on the savi…"

    store.append_message(session_id, _message("Here", role="assistant", id="a1"), new_agent="balance_agent")
    assert session.current_agent == "balance_agent"

    store.append_message(session_id, _message("Thanks", id="u2"), new_agent=None)
    assert session.current_agent == "balance_agent"
    assert session.title == "What is my balance on the savi…"


def test_append_message_keeps_timestamps_ordered(store):
    session_id = store.active_session_id
    store.append_message(session_id, _message("a", timestamp=500, id="1"))
    store.append_message(session_id, _message("b", role="assistant", timestamp=400, id="2"))
    timestamps = [m.timestamp for m in store.get_session(session_id).messages]
    assert timestamps == sorted(timestamps)


def test_append_to_deleted_session_is_ignored(store):
    assert store.append_message("missing", _message("hi")) is None


def test_mutations_persist(store, repository):
    session_id = store.active_session_id
    store.set_prompts(session_id, "intent", None)
    persisted = repository.load()
    assert persisted.sessions[0].intent_system_prompt == "intent"
    assert persisted.active_session_id == session_id


def test_derive_title():
    assert derive_title([]) == "New Chat"
    assert derive_title([_message("hi", role="assistant")]) == "New Chat"
    assert derive_title([_message("Hello")]) == "Hello"
    assert derive_title([_message("x" * 30)]) == "x" * 30
    assert derive_title([_message("x" * 31)]) == "x" * 30 + "…"


def test_deleting_every_session_leaves_a_fresh_one(store):
    store.create_session()
    store.append_message(store.active_session_id, _message("hello"))
    store.create_session()
    for session in list(store.sessions):
        store.delete_session(session.id)
        assert store.sessions
    assert len(store.sessions) == 1
    assert store.sessions[0].messages == []
