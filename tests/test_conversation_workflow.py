"""Unit tests for ConversationWorkflow."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import threading
import pytest
from unittest.mock import Mock
from models.conversation import ConversationState, Message, QueryType, Role
from services.conversation_store import InMemoryConversationStore, StoreError
from services.conversation_workflow import ConversationWorkflow, ChatResult
from services.llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from services.message_trimmer import MessageTrimmer


def llm_response(text):
    return LLMResponse(text=text, tokens_input=100, tokens_output=20, latency_ms=250, model_used="test-model")


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def llm_client():
    client = Mock(spec=LLMClient)
    client.generate.side_effect = lambda prompt: llm_response(f"Reply {client.generate.call_count}")
    return client


@pytest.fixture
def workflow(store, llm_client):
    return ConversationWorkflow(store=store, llm_client=llm_client)


class TestRespond:
    """Tests for ConversationWorkflow.respond."""

    def test_returns_reply_and_thread_id(self, workflow):
        result = workflow.respond("What visa do I need for Japan?", "thread-1")

        assert isinstance(result, ChatResult)
        assert result.thread_id == "thread-1"
        assert result.reply.role == Role.ASSISTANT
        assert result.reply.content == "Reply 1"
        assert result.timestamp is not None

    def test_generates_thread_id_when_missing(self, workflow):
        """Test that omitted thread IDs are generated and distinct."""
        first = workflow.respond("Hello")
        second = workflow.respond("Hello again")

        assert first.thread_id
        assert second.thread_id
        assert first.thread_id != second.thread_id

    def test_country_query_uses_country_prompt(self, workflow, llm_client, store):
        """Test the Japan scenario end to end."""
        workflow.respond("What visa do I need for Japan?", "t1")

        prompt = llm_client.generate.call_args[0][0]
        assert prompt[0]["role"] == "system"
        assert "visa requirements for travel to Japan" in prompt[0]["content"]
        assert prompt[-1] == {"role": "user", "content": "What visa do I need for Japan?"}

        state = store.get("t1")
        assert state.country == "Japan"
        assert state.query_type == QueryType.COUNTRY

    def test_general_query_uses_general_prompt(self, workflow, llm_client, store):
        """Test the stay-abroad scenario end to end."""
        workflow.respond("How long can I stay abroad?", "t1")

        prompt = llm_client.generate.call_args[0][0]
        assert "passport and visa advisory agent" in prompt[0]["content"]

        state = store.get("t1")
        assert state.country is None
        assert state.query_type == QueryType.GENERAL

    def test_latest_turn_overrides_context(self, workflow, store):
        """Test that a new detection replaces stale country and query type."""
        workflow.respond("Visa for France?", "t1")
        assert store.get("t1").country == "France"

        workflow.respond("And what about Peru?", "t1")
        assert store.get("t1").country == "Peru"

        workflow.respond("How long does processing take?", "t1")
        state = store.get("t1")
        assert state.country is None
        assert state.query_type == QueryType.GENERAL

    def test_two_exchanges_give_four_messages_in_order(self, workflow):
        workflow.respond("Visa for Japan?", "t1")
        workflow.respond("And for China?", "t1")

        history = workflow.history("t1")

        assert [(m.role, m.content) for m in history] == [
            (Role.USER, "Visa for Japan?"),
            (Role.ASSISTANT, "Reply 1"),
            (Role.USER, "And for China?"),
            (Role.ASSISTANT, "Reply 2"),
        ]

    def test_prompt_includes_prior_turns(self, workflow, llm_client):
        workflow.respond("Visa for Japan?", "t1")
        workflow.respond("How much does it cost?", "t1")

        prompt = llm_client.generate.call_args[0][0]
        assert [m["content"] for m in prompt[1:]] == ["Visa for Japan?", "Reply 1", "How much does it cost?"]

    def test_history_is_trimmed_for_model_but_not_storage(self, store, llm_client):
        """Test that only the window is sent while the full history is persisted."""
        workflow = ConversationWorkflow(store=store, llm_client=llm_client, trimmer=MessageTrimmer(max_tokens=3))

        for i in range(4):
            workflow.respond(f"Question {i}", "t1")

        prompt = llm_client.generate.call_args[0][0]
        assert [m["content"] for m in prompt[1:]] == ["Question 2", "Reply 3", "Question 3"]
        assert len(workflow.history("t1")) == 8

    def test_exactly_one_write_per_call(self, llm_client):
        store = Mock(wraps=InMemoryConversationStore())

        ConversationWorkflow(store=store, llm_client=llm_client).respond("Hi", "t1")

        store.upsert.assert_called_once()
        assert store.upsert.call_args[0][0] == "t1"

    @pytest.mark.parametrize("message", ["", "   ", None])
    def test_blank_message_rejected(self, workflow, llm_client, message):
        with pytest.raises(ValueError, match="Message is required"):
            workflow.respond(message, "t1")
        llm_client.generate.assert_not_called()


class TestFailures:
    """Tests for failure propagation and state preservation."""

    def test_model_failure_leaves_history_unchanged(self, workflow, llm_client, store):
        workflow.respond("Visa for Japan?", "t1")
        before = store.get("t1").to_dict()

        error = LLMClientError(LLMError(code="API_ERROR", message="boom", details={}))
        llm_client.generate.side_effect = error

        with pytest.raises(LLMClientError) as exc_info:
            workflow.respond("And for Spain?", "t1")

        assert exc_info.value is error
        assert store.get("t1").to_dict() == before

    def test_model_failure_on_new_thread_persists_nothing(self, workflow, llm_client, store):
        llm_client.generate.side_effect = LLMClientError(LLMError(code="TIMEOUT_ERROR", message="slow", details={}))

        with pytest.raises(LLMClientError):
            workflow.respond("Hello", "t-new")

        assert store.get("t-new") is None
        assert workflow.history("t-new") == []

    def test_store_failure_propagates(self, llm_client):
        store = Mock(spec=InMemoryConversationStore)
        store.get.side_effect = StoreError("database unreachable", "t1")

        with pytest.raises(StoreError):
            ConversationWorkflow(store=store, llm_client=llm_client).respond("Hi", "t1")

        llm_client.generate.assert_not_called()


class TestHistoryAndClear:
    """Tests for history and clear."""

    def test_history_unknown_thread_is_empty(self, workflow):
        assert workflow.history("nope") == []

    def test_clear_then_history_is_empty(self, workflow):
        workflow.respond("Visa for Japan?", "t1")

        assert workflow.clear("t1") is True
        assert workflow.history("t1") == []

    def test_clear_unknown_thread_succeeds(self, workflow):
        assert workflow.clear("never-existed") is True
        assert workflow.history("never-existed") == []

    def test_clear_then_respond_starts_fresh(self, workflow):
        workflow.respond("Visa for Japan?", "t1")
        workflow.clear("t1")
        workflow.respond("Hello", "t1")

        assert len(workflow.history("t1")) == 2

    def test_state_exposes_context(self, workflow):
        workflow.respond("Visa for Japan?", "t1")

        state = workflow.state("t1")

        assert isinstance(state, ConversationState)
        assert state.country == "Japan"
        assert workflow.state("missing") is None


class TestThreadLocking:
    """Tests for per-thread serialization of concurrent requests."""

    def _racing_client(self, started, release):
        client = Mock(spec=LLMClient)

        def generate(prompt):
            if client.generate.call_count == 1:
                started.set()
                release.wait(timeout=5)
            return llm_response(f"Reply {client.generate.call_count}")

        client.generate.side_effect = generate
        return client

    def _race(self, workflow, started, release):
        first = threading.Thread(target=workflow.respond, args=("First", "t1"))
        second = threading.Thread(target=workflow.respond, args=("Second", "t1"))
        first.start()
        assert started.wait(timeout=5)
        second.start()
        # Give the second request time to read state while the first is in flight
        second.join(timeout=0.2)
        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

    def test_concurrent_same_thread_keeps_both_turns(self, store):
        started, release = threading.Event(), threading.Event()
        workflow = ConversationWorkflow(store=store, llm_client=self._racing_client(started, release))

        self._race(workflow, started, release)

        contents = [m.content for m in workflow.history("t1")]
        assert len(contents) == 4
        assert contents[0] == "First"
        assert contents[2] == "Second"

    def test_without_locking_later_write_wins(self, store):
        """Test the unprotected behaviour: the earlier turn is overwritten."""
        started, release = threading.Event(), threading.Event()
        workflow = ConversationWorkflow(
            store=store,
            llm_client=self._racing_client(started, release),
            thread_locking=False
        )

        self._race(workflow, started, release)

        assert len(workflow.history("t1")) == 2
