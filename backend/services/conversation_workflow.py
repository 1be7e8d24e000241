"""
Conversation workflow for the travel advisory assistant.

Runs one request end to end: load the thread's checkpoint, append the user
turn, classify it, trim the history, render the matching prompt, call the
model, then persist the turn pair. Nothing is written unless the model call
succeeds, so a failed request leaves the thread exactly as it was.
"""

import logging
import threading
import uuid
import weakref
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime
from typing import ContextManager, List, Optional

from models.conversation import ConversationState, Message, Role, utcnow
from services.conversation_store import ConversationStore
from services.intent_classifier import IntentClassifier
from services.llm_client import LLMClient
from services.message_trimmer import MessageTrimmer
from services.prompt_selector import PromptSelector

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """Reply returned by ConversationWorkflow.respond."""
    reply: Message
    thread_id: str
    timestamp: datetime = field(default_factory=utcnow)


class ThreadLocks:
    """
    One lock per thread ID, held across load -> model call -> save.

    Locks are weakly referenced and disappear once no request holds them.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def get(self, thread_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(thread_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[thread_id] = lock
            return lock


class ConversationWorkflow:
    """Orchestrates a single chat turn against persisted thread state."""

    def __init__(
        self,
        store: ConversationStore,
        llm_client: LLMClient,
        classifier: Optional[IntentClassifier] = None,
        trimmer: Optional[MessageTrimmer] = None,
        prompt_selector: Optional[PromptSelector] = None,
        thread_locking: bool = True
    ):
        """
        Args:
            store: Checkpoint store for thread state
            llm_client: Anything with generate(messages) -> LLMResponse
            classifier: Entity extraction and intent classification
            trimmer: History window policy
            prompt_selector: Query type -> prompt template
            thread_locking: Serialize concurrent requests on the same thread ID.
                Without it, two overlapping requests on one thread both read the
                same prior state and the later save drops the earlier turn.
        """
        self.store = store
        self.llm_client = llm_client
        self.classifier = classifier or IntentClassifier()
        self.trimmer = trimmer or MessageTrimmer()
        self.prompt_selector = prompt_selector or PromptSelector()
        self._thread_locks = ThreadLocks() if thread_locking else None

    def respond(self, message: str, thread_id: Optional[str] = None) -> ChatResult:
        """
        Process a user message and return the assistant reply.

        Args:
            message: User message text
            thread_id: Existing thread to continue; a new ID is generated when omitted

        Returns:
            ChatResult with the assistant reply and the thread ID used

        Raises:
            ValueError: If the message is empty
            LLMClientError: If the model call fails (nothing is persisted)
            StoreError: If the store cannot be read or written
        """
        if not message or not message.strip():
            raise ValueError("Message is required")

        thread_id = thread_id or self._generate_thread_id()

        with self._lock_for(thread_id):
            state = self.store.get(thread_id)
            if state is None:
                logger.info(f"Starting new thread {thread_id}", extra={"thread_id": thread_id})
                state = ConversationState()

            state.append(Message(role=Role.USER, content=message))

            # Latest turn wins, including clearing a stale country
            details = self.classifier.analyze(message)
            state.country = details.country
            state.query_type = details.query_type

            window = self.trimmer.trim(state.messages)
            prompt = self.prompt_selector.render(state.query_type, window, country=state.country)

            logger.info(
                f"Invoking model: thread={thread_id}, query_type={state.query_type}, "
                f"country={state.country}, window={len(window)}/{len(state.messages)} messages",
                extra={"thread_id": thread_id, "query_type": state.query_type}
            )
            try:
                response = self.llm_client.generate(prompt)
            except Exception:
                logger.error(f"Model call failed for thread {thread_id}; state not persisted")
                raise

            reply = response.to_message()
            state.append(reply)
            self.store.upsert(thread_id, state)

        logger.info(f"Thread {thread_id} now has {len(state.messages)} messages", extra={"thread_id": thread_id})
        return ChatResult(reply=reply, thread_id=thread_id)

    def history(self, thread_id: str) -> List[Message]:
        """Messages for a thread in arrival order; empty for an unknown thread."""
        state = self.store.get(thread_id)
        return list(state.messages) if state is not None else []

    def state(self, thread_id: str) -> Optional[ConversationState]:
        """Full checkpoint for a thread, or None if it does not exist."""
        return self.store.get(thread_id)

    def clear(self, thread_id: str) -> bool:
        """Delete a thread's checkpoint. Unknown threads are not an error."""
        with self._lock_for(thread_id):
            self.store.delete(thread_id)
        logger.info(f"Cleared thread {thread_id}", extra={"thread_id": thread_id})
        return True

    def _lock_for(self, thread_id: str) -> ContextManager:
        if self._thread_locks is None:
            return nullcontext()
        return self._thread_locks.get(thread_id)

    @staticmethod
    def _generate_thread_id() -> str:
        return str(uuid.uuid4())
