"""Conversation checkpoint storage keyed by thread ID."""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional
from supabase import create_client, Client

from models.conversation import ConversationState
from config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_TABLE

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The storage backend failed or returned a record that cannot be read."""

    def __init__(self, message: str, thread_id: Optional[str] = None):
        self.thread_id = thread_id
        super().__init__(message)


class ConversationStore(ABC):
    """
    Keyed checkpoint store: thread ID -> ConversationState.

    get() returns None for an unknown thread; that is not an error. Backend
    failures raise StoreError. upsert() replaces the full state (last writer
    wins) and delete() of an unknown thread is a no-op.
    """

    @abstractmethod
    def get(self, thread_id: str) -> Optional[ConversationState]:
        ...

    @abstractmethod
    def upsert(self, thread_id: str, state: ConversationState) -> None:
        ...

    @abstractmethod
    def delete(self, thread_id: str) -> None:
        ...


class InMemoryConversationStore(ConversationStore):
    """Process-local store. States are copied in and out so callers never share lists."""

    def __init__(self):
        self._states: Dict[str, ConversationState] = {}
        self._lock = threading.Lock()
        logger.info("InMemoryConversationStore initialized")

    def get(self, thread_id: str) -> Optional[ConversationState]:
        with self._lock:
            state = self._states.get(thread_id)
        return state.copy() if state is not None else None

    def upsert(self, thread_id: str, state: ConversationState) -> None:
        stored = state.copy()
        stored.updated_at = datetime.now(timezone.utc)
        with self._lock:
            self._states[thread_id] = stored
        logger.debug(f"Saved {len(stored.messages)} messages for thread {thread_id}")

    def delete(self, thread_id: str) -> None:
        with self._lock:
            self._states.pop(thread_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class SupabaseConversationStore(ConversationStore):
    """
    Durable store backed by a Supabase PostgreSQL table.

    Expected schema:
        thread_id text primary key,
        state jsonb not null,
        updated_at timestamptz not null
    """

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = SUPABASE_TABLE
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Table holding one row per thread

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"SupabaseConversationStore initialized with table: {table_name}")

    def get(self, thread_id: str) -> Optional[ConversationState]:
        try:
            result = self.client.table(self.table_name).select("state").eq("thread_id", thread_id).execute()
        except Exception as e:
            logger.error(f"Error retrieving thread {thread_id}: {e}", exc_info=True)
            raise StoreError(f"Failed to load conversation state: {e}", thread_id) from e

        if not result.data:
            return None

        try:
            return ConversationState.from_dict(result.data[0]["state"])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Corrupt state for thread {thread_id}: {e}")
            raise StoreError(f"Stored conversation state is unreadable: {e}", thread_id) from e

    def upsert(self, thread_id: str, state: ConversationState) -> None:
        updated_at = datetime.now(timezone.utc)
        stored = state.copy()
        stored.updated_at = updated_at
        try:
            self.client.table(self.table_name).upsert({
                "thread_id": thread_id,
                "state": stored.to_dict(),
                "updated_at": updated_at.isoformat()
            }).execute()
        except Exception as e:
            logger.error(f"Error saving thread {thread_id}: {e}", exc_info=True)
            raise StoreError(f"Failed to save conversation state: {e}", thread_id) from e

        logger.info(f"Saved {len(state.messages)} messages for thread {thread_id}")

    def delete(self, thread_id: str) -> None:
        try:
            self.client.table(self.table_name).delete().eq("thread_id", thread_id).execute()
        except Exception as e:
            logger.error(f"Error deleting thread {thread_id}: {e}", exc_info=True)
            raise StoreError(f"Failed to delete conversation state: {e}", thread_id) from e


def create_store(backend: str = "memory") -> ConversationStore:
    """Build the store named by STORE_BACKEND."""
    backend = (backend or "memory").lower()
    if backend == "memory":
        return InMemoryConversationStore()
    if backend == "supabase":
        return SupabaseConversationStore()
    raise ValueError(f"Unknown conversation store backend: {backend}")
