"""Services for the Travel Advisory Assistant."""
from .entity_extractor import EntityExtractor, COUNTRY_VOCABULARY
from .intent_classifier import IntentClassifier, QueryDetails
from .prompt_selector import PromptSelector, PromptTemplate
from .message_trimmer import MessageTrimmer, count_messages, tiktoken_counter
from .conversation_store import ConversationStore, InMemoryConversationStore, SupabaseConversationStore, StoreError, create_store
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .conversation_workflow import ConversationWorkflow, ChatResult

__all__ = ['EntityExtractor', 'COUNTRY_VOCABULARY', 'IntentClassifier', 'QueryDetails', 'PromptSelector', 'PromptTemplate', 'MessageTrimmer', 'count_messages', 'tiktoken_counter', 'ConversationStore', 'InMemoryConversationStore', 'SupabaseConversationStore', 'StoreError', 'create_store', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'ConversationWorkflow', 'ChatResult']
