"""LLM Client for Groq chat completions."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from models.conversation import Message, Role
from config import GROQ_API_KEY, CHAT_MODEL, MODEL_TEMPERATURE, MODEL_MAX_TOKENS

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str

    def to_message(self) -> Message:
        return Message(role=Role.ASSISTANT, content=self.text)


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for generating assistant replies through the Groq API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CHAT_MODEL,
        temperature: float = MODEL_TEMPERATURE,
        max_tokens: int = MODEL_MAX_TOKENS
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model name
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate per reply
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = Groq(api_key=self.api_key)
        logger.info(f"LLMClient initialized successfully (model={model})")

    def generate(self, messages: List[Dict[str, str]]) -> LLMResponse:
        """
        Generate the next assistant reply for a rendered prompt.

        Args:
            messages: Rendered chat prompt, system message first

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {self.model} ({len(messages)} messages)")

            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                start_time, e, retry_after=60
            ) from e
        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                start_time, e
            ) from e
        except APITimeoutError as e:
            raise self._error("TIMEOUT_ERROR", "Request timed out. Please try again.", start_time, e) from e
        except APIError as e:
            raise self._error("API_ERROR", f"Groq API error: {str(e)}", start_time, e) from e
        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                start_time, e, error_type=type(e).__name__
            ) from e

        latency_ms = int((time.time() - start_time) * 1000)

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise self._error(
                "INVALID_RESPONSE",
                "Model returned an empty response.",
                start_time, ValueError("empty completion")
            )

        usage = response.usage
        tokens_input = usage.prompt_tokens if usage else 0
        tokens_output = usage.completion_tokens if usage else 0

        logger.info(
            f"Generated response: model={self.model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=self.model
        )

    def _error(self, code: str, message: str, start_time: float, cause: Exception, **details) -> LLMClientError:
        """Build and log a structured client error."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": self.model,
                "latency_ms": latency_ms,
                "original_error": str(cause),
                **details
            }
        )
        logger.error(
            f"{code}: model={self.model}, latency={latency_ms}ms, error={cause}",
            exc_info=cause,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
