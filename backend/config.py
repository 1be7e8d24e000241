"""Configuration management for the Travel Advisory Assistant."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
APP_ENV = os.getenv("APP_ENV", "development")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

# CORS Configuration
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Rate Limits (slowapi syntax)
CHAT_RATE_LIMIT = os.getenv("CHAT_RATE_LIMIT", "20/minute")
STANDARD_RATE_LIMIT = os.getenv("STANDARD_RATE_LIMIT", "100/15minutes")

# Model Configuration
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")
MODEL_TEMPERATURE = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
MODEL_MAX_TOKENS = int(os.getenv("MODEL_MAX_TOKENS", "2048"))

# History Trimming Configuration
HISTORY_MAX_TOKENS = int(os.getenv("HISTORY_MAX_TOKENS", "4000"))
HISTORY_TOKEN_COUNTER = os.getenv("HISTORY_TOKEN_COUNTER", "messages")  # messages | tiktoken

# Conversation Store Configuration
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory")  # memory | supabase
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "conversation_states")
THREAD_LOCKING = _env_bool("THREAD_LOCKING", "true")

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
