"""Request rate limits for the HTTP API."""
from slowapi import Limiter
from slowapi.util import get_remote_address

from config import STANDARD_RATE_LIMIT

# Applied to every route through SlowAPIMiddleware; the chat routes add CHAT_RATE_LIMIT
limiter = Limiter(key_func=get_remote_address, default_limits=[STANDARD_RATE_LIMIT])
