"""Per-client rate limiting for the provider-backed endpoints, using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from speakquest.config import settings

# No accounts, so clients are keyed by address
limiter = Limiter(key_func=get_remote_address)

VOICE_LIMIT = f"{settings.rate_limit_voice}/minute"
