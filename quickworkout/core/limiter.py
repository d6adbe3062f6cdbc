"""
Per-client rate limits for the workout endpoints.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from quickworkout.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

# Generation is the only endpoint that calls the model
GENERATE_LIMIT = "10/minute"
PROCESS_RESPONSE_LIMIT = "30/minute"
DURATION_STRATEGY_LIMIT = "60/minute"
