"""
Shared slowapi limiter for the AI endpoints.

Registered on `app.state.limiter` in main.py; decorated endpoints must take
a `request: Request` argument.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from api.config.settings import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
