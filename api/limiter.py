"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (mounted as middleware and on app.state) and by the
sign-in routes in api/routes/v1/auth.py and web/routes.py, which apply
SIGNIN_LIMIT with @limiter.limit(). One shared instance means the API and the
web form count against the same per-IP budget.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

# Each sign-in attempt costs one outbound call to the identity service, so it
# is the endpoint worth throttling.
SIGNIN_LIMIT: str = get_settings().signin_rate_limit

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
