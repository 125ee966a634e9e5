"""
Rate Limiting Module

Provides rate limiting functionality using slowapi to protect the public
access-list endpoints from abuse.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from altiora.core.environment import env_config

# Every endpoint under /whitelist/, /waitlist/ and /access/ draws from this
# one bucket per client IP.
ACCESS_LIST_SCOPE = "access-list"
ACCESS_LIST_RATE_LIMIT = env_config.get("rate_limit", "10/minute")

# Uses client IP address as the key for rate limiting
limiter = Limiter(
    key_func=get_remote_address,
    enabled=env_config.get("rate_limit_enabled", True),
)

access_list_limit = limiter.shared_limit(ACCESS_LIST_RATE_LIMIT, scope=ACCESS_LIST_SCOPE)
