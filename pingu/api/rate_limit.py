"""Rate Limiting — per-client-IP request budget shared by every route.

Invariants:
    - One application-wide limit (rate_limit_per_minute per IP) is counted across
      all routes together; no route-level overrides
    - Exceeding it yields 429 RATE_LIMITED in the standard error envelope
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from pingu.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[f"{get_settings().rate_limit_per_minute}/minute"],
)
