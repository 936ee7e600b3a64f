"""Shared slowapi limiter instance."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from config import ENABLE_RATE_LIMITING, RATE_LIMIT

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT],
    enabled=ENABLE_RATE_LIMITING,
)

__all__ = ["limiter"]
