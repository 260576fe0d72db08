"""Per-IP request limiting for the catalog routes (slowapi).

Every ``/books`` endpoint draws from one shared bucket per client address,
``RATE_LIMIT`` requests per window (default 100 per 15 minutes). Counters live
in ``RATE_LIMIT_STORAGE_URI``: in memory by default, Redis when several API
processes must share them.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings

settings = get_settings()

BOOKS_LIMIT_SCOPE = "books"

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)

books_rate_limit = limiter.shared_limit(settings.rate_limit, scope=BOOKS_LIMIT_SCOPE)
