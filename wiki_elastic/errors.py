"""
wiki_elastic.errors — Exceptions raised by the HTTP client layer.

The dispatcher (``wiki_elastic.api``) catches all of these and turns them
into ``Outcome`` values; they only escape when the client is used directly.
"""

from typing import Optional


class ElasticError(Exception):
    """Base class for every error coming out of ``ElasticClient``."""


class TransportError(ElasticError):
    """Network-level failure: connection refused, timeout, broken response."""


class ElasticsearchError(ElasticError):
    """The engine answered with an HTTP status >= 400."""

    def __init__(self, status: int, error_type: Optional[str] = None, reason: Optional[str] = None):
        self.status = status
        self.error_type = error_type
        self.reason = reason
        super().__init__(f"HTTP {status} {error_type or 'error'}: {reason or 'no reason given'}")

    @property
    def is_not_found(self) -> bool:
        return self.status == 404
