"""
Shared utilities for the query cache.

This package aggregates the cross-cutting building blocks used by
``query_cache`` and the bundled scripts:

- config: Settings via pydantic-settings
- logging: Structured logging with structlog
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for fetch functions

Do not import from ``query_cache`` into shared/.
"""
