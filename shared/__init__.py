"""
Shared utilities for the cached serializer.

This package aggregates common building blocks consumed by every module:

- config: Library settings via pydantic-settings
- logging: Structured logging with serialization context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Cross-cutting logic should live here to avoid import cycles. Do not import
from cached_serializer into shared/.
"""
