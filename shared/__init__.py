"""
Shared utilities for the tagged cache layer.

This package aggregates the ambient building blocks used by ``tagcache``:

- config: Settings via pydantic-settings
- logging: Structured logging with correlation IDs
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- circuit_breaker: Fail-fast protection around store calls

Do not import from ``tagcache`` into shared/.
"""
