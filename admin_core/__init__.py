"""
Shared building blocks for the identity admin SDK.

This package aggregates the cross-cutting pieces every SDK component uses:

- config: SDK configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics on a dedicated registry
- errors: Canonical error codes and exception types
- clock: Injectable time sources
- retry: Retry policy and the retrying httpx transport
- handlers / http: Error-handling HTTP client and its handlers

Domain logic lives in ``admin_auth``. Do not import from ``admin_auth`` here.
"""
