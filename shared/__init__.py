"""
Shared utilities for the API façade.

Common building blocks consumed by the service packages:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI app factory, middleware and common routes

Do not import from service packages into shared/.
"""
