"""
FastAPI REST API Layer for transvox.

This package defines all HTTP endpoints:
    - routes.py: Gateway action endpoint (/v1/gateway), /health, /metrics
    - schemas.py: Request Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
