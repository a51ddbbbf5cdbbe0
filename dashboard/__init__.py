"""
Dashboard Package.

Read-only HTTP surface of the CCPI engine.

Modules:
- api: FastAPI application and endpoints
- schemas: camelCase response models
- services: cached snapshot, history and background refresh
"""

from .api import app, create_app
from .services import CCPIService, create_service

__all__ = ["app", "create_app", "CCPIService", "create_service"]
