"""
API Server Instance

This module provides the global FastAPI application that every route module
is included into.

Architecture:
- instance.py: Creates the app object (imported by main.py)
- main.py: Configures logging, lifespan, middleware and error handlers
- routes/*.py: Each defines an APIRouter that main.py includes
"""

from fastapi import FastAPI

from analytics.services.api_server.config import VERSION

# Note: lifespan will be configured in main.py
app = FastAPI(
    title="Customer Segmentation API",
    version=VERSION,
    description="Customer segmentation, payments and campaign management",
)
