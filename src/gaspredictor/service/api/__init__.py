"""
REST API module for Gas Predictor.
"""

from gaspredictor.service.api.errors import APIError, ErrorCode
from gaspredictor.service.api.routes import setup_routes

__all__ = ["setup_routes", "APIError", "ErrorCode"]
