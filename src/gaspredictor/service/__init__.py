"""
HTTP service for Gas Predictor.
"""

from gaspredictor.service.server import SERVICE_KEY, GasPredictorService, create_app, run_service

__all__ = ["create_app", "run_service", "GasPredictorService", "SERVICE_KEY"]
