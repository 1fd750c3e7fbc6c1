"""
SyncPlans API module.

Provides FastAPI HTTP endpoints for the conflict engine.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
