"""FastAPI application assembly."""

from flowtask.app.factory import create_app, setup_logging

__all__ = ["create_app", "setup_logging"]
