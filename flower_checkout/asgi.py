"""
Cible ASGI pour uvicorn/gunicorn: `flower_checkout.asgi:app`.
Routes, middlewares et lifespan sont assemblés par flower_checkout.app_setup.
"""
from flower_checkout.app import app

__all__ = ["app"]
