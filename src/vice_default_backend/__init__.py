"""Ingress default backend that routes unclaimed VICE app requests."""

from .main import create_app
from .settings import BackendSettings

__all__ = ["create_app", "BackendSettings"]
