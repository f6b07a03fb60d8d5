# app/services/numrot/__init__.py
from app.services.numrot.client import NumrotClient

__all__ = ["NumrotClient"]
