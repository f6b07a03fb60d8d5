# app/services/resolution_service.py
from typing import List

from app.core.errors import ValidationError
from app.services.numrot.client import NumrotClient
from app.services.numrot.models import Resolution


class ResolutionService:
    def __init__(self, client: NumrotClient):
        self.client = client

    def get_resolutions(self, nit: str) -> List[Resolution]:
        """Resoluciones de facturación vigentes del NIT (sin DV)."""
        if not nit:
            raise ValidationError("nit is required")
        if not 9 <= len(nit) <= 15:
            raise ValidationError("invalid nit format: must be between 9 and 15 characters")
        return self.client.get_resolutions(nit)
