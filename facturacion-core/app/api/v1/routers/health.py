"""
Health check del servicio.

Además de confirmar que la API responde, expone el estado del circuit breaker
y la ocupación de los limitadores del cliente Numrot.
"""
from fastapi import APIRouter, Depends
from typing import Dict

from app.core.config import settings
from app.core.dependencies import get_numrot_client
from app.services.numrot import NumrotClient

router = APIRouter(tags=["Health Check"])


@router.get("/health", summary="Estado del servicio")
def health(client: NumrotClient = Depends(get_numrot_client)) -> Dict:
    """
    Returns:
        {
            "status": "healthy" | "degraded",
            "service": "facturacion-core",
            "numrot": {"circuit_breaker": {...}, "concurrency": {...}, "rate_limiter": {...}}
        }
    """
    stats = client.stats()
    breaker = stats.get("circuit_breaker") or {}
    status = "degraded" if breaker.get("state") == "open" else "healthy"
    return {
        "status": status,
        "service": settings.app_name,
        "version": settings.app_version,
        "numrot": stats,
    }
