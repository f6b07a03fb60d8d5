from fastapi import APIRouter, Depends

from app.core.security import require_token

# Importa cada módulo de rutas
from app.api.v1.routers import (
    health,
    documentos,
    eventos,
    resoluciones,
    adquirientes,
    recepcion,
    proveedores,
)

# Router principal con prefijo global
# PERFORMANCE: redirect_slashes=False previene redirects 307 automáticos
# Todas las rutas exigen Bearer salvo AUTH_BYPASS_PATHS (ver core/security.py)
api_router = APIRouter(prefix="/api/v1", redirect_slashes=False, dependencies=[Depends(require_token)])

# Endpoint raíz para verificar que la API funciona
@api_router.get("/", tags=["Root"])
def read_root():
    return {"message": "Bienvenido a la API v1 de Facturación Core"}

# Registro de módulos de rutas
api_router.include_router(health.router)
api_router.include_router(documentos.router, prefix="/documentos")
api_router.include_router(eventos.router, prefix="/eventos")
api_router.include_router(resoluciones.router, prefix="/configuracion")
api_router.include_router(adquirientes.router, prefix="/adquirientes")
api_router.include_router(recepcion.router, prefix="/recepcion/documentos")
api_router.include_router(proveedores.router, prefix="/proveedores")
