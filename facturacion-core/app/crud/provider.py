# app/crud/provider.py
"""
CRUD de Proveedores.

Igual que en adquirientes, los NITs se guardan sin DV ni puntos. Un proveedor
se identifica por (ofe_identificacion, pro_identificacion).
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.provider import Provider
from app.utils.nit_validator import NitValidator

logger = logging.getLogger(__name__)

# Columnas admitidas en /busqueda/{campo}
SEARCH_FIELDS = (
    "pro_identificacion", "pro_id_personalizado", "pro_razon_social", "pro_nombre_comercial",
    "pro_primer_apellido", "pro_segundo_apellido", "pro_primer_nombre", "pro_otros_nombres",
    "tdo_codigo", "toj_codigo", "pai_codigo", "dep_codigo", "mun_codigo", "cpo_codigo",
    "pro_direccion", "pro_telefono", "pro_correo", "pro_matricula_mercantil", "rfi_codigo",
)

# columnaOrden -> atributo del modelo
ORDER_FIELDS = {
    "codigo": "pro_identificacion",
    "identificacion": "pro_identificacion",
    "razon_social": "pro_razon_social",
    "nombre_comercial": "pro_nombre_comercial",
    "fecha_creacion": "created_at",
    "fecha_modificacion": "updated_at",
    "estado": "estado",
    "pro_id": "id",
    "pro_identificacion": "pro_identificacion",
    "pro_razon_social": "pro_razon_social",
    "pro_nombre_comercial": "pro_nombre_comercial",
    "tdo_codigo": "tdo_codigo",
    "toj_codigo": "toj_codigo",
}


def get_provider(db: Session, ofe_identificacion: str, pro_identificacion: str) -> Optional[Provider]:
    return (
        db.query(Provider)
        .filter(
            Provider.ofe_identificacion == NitValidator.nit_sin_dv(ofe_identificacion),
            Provider.pro_identificacion == NitValidator.nit_sin_dv(pro_identificacion),
        )
        .order_by(Provider.id)
        .first()
    )


def provider_exists(db: Session, ofe_identificacion: str, pro_identificacion: str) -> bool:
    return get_provider(db, ofe_identificacion, pro_identificacion) is not None


def _search_filter(query, buscar: Optional[str]):
    if not buscar:
        return query
    patron = f"%{buscar.strip()}%"
    nombre = func.coalesce(Provider.pro_primer_nombre, "") + " " + func.coalesce(Provider.pro_primer_apellido, "")
    return query.filter(or_(
        Provider.pro_identificacion.ilike(patron),
        Provider.pro_razon_social.ilike(patron),
        Provider.pro_nombre_comercial.ilike(patron),
        nombre.ilike(patron),
    ))


def list_providers(
    db: Session,
    start: int = 0,
    length: int = 10,
    buscar: Optional[str] = None,
    columna_orden: str = "codigo",
    orden_direccion: str = "asc",
) -> Tuple[List[Provider], int]:
    """
    Página de proveedores y total de coincidencias con la búsqueda.

    length=-1 trae todos. Una columna de orden desconocida ordena por id.
    """
    query = _search_filter(db.query(Provider), buscar)
    total = query.count()

    column = getattr(Provider, ORDER_FIELDS.get(columna_orden, "id"))
    query = query.order_by(column.desc() if (orden_direccion or "").lower() == "desc" else column.asc())
    if length != -1:
        query = query.offset(start).limit(length)
    return query.all(), total


def search_providers(db: Session, campo: str, valor: str, ofe_identificacion: str, exacto: bool) -> List[Provider]:
    column = getattr(Provider, campo)
    condition = column == valor if exacto else column.ilike(f"%{valor}%")
    return (
        db.query(Provider)
        .filter(Provider.ofe_identificacion == NitValidator.nit_sin_dv(ofe_identificacion), condition)
        .order_by(Provider.id)
        .all()
    )


def create_provider(db: Session, data: Dict[str, Any]) -> Provider:
    provider = Provider(**data)
    db.add(provider)
    db.commit()
    db.refresh(provider)
    logger.info(
        "Proveedor creado",
        extra={"ofe": provider.ofe_identificacion, "pro": provider.pro_identificacion, "id": provider.id},
    )
    return provider


def update_provider(db: Session, provider: Provider, data: Dict[str, Any]) -> Provider:
    for field, value in data.items():
        setattr(provider, field, value)
    db.commit()
    db.refresh(provider)
    logger.info("Proveedor actualizado", extra={"id": provider.id})
    return provider
