# app/crud/acquirer.py
"""
CRUD de Adquirientes.

Los NITs se guardan y consultan sin DV ni puntos (ver NitValidator.nit_sin_dv),
de modo que "860.011.153-6" y "860011153" identifican al mismo OFE.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.acquirer import Acquirer, AcquirerContact
from app.schemas.adquiriente import AdquirienteCreate, AdquirienteUpdate
from app.services.dane_client import DaneClient
from app.utils.nit_validator import NitValidator

logger = logging.getLogger(__name__)


def _personalizado(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _filtro_id(query, ofe_identificacion: str, adq_identificacion: str, adq_id_personalizado: Optional[str]):
    query = query.filter(
        Acquirer.ofe_identificacion == NitValidator.nit_sin_dv(ofe_identificacion),
        Acquirer.adq_identificacion == NitValidator.nit_sin_dv(adq_identificacion),
    )
    personalizado = _personalizado(adq_id_personalizado)
    if personalizado is None:
        return query.filter(or_(Acquirer.adq_id_personalizado.is_(None), Acquirer.adq_id_personalizado == ""))
    return query.filter(Acquirer.adq_id_personalizado == personalizado)


def get_acquirer(
    db: Session,
    ofe_identificacion: str,
    adq_identificacion: str,
    adq_id_personalizado: Optional[str] = None,
) -> Optional[Acquirer]:
    return _filtro_id(db.query(Acquirer), ofe_identificacion, adq_identificacion, adq_id_personalizado).first()


def acquirer_exists(
    db: Session,
    ofe_identificacion: str,
    adq_identificacion: str,
    adq_id_personalizado: Optional[str] = None,
) -> bool:
    return get_acquirer(db, ofe_identificacion, adq_identificacion, adq_id_personalizado) is not None


def list_acquirers(db: Session, skip: int = 0, limit: int = 100, buscar: Optional[str] = None) -> List[Acquirer]:
    """
    Lista adquirientes con paginación.

    Args:
        buscar: texto libre sobre NIT del adquiriente, razón social o nombre comercial
    """
    query = db.query(Acquirer)
    if buscar:
        patron = f"%{buscar.strip()}%"
        query = query.filter(or_(
            Acquirer.adq_identificacion.like(patron),
            Acquirer.adq_razon_social.ilike(patron),
            Acquirer.adq_nombre_comercial.ilike(patron),
        ))
    return query.order_by(Acquirer.id).offset(skip).limit(limit).all()


def _contactos(payload) -> List[AcquirerContact]:
    return [AcquirerContact(**c.model_dump()) for c in payload.contactos]


def create_acquirer(db: Session, payload: AdquirienteCreate, dane: Optional[DaneClient] = None) -> Acquirer:
    data = payload.model_dump(exclude={"contactos"})
    if dane is not None:
        dane.completar_nombres(data)
    data["ofe_identificacion"] = NitValidator.nit_sin_dv(payload.ofe_identificacion)
    data["adq_identificacion"] = NitValidator.nit_sin_dv(payload.adq_identificacion)
    data["adq_id_personalizado"] = _personalizado(payload.adq_id_personalizado)

    acquirer = Acquirer(**data)
    acquirer.contactos = _contactos(payload)
    db.add(acquirer)
    db.commit()
    db.refresh(acquirer)
    logger.info(
        "Adquiriente creado",
        extra={"ofe": acquirer.ofe_identificacion, "adq": acquirer.adq_identificacion, "id": acquirer.id},
    )
    return acquirer


def update_acquirer(db: Session, acquirer: Acquirer, payload: AdquirienteUpdate,
                    dane: Optional[DaneClient] = None) -> Acquirer:
    """Reemplaza los datos del adquiriente y su lista de contactos."""
    data = payload.model_dump(exclude={"contactos"})
    if dane is not None:
        dane.completar_nombres(data)
    for field, value in data.items():
        setattr(acquirer, field, value)
    acquirer.contactos = _contactos(payload)
    db.commit()
    db.refresh(acquirer)
    logger.info("Adquiriente actualizado", extra={"id": acquirer.id})
    return acquirer
