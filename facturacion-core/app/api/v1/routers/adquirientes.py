from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.session import get_db
from app.schemas.adquiriente import AdquirienteCreate, AdquirienteRead, AdquirienteUpdate
from app.schemas.common import ErrorResponse
from app.crud.acquirer import acquirer_exists, create_acquirer, get_acquirer, list_acquirers, update_acquirer
from app.core.dependencies import get_dane_client
from app.services.dane_client import DaneClient
from app.utils.logger import logger

router = APIRouter(tags=["Adquirientes"])


@router.post(
    "",
    response_model=AdquirienteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Crear adquiriente",
    description="Registra un adquiriente para un OFE. Los NITs se guardan sin DV.",
    responses={409: {"model": ErrorResponse}},
)
def create(
    payload: AdquirienteCreate,
    db: Session = Depends(get_db),
    dane: DaneClient = Depends(get_dane_client),
):
    if acquirer_exists(db, payload.ofe_identificacion, payload.adq_identificacion, payload.adq_id_personalizado):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"El adquiriente {payload.adq_identificacion} ya existe "
                f"para el OFE {payload.ofe_identificacion}"
            ),
        )
    return create_acquirer(db, payload, dane=dane)


@router.get(
    "",
    response_model=List[AdquirienteRead],
    summary="Listar adquirientes",
)
def list_all(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    buscar: Optional[str] = Query(None, description="NIT, razón social o nombre comercial"),
    db: Session = Depends(get_db),
):
    adquirientes = list_acquirers(db, skip=skip, limit=limit, buscar=buscar)
    logger.info("Consulta de adquirientes", extra={"total": len(adquirientes), "buscar": buscar})
    return adquirientes


@router.get(
    "/{ofe_identificacion}/{adq_identificacion}",
    response_model=AdquirienteRead,
    summary="Obtener adquiriente",
    responses={404: {"model": ErrorResponse}},
)
def get_one(
    ofe_identificacion: str,
    adq_identificacion: str,
    adq_id_personalizado: Optional[str] = None,
    db: Session = Depends(get_db),
):
    adquiriente = get_acquirer(db, ofe_identificacion, adq_identificacion, adq_id_personalizado)
    if not adquiriente:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Adquiriente no encontrado")
    return adquiriente


@router.put(
    "/{ofe_identificacion}/{adq_identificacion}",
    response_model=AdquirienteRead,
    summary="Actualizar adquiriente",
    description="Reemplaza los datos del adquiriente, incluida la lista de contactos.",
    responses={404: {"model": ErrorResponse}},
)
def update(
    ofe_identificacion: str,
    adq_identificacion: str,
    payload: AdquirienteUpdate,
    adq_id_personalizado: Optional[str] = None,
    db: Session = Depends(get_db),
    dane: DaneClient = Depends(get_dane_client),
):
    adquiriente = get_acquirer(db, ofe_identificacion, adq_identificacion, adq_id_personalizado)
    if not adquiriente:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Adquiriente no encontrado")
    return update_acquirer(db, adquiriente, payload, dane=dane)
