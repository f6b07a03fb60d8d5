# app/schemas/resolucion.py
from pydantic import BaseModel
from typing import List, Optional


class ResolucionOut(BaseModel):
    resolutionNumber: str
    resolutionDate: Optional[str] = None
    prefix: str
    fromNumber: int
    toNumber: int
    validDateFrom: str
    validDateTo: str


class ResolucionesResponse(BaseModel):
    resolutions: List[ResolucionOut]
