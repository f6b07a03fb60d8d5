from pydantic import BaseModel, Field
from typing import List


class ErrorResponse(BaseModel):
    """Cuerpo de error de la API: mensaje y lista de detalles."""
    message: str
    errors: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Error de Validación",
                "errors": ["document 1: cdo_consecutivo is required"]
            }
        }

