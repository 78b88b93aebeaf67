"""User account models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class UsuarioDB(BaseModel):
    """User row as stored in the usuarios table."""
    id: int
    nombre: str
    email: str
    password_hash: str
    perfil_id: Optional[int] = None
    empresa_id: Optional[int] = None
    activo: bool = True
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class UsuarioResponse(BaseModel):
    """Public user representation (no credentials)."""
    id: int = Field(..., description="User ID")
    nombre: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    perfil_id: Optional[int] = Field(None, description="Assigned profile")
    empresa_id: Optional[int] = Field(None, description="Owning company")
    activo: bool = Field(..., description="Active status")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    @classmethod
    def from_db(cls, usuario: UsuarioDB) -> "UsuarioResponse":
        return cls(**usuario.model_dump(exclude={"password_hash"}))


class UsuarioListResponse(BaseModel):
    """One page of users plus the total row count."""
    items: List[UsuarioResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Users in the table")
    limit: int = Field(..., description="Page size requested")
    offset: int = Field(..., description="Rows skipped")
