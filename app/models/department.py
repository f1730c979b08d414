"""
Department models.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Roads & Transport",
                "description": "Potholes, broken signals, damaged footpaths",
                "icon": "road",
                "contact_email": "roads@city.gov.in",
                "contact_phone": "02025501000",
            }
        }


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")
    is_active: Optional[bool] = None
