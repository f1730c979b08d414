"""
Pydantic models for emergencies.
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional
from enum import Enum

from app.models.base import Location, MediaUpload
from app.utils.firestore_helpers import to_datetime


class EmergencyType(str, Enum):
    POLICE = "police"
    MEDICAL = "medical"
    FIRE = "fire"
    DISASTER = "disaster"


class SeverityLevel(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class EmergencyCreate(BaseModel):
    """Emergency filed by a citizen. Media is optional."""
    type: EmergencyType
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    contact_number: str = Field(..., pattern=r"^[0-9]{10,15}$")
    location: Location
    media: MediaUpload = Field(default_factory=MediaUpload)
    severity_level: SeverityLevel = SeverityLevel.MODERATE

    class Config:
        json_schema_extra = {
            "example": {
                "type": "fire",
                "title": "Fire in market shop",
                "description": "Smoke coming out of a shop in the main market lane.",
                "contact_number": "9876543210",
                "location": {"type": "Point", "coordinates": [73.8567, 18.5204]},
            }
        }
        extra = "ignore"


class EmergencyStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=50)
    remarks: Optional[str] = Field(None, max_length=500)
    resolution_notes: Optional[str] = Field(None, max_length=1000)


def _minutes_between(start, end) -> Optional[int]:
    start_dt, end_dt = to_datetime(start), to_datetime(end)
    if start_dt is None or end_dt is None:
        return None
    return int((end_dt - start_dt).total_seconds() // 60)


def emergency_to_response(emergency: Dict) -> Dict:
    """Add derived response/resolution times and media count."""
    media = emergency.get("media") or {}
    response = dict(emergency)
    response.pop("is_deleted", None)
    response["media_count"] = sum(len(media.get(kind) or []) for kind in ("images", "videos", "audio"))
    response["response_time_minutes"] = _minutes_between(emergency.get("created_at"), emergency.get("received_at"))
    response["resolution_time_minutes"] = _minutes_between(emergency.get("created_at"), emergency.get("resolved_at"))
    return response
