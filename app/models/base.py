"""
Pydantic base models shared by the API layer.

Every endpoint answers with the same envelope:
    {"success": true, "message": "...", "data": {...}}
Errors use {"success": false, "message": "..."} (see app.main).
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class Location(BaseModel):
    """GeoJSON point plus optional human-readable address."""
    type: str = Field(default="Point", pattern="^Point$")
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")
    address: Optional[str] = Field(None, max_length=500)
    landmark: Optional[str] = Field(None, max_length=200)

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]

    class Config:
        json_schema_extra = {
            "example": {
                "type": "Point",
                "coordinates": [73.8077, 18.5074],
                "address": "Karve Road, Kothrud, Pune",
                "landmark": "Near community hall",
            }
        }


class MediaUpload(BaseModel):
    """Already-hosted media URLs attached to a report or emergency."""
    images: List[str] = Field(default_factory=list, max_length=10)
    videos: List[str] = Field(default_factory=list, max_length=3)
    audio: List[str] = Field(default_factory=list, max_length=3)


def api_response(data: Any = None, message: Optional[str] = None) -> Dict:
    """Build the success envelope returned by route handlers."""
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
